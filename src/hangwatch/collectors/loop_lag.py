"""
Event loop lag measurement.

The probe schedules a no-op callback on an asyncio event loop from the
sampler thread and measures how long the loop takes to run it. A loop that
is busy running blocking code cannot run the callback, so the measured delay
is a direct proxy for scheduler starvation.
"""

import asyncio
import logging
import threading
import time
from typing import Optional

logger = logging.getLogger(__name__)


class LoopLagProbe:
    """
    Measures scheduling delay of an attached asyncio event loop.

    Without an attached, running loop every measurement is 0.0.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._lock = threading.Lock()

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        with self._lock:
            return self._loop

    def attach(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Attach the loop to probe (None detaches)."""
        with self._lock:
            if loop is not self._loop:
                logger.debug(f"Lag probe attached to loop {loop!r}")
            self._loop = loop

    def attach_running_loop(self) -> bool:
        """
        Attach the loop running in the current thread, if any.

        Returns:
            True if a running loop was found and attached
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self.attach(loop)
        return True

    def measure(self, timeout: float) -> float:
        """
        Measure the loop's scheduling delay.

        Args:
            timeout: Maximum seconds to wait for the callback to run

        Returns:
            Delay in milliseconds; ``timeout`` in milliseconds when the loop
            did not run the callback in time (a lower bound of the real lag)
        """
        loop = self.loop
        if loop is None or loop.is_closed() or not loop.is_running():
            return 0.0

        try:
            if asyncio.get_running_loop() is loop:
                # Waiting here would block the very loop being measured.
                return 0.0
        except RuntimeError:
            pass

        executed = threading.Event()
        start = time.monotonic()
        try:
            loop.call_soon_threadsafe(executed.set)
        except RuntimeError:
            # Loop closed between the checks above and scheduling.
            return 0.0

        if executed.wait(timeout):
            return (time.monotonic() - start) * 1000.0

        logger.debug(f"Event loop did not respond within {timeout * 1000.0:.0f}ms")
        return timeout * 1000.0
