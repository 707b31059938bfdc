"""
Unit tests for the event loop lag probe.
"""

import asyncio
import threading
import time

import pytest

from hangwatch.collectors import LoopLagProbe


@pytest.mark.unit
class TestLoopLagProbe:
    """Test cases for LoopLagProbe."""

    def test_no_loop_measures_zero(self):
        assert LoopLagProbe().measure(0.1) == 0.0

    def test_stopped_loop_measures_zero(self):
        loop = asyncio.new_event_loop()
        try:
            assert LoopLagProbe(loop).measure(0.1) == 0.0
        finally:
            loop.close()

    def test_attach_running_loop_outside_loop(self):
        probe = LoopLagProbe()
        assert probe.attach_running_loop() is False
        assert probe.loop is None

    @pytest.mark.asyncio
    async def test_attach_running_loop_inside_loop(self):
        probe = LoopLagProbe()
        assert probe.attach_running_loop() is True
        assert probe.loop is asyncio.get_running_loop()
        # Measuring from the loop's own thread would deadlock, so it reports 0.
        assert probe.measure(0.1) == 0.0

    def test_idle_loop_has_low_lag(self):
        loop = asyncio.new_event_loop()
        thread = threading.Thread(target=loop.run_forever, daemon=True)
        thread.start()
        try:
            probe = LoopLagProbe(loop)
            assert probe.measure(1.0) < 500.0
        finally:
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=2.0)
            loop.close()

    def test_blocked_loop_reports_timeout(self):
        loop = asyncio.new_event_loop()
        thread = threading.Thread(target=loop.run_forever, daemon=True)
        thread.start()
        blocked = threading.Event()

        def block():
            blocked.set()
            time.sleep(0.5)

        try:
            loop.call_soon_threadsafe(block)
            assert blocked.wait(1.0)
            probe = LoopLagProbe(loop)
            assert probe.measure(0.1) == pytest.approx(100.0)
        finally:
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=2.0)
            loop.close()
