"""
Command-line interface for hangwatch.

Subcommands:
- start: start monitoring, run a set of sample operations including one that
  hangs, then stop and write the resulting report and data
- monitor: run a Python script inside a monitoring session
- stack: print the call stack summary of an exported data file
- report: render the Markdown report of an exported data file

Sessions are process-local: each `start` or `monitor` invocation stops its own
session when its work finishes or on Ctrl+C, so there is no separate stop
command.
"""

import argparse
import asyncio
import logging
import math
import runpy
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import get_config, set_config_path
from ..models.config import AppConfig
from ..monitoring import global_monitor
from ..reporting.report import render_report_from_payload
from ..reporting.summary import empty_call_stack_summary
from ..storage.writer import MonitoringDataWriter
from ..validation import ValidationError, handle_cli_error, validate_positive_float

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hangwatch",
        description="Track calls, sample process resources and detect hanging work.",
    )
    parser.add_argument("--config", type=Path, help="Path to a config.toml file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    session = argparse.ArgumentParser(add_help=False)
    session.add_argument(
        "-i", "--interval", type=float,
        help="Sampling interval in milliseconds. Defaults to the configured interval.",
    )
    session.add_argument(
        "-t", "--timeout", type=float,
        help="Hanging threshold in milliseconds. Defaults to the configured threshold.",
    )
    session.add_argument(
        "-m", "--memory", type=float,
        help="Memory alert threshold in MiB. Defaults to the configured threshold.",
    )
    session.add_argument(
        "-o", "--output", type=Path,
        help="Report path (Markdown). Data is exported next to it as JSON.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser(
        "start", parents=[session],
        help="Start monitoring and run sample operations, including one that hangs.",
    )
    start.add_argument(
        "--hang-seconds", type=float, default=10.0,
        help="How long the simulated hanging operation runs.",
    )

    monitor = subparsers.add_parser("monitor", parents=[session], help="Run a Python script under monitoring.")
    monitor.add_argument("script", type=Path, help="Script to run.")
    monitor.add_argument("script_args", nargs=argparse.REMAINDER, help="Arguments for the script.")

    stack = subparsers.add_parser("stack", help="Print the call stack summary of exported data.")
    stack.add_argument("input", type=Path, nargs="?", help="Exported JSON data file.")

    report = subparsers.add_parser("report", help="Render the report of exported data.")
    report.add_argument("input", type=Path, help="Exported JSON data file.")
    report.add_argument("-o", "--output", type=Path, help="Write the report here instead of stdout.")

    return parser


def detection_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Detection config overrides from command-line options."""
    overrides: Dict[str, Any] = {}
    if args.timeout is not None:
        overrides["timeout_threshold"] = validate_positive_float(
            args.timeout, min_value=1.0, field_name="--timeout"
        )
    if args.memory is not None:
        memory_mib = validate_positive_float(args.memory, min_value=1.0, field_name="--memory")
        overrides["memory_threshold"] = int(memory_mib * 1024 * 1024)
    return overrides


def output_paths(args: argparse.Namespace, app_config: AppConfig) -> "tuple[Path, Path]":
    """Report and data paths for a finished session."""
    if args.output is not None:
        return args.output, args.output.with_suffix(".json")
    output_dir = app_config.storage.output_dir
    return output_dir / "event-loop-report.md", output_dir / "event-loop-data.json"


def log_summary(snapshot_count: int, summary: Dict[str, Any]) -> None:
    stats = summary["summary"]
    logger.info(
        f"Snapshots: {snapshot_count}, active: {stats['total_active']}, "
        f"completed: {stats['total_completed']}, failed: {stats['total_failed']}, "
        f"hanging: {stats['total_hanging']}"
    )
    logger.info(
        f"Duration avg {stats['average_duration']:.2f}ms, "
        f"max {stats['max_duration']:.2f}ms"
    )
    for call in summary["hanging"]:
        logger.warning(
            f"Hanging: {call['function_name']} at {call['file_name']}:{call['line_number']} "
            f"metadata={call['metadata']}"
        )


def finish_session(args: argparse.Namespace, app_config: AppConfig) -> List[Path]:
    """Stop the global session, then write its report and data."""
    snapshots = global_monitor.stop_monitoring()
    summary = global_monitor.get_call_stack_summary()
    log_summary(len(snapshots), summary)

    report_path, data_path = output_paths(args, app_config)
    writer = MonitoringDataWriter(app_config.storage)
    written = [writer.write_report(global_monitor.generate_monitoring_report(), report_path)]
    written += global_monitor.export_monitoring_data(data_path)
    return written


async def run_sample_operations(hang_seconds: float, wait_seconds: float) -> None:
    """
    Run quick, medium, hanging, CPU-bound and memory-bound sample operations.

    The hanging operation is left running for ``wait_seconds`` so the sampler
    can flag it, then cancelled.
    """
    track = global_monitor.track_operation

    await track(
        lambda: asyncio.sleep(0.1, result="quick operation completed"),
        "quickOperation",
        {"type": "test", "duration": "short"},
    )
    await track(
        lambda: asyncio.sleep(0.5, result="medium operation completed"),
        "mediumOperation",
        {"type": "test", "duration": "medium"},
    )

    hanging = asyncio.ensure_future(track(
        lambda: asyncio.sleep(hang_seconds),
        "hangingOperation",
        {"type": "test", "duration": "long", "should_hang": True},
    ))

    track(
        lambda: sum(math.sqrt(i) for i in range(1_000_000)),
        "cpuIntensiveOperation",
        {"type": "test", "operation": "cpu-intensive"},
    )
    track(
        lambda: len(list(range(1_000_000))),
        "memoryIntensiveOperation",
        {"type": "test", "operation": "memory-intensive"},
    )
    logger.info("Sample operations completed; waiting for hang detection")

    done, _ = await asyncio.wait({hanging}, timeout=wait_seconds)
    if not done:
        hanging.cancel()
        try:
            await hanging
        except asyncio.CancelledError:
            logger.info("Cancelled the simulated hanging operation")


def run_start(args: argparse.Namespace, app_config: AppConfig) -> List[Path]:
    overrides = detection_overrides(args)
    global_monitor.start_monitoring(args.interval, overrides)

    monitor = global_monitor.get_event_loop_monitor()
    interval_ms = args.interval or app_config.sampling.interval_ms
    wait_seconds = (monitor.config.timeout_threshold + 2 * interval_ms) / 1000.0
    try:
        asyncio.run(run_sample_operations(args.hang_seconds, wait_seconds))
    finally:
        written = finish_session(args, app_config)
    return written


def run_script(args: argparse.Namespace, app_config: AppConfig) -> int:
    """
    Execute a script as ``__main__`` inside a monitoring session.

    Returns:
        The script's exit code
    """
    script = args.script
    if not script.is_file():
        raise FileNotFoundError(f"Script not found: {script}")

    global_monitor.start_monitoring(args.interval, detection_overrides(args))
    logger.info(f"Monitoring script: {script}")

    exit_code = 0
    saved_argv = sys.argv
    sys.argv = [str(script), *args.script_args]
    try:
        runpy.run_path(str(script), run_name="__main__")
    except SystemExit as e:
        exit_code = e.code if isinstance(e.code, int) else (0 if e.code is None else 1)
    finally:
        sys.argv = saved_argv
        finish_session(args, app_config)

    logger.info(f"Script finished with exit code {exit_code}")
    return exit_code


def load_exported(path: Optional[Path]) -> Dict[str, Any]:
    return MonitoringDataWriter().load_payload(path)


def show_call_stack(args: argparse.Namespace) -> None:
    if args.input is None:
        summary = global_monitor.get_call_stack_summary()
    else:
        summary = load_exported(args.input).get("call_stack_summary") or empty_call_stack_summary()

    stats = summary["summary"]
    lines = [
        "Call Stack Summary",
        "==================",
        f"Active Calls: {stats['total_active']}",
        f"Completed Calls: {stats['total_completed']}",
        f"Failed Calls: {stats['total_failed']}",
        f"Hanging Calls: {stats['total_hanging']}",
        f"Average Duration: {stats['average_duration']:.2f}ms",
        f"Max Duration: {stats['max_duration']:.2f}ms",
    ]
    for title, key in (("Active", "active"), ("Hanging", "hanging"), ("Recent", "recent")):
        if summary[key]:
            lines.append(f"\n{title} calls:")
            for call in summary[key]:
                lines.append(
                    f"  - {call['function_name']} [{call['status']}] "
                    f"{call['file_name']}:{call['line_number']}"
                )
    print("\n".join(lines))


def show_report(args: argparse.Namespace) -> None:
    report = render_report_from_payload(load_exported(args.input))
    if args.output is not None:
        MonitoringDataWriter().write_report(report, args.output)
    else:
        print(report)


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: On configuration errors, invalid options or script failure
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.config is not None:
            set_config_path(args.config)
        app_config = get_config()
    except (FileNotFoundError, ValidationError) as e:
        handle_cli_error(error=e, context="configuration loading", exit_code=1, logger=logger)

    try:
        if args.command == "start":
            for path in run_start(args, app_config):
                logger.info(f"Wrote {path}")
        elif args.command == "monitor":
            exit_code = run_script(args, app_config)
            if exit_code:
                sys.exit(exit_code)
        elif args.command == "stack":
            show_call_stack(args)
        elif args.command == "report":
            show_report(args)
    except (FileNotFoundError, ValidationError) as e:
        handle_cli_error(error=e, context=f"{args.command} command", exit_code=1, logger=logger)
    except KeyboardInterrupt:
        logger.warning("Interrupted; stopping monitoring")
        global_monitor.stop_monitoring()
        sys.exit(130)


if __name__ == "__main__":
    main_cli()
