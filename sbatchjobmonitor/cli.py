from __future__ import annotations

import argparse
import sys

from .client import SlurmClient, resolve_client_version
from .config import DEFAULT_CONFIG_PATH, load_monitor_config
from .errors import SchedulerError
from .models import (
    DEFAULT_CRASHCHECK_ATTEMPTS,
    DEFAULT_CRASHCHECK_INTERVAL,
    DEFAULT_ERROR_RESUB_LIMIT,
    DEFAULT_QUEUE,
    DEFAULT_RESOURCES,
    DEFAULT_SLEEP_TIME,
    MonitorSettings,
)
from .monitor import JobMonitor

EXIT_FATAL = 1


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError("value cannot be negative")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sbatch-job-monitor",
        description=(
            "Submit one job to the batch scheduler and block until it writes "
            "a success or fail marker, resubmitting crashed or errored attempts."
        ),
    )
    parser.add_argument(
        "-o",
        "--output-prefix",
        required=True,
        help="Prefix of all scheduler output files and .success/.fail markers",
    )
    parser.add_argument(
        "-j",
        "--job-name",
        default=None,
        help="Name of submitted job (default: derived from output prefix)",
    )
    parser.add_argument(
        "-r",
        "--resources",
        default=DEFAULT_RESOURCES,
        help=f"Resource request to sbatch (default: {DEFAULT_RESOURCES!r})",
    )
    parser.add_argument(
        "-q",
        "--queue",
        default=DEFAULT_QUEUE,
        help=f"Scheduler partition (default: {DEFAULT_QUEUE})",
    )
    parser.add_argument(
        "-c",
        "--command-script",
        required=True,
        help="Script to submit",
    )
    parser.add_argument(
        "-t",
        "--sleep-time",
        type=_non_negative_int,
        default=DEFAULT_SLEEP_TIME,
        help="Seconds to sleep between marker checks",
    )
    parser.add_argument(
        "-i",
        "--crashcheck-interval",
        type=_non_negative_int,
        default=DEFAULT_CRASHCHECK_INTERVAL,
        help="Seconds to wait before checking the queue for job existence",
    )
    parser.add_argument(
        "-a",
        "--crashcheck-attempts",
        type=_non_negative_int,
        default=DEFAULT_CRASHCHECK_ATTEMPTS,
        help="Consecutive failed queue queries tolerated before giving up",
    )
    parser.add_argument(
        "-e",
        "--error-resub-limit",
        type=_non_negative_int,
        default=DEFAULT_ERROR_RESUB_LIMIT,
        help="Resubmissions allowed for jobs in a scheduler error state",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to site monitor config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Trace every scheduler command and crash check",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s " + resolve_client_version(),
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    if not argv:
        parser.print_help(sys.stdout)
        return EXIT_FATAL
    try:
        ns = parser.parse_args(argv)
    except SystemExit as exc:
        # --help/--version exit 0; usage errors must not look like a fail marker
        if exc.code in (None, 0):
            raise
        return EXIT_FATAL

    try:
        config = load_monitor_config(ns.config)
        settings = MonitorSettings(
            output_prefix=ns.output_prefix,
            command_script=ns.command_script,
            job_name=ns.job_name,
            resources=ns.resources,
            queue=ns.queue,
            sleep_time=ns.sleep_time,
            crashcheck_interval=ns.crashcheck_interval,
            crashcheck_attempts=ns.crashcheck_attempts,
            error_resub_limit=ns.error_resub_limit,
            inspection_backoff=config.inspection_backoff,
            desync_grace_period=config.desync_grace_period,
            maximum_startup_jitter=config.maximum_startup_jitter,
        )
        client = SlurmClient(
            queue_command=config.queue_command,
            cancel_command=config.cancel_command,
            operation_timeout=config.command_timeout,
            verbose=ns.verbose,
        )
        monitor = JobMonitor(
            settings,
            submitter=client,
            inspector=client,
            submit_command=config.submit_command,
            verbose=ns.verbose,
        )
        return monitor.run()
    except (ValueError, OSError, SchedulerError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return EXIT_FATAL
