from __future__ import annotations

"""Configuration parsing for site-wide monitor.conf files.

Only the `[monitor]` section is read. It carries the scheduler command names
and the fixed delays that are not exposed on the command line.
"""

import os
import re
from dataclasses import dataclass

from .models import (
    DEFAULT_DESYNC_GRACE_PERIOD,
    DEFAULT_INSPECTION_BACKOFF,
    DEFAULT_MAXIMUM_STARTUP_JITTER,
)

DEFAULT_CONFIG_PATH = os.path.join(os.sep, "etc", "sbatch-job-monitor", "monitor.conf")
QUEUE_COMMAND_ENV = "SBATCH_JOB_MONITOR_QUEUE_COMMAND"


@dataclass
class MonitorConfig:
    """Scheduler command and timing settings loaded from monitor.conf."""

    submit_command: str = "sbatch"
    queue_command: str = "sjobs"
    cancel_command: str = "scancel"
    inspection_backoff: int = DEFAULT_INSPECTION_BACKOFF
    desync_grace_period: int = DEFAULT_DESYNC_GRACE_PERIOD
    maximum_startup_jitter: int = DEFAULT_MAXIMUM_STARTUP_JITTER
    command_timeout: float | None = None


def _strip_comments(record: str) -> str:
    """Drop inline comments while preserving leading assignment content."""
    hash_pos = record.find("#")
    if hash_pos == -1:
        return record
    return record[:hash_pos]


def _parse_seconds(key: str, value: str) -> int:
    try:
        seconds = int(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer number of seconds") from exc
    if seconds < 0:
        raise ValueError(f"{key} cannot be negative")
    return seconds


def load_monitor_config(path: str = DEFAULT_CONFIG_PATH) -> MonitorConfig:
    """
    Parse monitor configuration from disk.

    A missing file yields defaults. Unknown keys are ignored so one file can
    be shared with other scheduler tooling.
    """

    cfg = MonitorConfig()
    if path and os.path.exists(path):
        section_re = re.compile(r"^\s*\[([^\]]+)\]\s*$")
        kv_re = re.compile(r"^\s*(\w+)\s*=\s*(.*?)\s*$")
        in_monitor_section = False

        with open(path, "r", encoding="utf-8") as fp:
            for raw_record in fp:
                record = _strip_comments(raw_record).strip()
                if not record:
                    continue

                section_match = section_re.match(record)
                if section_match:
                    in_monitor_section = section_match.group(1) == "monitor"
                    continue

                if not in_monitor_section:
                    continue

                kv_match = kv_re.match(record)
                if not kv_match:
                    continue

                key, value = kv_match.group(1), kv_match.group(2)
                if key == "submitCommand":
                    cfg.submit_command = value
                elif key == "queueCommand":
                    cfg.queue_command = value
                elif key == "cancelCommand":
                    cfg.cancel_command = value
                elif key == "inspectionBackoff":
                    cfg.inspection_backoff = _parse_seconds(key, value)
                elif key == "desyncGracePeriod":
                    cfg.desync_grace_period = _parse_seconds(key, value)
                elif key == "maximumStartupJitter":
                    cfg.maximum_startup_jitter = _parse_seconds(key, value)
                elif key == "commandTimeout":
                    cfg.command_timeout = float(value) if value else None

    # Sites without sjobs point this at a squeue wrapper.
    forced_queue_command = os.environ.get(QUEUE_COMMAND_ENV)
    if forced_queue_command:
        cfg.queue_command = forced_queue_command

    return cfg
