from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_RESOURCES = "--time=2:00:00 --mem=17g"
DEFAULT_QUEUE = "norm"
DEFAULT_SLEEP_TIME = 10
DEFAULT_CRASHCHECK_INTERVAL = 3600
DEFAULT_CRASHCHECK_ATTEMPTS = 10
DEFAULT_ERROR_RESUB_LIMIT = 3
DEFAULT_INSPECTION_BACKOFF = 60
DEFAULT_DESYNC_GRACE_PERIOD = 120
DEFAULT_MAXIMUM_STARTUP_JITTER = 30


class MarkerState(str, Enum):
    """Classification of the terminal marker files for one output prefix."""

    NONE = "none"
    SUCCESS = "success"
    FAIL = "fail"


class MonitorState(str, Enum):
    """Lifecycle states of a monitored job."""

    SUBMITTED = "submitted"
    POLLING_MARKERS = "polling_markers"
    CRASH_CHECKING = "crash_checking"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FATALLY_ABORTED = "fatally_aborted"


@dataclass
class MonitorSettings:
    """Typed configuration bundle for one monitored job."""

    output_prefix: str
    command_script: str
    job_name: str | None = None
    resources: str = DEFAULT_RESOURCES
    queue: str = DEFAULT_QUEUE

    sleep_time: int = DEFAULT_SLEEP_TIME
    crashcheck_interval: int = DEFAULT_CRASHCHECK_INTERVAL
    crashcheck_attempts: int = DEFAULT_CRASHCHECK_ATTEMPTS
    error_resub_limit: int = DEFAULT_ERROR_RESUB_LIMIT

    inspection_backoff: int = DEFAULT_INSPECTION_BACKOFF
    desync_grace_period: int = DEFAULT_DESYNC_GRACE_PERIOD
    maximum_startup_jitter: int = DEFAULT_MAXIMUM_STARTUP_JITTER

    def __post_init__(self) -> None:
        if not self.output_prefix.strip():
            raise ValueError("output_prefix must be a non-empty string")
        if not self.command_script.strip():
            raise ValueError("command_script must be a non-empty string")
        if self.crashcheck_attempts < 1:
            raise ValueError("crashcheck_attempts must be at least 1")
        # elapsed only advances by sleep_time between marker checks
        if self.sleep_time < 1:
            raise ValueError("sleep_time must be at least 1")
        for name in (
            "crashcheck_interval",
            "error_resub_limit",
            "inspection_backoff",
            "desync_grace_period",
            "maximum_startup_jitter",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def success_marker(self) -> str:
        return self.output_prefix + ".success"

    @property
    def fail_marker(self) -> str:
        return self.output_prefix + ".fail"

    @property
    def output_log(self) -> str:
        return self.output_prefix + ".output"

    @property
    def error_log(self) -> str:
        return self.output_prefix + ".error"


@dataclass
class JobAttempt:
    """One scheduler submission made on behalf of the monitored job."""

    sequence: int
    job_id: int
    reason: str
    submitted_at: float

    def to_dict(self) -> dict[str, object]:
        """Serialize attempt record."""
        return {
            "sequence": self.sequence,
            "job_id": self.job_id,
            "reason": self.reason,
            "submitted_at": self.submitted_at,
        }
