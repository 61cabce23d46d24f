"""Blocking batch-scheduler job monitor with crash detection and resubmission."""

from .builder import CommandBuilder
from .client import CommandResult, SlurmClient, Submission
from .config import MonitorConfig, load_monitor_config
from .errors import (
    InspectionError,
    KillError,
    MonitorAbortedError,
    ParseError,
    SchedulerError,
    SubmissionError,
)
from .models import JobAttempt, MarkerState, MonitorSettings, MonitorState
from .monitor import JobMonitor, check_markers, clear_markers
from .utils import parse_job_id, parse_queue_listing, retry_call

__all__ = [
    "CommandBuilder",
    "CommandResult",
    "SlurmClient",
    "Submission",
    "MonitorConfig",
    "load_monitor_config",
    "InspectionError",
    "KillError",
    "MonitorAbortedError",
    "ParseError",
    "SchedulerError",
    "SubmissionError",
    "JobAttempt",
    "MarkerState",
    "MonitorSettings",
    "MonitorState",
    "JobMonitor",
    "check_markers",
    "clear_markers",
    "parse_job_id",
    "parse_queue_listing",
    "retry_call",
]
