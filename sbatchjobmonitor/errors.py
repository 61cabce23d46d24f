from __future__ import annotations


class SchedulerError(RuntimeError):
    """Raised when interaction with the batch scheduler fails."""


class SubmissionError(SchedulerError):
    """Raised when a job cannot be submitted or its job id cannot be read."""


class InspectionError(SchedulerError):
    """Raised when the queue listing command cannot be run."""


class ParseError(InspectionError):
    """Raised when queue listing output is malformed."""


class KillError(SchedulerError):
    """Raised when a cancellation command fails."""


class MonitorAbortedError(SchedulerError):
    """Raised when the monitor gives up on a job it can no longer supervise."""
