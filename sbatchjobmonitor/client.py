from __future__ import annotations

"""Scheduler client implementation.

This module contains:
- `CommandResult` / `Submission` records for captured command output
- the `SlurmClient` used by the monitor as both its submitter and its queue
  inspector (`submit`, `list_jobs`, `kill`)
"""

import shlex
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Dict, TextIO, Type

try:
    from importlib.metadata import PackageNotFoundError, version as package_version
except ImportError:  # pragma: no cover - Python 3.7 compatibility
    from importlib_metadata import PackageNotFoundError, version as package_version

from .builder import CommandBuilder
from .errors import InspectionError, KillError, SchedulerError, SubmissionError
from .utils import QUEUE_ERROR_STATUS, parse_job_id, parse_queue_listing


def resolve_client_version() -> str:
    """Resolve installed package version for `--version` output."""
    try:
        return package_version("sbatchjobmonitor")
    except PackageNotFoundError:
        return "0.0.0"


def format_command(args: list[str]) -> str:
    """Render an argument vector the way a shell user would type it."""
    return " ".join(shlex.quote(arg) for arg in args)


@dataclass
class CommandResult:
    """Captured output of one scheduler command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        """True when `returncode == 0`."""
        return self.returncode == 0


@dataclass
class Submission:
    """Result of one successful job submission."""

    job_id: int
    stdout: str
    args: list[str] = field(default_factory=list)


class SlurmClient:
    """Runs sbatch/sjobs/scancel style commands through `subprocess`."""

    def __init__(
        self,
        *,
        queue_command: str = "sjobs",
        cancel_command: str = "scancel",
        error_status: str = QUEUE_ERROR_STATUS,
        operation_timeout: float | None = None,
        verbose: bool = False,
        verbose_stream: TextIO | None = None,
    ) -> None:
        """Initialize a client with the site's queue and cancel commands.

        The submission command is not configured here: callers pass a fully
        built argument vector to `submit` so that every resubmission repeats
        the original command exactly.
        """
        self.queue_command = queue_command
        self.cancel_command = cancel_command
        self.error_status = error_status
        self.operation_timeout = operation_timeout
        self.verbose = verbose
        self.verbose_stream = verbose_stream

    def _verbose_log(self, message: str) -> None:
        """Emit verbose diagnostic lines when `verbose=True`."""
        if not self.verbose:
            return
        stream = self.verbose_stream if self.verbose_stream is not None else sys.stderr
        try:
            stream.write(f"[sbatch-job-monitor] {message}\n")
            stream.flush()
        except Exception:
            pass

    def _run(self, args: list[str], error_type: Type[SchedulerError]) -> CommandResult:
        """Run one command, raising `error_type` unless it exits cleanly."""
        command_text = format_command(args)
        self._verbose_log(f"exec {command_text}")
        try:
            completed = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
                timeout=self.operation_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise error_type(
                "command timed out after %.1fs: \"%s\"" % (exc.timeout, command_text)
            ) from exc
        except OSError as exc:
            raise error_type(
                "unable to execute command \"%s\": %s" % (command_text, exc)
            ) from exc

        result = CommandResult(
            args=list(args),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        self._verbose_log(f"exit={result.returncode} {command_text}")
        if not result.ok:
            detail = result.stderr.strip()
            message = "command \"%s\" exited with status %d" % (
                command_text,
                result.returncode,
            )
            if detail:
                message += ": " + detail
            raise error_type(message)
        return result

    def submit(self, args: list[str]) -> Submission:
        """Submit a job and return the scheduler-assigned job id."""
        if not args:
            raise ValueError("args cannot be empty")
        result = self._run(args, SubmissionError)
        return Submission(
            job_id=parse_job_id(result.stdout),
            stdout=result.stdout,
            args=result.args,
        )

    def list_jobs(self) -> Dict[int, bool]:
        """Return a fresh queue snapshot mapping job id to health flag."""
        args = CommandBuilder.build_queue_args(self.queue_command)
        result = self._run(args, InspectionError)
        return parse_queue_listing(result.stdout, error_status=self.error_status)

    def kill(self, job_id: int) -> CommandResult:
        """Cancel one scheduler job."""
        args = CommandBuilder.build_kill_args(job_id, self.cancel_command)
        return self._run(args, KillError)
