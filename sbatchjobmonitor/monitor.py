from __future__ import annotations

"""Job lifecycle state machine.

`JobMonitor.run()` submits one job and blocks until its own script writes a
terminal marker, resubmitting attempts that the scheduler reports as errored
or that vanish from the queue without leaving a marker behind.
"""

import os
import random
import sys
import time
from typing import Any, Callable, Dict, TextIO

from .builder import CommandBuilder
from .client import format_command
from .errors import InspectionError, MonitorAbortedError, SchedulerError
from .models import JobAttempt, MarkerState, MonitorSettings, MonitorState
from .utils import retry_call

EXIT_SUCCESS = 0
EXIT_JOB_FAILED = 2

_SUBMIT_LABELS = {
    "initial": "submitted",
    "error_state": "resub (error state)",
    "crash": "resub (job crashed)",
}


def check_markers(settings: MonitorSettings) -> MarkerState:
    """Classify the marker files of one output prefix; success wins."""
    if os.path.exists(settings.success_marker):
        return MarkerState.SUCCESS
    if os.path.exists(settings.fail_marker):
        return MarkerState.FAIL
    return MarkerState.NONE


def clear_markers(settings: MonitorSettings) -> list[str]:
    """Delete stale marker files left behind by an earlier run."""
    removed: list[str] = []
    for path in (settings.success_marker, settings.fail_marker):
        if os.path.exists(path):
            os.remove(path)
            removed.append(path)
    return removed


class JobMonitor:
    """Blocking babysitter for one scheduler job."""

    def __init__(
        self,
        settings: MonitorSettings,
        *,
        submitter: Any,
        inspector: Any,
        submit_command: str = "sbatch",
        submit_args: list[str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
        stream: TextIO | None = None,
        verbose: bool = False,
    ) -> None:
        """Create a monitor.

        `submitter` needs `submit(args) -> Submission`; `inspector` needs
        `list_jobs() -> dict[int, bool]` and `kill(job_id)`. The production
        `SlurmClient` provides all three.
        """
        self.settings = settings
        self.submitter = submitter
        self.inspector = inspector
        if submit_args is None:
            submit_args = CommandBuilder.build_submit_args(settings, submit_command)
        self.submit_args = list(submit_args)
        self.sleep = sleep
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock
        self.stream = stream
        self.verbose = verbose

        self.state = MonitorState.SUBMITTED
        self.job_id: int | None = None
        self.elapsed = 0
        self.error_resubmissions = 0
        self.crash_resubmissions = 0
        self.attempts: list[JobAttempt] = []
        self._command_text = format_command(self.submit_args)

    def _status(self, message: str) -> None:
        """Emit one timestamped status line."""
        stream = self.stream if self.stream is not None else sys.stdout
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.clock()))
        try:
            stream.write(f"[sbatch-job-monitor] {stamp} {message}\n")
            stream.flush()
        except Exception:
            pass

    def _verbose_status(self, message: str) -> None:
        if self.verbose:
            self._status(message)

    def _describe_job(self) -> str:
        return 'job "%s" (id %s)' % (self._command_text, self.job_id)

    def check_markers(self) -> MarkerState:
        return check_markers(self.settings)

    def clear_markers(self) -> None:
        for path in clear_markers(self.settings):
            self._status(f"removed stale marker {path}")

    def summary(self) -> Dict[str, Any]:
        """Serialize monitor bookkeeping for diagnostics."""
        return {
            "state": self.state.value,
            "job_id": self.job_id,
            "elapsed": self.elapsed,
            "error_resubmissions": self.error_resubmissions,
            "crash_resubmissions": self.crash_resubmissions,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
        }

    def run(self) -> int:
        """Submit the job and block until it reaches a terminal state.

        Returns `EXIT_SUCCESS` or `EXIT_JOB_FAILED`. Fatal conditions move the
        monitor to `fatally_aborted` and re-raise the `SchedulerError`.
        """
        self._status("start: %s" % self._command_text)
        try:
            # Markers from a previous run must not be read as fresh completion.
            self.clear_markers()
            self._submit("initial")
            self.state = MonitorState.POLLING_MARKERS
            self.elapsed = 0
            self._startup_jitter()

            while True:
                marker = self.check_markers()
                if marker is not MarkerState.NONE:
                    return self._finish(marker, "standard")
                self.sleep(self.settings.sleep_time)
                self.elapsed += self.settings.sleep_time
                if self.elapsed >= self.settings.crashcheck_interval:
                    marker = self.crash_check()
                    if marker is not MarkerState.NONE:
                        return self._finish(marker, "within crashcheck")
        except SchedulerError as exc:
            if self.state is not MonitorState.FATALLY_ABORTED:
                self.state = MonitorState.FATALLY_ABORTED
                self._status(f"ERROR: {exc}")
            raise

    def crash_check(self) -> MarkerState:
        """Consult the scheduler queue once and act on the monitored job.

        Returns the marker state that resolved the check; `MarkerState.NONE`
        means polling continues, possibly with a freshly submitted job id.
        """
        self.state = MonitorState.CRASH_CHECKING
        self._verbose_status("crashcheck: querying queue for %s" % self._describe_job())
        try:
            snapshot = retry_call(
                self.inspector.list_jobs,
                attempts=self.settings.crashcheck_attempts,
                backoff=self.settings.inspection_backoff,
                retry_on=(InspectionError,),
                sleep=self.sleep,
                on_failure=self._inspection_failed,
            )
        except InspectionError as exc:
            self._abort(
                "in crashcheck, failed queue inspection attempts exceeded "
                "acceptable threshold (%d): %s" % (self.settings.crashcheck_attempts, exc),
                cause=exc,
            )

        if self.job_id in snapshot:
            if snapshot[self.job_id]:
                self._verbose_status("crashcheck: %s is running" % self._describe_job())
                self._resume_polling()
                return MarkerState.NONE
            self._resubmit_errored_job()
            return MarkerState.NONE
        return self._resolve_missing_job()

    def _inspection_failed(self, failures: int, exc: BaseException) -> None:
        self._status(
            "warning: queue inspection failed (%d/%d), retrying in %ds: %s"
            % (
                failures,
                self.settings.crashcheck_attempts,
                self.settings.inspection_backoff,
                exc,
            )
        )

    def _resubmit_errored_job(self) -> None:
        self._status("WARNING: %s has scheduler error state, killing" % self._describe_job())
        self.inspector.kill(self.job_id)
        if self.error_resubmissions >= self.settings.error_resub_limit:
            self._abort(
                "%s has scheduler error state, error resubmission limit (%d) "
                "reached, terminating" % (self._describe_job(), self.settings.error_resub_limit)
            )
        self.error_resubmissions += 1
        self._submit("error_state")
        self._resume_polling()

    def _resolve_missing_job(self) -> MarkerState:
        # The job may have finished between the marker check and the queue call.
        marker = self.check_markers()
        if marker is not MarkerState.NONE:
            return marker

        self._status(
            "warning: %s is missing from queue but tracking files have not been "
            "written. this is possibly due to filesystem desync... waiting %ds to "
            "see if the file becomes available"
            % (self._describe_job(), self.settings.desync_grace_period)
        )
        self.sleep(self.settings.desync_grace_period)
        marker = self.check_markers()
        if marker is not MarkerState.NONE:
            self._status(
                "resolution: %s resolved missing tracking files by having %s appear"
                % (self._describe_job(), marker.value)
            )
            return marker

        # Unexplained crash; no budget gates this path.
        self.crash_resubmissions += 1
        self._status("WARNING: %s has detected crash, auto-resubmitting" % self._describe_job())
        self._submit("crash")
        self._resume_polling()
        return MarkerState.NONE

    def _resume_polling(self) -> None:
        self.elapsed = 0
        self.state = MonitorState.POLLING_MARKERS

    def _submit(self, reason: str) -> None:
        submission = self.submitter.submit(list(self.submit_args))
        self.job_id = submission.job_id
        self.attempts.append(
            JobAttempt(
                sequence=len(self.attempts) + 1,
                job_id=submission.job_id,
                reason=reason,
                submitted_at=self.clock(),
            )
        )
        self._status(
            "%s: job id %d (%s)"
            % (_SUBMIT_LABELS[reason], submission.job_id, submission.stdout.strip())
        )

    def _startup_jitter(self) -> None:
        # Spreads queue queries of monitors launched together.
        if self.settings.maximum_startup_jitter < 1:
            return
        self.sleep(self.rng.randint(1, self.settings.maximum_startup_jitter))

    def _abort(self, message: str, cause: BaseException | None = None) -> None:
        self.state = MonitorState.FATALLY_ABORTED
        self._status(f"ERROR: {message}")
        raise MonitorAbortedError(message) from cause

    def _finish(self, marker: MarkerState, context: str) -> int:
        if marker is MarkerState.SUCCESS:
            self.state = MonitorState.SUCCEEDED
            self._status(f"end ({context}): {self._describe_job()} succeeded")
            return EXIT_SUCCESS
        self.state = MonitorState.FAILED
        self._status(f"end ({context}): {self._describe_job()} failed")
        return EXIT_JOB_FAILED
