from __future__ import annotations

"""Argument builders for translating monitor settings to scheduler commands."""

import shlex

from .models import MonitorSettings

FALLBACK_JOB_NAME = "bash"


def _split_command(option: str, value: str) -> list[str]:
    """Split a shell-style command string, rejecting empty results."""
    try:
        parts = shlex.split(value)
    except ValueError as exc:
        raise ValueError(f"{option} is not a valid command string: {exc}") from exc
    if not parts:
        raise ValueError(f"{option} did not contain an executable")
    return parts


class CommandBuilder:
    """Converts monitor settings to sbatch/sjobs/scancel argument vectors."""

    @staticmethod
    def derive_job_name(output_prefix: str, job_name: str | None = None) -> str:
        """Resolve the scheduler job name for an output prefix.

        Scheduler job names cannot start with a digit, so leading digits of
        the derived name are dropped.
        """
        if job_name:
            name = job_name
        else:
            name = output_prefix.rsplit("/", 1)[-1]
        name = name.lstrip("0123456789")
        return name or FALLBACK_JOB_NAME

    @staticmethod
    def build_submit_args(
        settings: MonitorSettings, submit_command: str = "sbatch"
    ) -> list[str]:
        """Build the submission argument vector reused for every attempt."""
        args = _split_command("submit command", submit_command)
        args.append("--parsable")
        args.extend(
            [
                "--job-name",
                CommandBuilder.derive_job_name(
                    settings.output_prefix, settings.job_name
                ),
            ]
        )
        args.extend(["--output", settings.output_log])
        args.extend(["--error", settings.error_log])
        if not settings.queue.strip():
            raise ValueError("--partition cannot be empty")
        args.extend(["--partition", settings.queue])
        if settings.resources.strip():
            args.extend(shlex.split(settings.resources))
        args.append("--no-requeue")
        args.extend(_split_command("command script", settings.command_script))
        return args

    @staticmethod
    def build_queue_args(queue_command: str = "sjobs") -> list[str]:
        """Build the queue listing argument vector."""
        return _split_command("queue command", queue_command)

    @staticmethod
    def build_kill_args(job_id: int, cancel_command: str = "scancel") -> list[str]:
        """Build a cancellation request for one scheduler job id."""
        if job_id < 0:
            raise ValueError("job_id cannot be negative")
        args = _split_command("cancel command", cancel_command)
        args.append(str(job_id))
        return args
