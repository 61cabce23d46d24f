import pytest

from sbatchjobmonitor.builder import CommandBuilder
from sbatchjobmonitor.models import MonitorSettings


def test_build_submit_args_full() -> None:
    settings = MonitorSettings(
        output_prefix="/scratch/results/sampleA",
        command_script="/scratch/scripts/align.sh --threads 4",
        resources="--time=4:00:00 --mem=32g",
        queue="largemem",
    )

    args = CommandBuilder.build_submit_args(settings)

    assert args == [
        "sbatch",
        "--parsable",
        "--job-name",
        "sampleA",
        "--output",
        "/scratch/results/sampleA.output",
        "--error",
        "/scratch/results/sampleA.error",
        "--partition",
        "largemem",
        "--time=4:00:00",
        "--mem=32g",
        "--no-requeue",
        "/scratch/scripts/align.sh",
        "--threads",
        "4",
    ]


def test_build_submit_args_uses_explicit_job_name_and_custom_command() -> None:
    settings = MonitorSettings(
        output_prefix="out/prefix",
        command_script="run.sh",
        job_name="custom",
        resources="",
    )

    args = CommandBuilder.build_submit_args(settings, submit_command="sbatch --account=lab")

    assert args[:4] == ["sbatch", "--account=lab", "--parsable", "--job-name"]
    assert args[4] == "custom"
    assert args[-2:] == ["--no-requeue", "run.sh"]


@pytest.mark.parametrize(
    "prefix,explicit,expected",
    [
        ("results/sample1", None, "sample1"),
        ("results/0042chr1", None, "chr1"),
        ("plainprefix", None, "plainprefix"),
        ("results/12345", None, "bash"),
        ("results/", None, "bash"),
        ("results/sample", "7name", "name"),
        ("results/sample", "", "sample"),
    ],
)
def test_derive_job_name(prefix: str, explicit: str, expected: str) -> None:
    assert CommandBuilder.derive_job_name(prefix, explicit) == expected


def test_build_kill_args() -> None:
    assert CommandBuilder.build_kill_args(42) == ["scancel", "42"]
    with pytest.raises(ValueError, match="negative"):
        CommandBuilder.build_kill_args(-1)


def test_build_queue_args_rejects_empty_command() -> None:
    assert CommandBuilder.build_queue_args("squeue --me") == ["squeue", "--me"]
    with pytest.raises(ValueError, match="executable"):
        CommandBuilder.build_queue_args("   ")


def test_settings_validation() -> None:
    with pytest.raises(ValueError, match="output_prefix"):
        MonitorSettings(output_prefix=" ", command_script="run.sh")
    with pytest.raises(ValueError, match="crashcheck_attempts"):
        MonitorSettings(output_prefix="p", command_script="run.sh", crashcheck_attempts=0)
    with pytest.raises(ValueError, match="sleep_time"):
        MonitorSettings(output_prefix="p", command_script="run.sh", sleep_time=-1)
    with pytest.raises(ValueError, match="sleep_time must be at least 1"):
        MonitorSettings(output_prefix="p", command_script="run.sh", sleep_time=0)
