from __future__ import annotations

"""Parsing and retry helpers shared by the scheduler client and the monitor.

The parsers operate on captured command output only, so they can be exercised
without a scheduler installed.
"""

import re
import time
from typing import Callable, Dict, Tuple, Type, TypeVar

from .errors import ParseError, SubmissionError

QUEUE_ERROR_STATUS = "E"

_LEADING_JOB_ID_RE = re.compile(r"^\s*([0-9]+)")
_JOB_ID_FIELD_RE = re.compile(r"^[0-9]+$")

T = TypeVar("T")


def parse_job_id(text: str) -> int:
    """
    Parse the scheduler-assigned job id echoed by a submission command.

    The output must begin with the decimal job id; anything following it
    (e.g. `;cluster` from `sbatch --parsable`) is ignored.
    """
    match = _LEADING_JOB_ID_RE.match(text or "")
    if not match:
        raise SubmissionError("cannot parse job id from submission output %r" % text)
    return int(match.group(1))


def parse_queue_listing(
    text: str, error_status: str = QUEUE_ERROR_STATUS
) -> Dict[int, bool]:
    """
    Parse queue listing output into a job id to health flag mapping.

    The first line is a header. Each remaining non-blank line carries at least
    five whitespace-separated fields: the second is the job id and the fifth
    the status code. Jobs whose status equals `error_status` map to False.
    """
    snapshot: Dict[int, bool] = {}
    if not text:
        return snapshot

    lines = text.splitlines()
    for line in lines[1:]:
        if not line.strip():
            continue
        fields = line.split()
        if len(fields) < 5 or not _JOB_ID_FIELD_RE.match(fields[1]):
            raise ParseError("cannot parse queue listing line %r" % line)
        snapshot[int(fields[1])] = fields[4] != error_status
    return snapshot


def retry_call(
    func: Callable[[], T],
    *,
    attempts: int,
    backoff: float,
    retry_on: Tuple[Type[BaseException], ...],
    sleep: Callable[[float], None] = time.sleep,
    on_failure: Callable[[int, BaseException], None] | None = None,
) -> T:
    """
    Call `func` until it succeeds or `attempts` consecutive failures occur.

    Every failure matching `retry_on` is followed by a `backoff` sleep. Once
    the budget is consumed the last exception is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    failures = 0
    while True:
        try:
            return func()
        except retry_on as exc:
            failures += 1
            if on_failure is not None:
                on_failure(failures, exc)
            sleep(backoff)
            if failures >= attempts:
                raise
