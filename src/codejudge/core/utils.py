from __future__ import annotations
import uuid
from typing import Iterable

from .models import ExecutionRequest, Limits, TestCase

JOB_ID_PREFIX = "job-"


def new_job_id() -> str:
    # the prefix keeps job ids apart from session ids in logs
    return f"{JOB_ID_PREFIX}{uuid.uuid4()}"


def clamp_limits(request: ExecutionRequest, max_time_s: float, max_memory_mb: int) -> Limits:
    return Limits(
        time_limit_s=min(request.time_limit, max_time_s),
        memory_mb=min(request.memory_limit, max_memory_mb),
    )


def render_inputs(test_cases: Iterable[TestCase]) -> str:
    cases = list(test_cases)
    return f"{len(cases)}\n" + "".join(f"{c.input}\n" for c in cases)


def render_expected(test_cases: Iterable[TestCase]) -> str:
    return "".join(f"{c.output}\n" for c in test_cases)


def format_seconds(value: float) -> str:
    return f"{value:g}"
