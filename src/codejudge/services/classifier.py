from __future__ import annotations
import difflib
from typing import Optional, Tuple

from ..core.models import (
    NO_TIMEOUT, STATS_DELIMITER, ExecutionResult, ExecutionType, ResultStatus, SandboxArtifacts,
)

TLE_MESSAGE = "Time limit exceeded."
MLE_MESSAGE = "Memory limit exceeded."


def diff_outputs(actual: str, expected: str) -> str:
    """Empty string when outputs match exactly, otherwise a unified diff."""
    if actual == expected:
        return ""
    lines = difflib.unified_diff(
        actual.splitlines(keepends=True),
        expected.splitlines(keepends=True),
        fromfile="submission",
        tofile="expected",
    )
    text = "".join(line if line.endswith("\n") else line + "\n\\ No newline at end of file\n" for line in lines)
    return text or "output differs from expected output\n"


def parse_stats(raw: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """`<memoryKB>-<timeMs>` -> (memory_kb, time_ms); (None, None) if malformed."""
    if raw is None:
        return None, None
    fields = raw.strip().split(STATS_DELIMITER)
    if len(fields) != 2:
        return None, None
    try:
        return float(fields[0]), float(fields[1])
    except ValueError:
        return None, None


def memory_limit_exceeded() -> ExecutionResult:
    return ExecutionResult(status=ResultStatus.MLE, message=MLE_MESSAGE)


def classify(artifacts: SandboxArtifacts, mode: ExecutionType) -> ExecutionResult:
    """
    Verdict precedence: CE > RE > TLE > (WA | AC).
    An artifact that could not be read stops the walk and keeps the verdict
    reached so far, which starts out as CE. Stats are attached regardless.
    """
    result = ExecutionResult(status=ResultStatus.CE, message="")
    result.memory_used_kb, result.time_taken_ms = parse_stats(artifacts.stats)

    if artifacts.compile_error is None:
        return result
    if artifacts.compile_error != "":
        result.message = artifacts.compile_error
        return result

    if artifacts.runtime_error is None:
        return result
    if artifacts.runtime_error != "":
        result.status, result.message = ResultStatus.RE, artifacts.runtime_error
        return result

    if artifacts.timeout_flag is None:
        return result
    if artifacts.timeout_flag != NO_TIMEOUT:
        result.status, result.message = ResultStatus.TLE, TLE_MESSAGE
        return result

    if mode == ExecutionType.JUDGE:
        if artifacts.output is None or artifacts.expected is None:
            return result
        diff = diff_outputs(artifacts.output, artifacts.expected)
        result.status = ResultStatus.WA if diff else ResultStatus.AC
        result.message = diff
        return result

    if artifacts.output is None:
        return result
    result.status, result.message = ResultStatus.AC, artifacts.output
    return result
