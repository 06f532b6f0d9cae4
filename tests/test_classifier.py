from codejudge.core.models import ExecutionType, ResultStatus, SandboxArtifacts
from codejudge.services.classifier import (
    MLE_MESSAGE, TLE_MESSAGE, classify, diff_outputs, memory_limit_exceeded, parse_stats,
)


def artifacts(**overrides) -> SandboxArtifacts:
    base = dict(compile_error="", runtime_error="", timeout_flag="0\n",
                output="5\n", expected="5\n", stats="1024-250")
    base.update(overrides)
    return SandboxArtifacts(**base)


def test_compile_error_wins_over_everything():
    res = classify(artifacts(compile_error="main.c:1: error", runtime_error="boom", timeout_flag="1\n"),
                   ExecutionType.JUDGE)
    assert res.status == ResultStatus.CE
    assert res.message == "main.c:1: error"


def test_runtime_error_wins_over_timeout():
    res = classify(artifacts(runtime_error="Traceback ...", timeout_flag="1\n"), ExecutionType.JUDGE)
    assert res.status == ResultStatus.RE
    assert res.message == "Traceback ..."


def test_timeout_flag():
    res = classify(artifacts(timeout_flag="1\n", output="partial"), ExecutionType.JUDGE)
    assert res.status == ResultStatus.TLE
    assert res.message == TLE_MESSAGE


def test_accepted_when_outputs_match():
    res = classify(artifacts(), ExecutionType.JUDGE)
    assert res.status == ResultStatus.AC
    assert res.message == ""


def test_wrong_answer_carries_diff():
    res = classify(artifacts(output="6\n"), ExecutionType.JUDGE)
    assert res.status == ResultStatus.WA
    assert "-6" in res.message and "+5" in res.message


def test_run_mode_returns_stdout_verbatim():
    res = classify(artifacts(output="hello\nworld", expected=None), ExecutionType.RUN)
    assert res.status == ResultStatus.AC
    assert res.message == "hello\nworld"


def test_stats_attached():
    res = classify(artifacts(), ExecutionType.JUDGE)
    assert res.memory_used_kb == 1024
    assert res.time_taken_ms == 250


def test_stats_attached_even_on_compile_error():
    res = classify(artifacts(compile_error="oops", stats="2048-10"), ExecutionType.JUDGE)
    assert res.status == ResultStatus.CE
    assert res.memory_used_kb == 2048


def test_malformed_stats_leave_fields_absent():
    res = classify(artifacts(stats="1024250"), ExecutionType.JUDGE)
    assert res.status == ResultStatus.AC
    assert res.memory_used_kb is None
    assert res.time_taken_ms is None


def test_unreadable_compile_artifact_keeps_default():
    res = classify(artifacts(compile_error=None), ExecutionType.JUDGE)
    assert res.status == ResultStatus.CE
    assert res.message == ""


def test_unreadable_output_stops_at_default():
    res = classify(artifacts(output=None), ExecutionType.JUDGE)
    assert res.status == ResultStatus.CE
    assert res.message == ""


def test_parse_stats():
    assert parse_stats("1024-250") == (1024.0, 250.0)
    assert parse_stats("1024-250\n") == (1024.0, 250.0)
    assert parse_stats("a-b") == (None, None)
    assert parse_stats("1-2-3") == (None, None)
    assert parse_stats(None) == (None, None)


def test_diff_outputs():
    assert diff_outputs("1\n2\n", "1\n2\n") == ""
    # a missing trailing newline is a difference
    assert diff_outputs("1\n2", "1\n2\n") != ""


def test_memory_limit_exceeded():
    res = memory_limit_exceeded()
    assert res.status == ResultStatus.MLE
    assert res.message == MLE_MESSAGE
