import pytest

from codejudge.core.errors import UnsupportedLanguage
from codejudge.core.models import ExecutionRequest
from codejudge.runners.registry import SUPPORTED_LANGUAGES
from codejudge.services.job_service import SubmissionService
from codejudge.services.job_store import JobState


@pytest.fixture
def service(store, cache):
    return SubmissionService(store, cache)


def test_submit_enqueues_every_supported_language(service, store):
    ids = []
    for lang in sorted(SUPPORTED_LANGUAGES):
        req = ExecutionRequest(code="x", language=lang, time_limit=1, memory_limit=64)
        ids.append(service.submit(req))

    assert len(set(ids)) == len(ids)
    assert all(i.startswith("job-") for i in ids)
    for job_id in ids:
        assert service.get_status(job_id).state == JobState.QUEUED
        assert service.get_result(job_id) is None


def test_unsupported_language_is_rejected_before_enqueue(service, store):
    req = ExecutionRequest(code="x", language="brainfuck", time_limit=1, memory_limit=64)
    with pytest.raises(UnsupportedLanguage):
        service.submit(req)
    assert store.claim() is None


def test_request_accepts_wire_field_names():
    req = ExecutionRequest.model_validate({
        "code": "print(1)",
        "language": "python",
        "executionType": "run",
        "inputForRun": "abc",
        "timeLimit": 1.5,
        "memoryLimit": 128,
    })
    assert req.execution_type.value == "run"
    assert req.input_for_run == "abc"
    assert req.test_cases == []
