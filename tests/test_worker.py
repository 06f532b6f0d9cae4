import threading

from sqlalchemy.exc import OperationalError

from codejudge.core.errors import SandboxCreateFailed
from codejudge.core.models import Job, Progress, ResultStatus
from codejudge.engine import build_engine
from codejudge.services.job_store import JobState
from codejudge.services.worker import Worker

from conftest import FakeSandbox


def _enqueue(store, request, job_id="job-1"):
    store.enqueue(Job(job_id=job_id, request=request))


def test_run_once_on_empty_queue(store):
    worker = Worker(store, lambda job, report: None)
    assert worker.run_once() is False


def test_handler_success_completes_job(store, judge_request):
    seen = []

    def handler(job, report):
        seen.append(job.job_id)
        report(Progress.STARTED)
        report(Progress.CLEANED)

    _enqueue(store, judge_request)
    worker = store.register_worker(handler)
    assert worker.run_once() is True

    st = store.status("job-1")
    assert seen == ["job-1"]
    assert st.state == JobState.DONE
    assert st.progress == Progress.CLEANED


def test_handler_error_fails_job(store, judge_request):
    def handler(job, report):
        raise SandboxCreateFailed(job.job_id, "image not found")

    _enqueue(store, judge_request)
    assert Worker(store, handler).run_once() is True

    st = store.status("job-1")
    assert st.state == JobState.FAILED
    assert st.last_error.startswith("SandboxCreateFailed:")


def test_run_stops_on_event(store, judge_request):
    done = threading.Event()

    def handler(job, report):
        done.set()

    _enqueue(store, judge_request)
    stop = threading.Event()
    worker = Worker(store, handler, poll_interval_s=0.01)
    t = threading.Thread(target=worker.run, args=(stop,), daemon=True)
    t.start()
    assert done.wait(5)
    stop.set()
    t.join(5)
    assert not t.is_alive()
    assert store.status("job-1").state == JobState.DONE


def test_engine_end_to_end_with_fake_sandbox(settings, judge_request):
    engine = build_engine(settings, sandbox=FakeSandbox())
    job_id = engine.service.submit(judge_request)
    assert engine.service.get_result(job_id) is None

    assert engine.worker.run_once() is True
    assert engine.worker.run_once() is False

    res = engine.service.get_result(job_id)
    assert res.status == ResultStatus.AC
    st = engine.service.get_status(job_id)
    assert st.state == JobState.DONE
    assert st.progress == Progress.CLEANED


def test_engine_records_teardown_failure(settings, judge_request):
    engine = build_engine(settings, sandbox=FakeSandbox(fail_destroy=True))
    job_id = engine.service.submit(judge_request)
    engine.worker.run_once()

    assert engine.service.get_result(job_id).status == ResultStatus.AC
    st = engine.service.get_status(job_id)
    assert st.state == JobState.FAILED
    assert "SandboxDestroyFailed" in st.last_error


def test_run_survives_queue_errors(store, judge_request, monkeypatch):
    done = threading.Event()
    real_claim = store.claim
    calls = []

    def flaky_claim():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_claim()

    monkeypatch.setattr(store, "claim", flaky_claim)
    _enqueue(store, judge_request)
    stop = threading.Event()
    worker = Worker(store, lambda job, report: done.set(), poll_interval_s=0.01)
    t = threading.Thread(target=worker.run, args=(stop,), daemon=True)
    t.start()
    assert done.wait(5)
    stop.set()
    t.join(5)
    assert len(calls) >= 2
    assert store.status("job-1").state == JobState.DONE
