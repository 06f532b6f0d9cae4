from __future__ import annotations
import threading
import time
from typing import TYPE_CHECKING, Callable, List, Optional

import structlog

from ..core.models import Job, Progress

if TYPE_CHECKING:
    from .job_store import JobStore

log = structlog.get_logger()

ProgressReporter = Callable[[Progress], None]
JobHandler = Callable[[Job, ProgressReporter], object]


class Worker:
    """Pulls jobs off the store and hands each one to a single handler call."""

    def __init__(
        self,
        store: "JobStore",
        handler: JobHandler,
        *,
        poll_interval_s: float = 0.5,
        stale_after_s: Optional[float] = None,
    ):
        self.store = store
        self.handler = handler
        self.poll_interval_s = poll_interval_s
        self.stale_after_s = stale_after_s

    def run_once(self) -> bool:
        """Process at most one job. Returns False when the queue was empty."""
        job = self.store.claim()
        if job is None:
            return False

        def report(progress: Progress) -> None:
            self.store.set_progress(job.job_id, progress)

        try:
            self.handler(job, report)
        except Exception as e:
            log.exception("job_failed", job_id=job.job_id, error=str(e))
            self.store.fail(job.job_id, f"{type(e).__name__}: {e}")
            return True

        self.store.complete(job.job_id)
        return True

    def run(self, stop: Optional[threading.Event] = None) -> None:
        stop = stop or threading.Event()
        last_sweep = 0.0
        while not stop.is_set():
            try:
                if self.stale_after_s and time.monotonic() - last_sweep >= self.stale_after_s:
                    self.store.requeue_stale(self.stale_after_s)
                    last_sweep = time.monotonic()
                busy = self.run_once()
            except Exception as e:
                # queue unavailable (e.g. sqlite lock timeout); back off and keep the thread
                log.exception("worker_loop_error", error=str(e))
                busy = False
            if not busy:
                stop.wait(self.poll_interval_s)

    def run_pool(self, concurrency: int, stop: Optional[threading.Event] = None) -> None:
        stop = stop or threading.Event()
        threads: List[threading.Thread] = [
            threading.Thread(target=self.run, args=(stop,), name=f"codejudge-worker-{i}", daemon=True)
            for i in range(max(1, concurrency))
        ]
        for t in threads:
            t.start()
        log.info("workers_started", count=len(threads))
        try:
            for t in threads:
                while t.is_alive():
                    t.join(timeout=1.0)
        except KeyboardInterrupt:
            log.info("workers_stopping")
            stop.set()
            for t in threads:
                t.join()
