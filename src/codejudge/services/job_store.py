from __future__ import annotations
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import or_, update
from sqlmodel import Field, SQLModel, select

from ..core.db import make_engine, session_factory, utc_column, utcnow
from ..core.errors import InvalidJobPayload
from ..core.models import ExecutionRequest, Job, Progress

if TYPE_CHECKING:
    from .worker import JobHandler, Worker

log = structlog.get_logger()


class JobState(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


class QueuedJob(SQLModel, table=True):
    __tablename__ = "jobs"

    id: str = Field(primary_key=True)
    payload: str
    state: JobState = Field(default=JobState.QUEUED, index=True)
    progress: Optional[int] = None
    attempts: int = 0
    last_error: Optional[str] = None
    enqueued_ns: int = Field(index=True)
    created_at: datetime = utc_column()
    started_at: Optional[datetime] = utc_column(default=None)
    finished_at: Optional[datetime] = utc_column(default=None)


@dataclass
class JobStatus:
    job_id: str
    state: JobState
    progress: Optional[Progress]
    attempts: int
    last_error: Optional[str]


class JobStore:
    """Durable FIFO job queue with at-least-once delivery."""

    def __init__(self, url: str = "sqlite:///./codejudge.db"):
        self.engine = make_engine(url)
        self.SessionLocal = session_factory(self.engine)

    def enqueue(self, job: Job) -> None:
        row = QueuedJob(
            id=job.job_id,
            payload=job.request.model_dump_json(by_alias=True),
            state=JobState.QUEUED,
            enqueued_ns=time.time_ns(),
            created_at=utcnow(),
        )
        with self.SessionLocal() as s:
            s.add(row)
            s.commit()

    def claim(self) -> Optional[Job]:
        """Hand the oldest queued job to the caller, or None when the queue is empty."""
        while True:
            with self.SessionLocal() as s:
                row = s.exec(
                    select(QueuedJob)
                    .where(QueuedJob.state == JobState.QUEUED)
                    .order_by(QueuedJob.enqueued_ns, QueuedJob.id)
                    .limit(1)
                ).first()
                if row is None:
                    return None
                res = s.connection().execute(
                    update(QueuedJob)
                    .where(QueuedJob.id == row.id, QueuedJob.state == JobState.QUEUED)
                    .values(state=JobState.RUNNING, attempts=QueuedJob.attempts + 1, started_at=utcnow())
                )
                s.commit()
                if res.rowcount != 1:
                    continue  # claimed by another worker

            try:
                request = ExecutionRequest.model_validate_json(row.payload)
            except ValidationError as e:
                err = InvalidJobPayload(row.id, str(e))
                log.error("invalid_job_payload", job_id=row.id, error=str(e))
                self.fail(row.id, str(err))
                continue
            return Job(job_id=row.id, request=request)

    def set_progress(self, job_id: str, progress: Progress) -> None:
        # monotonic: a lower marker never overwrites a higher one
        with self.SessionLocal() as s:
            s.connection().execute(
                update(QueuedJob)
                .where(
                    QueuedJob.id == job_id,
                    or_(QueuedJob.progress.is_(None), QueuedJob.progress < int(progress)),
                )
                .values(progress=int(progress))
            )
            s.commit()

    def complete(self, job_id: str) -> None:
        self._finish(job_id, JobState.DONE, None)

    def fail(self, job_id: str, reason: str) -> None:
        self._finish(job_id, JobState.FAILED, reason)

    def _finish(self, job_id: str, state: JobState, reason: Optional[str]) -> None:
        with self.SessionLocal() as s:
            s.connection().execute(
                update(QueuedJob)
                .where(QueuedJob.id == job_id)
                .values(state=state, last_error=reason, finished_at=utcnow())
            )
            s.commit()

    def status(self, job_id: str) -> Optional[JobStatus]:
        with self.SessionLocal() as s:
            row = s.get(QueuedJob, job_id)
        if row is None:
            return None
        return JobStatus(
            job_id=row.id,
            state=row.state,
            progress=Progress(row.progress) if row.progress is not None else None,
            attempts=row.attempts,
            last_error=row.last_error,
        )

    def requeue_stale(self, older_than_s: float) -> int:
        """Put RUNNING jobs whose worker went quiet back on the queue."""
        cutoff = utcnow() - timedelta(seconds=older_than_s)
        with self.SessionLocal() as s:
            res = s.connection().execute(
                update(QueuedJob)
                .where(QueuedJob.state == JobState.RUNNING, QueuedJob.started_at < cutoff)
                .values(state=JobState.QUEUED)
            )
            s.commit()
        if res.rowcount:
            log.warning("stale_jobs_requeued", count=res.rowcount)
        return res.rowcount

    def register_worker(self, handler: "JobHandler", **kwargs) -> "Worker":
        from .worker import Worker
        return Worker(self, handler, **kwargs)
