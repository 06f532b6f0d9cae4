from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ..core.db import make_engine, session_factory, utc_column, utcnow
from ..core.models import ExecutionResult


class CachedResult(SQLModel, table=True):
    __tablename__ = "results"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = utc_column()


class ResultCache:
    """Key/value store for terminal results, keyed by job id."""

    def __init__(self, url: str = "sqlite:///./codejudge.db"):
        self.engine = make_engine(url)
        self.SessionLocal = session_factory(self.engine)

    def set(self, key: str, value: str) -> None:
        with self.SessionLocal() as s:
            s.merge(CachedResult(key=key, value=value, updated_at=utcnow()))
            s.commit()

    def get(self, key: str) -> Optional[str]:
        with self.SessionLocal() as s:
            row = s.get(CachedResult, key)
            return row.value if row else None

    def publish(self, job_id: str, result: ExecutionResult) -> None:
        self.set(job_id, result.to_json())

    def fetch(self, job_id: str) -> Optional[ExecutionResult]:
        raw = self.get(job_id)
        if raw is None:
            return None
        return ExecutionResult.from_json(raw)
