from __future__ import annotations
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Field, Session, SQLModel, create_engine


def make_engine(url: str) -> Engine:
    # worker threads share the engine; sqlite waits on locks instead of failing
    connect_args = {"check_same_thread": False, "timeout": 30} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    SQLModel.metadata.create_all(engine)
    return engine


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utc_column(**kwargs):
    """Field for a timezone-aware UTC timestamp column."""
    return Field(sa_type=DateTime(timezone=True), **kwargs)
