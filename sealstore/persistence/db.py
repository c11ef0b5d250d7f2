from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sealstore.core.config import get_settings


settings = get_settings()
_engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
if settings.database_url.startswith("sqlite"):
    # In-memory SQLite must share one connection across threads (FastAPI threadpool).
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    if ":memory:" in settings.database_url:
        _engine_kwargs["poolclass"] = StaticPool
else:
    _engine_kwargs["pool_size"] = max(1, int(settings.db_pool_size))
    _engine_kwargs["max_overflow"] = max(0, int(settings.db_max_overflow))
    _engine_kwargs["pool_timeout"] = 30
    _engine_kwargs["pool_recycle"] = settings.db_pool_recycle_s
engine = create_engine(settings.database_url, **_engine_kwargs)
SessionLocal = sessionmaker(engine, expire_on_commit=False)


@contextmanager
def get_session() -> Iterator[Session]:
    with SessionLocal() as session:
        yield session


@contextmanager
def transaction() -> Iterator[Session]:
    # Commit on success, roll back on any error; stores never commit on their own.
    with SessionLocal() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
