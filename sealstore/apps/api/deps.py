from __future__ import annotations

from typing import Iterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from sealstore.core.config import get_settings
from sealstore.persistence.db import get_session
from sealstore.persistence.signed import EntityStore


def get_db() -> Iterator[Session]:
    # One Session per request; routes commit, anything uncommitted is rolled back on close.
    with get_session() as session:
        yield session


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return EntityStore(db)


def get_actor(request: Request) -> str | None:
    header = get_settings().audit_actor_header
    actor = (request.headers.get(header) or "").strip()
    return actor or None


def require_actor(actor: str | None = Depends(get_actor)) -> str:
    # User-facing variable mutations must be attributable.
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "AUTH_UNAUTHORIZED", "message": "Missing actor identity"},
        )
    return actor
