from __future__ import annotations

import os
from typing import Iterator

# Point the engine at a private in-memory database before sealstore.persistence.db is imported.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from sqlalchemy.orm import Session

from sealstore.core.config import get_settings
from sealstore.domain.models import Base
from sealstore.persistence.db import SessionLocal, engine
from sealstore.persistence.signed import EntityStore
from sealstore.services.crypto.keys.local import LocalKeyProvider


TEST_MASTER_KEY = b"\x01" * 32


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    # Tests that monkeypatch env vars must not leak cached settings into later tests.
    yield
    get_settings.cache_clear()


@pytest.fixture
def session() -> Iterator[Session]:
    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        yield db
    Base.metadata.drop_all(engine)


@pytest.fixture
def keys() -> LocalKeyProvider:
    return LocalKeyProvider(TEST_MASTER_KEY)


@pytest.fixture
def store(session: Session, keys: LocalKeyProvider) -> EntityStore:
    return EntityStore(session, keys)
