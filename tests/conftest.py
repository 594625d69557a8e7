"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from prompt_store import database
from prompt_store.models import Base
from prompt_store.services.prompt_service import PromptService


@pytest.fixture()
def tmp_db(tmp_path: Path) -> Path:
    """Return a temporary database file path."""
    return tmp_path / "test.db"


@pytest.fixture()
def engine(tmp_db: Path) -> Iterator[Engine]:
    """An isolated SQLite engine with all tables, indexes and the trigger."""
    eng = database.create_sqlite_engine(tmp_db)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine)
    sess = factory()
    yield sess
    sess.close()


@pytest.fixture()
def service(session: Session) -> PromptService:
    """Return a PromptService bound to the test session."""
    return PromptService(session)


@pytest.fixture()
def store(engine: Engine) -> Iterator[Engine]:
    """Inject the isolated engine as the process-wide store."""
    database.set_engine(engine)
    yield engine
    database.set_engine(None)
