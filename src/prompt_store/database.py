"""Database engine and session management.

One engine is shared by the whole process. It is opened lazily on first use,
reused for every operation, and can be swapped out with :func:`set_engine`
so tests run against an isolated database file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from alembic import command as alembic_command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from prompt_store.config import default_db_path

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
_SIDECAR_SUFFIXES = ("-wal", "-shm")
_BUSY_TIMEOUT_MS = 5000

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None
_db_path: Path | None = None


def _alembic_cfg() -> AlembicConfig:
    """Build an Alembic Config pointing at the migrations bundled in the package."""
    cfg = AlembicConfig()
    cfg.set_main_option("script_location", str(_MIGRATIONS_DIR))
    return cfg


def create_sqlite_engine(db_path: str | Path) -> Engine:
    """Create an engine for *db_path* with the store's connection settings.

    Every connection enforces foreign keys (association cascades depend on it)
    and runs in WAL mode. The driver's own transaction handling is turned off
    and SQLAlchemy emits ``BEGIN`` itself, so transactions and savepoints
    behave as SQLite documents them.
    """
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute(f"PRAGMA busy_timeout={_BUSY_TIMEOUT_MS}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


def _restrict_permissions(db_path: Path) -> None:
    try:
        os.chmod(db_path, 0o600)
    except OSError as exc:
        logger.warning("Could not restrict permissions on %s: %s", db_path, exc)


def _migrate(engine: Engine) -> None:
    """Run Alembic migrations to head on *engine*. Idempotent."""
    cfg = _alembic_cfg()
    # Silence Alembic's INFO logging so it doesn't pollute CLI output.
    alembic_logger = logging.getLogger("alembic")
    prev_level = alembic_logger.level
    alembic_logger.setLevel(logging.WARNING)
    try:
        with engine.begin() as connection:
            cfg.attributes["connection"] = connection
            alembic_command.upgrade(cfg, "head")
    finally:
        alembic_logger.setLevel(prev_level)


def open_db(db_path: str | Path | None = None) -> Engine:
    """Open the process-wide store, creating and migrating it if needed.

    Returns the existing engine when the store is already open; *db_path* is
    only consulted on the first call.
    """
    global _engine, _session_factory, _db_path
    if _engine is not None:
        return _engine
    path = Path(db_path) if db_path is not None else default_db_path()
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    engine = create_sqlite_engine(path)
    try:
        _migrate(engine)
    except Exception:
        engine.dispose()
        raise
    _restrict_permissions(path)
    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    _db_path = path
    logger.info("Opened prompt store at %s", path)
    return engine


def close_db() -> None:
    """Release the process-wide engine. Safe to call when nothing is open."""
    global _engine, _session_factory, _db_path
    if _engine is not None:
        _engine.dispose()
        logger.info("Closed prompt store at %s", _db_path or _engine.url)
    _engine = None
    _session_factory = None
    _db_path = None


def reset_db(db_path: str | Path | None = None) -> Engine:
    """Destroy all persisted data and reopen an empty store.

    Removes the database file and its WAL/shared-memory sidecars. Without
    *db_path* the file behind the current engine is reset, injected or not.
    Meant for tests and operator recovery only.
    """
    if db_path is not None:
        path = Path(db_path)
    elif _db_path is not None:
        path = _db_path
    elif _engine is not None:
        raise RuntimeError("Cannot reset an injected in-memory store; pass a path")
    else:
        path = default_db_path()
    close_db()
    for candidate in [path, *(path.with_name(path.name + s) for s in _SIDECAR_SUFFIXES)]:
        if candidate.exists():
            candidate.unlink()
    logger.warning("Reset prompt store at %s", path)
    return open_db(path)


def _file_path(engine: Engine) -> Path | None:
    database = engine.url.database
    if not database or database == ":memory:":
        return None
    return Path(database)


def set_engine(engine: Engine | None) -> None:
    """Swap the process-wide engine.

    The caller owns the schema of an injected engine. Passing ``None`` releases
    the current one; a different engine that was open before is disposed.
    """
    global _engine, _session_factory, _db_path
    if _engine is not None and _engine is not engine:
        _engine.dispose()
    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False) if engine else None
    _db_path = _file_path(engine) if engine else None


def current_db_path() -> Path | None:
    return _db_path


def get_session_factory() -> sessionmaker[Session]:
    """Return the session factory, opening the default store if needed."""
    if _session_factory is None:
        open_db()
    if _session_factory is None:
        raise RuntimeError("Prompt store is not open")
    return _session_factory


@contextmanager
def session_scope() -> Iterator[Session]:
    """One transaction: commit on success, roll back on any exception."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
