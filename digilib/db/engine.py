"""Database engine & session management.

The engine is built lazily from the backend endpoint (`DIGILIB_BACKEND_URL`)
and shared process-wide; repositories open one `app_session()` per call.
"""
from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as SASession, scoped_session, sessionmaker

from digilib import config as app_config
from digilib.db.models import Base
from digilib.utils.logging import get_logger

_engine: Optional[Engine] = None
_SessionFactory: Optional[Callable[[], SASession]] = None
_scoped: Optional[scoped_session] = None
_LOCK = threading.Lock()

LOG = get_logger("digilib.db")


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _prepare_sqlite_dir(url) -> None:
    database = url.database
    if not database or database == ":memory:":
        return
    parent_dir = os.path.dirname(os.path.abspath(database)) or "."
    os.makedirs(parent_dir, exist_ok=True)
    if not os.access(parent_dir, os.W_OK):
        raise RuntimeError(f"digilib DB directory not writable: {parent_dir}")


def init_engine_once() -> None:
    global _engine, _SessionFactory, _scoped
    if _engine is not None:
        return
    with _LOCK:
        if _engine is not None:
            return
        raw_url = app_config.backend_url()
        if not raw_url:
            raise app_config.ConfigurationError(
                f"Missing backend config values: {app_config.BACKEND_URL_ENV}"
            )
        url = make_url(raw_url)
        is_sqlite = url.get_backend_name() == "sqlite"
        if is_sqlite:
            _prepare_sqlite_dir(url)
        LOG.info("Initializing database engine backend=%s database=%s", url.get_backend_name(), url.database)
        engine = create_engine(url, future=True)
        if is_sqlite:
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        _engine = engine
        _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False, class_=SASession)
        _scoped = scoped_session(_SessionFactory)
        _safe_create_schema()
        LOG.debug("digilib schema ready")


def _safe_create_schema() -> None:
    """Run metadata.create_all, tolerating the parallel-start race.

    Several workers starting together may hit 'table X already exists'
    between checkfirst and DDL emit; anything else is re-raised.
    """
    if _engine is None:
        return
    try:
        Base.metadata.create_all(_engine)
    except OperationalError as e:  # pragma: no cover - concurrency edge
        msg = str(e).lower()
        if "already exists" in msg:
            LOG.warning("Schema create encountered existing tables (benign race)")
        else:
            raise


def get_scoped_session() -> scoped_session:
    if _scoped is None:
        init_engine_once()
    if _scoped is None:
        raise RuntimeError("Scoped session could not be initialized.")
    return _scoped  # type: ignore[return-value]


@contextmanager
def app_session() -> Iterator[SASession]:
    scoped = get_scoped_session()
    sess = scoped()
    try:
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()


def reset_for_tests(drop: bool = False) -> None:
    global _engine, _SessionFactory, _scoped
    with _LOCK:
        if _scoped is not None:
            _scoped.remove()
        if _engine is not None and drop:
            try:
                Base.metadata.drop_all(_engine)
            except Exception:
                LOG.warning("Failed dropping tables during reset", exc_info=True)
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionFactory = None
        _scoped = None


__all__ = [
    "init_engine_once",
    "get_scoped_session",
    "app_session",
    "reset_for_tests",
]
