"""SQLAlchemy engine factory, session factory and transaction scope.

This module provides:

* ``create_uri_service_engine`` -- Create a pooled SA engine from a URL.
* ``UriServiceSession``         -- Session class; the factory sets ``expire_on_commit=False``.
* ``uri_service_session_factory`` -- ``sessionmaker`` producing ``UriServiceSession``.
* ``session_scope``             -- One transaction per logical operation, with
  driver errors translated into the service error hierarchy.

Tags:
    orm, sqlalchemy, session, engine, pool, transaction

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from uriservice.core.errors import DatabaseConnectionError, PoolExhaustedError


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def create_uri_service_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_timeout: float | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with a bounded connection pool.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL.
    pool_size, max_overflow, pool_timeout:
        Connection pool parameters. Ignored for in-memory SQLite, which
        uses a single shared connection.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    pool_kwargs: dict[str, Any] = {}
    if not _is_memory_sqlite(url):
        if pool_size is not None:
            pool_kwargs["pool_size"] = pool_size
        if max_overflow is not None:
            pool_kwargs["max_overflow"] = max_overflow
        if pool_timeout is not None:
            pool_kwargs["pool_timeout"] = pool_timeout

    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            # SQLAlchemy emits BEGIN itself (see _begin_immediate)
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn: Any) -> None:
            # Writers serialize here; busy_timeout bounds the wait.
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return _sa_create_engine(url, echo=echo, pool_pre_ping=True, **pool_kwargs, **kwargs)


class UriServiceSession(Session):
    """Session class produced by ``uri_service_session_factory``.

    The factory configures ``expire_on_commit=False``: term snapshots and
    keyset cursors are read from rows after ``session_scope`` has committed
    and closed the session. A ``sessionmaker`` always passes its own
    ``expire_on_commit``, so the setting lives on the factory.
    """


def uri_service_session_factory(engine: Engine) -> sessionmaker[UriServiceSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``UriServiceSession`` instances."""
    return sessionmaker(bind=engine, class_=UriServiceSession, expire_on_commit=False)


def translate_db_error(error: Exception) -> Exception:
    """Map pool and connection failures onto the service hierarchy.

    Pool timeouts become ``PoolExhaustedError`` (never retried); lost
    connections become ``DatabaseConnectionError`` (retried). Anything else
    is returned unchanged.
    """
    if isinstance(error, sa_exc.TimeoutError):
        return PoolExhaustedError("Timed out waiting for a database connection", cause=error)
    if isinstance(error, sa_exc.DisconnectionError):
        return DatabaseConnectionError("Database connection lost", cause=error)
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return DatabaseConnectionError("Database connection lost", cause=error)
    return error


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Run one logical operation in one relational transaction.

    Commits on success, rolls back on any error, and always returns the
    connection to the pool.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        translated = translate_db_error(e)
        if translated is e:
            raise
        raise translated from e
    finally:
        session.close()


__all__ = [
    "create_uri_service_engine",
    "UriServiceSession",
    "uri_service_session_factory",
    "translate_db_error",
    "session_scope",
]
