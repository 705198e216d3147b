"""
SQLite FTS5 implementation of the search index.

The index lives in its own SQLite database, separate from the relational
store, and is reached through its own bounded SQLAlchemy connection pool.

Schema::

    documents(id, uri UNIQUE, vocabulary_string_key, value, value_key,
              value_words, type, additional_fields, indexed_at, version,
              written_tick)

    documents_fts        -- external-content FTS5 over documents.value_key,
                            trigram tokenizer, kept in sync by triggers
    documents_staging    -- pages of a bulk rewrite, keyed by batch id
    documents_tombstones -- uri and tick of every single-document delete
    index_clock          -- one row; every write transaction takes a tick

``value_key`` is the case-folded value and ``value_words`` its word tokens
padded with spaces (``" what a great value "``); both exist only to serve
case-insensitive ranking and are never returned as part of a term.

Two write paths:

* ``add`` / ``delete`` / ``delete_all`` apply one operation in its own
  transaction, or with ``commit=False`` defer it until ``commit()``.
* ``batch()`` opens an ``SqliteIndexBatch`` for bulk rewrites. Its pages go
  to ``documents_staging`` and become visible in one transaction on
  ``commit()``. Documents written or deleted by anyone else after the batch
  started take precedence over its staged copies.

Tags:
    search-index, sqlite, fts5, trigram, ranking

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import re
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from uriservice.core.errors import (
    PoolExhaustedError,
    SearchIndexError,
    SearchIndexUnavailableError,
    UnsupportedSearchFieldError,
)
from uriservice.core.logging import get_logger
from uriservice.core.orm.session import create_uri_service_engine
from uriservice.index.base import MIN_PARTIAL_QUERY_LENGTH, QUERYABLE_FIELDS, Document

logger = get_logger(__name__)

_WORD_PATTERN = re.compile(r"\w+")

_SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        uri TEXT NOT NULL UNIQUE,
        vocabulary_string_key TEXT NOT NULL,
        value TEXT NOT NULL,
        value_key TEXT NOT NULL,
        value_words TEXT NOT NULL,
        type TEXT NOT NULL,
        additional_fields TEXT NOT NULL DEFAULT '{}',
        indexed_at TEXT NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        written_tick INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS documents_vocabulary_sort
    ON documents(vocabulary_string_key, value_key, uri)
    """,
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
        value_key,
        content='documents',
        content_rowid='id',
        tokenize='trigram'
    )
    """,
    """
    CREATE TRIGGER IF NOT EXISTS documents_fts_ai
    AFTER INSERT ON documents BEGIN
        INSERT INTO documents_fts(rowid, value_key) VALUES (new.id, new.value_key);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS documents_fts_bd
    BEFORE DELETE ON documents BEGIN
        INSERT INTO documents_fts(documents_fts, rowid, value_key)
        VALUES ('delete', old.id, old.value_key);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS documents_fts_bu
    BEFORE UPDATE ON documents BEGIN
        INSERT INTO documents_fts(documents_fts, rowid, value_key)
        VALUES ('delete', old.id, old.value_key);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS documents_fts_au
    AFTER UPDATE ON documents BEGIN
        INSERT INTO documents_fts(rowid, value_key) VALUES (new.id, new.value_key);
    END
    """,
    """
    CREATE TABLE IF NOT EXISTS documents_staging (
        batch_id TEXT NOT NULL,
        uri TEXT NOT NULL,
        vocabulary_string_key TEXT NOT NULL,
        value TEXT NOT NULL,
        value_key TEXT NOT NULL,
        value_words TEXT NOT NULL,
        type TEXT NOT NULL,
        additional_fields TEXT NOT NULL DEFAULT '{}',
        PRIMARY KEY (batch_id, uri)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS documents_tombstones (
        uri TEXT PRIMARY KEY,
        deleted_tick INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS index_clock (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        tick INTEGER NOT NULL
    )
    """,
    "INSERT OR IGNORE INTO index_clock (id, tick) VALUES (1, 0)",
)

_REQUIRED_OBJECTS = (
    "documents",
    "documents_fts",
    "documents_staging",
    "documents_tombstones",
    "index_clock",
)

_UPSERT = text(
    """
    INSERT INTO documents (
        uri, vocabulary_string_key, value, value_key, value_words,
        type, additional_fields, indexed_at, written_tick
    ) VALUES (
        :uri, :vocabulary_string_key, :value, :value_key, :value_words,
        :type, :additional_fields, :indexed_at, :tick
    )
    ON CONFLICT(uri) DO UPDATE SET
        vocabulary_string_key = excluded.vocabulary_string_key,
        value = excluded.value,
        value_key = excluded.value_key,
        value_words = excluded.value_words,
        type = excluded.type,
        additional_fields = excluded.additional_fields,
        indexed_at = excluded.indexed_at,
        version = documents.version + 1,
        written_tick = excluded.written_tick
    """
)

_STAGE = text(
    """
    INSERT OR REPLACE INTO documents_staging (
        batch_id, uri, vocabulary_string_key, value, value_key, value_words,
        type, additional_fields
    ) VALUES (
        :batch_id, :uri, :vocabulary_string_key, :value, :value_key, :value_words,
        :type, :additional_fields
    )
    """
)

# Staged copies never overwrite documents written after the batch started,
# and never resurrect documents deleted after it started.
_PUBLISH = text(
    """
    INSERT INTO documents (
        uri, vocabulary_string_key, value, value_key, value_words,
        type, additional_fields, indexed_at, written_tick
    )
    SELECT s.uri, s.vocabulary_string_key, s.value, s.value_key, s.value_words,
           s.type, s.additional_fields, :indexed_at, :tick
    FROM documents_staging s
    WHERE s.batch_id = :batch_id
      AND NOT EXISTS (
          SELECT 1 FROM documents_tombstones t
          WHERE t.uri = s.uri AND t.deleted_tick > :started_tick
      )
    ON CONFLICT(uri) DO UPDATE SET
        vocabulary_string_key = excluded.vocabulary_string_key,
        value = excluded.value,
        value_key = excluded.value_key,
        value_words = excluded.value_words,
        type = excluded.type,
        additional_fields = excluded.additional_fields,
        indexed_at = excluded.indexed_at,
        version = documents.version + 1,
        written_tick = excluded.written_tick
    WHERE documents.written_tick < :started_tick
    """
)

_COLUMNS = "d.uri, d.vocabulary_string_key, d.value, d.type, d.additional_fields, d.indexed_at, d.version"

_ALPHABETICAL = "d.value_key, d.uri"


def fold(value: str) -> str:
    return value.casefold()


def word_key(value: str) -> str:
    """Space-padded word tokens of the folded *value*; ``""`` when it has no words."""
    words = _WORD_PATTERN.findall(fold(value))
    return f" {' '.join(words)} " if words else ""


def fts_phrase(query: str) -> str:
    """Quote *query* as a single FTS5 phrase."""
    return '"' + query.replace('"', '""') + '"'


def _sql_limit(limit: int | None) -> int:
    return -1 if limit is None else limit


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _analysed(document: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "uri": document["uri"],
        "vocabulary_string_key": document["vocabulary_string_key"],
        "value": document["value"],
        "value_key": fold(document["value"]),
        "value_words": word_key(document["value"]),
        "type": document["type"],
        "additional_fields": document.get("additional_fields") or "{}",
    }


def _tick(conn: Connection) -> int:
    """Advance the index clock inside the caller's write transaction."""
    conn.execute(text("UPDATE index_clock SET tick = tick + 1 WHERE id = 1"))
    return int(conn.execute(text("SELECT tick FROM index_clock WHERE id = 1")).scalar_one())


class SqliteSearchIndex:
    """Search index stored in a dedicated SQLite database file."""

    def __init__(
        self,
        path: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 0,
        pool_timeout: float = 5.0,
    ):
        self.path = path
        self._engine: Engine | None = create_uri_service_engine(
            f"sqlite:///{path}",
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
        )
        self._pending: list[tuple[str, Any]] = []
        self._pending_lock = threading.Lock()
        self._commit_lock = threading.Lock()

    # ── Connections ──────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._engine is None

    @contextmanager
    def _connect(self, *, write: bool = False) -> Iterator[Connection]:
        engine = self._engine
        if engine is None:
            raise SearchIndexUnavailableError(f"Search index {self.path} is closed")
        try:
            if write:
                with engine.begin() as conn:
                    yield conn
            else:
                with engine.connect() as conn:
                    yield conn
        except sa_exc.TimeoutError as e:
            raise PoolExhaustedError(
                "Timed out waiting for a search index connection", cause=e
            ) from e
        except sa_exc.DBAPIError as e:
            if e.connection_invalidated:
                raise SearchIndexUnavailableError(
                    f"Lost connection to search index {self.path}", cause=e
                ) from e
            raise SearchIndexError(f"Search index operation failed: {e.orig}", cause=e) from e

    # ── Writes ───────────────────────────────────────────────────

    def _write(self, operation: str, payload: Any, commit: bool) -> None:
        if commit:
            self._apply_all([(operation, payload)])
            return
        with self._pending_lock:
            self._pending.append((operation, payload))

    def add(self, document: Document, commit: bool = True) -> None:
        self._write("add", dict(document), commit)

    def delete(self, uri: str, commit: bool = True) -> None:
        self._write("delete", uri, commit)

    def delete_all(self, commit: bool = True) -> None:
        self._write("delete_all", None, commit)

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def commit(self) -> None:
        """Apply every deferred write in one transaction.

        Writes made with ``commit=True`` never pass through here. When the
        transaction fails the deferred writes stay pending.
        """
        with self._commit_lock:
            with self._pending_lock:
                operations, self._pending = self._pending, []
            if not operations:
                return
            try:
                self._apply_all(operations)
            except Exception:
                with self._pending_lock:
                    self._pending[:0] = operations
                logger.error("index_commit_failed", path=self.path, pending=len(operations))
                raise
            logger.debug("index_committed", path=self.path, operations=len(operations))

    def rollback(self) -> None:
        """Discard every deferred write."""
        with self._pending_lock:
            discarded, self._pending = len(self._pending), []
        if discarded:
            logger.warning("index_rollback", path=self.path, discarded=discarded)

    def _apply_all(self, operations: list[tuple[str, Any]]) -> None:
        with self._connect(write=True) as conn:
            tick = _tick(conn)
            indexed_at = _now()
            for operation, payload in operations:
                self._apply(conn, operation, payload, tick, indexed_at)

    def _apply(
        self, conn: Connection, operation: str, payload: Any, tick: int, indexed_at: str
    ) -> None:
        if operation == "add":
            conn.execute(_UPSERT, {**_analysed(payload), "indexed_at": indexed_at, "tick": tick})
            conn.execute(
                text("DELETE FROM documents_tombstones WHERE uri = :uri"), {"uri": payload["uri"]}
            )
        elif operation == "delete":
            conn.execute(text("DELETE FROM documents WHERE uri = :uri"), {"uri": payload})
            conn.execute(
                text(
                    "INSERT INTO documents_tombstones (uri, deleted_tick) VALUES (:uri, :tick) "
                    "ON CONFLICT(uri) DO UPDATE SET deleted_tick = excluded.deleted_tick"
                ),
                {"uri": payload, "tick": tick},
            )
        elif operation == "delete_all":
            conn.execute(text("DELETE FROM documents"))
        else:
            raise SearchIndexError(f"Unknown index operation: {operation}")

    def batch(self) -> SqliteIndexBatch:
        """Open a bulk rewrite; see ``SqliteIndexBatch``."""
        with self._connect(write=True) as conn:
            started_tick = _tick(conn)
        return SqliteIndexBatch(self, started_tick)

    # ── Reads ────────────────────────────────────────────────────

    def _select(self, sql: str, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        with self._connect() as conn:
            return [dict(row) for row in conn.execute(text(sql), params).mappings()]

    def get(self, uri: str) -> dict[str, Any] | None:
        rows = self._select(f"SELECT {_COLUMNS} FROM documents d WHERE d.uri = :uri", {"uri": uri})
        return rows[0] if rows else None

    def filter(
        self, criteria: Mapping[str, str], limit: int | None = None, offset: int = 0
    ) -> list[dict[str, Any]]:
        conditions = []
        params: dict[str, Any] = {"limit": _sql_limit(limit), "offset": offset}
        for i, (field_name, value) in enumerate(criteria.items()):
            if field_name not in QUERYABLE_FIELDS:
                raise UnsupportedSearchFieldError(
                    f"Unsupported search field: {field_name}", field=field_name
                )
            conditions.append(f"d.{field_name} = :p{i}")
            params[f"p{i}"] = value
        where = " AND ".join(conditions) if conditions else "1 = 1"
        return self._select(
            f"SELECT {_COLUMNS} FROM documents d WHERE {where} "
            f"ORDER BY {_ALPHABETICAL} LIMIT :limit OFFSET :offset",
            params,
        )

    def browse(self, vocabulary_string_key: str, limit: int, offset: int) -> list[dict[str, Any]]:
        return self._select(
            f"SELECT {_COLUMNS} FROM documents d WHERE d.vocabulary_string_key = :vocabulary "
            f"ORDER BY {_ALPHABETICAL} LIMIT :limit OFFSET :offset",
            {"vocabulary": vocabulary_string_key, "limit": _sql_limit(limit), "offset": offset},
        )

    def search(
        self, vocabulary_string_key: str, query: str, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        folded = fold(query)
        params: dict[str, Any] = {
            "vocabulary": vocabulary_string_key,
            "query": query,
            "folded": folded,
            "words": word_key(query),
            "limit": _sql_limit(limit),
            "offset": offset,
        }
        match = "d.value_key = :folded OR d.uri = :query"
        # The threshold counts the caller's characters, not their case folding.
        if len(query) >= MIN_PARTIAL_QUERY_LENGTH:
            match += (
                " OR (:words != '' AND instr(d.value_words, :words) > 0)"
                " OR d.id IN (SELECT rowid FROM documents_fts WHERE documents_fts MATCH :phrase)"
            )
            params["phrase"] = fts_phrase(folded)
        sql = (
            f"SELECT {_COLUMNS}, "
            "CASE "
            "WHEN d.value_key = :folded OR d.uri = :query THEN 0 "
            "WHEN :words != '' AND instr(d.value_words, :words) > 0 THEN 1 "
            "ELSE 2 END AS score "
            "FROM documents d "
            f"WHERE d.vocabulary_string_key = :vocabulary AND ({match}) "
            f"ORDER BY score, {_ALPHABETICAL} LIMIT :limit OFFSET :offset"
        )
        return self._select(sql, params)

    def count(self, vocabulary_string_key: str | None = None) -> int:
        if vocabulary_string_key is None:
            sql, params = "SELECT COUNT(*) FROM documents", {}
        else:
            sql = "SELECT COUNT(*) FROM documents WHERE vocabulary_string_key = :vocabulary"
            params = {"vocabulary": vocabulary_string_key}
        with self._connect() as conn:
            return int(conn.execute(text(sql), params).scalar_one())

    def staged_count(self) -> int:
        """Rows currently held in ``documents_staging`` by open batches."""
        with self._connect() as conn:
            return int(
                conn.execute(text("SELECT COUNT(*) FROM documents_staging")).scalar_one()
            )

    # ── Lifecycle ────────────────────────────────────────────────

    def ping(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except SearchIndexError as e:
            raise SearchIndexUnavailableError(
                f"Search index {self.path} is unreachable", cause=e
            ) from e

    def schema_exists(self) -> bool:
        with self._connect() as conn:
            names = set(
                conn.execute(
                    text("SELECT name FROM sqlite_master WHERE type = 'table'")
                ).scalars()
            )
        return all(name in names for name in _REQUIRED_OBJECTS)

    def create_schema(self) -> None:
        """Create the index tables and sync triggers if missing."""
        with self._connect(write=True) as conn:
            for statement in _SCHEMA_STATEMENTS:
                conn.exec_driver_sql(statement)
        logger.info("index_schema_ready", path=self.path)

    def close(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.dispose()
            logger.info("index_closed", path=self.path)


class SqliteIndexBatch:
    """A bulk rewrite of the index, invisible to readers until ``commit()``.

    ``add`` buffers one page in memory; ``flush`` moves it into
    ``documents_staging`` under this batch's id. ``commit`` publishes the
    staged documents (after removing every older document when
    ``delete_all`` was requested) in one transaction. ``rollback`` drops the
    staged rows. Neither touches writes deferred on the index itself.

    Used as a context manager, a clean exit commits and an exception rolls
    back::

        with index.batch() as batch:
            batch.delete_all()
            for page in pages:
                for document in page:
                    batch.add(document)
                batch.flush()
    """

    def __init__(self, index: SqliteSearchIndex, started_tick: int):
        self.index = index
        self.batch_id = uuid.uuid4().hex
        self.started_tick = started_tick
        self.staged = 0
        self._page: list[dict[str, Any]] = []
        self._clear = False
        self._finished = False

    def add(self, document: Document) -> None:
        self._page.append(_analysed(document))

    def delete_all(self) -> None:
        self._clear = True

    def flush(self) -> None:
        """Write the buffered page to the staging table."""
        if not self._page:
            return
        page, self._page = self._page, []
        with self.index._connect(write=True) as conn:
            conn.execute(_STAGE, [{**doc, "batch_id": self.batch_id} for doc in page])
        self.staged += len(page)

    def commit(self) -> None:
        self.flush()
        params = {"batch_id": self.batch_id, "started_tick": self.started_tick}
        with self.index._connect(write=True) as conn:
            tick = _tick(conn)
            if self._clear:
                conn.execute(
                    text("DELETE FROM documents WHERE written_tick < :started_tick"), params
                )
            conn.execute(_PUBLISH, {**params, "tick": tick, "indexed_at": _now()})
            conn.execute(text("DELETE FROM documents_staging WHERE batch_id = :batch_id"), params)
            conn.execute(
                text("DELETE FROM documents_tombstones WHERE deleted_tick < :started_tick"), params
            )
        self._finished = True
        logger.debug(
            "index_batch_committed", path=self.index.path, staged=self.staged, clear=self._clear
        )

    def rollback(self) -> None:
        self._page = []
        if self._finished:
            return
        self._finished = True
        with self.index._connect(write=True) as conn:
            conn.execute(
                text("DELETE FROM documents_staging WHERE batch_id = :batch_id"),
                {"batch_id": self.batch_id},
            )
        logger.warning("index_batch_rollback", path=self.index.path, discarded=self.staged)

    def __enter__(self) -> SqliteIndexBatch:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            try:
                self.commit()
            except SearchIndexError:
                self._discard()
                raise
            return
        self._discard()

    def _discard(self) -> None:
        try:
            self.rollback()
        except SearchIndexError as e:
            logger.error("index_batch_rollback_failed", path=self.index.path, error=str(e))


__all__ = ["SqliteSearchIndex", "SqliteIndexBatch", "fold", "word_key", "fts_phrase"]
