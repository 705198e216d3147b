"""
The URI service client.

``UriServiceClient`` owns the relational engine and the search index, and
wires the registry, repository, query engine and reindexer onto them. It is
constructed explicitly and passed to whoever needs it; there is no
process-wide instance.

Manifesto:
    - **Explicit lifecycle:** construct to connect, ``disconnect()`` to
      release both pools; disconnecting twice is a no-op
    - **One façade:** callers use the client's methods, components stay
      reachable as attributes for tests and batch tools
    - **Fail early:** missing settings raise ``InvalidOptsError`` from the
      constructor

Examples:
    >>> with UriServiceClient.from_config("config/uri_service.yml", "development") as client:
    ...     client.create_required_tables()
    ...     client.create_vocabulary("names", "Names")
    ...     result = client.create_term("temporary", "names", "Smith, John")
    ...     client.search_terms("names", "smi")

Tags:
    client, lifecycle, connection-pool, facade

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy import inspect, text

from uriservice.core.errors import ClientDisconnectedError, DatabaseConnectionError, UriServiceError
from uriservice.core.logging import get_logger
from uriservice.core.orm import (
    REQUIRED_TABLES,
    UriServiceBase,
    create_uri_service_engine,
    uri_service_session_factory,
)
from uriservice.core.retry import RetryPolicy
from uriservice.core.settings import UriServiceSettings, load_settings
from uriservice.identity import IdentityGenerator
from uriservice.index.base import SearchIndex
from uriservice.index.sqlite_fts import SqliteSearchIndex
from uriservice.models import CreateResult, Term, TermType, Vocabulary
from uriservice.query import SearchQueryEngine
from uriservice.reindex import ProgressCallback, Reindexer
from uriservice.repository import TermRepository
from uriservice.vocabularies import VocabularyRegistry

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _requires_connection(method: F) -> F:
    @functools.wraps(method)
    def wrapper(self: UriServiceClient, *args: Any, **kwargs: Any) -> Any:
        if self.engine is None:
            raise ClientDisconnectedError("UriServiceClient is disconnected")
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class UriServiceClient:
    """Entry point for vocabulary and term operations."""

    def __init__(
        self,
        settings: UriServiceSettings | Mapping[str, Any],
        *,
        index: SearchIndex | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        if not isinstance(settings, UriServiceSettings):
            settings = UriServiceSettings.from_mapping(settings)
        self.settings = settings

        db = settings.database
        self.engine = create_uri_service_engine(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
        )
        self.session_factory = uri_service_session_factory(self.engine)

        if index is None:
            si = settings.search_index
            index = SqliteSearchIndex(
                si.path,
                pool_size=si.pool_size,
                max_overflow=si.max_overflow,
                pool_timeout=si.pool_timeout,
            )
        self.index = index

        self.retry_policy = retry_policy or RetryPolicy.immediate(settings.retry_attempts)
        self.identity = IdentityGenerator(settings.local_uri_base, settings.temporary_uri_base)
        self.vocabularies = VocabularyRegistry(self.session_factory, self.retry_policy)
        self.terms = TermRepository(
            self.session_factory,
            self.index,
            self.identity,
            self.vocabularies,
            self.retry_policy,
        )
        self.query = SearchQueryEngine(self.index)
        self.reindexer = Reindexer(self.session_factory, self.index)

    @classmethod
    def from_config(cls, path: str | Path, environment: str, **kwargs: Any) -> UriServiceClient:
        return cls(load_settings(path, environment), **kwargs)

    @property
    def local_uri_base(self) -> str:
        return self.settings.local_uri_base

    @property
    def temporary_uri_base(self) -> str:
        return self.settings.temporary_uri_base

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def disconnect(self) -> None:
        """Release both connection pools. Safe to call when already disconnected."""
        engine, self.engine = self.engine, None
        if engine is not None:
            engine.dispose()
            self.index.close()
            logger.info("client_disconnected")

    def __enter__(self) -> UriServiceClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.disconnect()

    def test_connection(self) -> None:
        """Raise if either store cannot be reached."""
        if self.engine is None:
            raise ClientDisconnectedError("UriServiceClient is disconnected")
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except sa_exc.SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Could not connect to database: {e}", cause=e
            ) from e
        self.index.ping()

    def connected(self) -> bool:
        if self.engine is None:
            return False
        try:
            self.test_connection()
        except UriServiceError as e:
            logger.warning("connection_check_failed", error=str(e))
            return False
        return True

    @_requires_connection
    def required_tables_exist(self) -> bool:
        existing = set(inspect(self.engine).get_table_names())
        return all(name in existing for name in REQUIRED_TABLES) and self.index.schema_exists()

    @_requires_connection
    def create_required_tables(self) -> None:
        """Create the relational tables and the index schema; existing ones are kept."""
        existing = set(inspect(self.engine).get_table_names())
        for name in REQUIRED_TABLES:
            if name in existing:
                logger.info("table_creation_skipped", table=name, reason="already exists")
                continue
            UriServiceBase.metadata.tables[name].create(self.engine)
            logger.info("table_created", table=name)
        self.index.create_schema()

    # =========================================================================
    # VOCABULARIES
    # =========================================================================

    @_requires_connection
    def create_vocabulary(self, string_key: str, display_label: str | None) -> Vocabulary:
        return self.vocabularies.create(string_key, display_label)

    @_requires_connection
    def find_vocabulary(self, string_key: str) -> Vocabulary | None:
        return self.vocabularies.find(string_key)

    @_requires_connection
    def update_vocabulary(self, string_key: str, display_label: str | None) -> Vocabulary:
        return self.vocabularies.update(string_key, display_label)

    @_requires_connection
    def delete_vocabulary(self, string_key: str) -> None:
        self.terms.delete_vocabulary(string_key)

    @_requires_connection
    def list_vocabularies(self, limit: int = 10, offset: int = 0) -> list[Vocabulary]:
        return self.vocabularies.list(limit=limit, offset=offset)

    # =========================================================================
    # TERMS: WRITES
    # =========================================================================

    @_requires_connection
    def create_term(
        self,
        type: TermType | str,
        vocabulary_string_key: str,
        value: str,
        uri: str | None = None,
        additional_fields: Mapping[str, Any] | None = None,
    ) -> CreateResult:
        return self.terms.create_term(type, vocabulary_string_key, value, uri, additional_fields)

    @_requires_connection
    def update_term(
        self,
        uri: str,
        value: str | None = None,
        additional_fields: Mapping[str, Any] | None = None,
        merge_additional_fields: bool = True,
    ) -> Term:
        return self.terms.update_term(uri, value, additional_fields, merge_additional_fields)

    @_requires_connection
    def update_term_value(self, uri: str, value: str) -> Term:
        return self.terms.update_term_value(uri, value)

    @_requires_connection
    def update_term_additional_fields(
        self, uri: str, additional_fields: Mapping[str, Any], merge: bool = False
    ) -> Term:
        return self.terms.update_term_additional_fields(uri, additional_fields, merge)

    @_requires_connection
    def delete_term(self, uri: str, commit: bool = True) -> None:
        self.terms.delete_term(uri, commit=commit)

    @_requires_connection
    def commit_index(self) -> None:
        self.terms.commit_index()

    def generate_uri_for_temporary_term(self, vocabulary_string_key: str, value: str) -> str:
        return self.identity.uri_for_temporary(vocabulary_string_key, value)

    # =========================================================================
    # TERMS: READS
    # =========================================================================

    @_requires_connection
    def find_term_by_uri(self, uri: str) -> Term | None:
        return self.query.find_by_uri(uri)

    @_requires_connection
    def find_terms_where(
        self, criteria: Mapping[str, Any], limit: int | None = None, offset: int = 0
    ) -> list[Term]:
        return self.query.find_by_fields(criteria, limit=limit, offset=offset)

    @_requires_connection
    def list_terms(self, vocabulary_string_key: str, limit: int = 10, offset: int = 0) -> list[Term]:
        return self.query.list_terms(vocabulary_string_key, limit=limit, offset=offset)

    @_requires_connection
    def search_terms(
        self, vocabulary_string_key: str, query: str | None, limit: int = 10, offset: int = 0
    ) -> list[Term]:
        return self.query.search_by_text(vocabulary_string_key, query, limit=limit, offset=offset)

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    @_requires_connection
    def reindex_all(self, clear: bool = False, progress: ProgressCallback | None = None) -> int:
        return self.reindexer.reindex_all(clear=clear, progress=progress)


__all__ = ["UriServiceClient"]
