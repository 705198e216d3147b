"""
Search index contract.

The repository, query engine and reindexer depend on this shape only, so
any engine offering upsert-by-uri, delete, an explicit commit, exact
filters and ranked substring search can sit behind it.

Manifesto:
    - **Deferred writes:** ``add``/``delete``/``delete_all`` with
      ``commit=False`` are invisible to readers until ``commit()``; with
      ``commit=True`` each applies on its own and leaves deferred writes
      alone
    - **Private batches:** ``batch()`` gives a bulk rewrite its own staging
      scope; its ``commit``/``rollback`` never touch other callers' writes,
      and writes made by others after it started win over its copies
    - **Upsert by uri:** adding a document whose uri is already indexed
      replaces it
    - **Plain documents:** every method takes and returns the flat mapping
      produced by ``uriservice.documents``; the index may add bookkeeping
      keys (``indexed_at``, ``version``) on the way out

Architecture:
    ::

        TermRepository ──add/delete──┐
        Reindexer ──batch()─────────┤
                                     ├──► SearchIndex ◄── SqliteSearchIndex
        SearchQueryEngine ──get/filter/browse/search──┘

Tags:
    protocol, search-index, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

# Core fields an exact-match lookup may filter on.
QUERYABLE_FIELDS = frozenset({"uri", "vocabulary_string_key", "value", "type"})

# Queries shorter than this only match whole values.
MIN_PARTIAL_QUERY_LENGTH = 3

Document = Mapping[str, Any]


@runtime_checkable
class IndexBatch(Protocol):
    """A bulk rewrite that readers only see once committed.

    Context manager: a clean exit commits, an exception rolls back.
    """

    staged: int

    def add(self, document: Document) -> None:
        ...

    def delete_all(self) -> None:
        """On commit, drop every document not written after the batch began."""
        ...

    def flush(self) -> None:
        """Move buffered documents out of memory into durable staging."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def __enter__(self) -> IndexBatch:
        ...

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        ...


@runtime_checkable
class SearchIndex(Protocol):
    """Structural contract for the term search index."""

    # ── Writes ───────────────────────────────────────────────────

    def add(self, document: Document, commit: bool = True) -> None:
        """Upsert *document* by its ``uri``."""
        ...

    def delete(self, uri: str, commit: bool = True) -> None:
        """Remove the document with *uri*, if any."""
        ...

    def delete_all(self, commit: bool = True) -> None:
        """Remove every document."""
        ...

    def commit(self) -> None:
        """Make every deferred write visible to readers, atomically.

        On failure the deferred writes stay pending.
        """
        ...

    def rollback(self) -> None:
        """Discard every deferred write."""
        ...

    def batch(self) -> IndexBatch:
        """Open a private bulk rewrite."""
        ...

    # ── Reads ────────────────────────────────────────────────────

    def get(self, uri: str) -> dict[str, Any] | None:
        ...

    def filter(
        self, criteria: Mapping[str, str], limit: int | None = None, offset: int = 0
    ) -> list[dict[str, Any]]:
        """Exact match on ``QUERYABLE_FIELDS``, ordered by value then uri."""
        ...

    def browse(self, vocabulary_string_key: str, limit: int, offset: int) -> list[dict[str, Any]]:
        """Every document in a vocabulary, ordered by value then uri."""
        ...

    def search(
        self, vocabulary_string_key: str, query: str, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        """Relevance-ranked match of a non-blank, stripped *query*.

        Rank tiers: exact value or exact uri, then whole-word match, then
        mid-word substring. Ties are ordered by value then uri. Queries
        shorter than ``MIN_PARTIAL_QUERY_LENGTH`` only match exact values
        or uris.
        """
        ...

    def count(self, vocabulary_string_key: str | None = None) -> int:
        ...

    # ── Lifecycle ────────────────────────────────────────────────

    def ping(self) -> None:
        """Raise ``SearchIndexUnavailableError`` if the index cannot be reached."""
        ...

    def schema_exists(self) -> bool:
        ...

    def create_schema(self) -> None:
        ...

    def close(self) -> None:
        """Release pooled connections. Safe to call more than once."""
        ...


__all__ = ["QUERYABLE_FIELDS", "MIN_PARTIAL_QUERY_LENGTH", "Document", "IndexBatch", "SearchIndex"]
