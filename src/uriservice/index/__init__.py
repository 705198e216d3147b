"""Search index adapters.

Modules
-------
base        SearchIndex and IndexBatch protocols, QUERYABLE_FIELDS
sqlite_fts  SqliteSearchIndex, SqliteIndexBatch (SQLite FTS5, trigram tokenizer)
"""

from __future__ import annotations

from uriservice.index.base import (
    MIN_PARTIAL_QUERY_LENGTH,
    QUERYABLE_FIELDS,
    IndexBatch,
    SearchIndex,
)
from uriservice.index.sqlite_fts import SqliteIndexBatch, SqliteSearchIndex

__all__ = [
    "MIN_PARTIAL_QUERY_LENGTH",
    "QUERYABLE_FIELDS",
    "IndexBatch",
    "SearchIndex",
    "SqliteIndexBatch",
    "SqliteSearchIndex",
]
