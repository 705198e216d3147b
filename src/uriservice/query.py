"""Read path: lookups, browsing and ranked text search against the index.

Term reads never touch the relational store. Results are therefore
eventually consistent with writes: a term is visible here once its
document has been committed to the index.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from uriservice.core.errors import UnsupportedSearchFieldError
from uriservice.documents import from_index_document
from uriservice.index.base import QUERYABLE_FIELDS, SearchIndex
from uriservice.models import Term


class SearchQueryEngine:
    """Translates term lookups into index queries.

    Multi-result queries are ordered alphabetically (case-insensitive value,
    then uri) except ``search_by_text``, which orders by relevance tier first.
    """

    def __init__(self, index: SearchIndex):
        self.index = index

    def find_by_uri(self, uri: str) -> Term | None:
        document = self.index.get(uri)
        return from_index_document(document) if document is not None else None

    def find_by_fields(
        self, criteria: Mapping[str, Any], limit: int | None = None, offset: int = 0
    ) -> list[Term]:
        """Exact match on ``uri``, ``vocabulary_string_key``, ``value`` and ``type``.

        Raises:
            UnsupportedSearchFieldError: for any other field name
        """
        normalized: dict[str, str] = {}
        for field_name, value in criteria.items():
            if field_name not in QUERYABLE_FIELDS:
                raise UnsupportedSearchFieldError(
                    f"Unsupported search field: {field_name}. "
                    f"Must be one of: {', '.join(sorted(QUERYABLE_FIELDS))}",
                    field=field_name,
                )
            normalized[field_name] = value.value if isinstance(value, Enum) else value
        return [
            from_index_document(doc)
            for doc in self.index.filter(normalized, limit=limit, offset=offset)
        ]

    def list_terms(self, vocabulary_string_key: str, limit: int = 10, offset: int = 0) -> list[Term]:
        return [
            from_index_document(doc)
            for doc in self.index.browse(vocabulary_string_key, limit=limit, offset=offset)
        ]

    def search_by_text(
        self, vocabulary_string_key: str, query: str | None, limit: int = 10, offset: int = 0
    ) -> list[Term]:
        """Relevance-ranked search within one vocabulary.

        A blank query is an alphabetical browse. Surrounding whitespace is
        ignored. Queries of fewer than three characters only match a whole
        value (or a whole uri); longer queries also match any substring of
        the value. Exact matches rank first, then whole-word matches, then
        mid-word matches; each tier is alphabetical.
        """
        query = (query or "").strip()
        if not query:
            return self.list_terms(vocabulary_string_key, limit=limit, offset=offset)
        return [
            from_index_document(doc)
            for doc in self.index.search(vocabulary_string_key, query, limit=limit, offset=offset)
        ]


__all__ = ["SearchQueryEngine"]
