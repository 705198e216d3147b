"""Rebuild the search index from the relational store.

The relational rows are authoritative; this is the repair path whenever the
index has drifted (lost documents, a relational commit that failed after
its index push, vocabularies deleted without their terms).
"""

from __future__ import annotations

import time
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from uriservice.core.logging import get_logger
from uriservice.core.orm import TermTable, session_scope
from uriservice.documents import to_index_document
from uriservice.index.base import SearchIndex
from uriservice.repository import row_to_term

logger = get_logger(__name__)

PAGE_SIZE = 100

ProgressCallback = Callable[[int, int], None]


class Reindexer:
    """Streams every term row into a private index batch and publishes it once."""

    def __init__(self, session_factory: sessionmaker, index: SearchIndex, page_size: int = PAGE_SIZE):
        self.session_factory = session_factory
        self.index = index
        self.page_size = page_size

    def reindex_all(self, clear: bool = False, progress: ProgressCallback | None = None) -> int:
        """Push every term row to the index, optionally clearing it first.

        Rows are read in primary-key order with keyset pagination, so rows
        inserted while the scan runs are either picked up or left for the
        next write, and no row is visited twice. Each page is flushed to the
        staging area of an ``IndexBatch`` and dropped from memory; a single
        commit at the end makes the rebuilt index visible. Terms
        created, updated or deleted through the repository while the scan
        runs keep their own index writes. On failure the batch is rolled
        back, the old index stays, and writes deferred by other callers are
        left pending.

        Args:
            clear: Remove every document not written during the rebuild
            progress: Called as ``progress(indexed, total)`` after each page

        Returns:
            Number of documents pushed
        """
        started = time.monotonic()
        with session_scope(self.session_factory) as session:
            total = session.scalar(select(func.count()).select_from(TermTable)) or 0
        logger.info("reindex_started", clear=clear, total=total)

        indexed = 0
        try:
            with self.index.batch() as batch:
                if clear:
                    batch.delete_all()

                last_id = 0
                while True:
                    with session_scope(self.session_factory) as session:
                        rows = session.scalars(
                            select(TermTable)
                            .where(TermTable.id > last_id)
                            .order_by(TermTable.id)
                            .limit(self.page_size)
                        ).all()
                        if not rows:
                            break
                        last_id = rows[-1].id
                        terms = [row_to_term(row) for row in rows]
                    for term in terms:
                        batch.add(to_index_document(term))
                    batch.flush()
                    indexed += len(terms)
                    if progress is not None:
                        progress(indexed, max(total, indexed))
        except Exception:
            logger.error("reindex_failed", indexed=indexed)
            raise

        logger.info(
            "reindex_completed",
            clear=clear,
            indexed=indexed,
            duration_s=round(time.monotonic() - started, 3),
        )
        return indexed


__all__ = ["PAGE_SIZE", "ProgressCallback", "Reindexer"]
