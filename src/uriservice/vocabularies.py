"""Vocabulary registry: CRUD over named vocabularies in the relational store."""

from __future__ import annotations

from sqlalchemy import delete, exists, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from uriservice.core.errors import (
    ExistingVocabularyStringKeyError,
    InvalidVocabularyStringKeyError,
    NonExistentVocabularyError,
)
from uriservice.core.logging import get_logger
from uriservice.core.orm import VocabularyTable, session_scope
from uriservice.core.retry import RetryPolicy, with_retry
from uriservice.models import Vocabulary, is_valid_key

logger = get_logger(__name__)

RESERVED_VOCABULARY_KEYS = frozenset({"all"})


def validate_vocabulary_key(string_key: str) -> str:
    if string_key in RESERVED_VOCABULARY_KEYS:
        raise InvalidVocabularyStringKeyError(
            f'The value "{string_key}" is a reserved word and cannot be used as the '
            "string_key value for a vocabulary.",
            field="string_key",
            value=string_key,
        )
    if not is_valid_key(string_key):
        raise InvalidVocabularyStringKeyError(
            "Invalid key (can only include lower case letters, numbers or underscores, "
            f"but cannot start with an underscore or number): {string_key!r}",
            field="string_key",
            value=string_key,
        )
    return string_key


def vocabulary_exists(session: Session, string_key: str) -> bool:
    return bool(session.scalar(select(exists().where(VocabularyTable.string_key == string_key))))


def _to_vocabulary(row: VocabularyTable) -> Vocabulary:
    return Vocabulary(string_key=row.string_key, display_label=row.display_label)


class VocabularyRegistry:
    """Vocabulary CRUD.

    Deleting a vocabulary never touches its terms.
    """

    def __init__(self, session_factory: sessionmaker, retry_policy: RetryPolicy | None = None):
        self.session_factory = session_factory
        self.retry_policy = retry_policy or RetryPolicy.immediate()

    @with_retry
    def create(self, string_key: str, display_label: str | None) -> Vocabulary:
        validate_vocabulary_key(string_key)
        with session_scope(self.session_factory) as session:
            row = VocabularyTable(string_key=string_key, display_label=display_label)
            session.add(row)
            try:
                session.flush()
            except sa_exc.IntegrityError as e:
                raise ExistingVocabularyStringKeyError(
                    f"A vocabulary already exists with string key: {string_key}",
                    cause=e,
                ).with_context(vocabulary_string_key=string_key) from e
            vocabulary = _to_vocabulary(row)
        logger.info("vocabulary_created", vocabulary_string_key=string_key)
        return vocabulary

    @with_retry
    def find(self, string_key: str) -> Vocabulary | None:
        with session_scope(self.session_factory) as session:
            row = session.scalar(
                select(VocabularyTable).where(VocabularyTable.string_key == string_key)
            )
            return _to_vocabulary(row) if row is not None else None

    @with_retry
    def update(self, string_key: str, display_label: str | None) -> Vocabulary:
        with session_scope(self.session_factory) as session:
            row = session.scalar(
                select(VocabularyTable).where(VocabularyTable.string_key == string_key)
            )
            if row is None:
                raise NonExistentVocabularyError(
                    f"No vocabulary found with string_key: {string_key}"
                ).with_context(vocabulary_string_key=string_key)
            row.display_label = display_label
            vocabulary = _to_vocabulary(row)
        logger.info("vocabulary_updated", vocabulary_string_key=string_key)
        return vocabulary

    @with_retry
    def delete(self, string_key: str) -> None:
        with session_scope(self.session_factory) as session:
            session.execute(delete(VocabularyTable).where(VocabularyTable.string_key == string_key))
        logger.info("vocabulary_deleted", vocabulary_string_key=string_key)

    @with_retry
    def list(self, limit: int = 10, offset: int = 0) -> list[Vocabulary]:
        """Vocabularies in alphabetical order of ``string_key``."""
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(VocabularyTable)
                .order_by(VocabularyTable.string_key, VocabularyTable.id)
                .limit(limit)
                .offset(offset)
            ).all()
            return [_to_vocabulary(row) for row in rows]


__all__ = [
    "RESERVED_VOCABULARY_KEYS",
    "validate_vocabulary_key",
    "vocabulary_exists",
    "VocabularyRegistry",
]
