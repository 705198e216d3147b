"""
Term repository: the write path shared by the relational store and the index.

Every write runs in one relational transaction. The derived index document
is pushed and committed after the row is flushed and before the relational
transaction commits, so a failed push rolls the row back and the whole
write fails. A relational commit failing after a successful push leaves the
index ahead of the store; ``Reindexer.reindex_all`` repairs that.

Create flow::

    create_term(type, vocabulary, value, uri, additional_fields)
        │
        ├── EXTERNAL ── uri required ─────────────┐
        ├── LOCAL ───── up to 5 generated uris ───┤
        └── TEMPORARY ─ uri = f(vocabulary, value)┤
                                                  ▼
                                        _create_term_impl
            vocabulary exists? ─ uri grammar ─ field keys/values
                                                  │
                                     INSERT (uri_hash UNIQUE)
                                     ├── inserted ──► index.add ──► commit
                                     └── conflict
                                          ├── TEMPORARY ─► existing term, ALREADY_EXISTED
                                          ├── LOCAL ─────► next uri
                                          └── EXTERNAL ──► ExistingUriError

Tags:
    repository, dual-write, idempotency, retry

Doc-Types:
    - API Reference
    - Architecture Decision Record
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, NamedTuple

from sqlalchemy import delete, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from uriservice.core.errors import (
    CannotChangeTemporaryTermError,
    CouldNotGenerateUriError,
    ExistingUriError,
    InvalidOptsError,
    InvalidTemporaryTermUriError,
    NonExistentUriError,
    NonExistentVocabularyError,
)
from uriservice.core.hashing import content_hash
from uriservice.core.logging import get_logger
from uriservice.core.orm import TermTable, session_scope
from uriservice.core.retry import RetryPolicy, with_retry
from uriservice.documents import dump_additional_fields, load_additional_fields, to_index_document
from uriservice.identity import IdentityGenerator, validate_uri
from uriservice.index.base import SearchIndex
from uriservice.models import (
    CreateOutcome,
    CreateResult,
    Term,
    TermType,
    clean_additional_fields,
    merge_additional_fields as merge_fields,
)
from uriservice.vocabularies import VocabularyRegistry, vocabulary_exists

logger = get_logger(__name__)

LOCAL_URI_ATTEMPTS = 5


class InsertOutcome(Enum):
    INSERTED = "inserted"
    URI_CONFLICT = "uri_conflict"


class InsertResult(NamedTuple):
    outcome: InsertOutcome
    term: Term | None


def row_to_term(row: TermTable) -> Term:
    return Term(
        uri=row.uri,
        vocabulary_string_key=row.vocabulary_string_key,
        value=row.value,
        type=row.type,
        additional_fields=load_additional_fields(row.additional_fields),
    )


def _find_row(session: Session, uri: str) -> TermTable | None:
    return session.scalar(select(TermTable).where(TermTable.uri_hash == content_hash(uri)))


def _require_string_value(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidOptsError(f"Term value must be a string, got {type(value).__name__}")
    return value


class TermRepository:
    """Creates, updates and deletes terms in both stores.

    All public operations run under ``retry_policy``, which by default
    retries relational disconnects up to three attempts in total.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        index: SearchIndex,
        identity: IdentityGenerator,
        vocabularies: VocabularyRegistry,
        retry_policy: RetryPolicy | None = None,
    ):
        self.session_factory = session_factory
        self.index = index
        self.identity = identity
        self.vocabularies = vocabularies
        self.retry_policy = retry_policy or RetryPolicy.immediate()

    # =========================================================================
    # CREATE
    # =========================================================================

    @with_retry
    def create_term(
        self,
        type: TermType | str,
        vocabulary_string_key: str,
        value: str,
        uri: str | None = None,
        additional_fields: Mapping[str, Any] | None = None,
    ) -> CreateResult:
        """Create a term, or return the existing one for a repeated TEMPORARY create.

        Raises:
            InvalidTermTypeError: unknown *type*
            InvalidOptsError: uri missing for EXTERNAL, supplied for LOCAL or
                TEMPORARY, or additional fields supplied for TEMPORARY
            NonExistentVocabularyError: unknown vocabulary
            InvalidUriError: uri is not an absolute http(s) uri
            InvalidAdditionalFieldKeyError / InvalidAdditionalFieldValueError
            ExistingUriError: EXTERNAL uri already taken
            CouldNotGenerateUriError: every LOCAL uri attempt collided
        """
        term_type = TermType.coerce(type)
        _require_string_value(value)

        if term_type is TermType.EXTERNAL:
            if uri is None:
                raise InvalidOptsError("An EXTERNAL term requires a uri.")
        elif uri is not None:
            raise InvalidOptsError(
                f"A uri cannot be supplied for a {term_type.value.upper()} term because it is generated."
            )

        if term_type is TermType.LOCAL:
            return self._create_local_term(vocabulary_string_key, value, additional_fields)

        if term_type is TermType.TEMPORARY:
            uri = self.identity.uri_for_temporary(vocabulary_string_key, value)

        result = self._create_term_impl(
            term_type, vocabulary_string_key, value, uri, additional_fields
        )
        if result.outcome is InsertOutcome.INSERTED:
            return CreateResult(result.term, CreateOutcome.CREATED)
        if term_type is TermType.TEMPORARY and result.term is not None:
            logger.info(
                "temporary_term_exists", uri=uri, vocabulary_string_key=vocabulary_string_key
            )
            return CreateResult(result.term, CreateOutcome.ALREADY_EXISTED)
        raise ExistingUriError(f"A term already exists with uri: {uri}").with_context(
            uri=uri, vocabulary_string_key=vocabulary_string_key, term_type=term_type.value
        )

    def _create_local_term(
        self,
        vocabulary_string_key: str,
        value: str,
        additional_fields: Mapping[str, Any] | None,
    ) -> CreateResult:
        for attempt in range(1, LOCAL_URI_ATTEMPTS + 1):
            uri = self.identity.uri_for_local()
            result = self._create_term_impl(
                TermType.LOCAL, vocabulary_string_key, value, uri, additional_fields
            )
            if result.outcome is InsertOutcome.INSERTED:
                return CreateResult(result.term, CreateOutcome.CREATED)
            logger.error(
                "local_uri_collision",
                uri=uri,
                vocabulary_string_key=vocabulary_string_key,
                attempt=attempt,
            )
        raise CouldNotGenerateUriError(
            f"Could not generate a unique LOCAL uri after {LOCAL_URI_ATTEMPTS} attempts"
        ).with_context(vocabulary_string_key=vocabulary_string_key)

    def _create_term_impl(
        self,
        type: TermType | str,
        vocabulary_string_key: str,
        value: str,
        uri: str,
        additional_fields: Mapping[str, Any] | None,
    ) -> InsertResult:
        """Validate and insert one term under an already-chosen *uri*."""
        term_type = TermType.coerce(type)

        if term_type is TermType.TEMPORARY:
            expected = self.identity.uri_for_temporary(vocabulary_string_key, value)
            if uri != expected:
                raise InvalidTemporaryTermUriError(
                    f"The supplied uri {uri} does not match the uri generated for this "
                    f"TEMPORARY term: {expected}",
                    field="uri",
                    value=uri,
                )
            if additional_fields:
                raise InvalidOptsError("TEMPORARY terms cannot have additional fields.")

        with session_scope(self.session_factory) as session:
            if not vocabulary_exists(session, vocabulary_string_key):
                raise NonExistentVocabularyError(
                    f"There is no vocabulary with string key: {vocabulary_string_key}"
                ).with_context(vocabulary_string_key=vocabulary_string_key)
            validate_uri(uri)
            fields = clean_additional_fields(additional_fields)

            term = Term(
                uri=uri,
                vocabulary_string_key=vocabulary_string_key,
                value=value,
                type=term_type,
                additional_fields=fields,
            )
            outcome = self._insert_row(session, term)
            if outcome is InsertOutcome.URI_CONFLICT:
                existing = _find_row(session, uri)
                if existing is not None and existing.type == TermType.TEMPORARY.value:
                    return InsertResult(outcome, row_to_term(existing))
                return InsertResult(outcome, None)

            self.index.add(to_index_document(term), commit=True)

        logger.info(
            "term_created",
            uri=uri,
            vocabulary_string_key=vocabulary_string_key,
            term_type=term_type.value,
        )
        return InsertResult(InsertOutcome.INSERTED, term)

    def _insert_row(self, session: Session, term: Term) -> InsertOutcome:
        """Insert *term*'s row; a duplicate ``uri_hash`` is an outcome, not an error."""
        session.add(
            TermTable(
                vocabulary_string_key=term.vocabulary_string_key,
                uri=term.uri,
                uri_hash=content_hash(term.uri),
                value=term.value,
                value_hash=content_hash(term.value),
                type=term.type.value,
                additional_fields=dump_additional_fields(term.additional_fields),
            )
        )
        try:
            session.flush()
        except sa_exc.IntegrityError:
            session.rollback()
            if _find_row(session, term.uri) is None:
                raise
            return InsertOutcome.URI_CONFLICT
        return InsertOutcome.INSERTED

    # =========================================================================
    # UPDATE
    # =========================================================================

    @with_retry
    def update_term(
        self,
        uri: str,
        value: str | None = None,
        additional_fields: Mapping[str, Any] | None = None,
        merge_additional_fields: bool = True,
    ) -> Term:
        """Change the value and/or additional fields of an EXTERNAL or LOCAL term.

        With ``merge_additional_fields`` the supplied fields are merged over
        the current ones and keys set to ``None`` are removed; without it the
        supplied mapping replaces the current one.

        Raises:
            NonExistentUriError: unknown uri
            CannotChangeTemporaryTermError: the term is TEMPORARY
            InvalidAdditionalFieldKeyError / InvalidAdditionalFieldValueError
        """
        if value is not None:
            _require_string_value(value)

        with session_scope(self.session_factory) as session:
            row = _find_row(session, uri)
            if row is None:
                raise NonExistentUriError(f"No term found with uri: {uri}").with_context(uri=uri)
            if row.type == TermType.TEMPORARY.value:
                raise CannotChangeTemporaryTermError(
                    f"TEMPORARY terms cannot be changed: {uri}"
                ).with_context(uri=uri, vocabulary_string_key=row.vocabulary_string_key)

            if additional_fields is None:
                fields = load_additional_fields(row.additional_fields)
            elif merge_additional_fields:
                fields = merge_fields(
                    load_additional_fields(row.additional_fields), additional_fields
                )
            else:
                fields = clean_additional_fields(additional_fields)

            if value is not None and value != row.value:
                row.value = value
                row.value_hash = content_hash(value)
            row.additional_fields = dump_additional_fields(fields)
            session.flush()

            term = row_to_term(row)
            self.index.add(to_index_document(term), commit=True)

        logger.info("term_updated", uri=uri, vocabulary_string_key=term.vocabulary_string_key)
        return term

    def update_term_value(self, uri: str, value: str) -> Term:
        return self.update_term(uri, value=value)

    def update_term_additional_fields(
        self, uri: str, additional_fields: Mapping[str, Any], merge: bool = False
    ) -> Term:
        return self.update_term(
            uri, additional_fields=additional_fields, merge_additional_fields=merge
        )

    # =========================================================================
    # DELETE
    # =========================================================================

    @with_retry
    def delete_term(self, uri: str, commit: bool = True) -> None:
        """Delete the row and its index document.

        With ``commit=False`` the index delete is staged until
        ``commit_index()`` so batch callers can commit once.
        """
        with session_scope(self.session_factory) as session:
            session.execute(delete(TermTable).where(TermTable.uri_hash == content_hash(uri)))
            self.index.delete(uri, commit=commit)
        logger.info("term_deleted", uri=uri, index_committed=commit)

    def commit_index(self) -> None:
        self.index.commit()

    def delete_vocabulary(self, string_key: str) -> None:
        """Delete the vocabulary only; its terms stay in both stores."""
        self.vocabularies.delete(string_key)


__all__ = [
    "LOCAL_URI_ATTEMPTS",
    "InsertOutcome",
    "InsertResult",
    "TermRepository",
    "row_to_term",
]
