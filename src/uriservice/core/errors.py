"""
Structured error types for the URI service.

Every failure the service can report is a ``UriServiceError`` carrying a
category, a retryable flag, structured context and an optional chained
cause. Callers branch on the class; log pipelines use ``to_dict()``.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the caller can act on
    - **Explicit Retry Semantics:** Only relational disconnects are retryable
    - **Rich Context:** Errors carry the uri / vocabulary they concern
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       UriServiceError                            │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError        ValidationError          ConflictError       │
        │  (CONFIG)           (VALIDATION)             (CONFLICT)          │
        │      │                  │                        │               │
        │  InvalidOptsError   InvalidUriError          ExistingUriError    │
        │                     InvalidTermTypeError     ExistingVocabulary- │
        │                     InvalidVocabulary-        StringKeyError     │
        │                      StringKeyError                              │
        │                     InvalidAdditionalField*                      │
        │                     InvalidTemporaryTermUriError                 │
        │                     UnsupportedSearchFieldError                  │
        │                                                                  │
        │  NotFoundError      CannotChangeTemporary-   CouldNotGenerate-   │
        │  (NOT_FOUND)         TermError (IMMUTABLE)    UriError           │
        │      │                                        (GENERATION)       │
        │  NonExistentUriError                                             │
        │  NonExistentVocabularyError                                      │
        │                                                                  │
        │  TransientError     DatabaseError            SearchIndexError    │
        │  (retryable)        (DATABASE)               (INDEX)             │
        │      │                  │                        │               │
        │  DatabaseConnection PoolExhaustedError       SearchIndex-        │
        │   Error                                       UnavailableError   │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NonExistentUriError("No term found with uri: http://x/1")
    >>> error.category
    <ErrorCategory.NOT_FOUND: 'NOT_FOUND'>
    >>> error.with_context(uri="http://x/1").context.uri
    'http://x/1'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy import exc as sa_exc


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    IMMUTABLE = "IMMUTABLE"
    GENERATION = "GENERATION"
    DATABASE = "DATABASE"
    INDEX = "INDEX"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Attributes:
        uri: Term URI the operation concerned
        vocabulary_string_key: Vocabulary the operation concerned
        term_type: Term type (external / local / temporary)
        operation: Public operation name (``create_term``, ``reindex_all``, ...)
        attempt: Attempt number when raised from inside a retry loop
        metadata: Additional key-value pairs
    """

    uri: str | None = None
    vocabulary_string_key: str | None = None
    term_type: str | None = None
    operation: str | None = None
    attempt: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["uri", "vocabulary_string_key", "term_type", "operation", "attempt"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class UriServiceError(Exception):
    """
    Base exception for all URI service errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    raising sites only pass a message and, where useful, a cause.

    Examples:
        >>> error = UriServiceError("Something went wrong")
        >>> error.retryable
        False
        >>> error.to_dict()["error_type"]
        'UriServiceError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> UriServiceError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NonExistentUriError(msg).with_context(uri=uri, operation="update_term")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(UriServiceError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidOptsError(ConfigError):
    """Missing or contradictory options.

    Raised for missing client settings and for create-term options that do
    not fit the term type (an EXTERNAL term without a uri, a LOCAL term with
    one, a TEMPORARY term with additional fields).
    """

    @classmethod
    def missing(cls, key: str) -> InvalidOptsError:
        return cls(f"Must supply opts['{key}'] to initialize method.").with_context(option=key)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(UriServiceError):
    """
    Input validation error.

    Never retryable - the input must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class InvalidVocabularyStringKeyError(ValidationError):
    """Vocabulary key is reserved or does not match ``^[a-z][a-z0-9_]*$``."""


class InvalidUriError(ValidationError):
    """URI is not an absolute http(s) URI."""


class InvalidTermTypeError(ValidationError):
    """Term type is not one of external, local or temporary."""


class InvalidAdditionalFieldKeyError(ValidationError):
    """Additional field key is malformed or collides with a core field name."""


class InvalidAdditionalFieldValueError(ValidationError):
    """Additional field value is not a string, number, boolean or homogeneous array."""


class InvalidTemporaryTermUriError(ValidationError):
    """A supplied TEMPORARY uri differs from the one derived from vocabulary and value."""


class UnsupportedSearchFieldError(ValidationError):
    """Exact-match lookup on a field outside the queryable allow-list."""


# =============================================================================
# CONFLICT / NOT FOUND / STATE ERRORS
# =============================================================================


class ConflictError(UriServiceError):
    """A uniqueness constraint would be violated."""

    default_category = ErrorCategory.CONFLICT


class ExistingUriError(ConflictError):
    """A term with this uri already exists."""


class ExistingVocabularyStringKeyError(ConflictError):
    """A vocabulary with this string key already exists."""


class NotFoundError(UriServiceError):
    """A referenced record does not exist."""

    default_category = ErrorCategory.NOT_FOUND


class NonExistentUriError(NotFoundError):
    """No term exists with this uri."""


class NonExistentVocabularyError(NotFoundError):
    """No vocabulary exists with this string key."""


class CannotChangeTemporaryTermError(UriServiceError):
    """TEMPORARY terms are immutable once created."""

    default_category = ErrorCategory.IMMUTABLE


class CouldNotGenerateUriError(UriServiceError):
    """Every LOCAL uri generation attempt collided with an existing uri."""

    default_category = ErrorCategory.GENERATION


class ClientDisconnectedError(UriServiceError):
    """The client was used after ``disconnect()``."""


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class TransientError(UriServiceError):
    """Temporary error that may succeed on retry."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """The relational connection was lost mid-operation."""

    default_category = ErrorCategory.DATABASE


class DatabaseError(UriServiceError):
    """Non-transient relational store failure."""

    default_category = ErrorCategory.DATABASE


class PoolExhaustedError(DatabaseError):
    """No pooled connection became available within the pool timeout.

    Reported loudly and never retried.
    """


class SearchIndexError(UriServiceError):
    """The search index rejected a write or query."""

    default_category = ErrorCategory.INDEX


class SearchIndexUnavailableError(SearchIndexError):
    """The search index could not be reached."""


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_transient_disconnect(error: BaseException) -> bool:
    """True only for relational connection-loss errors.

    This is the classifier behind the repository retry policy: anything it
    rejects propagates on the first attempt.
    """
    if isinstance(error, DatabaseConnectionError):
        return True
    if isinstance(error, sa_exc.DisconnectionError):
        return True
    if isinstance(error, sa_exc.DBAPIError):
        return bool(error.connection_invalidated)
    return False


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, UriServiceError):
        return error.retryable
    return is_transient_disconnect(error)


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, UriServiceError):
        return error.category
    if isinstance(error, sa_exc.SQLAlchemyError):
        return ErrorCategory.DATABASE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "UriServiceError",
    # Config
    "ConfigError",
    "InvalidOptsError",
    # Validation
    "ValidationError",
    "InvalidVocabularyStringKeyError",
    "InvalidUriError",
    "InvalidTermTypeError",
    "InvalidAdditionalFieldKeyError",
    "InvalidAdditionalFieldValueError",
    "InvalidTemporaryTermUriError",
    "UnsupportedSearchFieldError",
    # Conflict / not found / state
    "ConflictError",
    "ExistingUriError",
    "ExistingVocabularyStringKeyError",
    "NotFoundError",
    "NonExistentUriError",
    "NonExistentVocabularyError",
    "CannotChangeTemporaryTermError",
    "CouldNotGenerateUriError",
    "ClientDisconnectedError",
    # Infrastructure
    "TransientError",
    "DatabaseConnectionError",
    "DatabaseError",
    "PoolExhaustedError",
    "SearchIndexError",
    "SearchIndexUnavailableError",
    # Utilities
    "is_transient_disconnect",
    "is_retryable",
    "categorize_error",
]
