"""Tests for uriservice.core.errors module."""

from sqlalchemy import exc as sa_exc

from uriservice.core.errors import (
    CannotChangeTemporaryTermError,
    ConfigError,
    DatabaseConnectionError,
    ErrorCategory,
    ErrorContext,
    ExistingUriError,
    InvalidOptsError,
    InvalidUriError,
    NonExistentUriError,
    PoolExhaustedError,
    SearchIndexUnavailableError,
    UriServiceError,
    categorize_error,
    is_retryable,
    is_transient_disconnect,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context(self):
        """An empty context serializes to an empty dict."""
        assert ErrorContext().to_dict() == {}

    def test_to_dict_includes_set_fields(self):
        """to_dict includes only non-None fields plus metadata."""
        ctx = ErrorContext(uri="http://x.org/1", operation="create_term", metadata={"k": "v"})
        d = ctx.to_dict()
        assert d == {"uri": "http://x.org/1", "operation": "create_term", "k": "v"}


class TestUriServiceError:
    """Test the base error and its subclasses."""

    def test_defaults(self):
        error = UriServiceError("boom")
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False

    def test_with_context_routes_unknown_keys_to_metadata(self):
        """Known attributes are set directly, others land in metadata."""
        error = NonExistentUriError("missing").with_context(uri="http://x.org/1", path="a.yml")
        assert error.context.uri == "http://x.org/1"
        assert error.context.metadata == {"path": "a.yml"}

    def test_to_dict_carries_cause(self):
        cause = ValueError("inner")
        error = ExistingUriError("taken", cause=cause)
        d = error.to_dict()
        assert d["error_type"] == "ExistingUriError"
        assert d["category"] == "CONFLICT"
        assert d["cause"] == "inner"
        assert error.__cause__ is cause

    def test_categories(self):
        """Each family reports its own category."""
        assert InvalidUriError("x").category == ErrorCategory.VALIDATION
        assert NonExistentUriError("x").category == ErrorCategory.NOT_FOUND
        assert CannotChangeTemporaryTermError("x").category == ErrorCategory.IMMUTABLE
        assert SearchIndexUnavailableError("x").category == ErrorCategory.INDEX

    def test_invalid_opts_missing_message(self):
        error = InvalidOptsError.missing("local_uri_base")
        assert isinstance(error, ConfigError)
        assert str(error) == "Must supply opts['local_uri_base'] to initialize method."
        assert error.context.metadata["option"] == "local_uri_base"

    def test_validation_error_fields(self):
        error = InvalidUriError("bad", field="uri", value="ftp://x")
        d = error.to_dict()
        assert d["field"] == "uri"
        assert d["value"] == "'ftp://x'"


class TestRetryClassification:
    """Only relational disconnects are transient."""

    def test_database_connection_error_is_transient(self):
        error = DatabaseConnectionError("lost")
        assert error.retryable
        assert is_transient_disconnect(error)
        assert is_retryable(error)

    def test_pool_exhaustion_is_not_transient(self):
        error = PoolExhaustedError("timeout")
        assert not is_transient_disconnect(error)
        assert not is_retryable(error)

    def test_sqlalchemy_disconnection_is_transient(self):
        assert is_transient_disconnect(sa_exc.DisconnectionError("gone"))

    def test_invalidated_dbapi_error_is_transient(self):
        error = sa_exc.DBAPIError("SELECT 1", {}, Exception("closed"), connection_invalidated=True)
        assert is_transient_disconnect(error)

    def test_plain_dbapi_error_is_not_transient(self):
        error = sa_exc.DBAPIError("SELECT 1", {}, Exception("syntax"))
        assert not is_transient_disconnect(error)

    def test_domain_errors_are_not_transient(self):
        assert not is_transient_disconnect(ExistingUriError("taken"))
        assert not is_transient_disconnect(ValueError("x"))


class TestCategorizeError:
    def test_service_error(self):
        assert categorize_error(ExistingUriError("x")) == ErrorCategory.CONFLICT

    def test_sqlalchemy_error(self):
        assert categorize_error(sa_exc.OperationalError("s", {}, Exception())) == ErrorCategory.DATABASE

    def test_value_error(self):
        assert categorize_error(ValueError("x")) == ErrorCategory.VALIDATION

    def test_unknown(self):
        assert categorize_error(RuntimeError("x")) == ErrorCategory.UNKNOWN
