"""Tests for uriservice.core.logging."""

import structlog

from uriservice.core.logging import (
    LogContext,
    _elasticsearch_compatible,
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)


class TestProcessors:
    def test_elasticsearch_field_names(self):
        event = _elasticsearch_compatible(None, "info", {"timestamp": "t", "level": "info", "x": 1})
        assert event == {"@timestamp": "t", "log.level": "info", "x": 1}


class TestContext:
    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_bind_and_unbind(self):
        bind_context(vocabulary_string_key="names")
        assert structlog.contextvars.get_contextvars() == {"vocabulary_string_key": "names"}
        unbind_context("vocabulary_string_key")
        assert structlog.contextvars.get_contextvars() == {}

    def test_log_context_is_scoped(self):
        with LogContext(environment="test"):
            assert structlog.contextvars.get_contextvars()["environment"] == "test"
        assert "environment" not in structlog.contextvars.get_contextvars()


class TestConfigureLogging:
    def teardown_method(self):
        structlog.reset_defaults()

    def test_json_output_is_accepted(self):
        """configure_logging followed by a log call does not raise."""
        configure_logging(level="DEBUG", json_format=True, service="uri-service-test")
        get_logger(__name__).info("term_created", uri="http://example.org/1")

    def test_console_output_is_accepted(self):
        configure_logging(level="WARNING", json_format=False, add_timestamp=False)
        get_logger(__name__).warning("index_rollback", discarded=1)
