"""Tests for uriservice.core.settings."""

import pytest

from uriservice.core.errors import InvalidOptsError
from uriservice.core.settings import UriServiceSettings, load_settings

BASE = {
    "local_uri_base": "http://id.example.com/term/",
    "temporary_uri_base": "http://id.example.com/temporary/",
    "database": {"url": "sqlite:///terms.db"},
    "search_index": {"path": "terms_index.db"},
}


class TestUriServiceSettings:
    def test_defaults(self):
        settings = UriServiceSettings.from_mapping(BASE)
        assert settings.retry_attempts == 3
        assert settings.database.pool_size == 5
        assert settings.database.pool_timeout == 5.0
        assert settings.search_index.max_overflow == 0

    @pytest.mark.parametrize("key", ["local_uri_base", "temporary_uri_base", "database"])
    def test_missing_key_raises_invalid_opts(self, key, monkeypatch):
        """A missing top-level setting names the key in the message."""
        monkeypatch.delenv(f"URI_SERVICE_{key.upper()}", raising=False)
        opts = {k: v for k, v in BASE.items() if k != key}
        with pytest.raises(InvalidOptsError, match=rf"opts\['{key}'\]"):
            UriServiceSettings.from_mapping(opts)

    def test_none_values_count_as_missing(self):
        with pytest.raises(InvalidOptsError, match="local_uri_base"):
            UriServiceSettings.from_mapping({**BASE, "local_uri_base": None})

    def test_invalid_value(self):
        with pytest.raises(InvalidOptsError, match="Invalid opts"):
            UriServiceSettings.from_mapping({**BASE, "retry_attempts": 0})

    def test_nested_environment_override(self, monkeypatch):
        monkeypatch.setenv("URI_SERVICE_RETRY_ATTEMPTS", "5")
        settings = UriServiceSettings.from_mapping(BASE)
        assert settings.retry_attempts == 5


class TestLoadSettings:
    def test_loads_environment_section(self, config_file):
        settings = load_settings(config_file, "test")
        assert settings.local_uri_base == "http://id.example.com/term/"
        assert settings.database.pool_size == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidOptsError, match="No settings file"):
            load_settings(tmp_path / "nope.yml", "test")

    def test_missing_environment(self, config_file):
        with pytest.raises(InvalidOptsError, match="production"):
            load_settings(config_file, "production")
