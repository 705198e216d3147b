"""Tests for uriservice.identity."""

import uuid

import pytest

from uriservice.core.errors import InvalidUriError
from uriservice.core.hashing import content_hash
from uriservice.identity import IdentityGenerator, is_valid_uri, validate_uri

LOCAL = "http://id.example.com/term/"
TEMPORARY = "http://id.example.com/temporary/"


class TestUriValidation:
    @pytest.mark.parametrize(
        "uri",
        [
            "http://id.loc.gov/authorities/names/n79021164",
            "https://example.org",
            "HTTP://EXAMPLE.ORG/Path",
            "http://user:pw@example.org:8080/a/b?q=1&r=2#frag",
            "http://example.org/caf%C3%A9",
            "http://[::1]/x",
        ],
    )
    def test_valid(self, uri):
        assert is_valid_uri(uri)
        assert validate_uri(uri) == uri

    @pytest.mark.parametrize(
        "uri",
        [
            "",
            "example.org/x",
            "ftp://example.org/x",
            "urn:isbn:0451450523",
            "http://",
            "http://example.org/has space",
            "http://example.org/bad%zz",
            " http://example.org",
            None,
            42,
        ],
    )
    def test_invalid(self, uri):
        assert not is_valid_uri(uri)
        with pytest.raises(InvalidUriError):
            validate_uri(uri)


class TestIdentityGenerator:
    def setup_method(self):
        self.identity = IdentityGenerator(LOCAL, TEMPORARY)

    def test_external_uri_is_validated(self):
        assert self.identity.uri_for_external("http://x.org/1") == "http://x.org/1"
        with pytest.raises(InvalidUriError):
            self.identity.uri_for_external("not a uri")

    def test_local_uri_is_base_plus_uuid4(self):
        uri = self.identity.uri_for_local()
        assert uri.startswith(LOCAL)
        assert uuid.UUID(uri[len(LOCAL):]).version == 4
        assert is_valid_uri(uri)

    def test_local_uris_differ(self):
        assert self.identity.uri_for_local() != self.identity.uri_for_local()

    def test_temporary_uri_is_deterministic(self):
        """TEMPORARY uri = base + sha256(vocabulary_string_key + value)."""
        uri = self.identity.uri_for_temporary("names", "Smith, John")
        assert uri == TEMPORARY + content_hash("namesSmith, John")
        assert uri == self.identity.uri_for_temporary("names", "Smith, John")
        assert uri != self.identity.uri_for_temporary("places", "Smith, John")
