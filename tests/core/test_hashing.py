"""Tests for uriservice.core.hashing."""

import hashlib

from uriservice.core.hashing import HASH_LENGTH, content_hash


class TestContentHash:
    def test_is_sha256_hex(self):
        expected = hashlib.sha256(b"http://example.org/1").hexdigest()
        assert content_hash("http://example.org/1") == expected
        assert len(content_hash("x")) == HASH_LENGTH

    def test_parts_are_concatenated_without_separator(self):
        """Multiple parts hash the same as their plain concatenation."""
        assert content_hash("names", "Cat") == content_hash("namesCat")

    def test_deterministic(self):
        assert content_hash("a", "b") == content_hash("a", "b")
        assert content_hash("a", "b") != content_hash("b", "a")

    def test_unicode(self):
        expected = hashlib.sha256("Müller".encode("utf-8")).hexdigest()
        assert content_hash("Müller") == expected
