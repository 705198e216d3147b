"""Tests for uriservice.vocabularies."""

import pytest

from uriservice.core.errors import (
    ExistingVocabularyStringKeyError,
    InvalidVocabularyStringKeyError,
    NonExistentVocabularyError,
)
from uriservice.models import Vocabulary
from uriservice.vocabularies import validate_vocabulary_key


class TestValidateVocabularyKey:
    @pytest.mark.parametrize("key", ["names", "lc_subjects", "v2"])
    def test_valid(self, key):
        assert validate_vocabulary_key(key) == key

    def test_reserved(self):
        with pytest.raises(InvalidVocabularyStringKeyError, match="reserved word"):
            validate_vocabulary_key("all")

    @pytest.mark.parametrize("key", ["Names", "_names", "1names", "na-mes", ""])
    def test_malformed(self, key):
        with pytest.raises(InvalidVocabularyStringKeyError, match="Invalid key"):
            validate_vocabulary_key(key)


class TestVocabularyRegistry:
    """Vocabulary CRUD through the client."""

    def test_create_and_find(self, client):
        created = client.create_vocabulary("names", "Names")
        assert created == Vocabulary("names", "Names")
        assert client.find_vocabulary("names") == created

    def test_find_missing(self, client):
        assert client.find_vocabulary("nope") is None

    def test_create_duplicate(self, client):
        client.create_vocabulary("names", "Names")
        with pytest.raises(ExistingVocabularyStringKeyError):
            client.create_vocabulary("names", "Other")

    def test_create_invalid_key(self, client):
        with pytest.raises(InvalidVocabularyStringKeyError):
            client.create_vocabulary("all", "All")

    def test_display_label_may_be_none(self, client):
        assert client.create_vocabulary("names", None).display_label is None

    def test_update(self, client):
        client.create_vocabulary("names", "Names")
        updated = client.update_vocabulary("names", "People")
        assert updated.display_label == "People"
        assert client.find_vocabulary("names").display_label == "People"

    def test_update_missing(self, client):
        with pytest.raises(NonExistentVocabularyError):
            client.update_vocabulary("nope", "Nope")

    def test_delete(self, client):
        client.create_vocabulary("names", "Names")
        client.delete_vocabulary("names")
        assert client.find_vocabulary("names") is None

    def test_delete_missing_is_noop(self, client):
        client.delete_vocabulary("nope")

    def test_list_is_alphabetical_and_paginated(self, client):
        for key in ["places", "animals", "names"]:
            client.create_vocabulary(key, key.title())
        keys = [v.string_key for v in client.list_vocabularies()]
        assert keys == ["animals", "names", "places"]
        page = client.list_vocabularies(limit=1, offset=1)
        assert [v.string_key for v in page] == ["names"]

    def test_list_default_limit(self, client):
        for i in range(12):
            client.create_vocabulary(f"v{i:02d}", None)
        assert len(client.list_vocabularies()) == 10
