"""Tests for uriservice.documents."""

from uriservice.documents import (
    dump_additional_fields,
    from_index_document,
    load_additional_fields,
    to_index_document,
)
from uriservice.models import Term


class TestAdditionalFieldsJson:
    def test_compact_and_unicode(self):
        blob = dump_additional_fields({"name": "Müller", "tags": ("a", "b")})
        assert blob == '{"name":"Müller","tags":["a","b"]}'

    def test_load_blank(self):
        assert load_additional_fields(None) == {}
        assert load_additional_fields("") == {}


class TestIndexDocument:
    def test_to_index_document(self):
        term = Term(
            uri="http://id.example.org/1",
            vocabulary_string_key="names",
            value="What a great value",
            type="external",
            additional_fields={"field1": "string value", "field2": 1},
        )
        assert to_index_document(term) == {
            "uri": "http://id.example.org/1",
            "value": "What a great value",
            "type": "external",
            "vocabulary_string_key": "names",
            "additional_fields": '{"field1":"string value","field2":1}',
        }

    def test_from_index_document_ignores_bookkeeping(self):
        document = {
            "uri": "http://id.example.org/1",
            "value": "Cat",
            "type": "local",
            "vocabulary_string_key": "animals",
            "additional_fields": '{"legs":4,"flags":[true]}',
            "indexed_at": "2026-01-01T00:00:00+00:00",
            "version": 3,
        }
        term = from_index_document(document)
        assert term.to_dict() == {
            "uri": "http://id.example.org/1",
            "value": "Cat",
            "type": "local",
            "vocabulary_string_key": "animals",
            "legs": 4,
            "flags": [True],
        }
