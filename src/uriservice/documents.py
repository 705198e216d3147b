"""Mapping between term snapshots and search index documents.

An index document is flat::

    {
        "uri": "http://id.example.org/1",
        "value": "What a great value",
        "type": "external",
        "vocabulary_string_key": "names",
        "additional_fields": '{"field1":"string value","field2":1}',
    }

``additional_fields`` is a compact JSON string, so strings, numbers,
booleans and arrays round-trip without per-type index fields.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from uriservice.models import Term, thaw

DOCUMENT_FIELDS = ("uri", "value", "type", "vocabulary_string_key", "additional_fields")


def dump_additional_fields(fields: Mapping[str, Any]) -> str:
    return json.dumps(
        {key: thaw(value) for key, value in fields.items()},
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def load_additional_fields(blob: str | None) -> dict[str, Any]:
    if not blob:
        return {}
    return json.loads(blob)


def to_index_document(term: Term) -> dict[str, str]:
    return {
        "uri": term.uri,
        "value": term.value,
        "type": term.type.value,
        "vocabulary_string_key": term.vocabulary_string_key,
        "additional_fields": dump_additional_fields(term.additional_fields),
    }


def from_index_document(document: Mapping[str, Any]) -> Term:
    """Inverse of ``to_index_document``; bookkeeping and unknown keys are dropped."""
    return Term(
        uri=document["uri"],
        vocabulary_string_key=document["vocabulary_string_key"],
        value=document["value"],
        type=document["type"],
        additional_fields=load_additional_fields(document.get("additional_fields")),
    )


__all__ = [
    "DOCUMENT_FIELDS",
    "dump_additional_fields",
    "load_additional_fields",
    "to_index_document",
    "from_index_document",
]
