"""Domain types: vocabularies, terms, term types and create results.

Term snapshots are immutable all the way down. ``additional_fields`` is a
read-only mapping whose values belong to a closed set of JSON-compatible
types::

    FieldValue = str | int | float | bool | tuple[str, ...] | tuple[int | float, ...]

Arrays are held as tuples inside a snapshot and returned as lists by
``Term.to_dict()``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from uriservice.core.errors import (
    InvalidAdditionalFieldKeyError,
    InvalidAdditionalFieldValueError,
    InvalidTermTypeError,
)

KEY_PATTERN = re.compile(r"[a-z][a-z0-9_]*")

CORE_FIELD_NAMES = frozenset({"uri", "vocabulary_string_key", "value", "type"})

Scalar = Union[str, int, float, bool]
FieldValue = Union[str, int, float, bool, tuple[str, ...], tuple[Union[int, float], ...]]


class TermType(str, Enum):
    """How a term's uri is obtained."""

    EXTERNAL = "external"
    LOCAL = "local"
    TEMPORARY = "temporary"

    @classmethod
    def coerce(cls, value: Any) -> TermType:
        """Return the member for *value* or raise ``InvalidTermTypeError``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        allowed = ", ".join(t.value for t in cls)
        raise InvalidTermTypeError(
            f"Invalid type: {value!r}. Must be one of: {allowed}", field="type", value=value
        )


class CreateOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTED = "already_existed"


# =============================================================================
# ADDITIONAL FIELD VALIDATION
# =============================================================================


def is_valid_key(key: Any) -> bool:
    return isinstance(key, str) and KEY_PATTERN.fullmatch(key) is not None


def validate_field_key(key: Any) -> str:
    """Reject reserved core names and keys outside ``^[a-z][a-z0-9_]*$``."""
    if isinstance(key, str) and key in CORE_FIELD_NAMES:
        raise InvalidAdditionalFieldKeyError(
            f"Cannot supply additional field \"{key}\" because it is a reserved key.",
            field=key,
        )
    if not is_valid_key(key):
        raise InvalidAdditionalFieldKeyError(
            "Invalid key (can only include lower case letters, numbers or underscores, "
            f"but cannot start with an underscore or number): {key!r}",
            field=str(key),
        )
    return key


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_field_value(key: str, value: Any) -> FieldValue:
    """Return *value* in snapshot form, or raise ``InvalidAdditionalFieldValueError``."""
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidAdditionalFieldValueError(
            f"Additional field \"{key}\" must be a finite number", field=key, value=value
        )
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        items = tuple(value)
        if all(isinstance(item, str) for item in items):
            return items
        if all(_is_number(item) and math.isfinite(item) for item in items):
            return items
        raise InvalidAdditionalFieldValueError(
            f"Additional field \"{key}\" must be an array of strings or an array of numbers",
            field=key,
            value=value,
        )
    raise InvalidAdditionalFieldValueError(
        f"Additional field \"{key}\" has unsupported type {type(value).__name__}",
        field=key,
        value=value,
    )


def clean_additional_fields(fields: Mapping[str, Any] | None) -> dict[str, FieldValue]:
    """Validate every key and value; keys whose value is ``None`` are dropped."""
    if not fields:
        return {}
    cleaned: dict[str, FieldValue] = {}
    for key, value in fields.items():
        validate_field_key(key)
        if value is None:
            continue
        cleaned[key] = normalize_field_value(key, value)
    return cleaned


def merge_additional_fields(
    existing: Mapping[str, Any], changes: Mapping[str, Any]
) -> dict[str, FieldValue]:
    """Merge *changes* over *existing*; a ``None`` in *changes* removes that key."""
    for key in changes:
        validate_field_key(key)
    merged = dict(existing)
    merged.update(changes)
    return clean_additional_fields(merged)


def thaw(value: FieldValue) -> Any:
    return list(value) if isinstance(value, tuple) else value


# =============================================================================
# SNAPSHOTS
# =============================================================================


@dataclass(frozen=True)
class Vocabulary:
    string_key: str
    display_label: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"string_key": self.string_key, "display_label": self.display_label}


@dataclass(frozen=True)
class Term:
    """Immutable snapshot of a term.

    ``additional_fields`` is frozen on construction: any mapping passed in is
    copied into a read-only view and arrays become tuples.
    """

    uri: str
    vocabulary_string_key: str
    value: str
    type: TermType
    additional_fields: Mapping[str, FieldValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", TermType.coerce(self.type))
        frozen = {
            key: tuple(value) if isinstance(value, list) else value
            for key, value in self.additional_fields.items()
        }
        object.__setattr__(self, "additional_fields", MappingProxyType(frozen))

    @property
    def is_temporary(self) -> bool:
        return self.type is TermType.TEMPORARY

    def to_dict(self) -> dict[str, Any]:
        """Flattened representation: core fields plus every additional field."""
        data: dict[str, Any] = {
            "uri": self.uri,
            "vocabulary_string_key": self.vocabulary_string_key,
            "value": self.value,
            "type": self.type.value,
        }
        for key, value in self.additional_fields.items():
            data[key] = thaw(value)
        return data

    def __getitem__(self, key: str) -> Any:
        return self.to_dict()[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return (
            self.uri == other.uri
            and self.vocabulary_string_key == other.vocabulary_string_key
            and self.value == other.value
            and self.type is other.type
            and dict(self.additional_fields) == dict(other.additional_fields)
        )

    def __hash__(self) -> int:
        return hash(self.uri)


@dataclass(frozen=True)
class CreateResult:
    """Outcome of ``create_term``.

    ``ALREADY_EXISTED`` is only ever reported for TEMPORARY terms, whose
    creation is an idempotent get-or-create.
    """

    term: Term
    outcome: CreateOutcome

    @property
    def created(self) -> bool:
        return self.outcome is CreateOutcome.CREATED


__all__ = [
    "KEY_PATTERN",
    "CORE_FIELD_NAMES",
    "FieldValue",
    "TermType",
    "CreateOutcome",
    "Vocabulary",
    "Term",
    "CreateResult",
    "is_valid_key",
    "validate_field_key",
    "normalize_field_value",
    "clean_additional_fields",
    "merge_additional_fields",
    "thaw",
]
