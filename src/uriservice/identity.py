"""Uri generation and validation per term type.

* EXTERNAL  - the caller's uri, validated against a strict http(s) grammar
* LOCAL     - ``local_uri_base + uuid4``
* TEMPORARY - ``temporary_uri_base + sha256_hex(vocabulary_string_key + value)``

The TEMPORARY rule is a pure function of its inputs, which is what makes
TEMPORARY creation idempotent.
"""

from __future__ import annotations

import re
import uuid

from uriservice.core.errors import InvalidUriError
from uriservice.core.hashing import content_hash

_UNRESERVED = r"A-Za-z0-9\-._~"
_SUB_DELIMS = r"!$&'()*+,;="
_PCT_ENCODED = r"%[0-9A-Fa-f]{2}"
_PCHAR = rf"(?:[{_UNRESERVED}{_SUB_DELIMS}:@]|{_PCT_ENCODED})"

VALID_URI_PATTERN = re.compile(
    r"(?i:https?)://"
    rf"(?:(?:[{_UNRESERVED}{_SUB_DELIMS}:]|{_PCT_ENCODED})*@)?"
    rf"(?:\[[0-9A-Fa-f:.]+\]|(?:[{_UNRESERVED}{_SUB_DELIMS}]|{_PCT_ENCODED})+)"
    r"(?::[0-9]*)?"
    rf"(?:/{_PCHAR}*)*"
    rf"(?:\?(?:{_PCHAR}|[/?])*)?"
    rf"(?:#(?:{_PCHAR}|[/?])*)?"
)


def is_valid_uri(uri: object) -> bool:
    """True for an absolute http or https uri with a non-empty host."""
    return isinstance(uri, str) and VALID_URI_PATTERN.fullmatch(uri) is not None


def validate_uri(uri: object) -> str:
    if not is_valid_uri(uri):
        raise InvalidUriError(f"Invalid URI supplied: {uri}", field="uri", value=uri)
    return uri  # type: ignore[return-value]


class IdentityGenerator:
    """Produces the uri for a new term."""

    def __init__(self, local_uri_base: str, temporary_uri_base: str):
        self.local_uri_base = local_uri_base
        self.temporary_uri_base = temporary_uri_base

    def uri_for_external(self, supplied_uri: str) -> str:
        return validate_uri(supplied_uri)

    def uri_for_local(self) -> str:
        return f"{self.local_uri_base}{uuid.uuid4()}"

    def uri_for_temporary(self, vocabulary_string_key: str, value: str) -> str:
        return self.temporary_uri_base + content_hash(vocabulary_string_key, value)


__all__ = ["VALID_URI_PATTERN", "is_valid_uri", "validate_uri", "IdentityGenerator"]
