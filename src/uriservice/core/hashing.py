"""
Deterministic hashing for term identity and integrity columns.

Manifesto:
    Two things in the service depend on a stable content hash:

    - **uri_hash / value_hash:** fixed-length columns that let the relational
      store enforce uri uniqueness without a unique index on unbounded text
    - **TEMPORARY uris:** ``base + content_hash(vocabulary_key + value)``, so
      recomputing for the same inputs always yields the same uri

    Both are full SHA-256 hex digests (64 characters). Unlike multi-value
    record hashes, the inputs are concatenated without a delimiter so the
    derived uri only depends on the exact byte string being hashed.

Tags:
    hashing, sha256, idempotency, deduplication

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import hashlib

HASH_LENGTH = 64


def content_hash(*parts: str) -> str:
    """
    Compute the SHA-256 hex digest of the concatenated *parts*.

    Examples:
        >>> len(content_hash("http://example.org/1"))
        64
        >>> content_hash("names", "Cat") == content_hash("namesCat")
        True

    Args:
        *parts: Strings joined with no separator before hashing

    Returns:
        64-char lowercase hex string
    """
    return hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()


__all__ = ["HASH_LENGTH", "content_hash"]
