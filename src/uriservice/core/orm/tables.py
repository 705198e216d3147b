"""SQLAlchemy 2.0 table definitions for the relational store.

The relational store is the source of truth; the search index holds a
projection of ``terms`` that can be rebuilt from these rows at any time.

* ``uri`` is unbounded text, so uniqueness is enforced on ``uri_hash``
  (SHA-256 hex of the uri, fixed length 64).
* ``value_hash`` is the SHA-256 hex of the value.
* ``additional_fields`` holds the compact JSON object of custom fields.
* ``id`` is the insertion order used by the reindexer's keyset scan.

Usage::

    from uriservice.core.orm import UriServiceBase, create_uri_service_engine

    engine = create_uri_service_engine("sqlite:///uri_service.db")
    UriServiceBase.metadata.create_all(engine)
"""

from __future__ import annotations

from sqlalchemy import CHAR, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from uriservice.core.hashing import HASH_LENGTH
from uriservice.core.orm.base import UriServiceBase


class VocabularyTable(UriServiceBase):
    __tablename__ = "vocabularies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    string_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_label: Mapped[str | None] = mapped_column(String(255))


class TermTable(UriServiceBase):
    __tablename__ = "terms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vocabulary_string_key: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    uri: Mapped[str] = mapped_column(Text, nullable=False)
    uri_hash: Mapped[str] = mapped_column(CHAR(HASH_LENGTH), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_hash: Mapped[str] = mapped_column(CHAR(HASH_LENGTH), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    additional_fields: Mapped[str] = mapped_column(Text, nullable=False, default="{}")


REQUIRED_TABLES = (VocabularyTable.__tablename__, TermTable.__tablename__)

__all__ = ["VocabularyTable", "TermTable", "REQUIRED_TABLES"]
