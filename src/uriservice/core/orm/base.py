"""Declarative base and type-map for the URI service tables.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.
"""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import DeclarativeBase


class UriServiceBase(DeclarativeBase):
    """Shared declarative base for the relational store.

    ``type_annotation_map`` lets Mapped columns use plain Python types:

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
    }
