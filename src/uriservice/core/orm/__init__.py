"""SQLAlchemy 2.0 ORM layer for the relational store.

Modules
-------
base        UriServiceBase (declarative base)
session     Engine factory, UriServiceSession, session_scope
tables      VocabularyTable, TermTable
"""

from __future__ import annotations

from uriservice.core.orm.base import UriServiceBase
from uriservice.core.orm.session import (
    UriServiceSession,
    create_uri_service_engine,
    session_scope,
    translate_db_error,
    uri_service_session_factory,
)
from uriservice.core.orm.tables import REQUIRED_TABLES, TermTable, VocabularyTable

__all__ = [
    "UriServiceBase",
    "create_uri_service_engine",
    "UriServiceSession",
    "uri_service_session_factory",
    "session_scope",
    "translate_db_error",
    "VocabularyTable",
    "TermTable",
    "REQUIRED_TABLES",
]
