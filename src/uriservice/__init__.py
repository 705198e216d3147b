"""uri-service: controlled vocabularies and terms, stored relationally and served from a search index.

Quick start::

    from uriservice import UriServiceClient

    with UriServiceClient.from_config("config/uri_service.yml", "development") as client:
        client.create_required_tables()
        client.create_vocabulary("names", "Names")
        client.create_term("external", "names", "Smith, John", uri="http://id.loc.gov/n1")
"""

from __future__ import annotations

from uriservice.client import UriServiceClient
from uriservice.core.settings import UriServiceSettings, load_settings
from uriservice.models import CreateOutcome, CreateResult, Term, TermType, Vocabulary

__version__ = "0.1.0"

__all__ = [
    "UriServiceClient",
    "UriServiceSettings",
    "load_settings",
    "CreateOutcome",
    "CreateResult",
    "Term",
    "TermType",
    "Vocabulary",
    "__version__",
]
