"""
Shared pytest fixtures for uri-service tests.

Every test gets its own pair of SQLite files under ``tmp_path``: one for the
relational store, one for the search index.
"""

from pathlib import Path
from typing import Generator

import pytest

from uriservice.client import UriServiceClient
from uriservice.core.settings import UriServiceSettings

LOCAL_URI_BASE = "http://id.example.com/term/"
TEMPORARY_URI_BASE = "http://id.example.com/temporary/"


@pytest.fixture
def settings(tmp_path: Path) -> UriServiceSettings:
    """Settings pointing at fresh SQLite files."""
    return UriServiceSettings(
        local_uri_base=LOCAL_URI_BASE,
        temporary_uri_base=TEMPORARY_URI_BASE,
        database={"url": f"sqlite:///{tmp_path / 'uri_service.sqlite3'}"},
        search_index={"path": str(tmp_path / "uri_service_index.sqlite3")},
    )


@pytest.fixture
def client(settings: UriServiceSettings) -> Generator[UriServiceClient, None, None]:
    """Connected client with all tables created."""
    client = UriServiceClient(settings)
    client.create_required_tables()
    yield client
    client.disconnect()


@pytest.fixture
def vocabulary(client: UriServiceClient) -> str:
    """An existing vocabulary's string key."""
    client.create_vocabulary("names", "Names")
    return "names"


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """YAML settings file with a ``test`` environment section."""
    path = tmp_path / "uri_service.yml"
    path.write_text(
        "test:\n"
        f"  local_uri_base: {LOCAL_URI_BASE}\n"
        f"  temporary_uri_base: {TEMPORARY_URI_BASE}\n"
        "  database:\n"
        f"    url: sqlite:///{tmp_path / 'cli.sqlite3'}\n"
        "    pool_size: 2\n"
        "  search_index:\n"
        f"    path: {tmp_path / 'cli_index.sqlite3'}\n",
        encoding="utf-8",
    )
    return path
