"""Client settings for the URI service.

``UriServiceSettings`` declares everything a ``UriServiceClient`` needs: the
two uri bases, the relational database and the search index. Values come
from keyword arguments, a per-environment YAML file, ``URI_SERVICE_*``
environment variables or a ``.env`` file.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    A missing uri base or connection block is reported at startup as
    ``InvalidOptsError`` naming the missing key, never discovered later as
    an attribute error deep inside a write.

Features:
    - **UriServiceSettings:** uri bases, database and search index blocks
    - **Nested env vars:** ``URI_SERVICE_DATABASE__URL=sqlite:///terms.db``
    - **YAML environments:** ``load_settings("uri_service.yml", "development")``

Examples:
    >>> settings = UriServiceSettings(
    ...     local_uri_base="http://id.example.com/term/",
    ...     temporary_uri_base="http://id.example.com/temporary/",
    ...     database={"url": "sqlite:///terms.db"},
    ...     search_index={"path": "terms_index.db"},
    ... )

Tags:
    settings, configuration, pydantic, yaml, environment

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import pydantic
import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from uriservice.core.errors import InvalidOptsError


class DatabaseSettings(BaseModel):
    """Relational store connection and pool settings.

    Fields
    ──────
    url          : SQLAlchemy database URL
    pool_size    : Connections kept open in the pool
    max_overflow : Extra connections allowed beyond pool_size
    pool_timeout : Seconds to wait for a free connection before failing
    echo         : Log all SQL
    """

    url: str
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=0, ge=0)
    pool_timeout: float = Field(default=5.0, gt=0)
    echo: bool = False


class SearchIndexSettings(BaseModel):
    """Search index location and pool settings."""

    path: str
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=0, ge=0)
    pool_timeout: float = Field(default=5.0, gt=0)


class UriServiceSettings(BaseSettings):
    """Settings for one ``UriServiceClient``."""

    model_config = SettingsConfigDict(
        env_prefix="URI_SERVICE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Identity ─────────────────────────────────────────────────
    local_uri_base: str
    temporary_uri_base: str

    # ── Stores ───────────────────────────────────────────────────
    database: DatabaseSettings
    search_index: SearchIndexSettings

    # ── Behaviour ────────────────────────────────────────────────
    retry_attempts: int = Field(default=3, ge=1)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @classmethod
    def from_mapping(cls, opts: Mapping[str, Any]) -> UriServiceSettings:
        """Build settings from a plain mapping, raising ``InvalidOptsError`` on bad input."""
        supplied = {key: value for key, value in opts.items() if value is not None}
        try:
            return cls(**supplied)
        except pydantic.ValidationError as exc:
            raise _to_invalid_opts(exc) from exc


def _to_invalid_opts(exc: pydantic.ValidationError) -> InvalidOptsError:
    errors = exc.errors()
    missing = [".".join(str(p) for p in e["loc"]) for e in errors if e["type"] == "missing"]
    if missing:
        error = InvalidOptsError.missing(missing[0])
        error.cause = exc
        return error
    invalid = ", ".join(".".join(str(p) for p in e["loc"]) for e in errors)
    return InvalidOptsError(f"Invalid opts: {invalid}", cause=exc)


def load_settings(path: str | Path, environment: str) -> UriServiceSettings:
    """Load the *environment* section of a YAML settings file.

    The file maps environment names to settings blocks::

        development:
          local_uri_base: http://id.example.com/term/
          temporary_uri_base: http://id.example.com/temporary/
          database:
            url: sqlite:///db/uri_service_development.sqlite3
            pool_size: 5
            pool_timeout: 5
          search_index:
            path: db/uri_service_development_index.sqlite3
    """
    path = Path(path)
    if not path.exists():
        raise InvalidOptsError(f"No settings file at {path}").with_context(path=str(path))

    with path.open(encoding="utf-8") as fh:
        document = yaml.safe_load(fh) or {}

    section = document.get(environment)
    if not isinstance(section, Mapping):
        raise InvalidOptsError(
            f"Settings file {path} has no section for environment '{environment}'"
        ).with_context(path=str(path), environment=environment)

    return UriServiceSettings.from_mapping(section)


__all__ = [
    "DatabaseSettings",
    "SearchIndexSettings",
    "UriServiceSettings",
    "load_settings",
]
