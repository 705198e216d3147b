"""
CLI utility helpers: client construction and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from uriservice.client import UriServiceClient
from uriservice.core.errors import UriServiceError
from uriservice.core.logging import LogContext, configure_logging

console = Console()
err_console = Console(stderr=True)

DEFAULT_CONFIG = "config/uri_service.yml"
DEFAULT_ENVIRONMENT = "development"

ConfigOption = typer.Option(
    DEFAULT_CONFIG, "--config", "-c", envvar="URI_SERVICE_CONFIG", help="Settings YAML file"
)
EnvOption = typer.Option(
    DEFAULT_ENVIRONMENT, "--env", "-e", envvar="URI_SERVICE_ENV", help="Settings section to use"
)


# ── Client helper ────────────────────────────────────────────────────────


@contextmanager
def open_client(config: str, env: str) -> Iterator[UriServiceClient]:
    """Open a client for one command; any ``UriServiceError`` exits with code 1."""
    try:
        client = UriServiceClient.from_config(config, env)
    except UriServiceError as e:
        fail(e)
    configure_logging(
        level=client.settings.log_level,
        json_format=client.settings.json_logs,
    )
    try:
        with LogContext(environment=env):
            yield client
    except UriServiceError as e:
        fail(e)
    finally:
        client.disconnect()


def fail(error: UriServiceError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({type(error).__name__}): {escape(error.message)}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def output_items(items: list[dict[str, Any]], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dicts as JSON or a Rich table."""
    if as_json:
        console.print_json(json.dumps(items, default=str))
        return
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*(str(v) for v in item.values()))
    console.print(table)
