"""
CLI: ``uri-service db`` - schema bootstrap and connectivity checks.
"""

from __future__ import annotations

import typer

from uriservice.cli.utils import ConfigOption, EnvOption, console, open_client

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(config: str = ConfigOption, env: str = EnvOption) -> None:
    """Create the relational tables and the search index schema."""
    with open_client(config, env) as client:
        client.test_connection()
        client.create_required_tables()
    console.print("[green]Tables ready.[/green]")


@app.command()
def check(config: str = ConfigOption, env: str = EnvOption) -> None:
    """Check connectivity and that the required tables exist."""
    with open_client(config, env) as client:
        client.test_connection()
        ready = client.required_tables_exist()
    if not ready:
        console.print("[yellow]Connected, but required tables are missing.[/yellow] Run: uri-service db init")
        raise typer.Exit(code=1)
    console.print("[green]Connected; required tables exist.[/green]")
