"""
CLI: ``uri-service vocabularies`` - vocabulary management.
"""

from __future__ import annotations

import typer

from uriservice.cli.utils import ConfigOption, EnvOption, console, open_client, output_items

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_vocabularies(
    limit: int = typer.Option(10, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
    config: str = ConfigOption,
    env: str = EnvOption,
) -> None:
    """List vocabularies alphabetically."""
    with open_client(config, env) as client:
        vocabularies = client.list_vocabularies(limit=limit, offset=offset)
    output_items([v.to_dict() for v in vocabularies], as_json=json_out, title="Vocabularies")


@app.command()
def create(
    string_key: str = typer.Argument(..., help="Lowercase key, e.g. names"),
    display_label: str = typer.Argument(..., help="Human readable label"),
    config: str = ConfigOption,
    env: str = EnvOption,
) -> None:
    """Create a vocabulary."""
    with open_client(config, env) as client:
        client.create_vocabulary(string_key, display_label)
    console.print(f"[green]Created vocabulary[/green] {string_key}")
