"""
CLI: ``uri-service terms`` - term lookups.
"""

from __future__ import annotations

import typer

from uriservice.cli.utils import ConfigOption, EnvOption, open_client, output_items

app = typer.Typer(no_args_is_help=True)


@app.command()
def search(
    vocabulary: str = typer.Argument(..., help="Vocabulary string key"),
    query: str = typer.Argument("", help="Text to search for; blank lists alphabetically"),
    limit: int = typer.Option(10, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
    config: str = ConfigOption,
    env: str = EnvOption,
) -> None:
    """Search a vocabulary's terms."""
    with open_client(config, env) as client:
        terms = client.search_terms(vocabulary, query, limit=limit, offset=offset)
    output_items([t.to_dict() for t in terms], as_json=json_out, title=f"Terms in {vocabulary}")
