"""
CLI: ``uri-service reindex`` - rebuild the search index from the database.
"""

from __future__ import annotations

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from uriservice.cli.utils import ConfigOption, EnvOption, console, open_client


def reindex(
    clear: bool = typer.Option(False, "--clear", help="Remove every indexed document first"),
    config: str = ConfigOption,
    env: str = EnvOption,
) -> None:
    """Rebuild the search index from the relational store."""
    with open_client(config, env) as client:
        with Progress(
            TextColumn("[bold]Reindexing"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("reindex", total=None)

            def _update(indexed: int, total: int) -> None:
                progress.update(task, completed=indexed, total=total)

            indexed = client.reindex_all(clear=clear, progress=_update)
    console.print(f"[green]Indexed {indexed} terms.[/green]")
