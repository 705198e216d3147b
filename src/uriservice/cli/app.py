"""
Root Typer application for the uri-service CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="uri-service",
    help="uri-service - controlled vocabularies and terms.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from uriservice import __version__

        typer.echo(f"uri-service {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """uri-service CLI - manage the database, the search index and vocabularies."""


# ── Sub-command registration ─────────────────────────────────────────────

from uriservice.cli.db import app as db_app  # noqa: E402
from uriservice.cli.reindex import reindex  # noqa: E402
from uriservice.cli.terms import app as terms_app  # noqa: E402
from uriservice.cli.vocabularies import app as vocabularies_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database and index schema.")
app.add_typer(vocabularies_app, name="vocabularies", help="Vocabulary management.")
app.add_typer(terms_app, name="terms", help="Term lookups.")
app.command("reindex")(reindex)
