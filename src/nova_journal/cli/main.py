"""nova CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from nova_journal.cli.index import index_app
from nova_journal.cli.search import ask_cmd, context_cmd, search_cmd
from nova_journal.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("nova-journal")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"nova {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="nova",
    help=(
        "Nova Journal: contextual search over your journal notes.\n\n"
        "  nova index update   Embed new and changed notes.\n"
        "  nova search QUERY   Find related past entries.\n"
        "  nova ask TEXT       Reflect on TEXT with your journal as context."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Nova Journal: contextual search over your journal notes."""


app.add_typer(index_app, name="index")
app.command("search")(search_cmd)
app.command("context")(context_cmd)
app.command("ask")(ask_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed nova-journal version."""
    typer.echo(f"nova {_installed_version()}")


if __name__ == "__main__":
    app()
