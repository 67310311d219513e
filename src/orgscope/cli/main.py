"""orgscope CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from orgscope.cli.analytics import analytics_cmd
from orgscope.cli.common import load_settings
from orgscope.cli.fingerprints import fingerprints_cmd
from orgscope.cli.ideal import ideal_app
from orgscope.cli.init import init_cmd
from orgscope.cli.persist import persist_cmd
from orgscope.cli.status import show_cmd, status_cmd
from orgscope.cli.tree import tree_cmd
from orgscope.logs import configure_logging


def _version() -> str:
    try:
        return importlib.metadata.version("orgscope")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"orgscope {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="orgscope",
    help=(
        "orgscope — fingerprint store and sunburst queries for an organization's repositories.\n\n"
        "  orgscope persist  Store analysis results (JSON / JSON Lines).\n"
        "  orgscope tree     Sunburst JSON: fingerprint name → value → repositories."
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
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING, ERROR (default from config)."),
    ] = None,
) -> None:
    """orgscope — fingerprint store and sunburst queries."""
    configure_logging(log_level or load_settings().logging.level)


app.command("init")(init_cmd)
app.command("persist")(persist_cmd)
app.command("tree")(tree_cmd)
app.command("fingerprints")(fingerprints_cmd)
app.command("analytics")(analytics_cmd)
app.command("status")(status_cmd)
app.command("show")(show_cmd)
app.add_typer(ideal_app, name="ideal")


@app.command("version")
def version_cmd() -> None:
    """Show the installed orgscope version."""
    typer.echo(f"orgscope {_version()}")


if __name__ == "__main__":
    app()
