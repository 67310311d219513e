"""orgscope ideal — set and show the target value of a fingerprint.

Usage:
  orgscope ideal set npm-deps lodash 3f2a… --data '"4.17.21"'
  orgscope ideal show npm-deps lodash
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from orgscope.cli.common import console, load_settings, open_database, resolve_db
from orgscope.cli.errors import err_ideal_not_found, err_invalid_json_option
from orgscope.db.models import ConcreteIdeal, Fingerprint
from orgscope.persist.store import AnalysisStore

ideal_app = typer.Typer(
    name="ideal",
    help="Manage ideal fingerprint values (set, show).",
    add_completion=False,
    no_args_is_help=True,
)


@ideal_app.command("set")
def ideal_set_cmd(
    type: Annotated[str, typer.Argument(help="Aspect (fingerprint type).")],
    name: Annotated[str, typer.Argument(help="Fingerprint name.")],
    sha: Annotated[str, typer.Argument(help="SHA of the ideal value.")],
    data: Annotated[
        str,
        typer.Option("--data", help="Ideal value as JSON."),
    ] = "null",
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace id."),
    ] = None,
) -> None:
    """Set the ideal value for TYPE/NAME, replacing any previous ideal."""
    try:
        payload = json.loads(data, parse_constant=_reject_constant)
    except ValueError as exc:
        console.print(err_invalid_json_option("--data", str(exc)))
        raise typer.Exit(1) from exc

    cfg = load_settings()
    store = AnalysisStore(open_database(resolve_db(db, cfg)))
    workspace_id = workspace or cfg.workspace.id
    store.store_ideal(
        workspace_id,
        ConcreteIdeal(fingerprint=Fingerprint(type=type, name=name, sha=sha, data=payload)),
    )
    console.print(f"[green]✓[/] Ideal for {type}/{name} set to {sha} in '{workspace_id}'")


@ideal_app.command("show")
def ideal_show_cmd(
    type: Annotated[str, typer.Argument(help="Aspect (fingerprint type).")],
    name: Annotated[str, typer.Argument(help="Fingerprint name.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace id."),
    ] = None,
) -> None:
    """Show the ideal value for TYPE/NAME."""
    cfg = load_settings()
    store = AnalysisStore(open_database(resolve_db(db, cfg)))
    workspace_id = workspace or cfg.workspace.id
    ideal = store.fetch_ideal(workspace_id, type, name)
    if ideal is None:
        console.print(err_ideal_not_found(type, name, workspace_id))
        raise typer.Exit(0)

    fp = ideal.fingerprint
    console.print(f"[bold]{fp.type}/{fp.name}[/]  sha: {fp.sha}")
    console.print(f"  value: {cfg.aspect_registry().display_value(fp)}")
    console.print(f"  [dim]{ideal.reason}[/]")


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} cannot be stored as JSON")
