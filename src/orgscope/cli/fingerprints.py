"""orgscope fingerprints — list fingerprints stored for a workspace."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from orgscope.cli.common import console, load_settings, open_database, resolve_db
from orgscope.db.models import fingerprint_to_dict
from orgscope.persist.store import AnalysisStore

_DATA_WIDTH = 60


def fingerprints_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace id, or '*' for all workspaces."),
    ] = None,
    distinct: Annotated[
        bool,
        typer.Option("--distinct", help="One row per value instead of one per repo."),
    ] = False,
    type: Annotated[str | None, typer.Option("--type", "-t", help="Only this aspect.")] = None,
    name: Annotated[str | None, typer.Option("--name", "-n", help="Only this name.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a table.")] = False,
) -> None:
    """List fingerprints linked to repositories in a workspace."""
    cfg = load_settings()
    store = AnalysisStore(open_database(resolve_db(db, cfg)))
    workspace_id = workspace or cfg.workspace.id
    fps = store.fingerprints_in_workspace(workspace_id, distinct=distinct, type=type, name=name)

    if as_json:
        typer.echo(json.dumps([fingerprint_to_dict(fp) for fp in fps], indent=2))
        return

    if not fps:
        console.print(f"[dim]No fingerprints in workspace '{workspace_id}'.[/]")
        return

    registry = cfg.aspect_registry()
    table = Table(title=f"Fingerprints in {workspace_id} ({len(fps)})", title_justify="left")
    table.add_column("Aspect", style="bold")
    table.add_column("Name")
    table.add_column("Value")
    table.add_column("SHA", style="dim")
    for fp in fps:
        value = registry.display_value(fp)
        if len(value) > _DATA_WIDTH:
            value = value[: _DATA_WIDTH - 1] + "…"
        table.add_row(registry.display_name(fp.type), fp.name, value, fp.sha[:12])
    console.print(table)
