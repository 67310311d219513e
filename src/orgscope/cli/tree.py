"""orgscope tree — sunburst JSON for one fingerprint name (or all of a type)."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Annotated

import typer

from orgscope.cli.common import console, load_settings, open_database, resolve_db
from orgscope.cli.errors import err_query_failed, err_tree_shape
from orgscope.errors import TreeDepthError
from orgscope.tree.query import TreeQuery, TreeQueryEngine


def tree_cmd(
    type: Annotated[str, typer.Argument(help="Aspect (fingerprint type).")],
    name: Annotated[str, typer.Argument(help="Fingerprint name, or '*' for every name.")] = "*",
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace id, or '*' for all workspaces."),
    ] = None,
    not_name: Annotated[
        bool,
        typer.Option("--not-name", help="Group every fingerprint of TYPE except NAME."),
    ] = False,
    complement: Annotated[
        bool,
        typer.Option("--complement", help="Add a bucket of repos without a matching fingerprint."),
    ] = False,
    other_label: Annotated[
        str | None,
        typer.Option("--other-label", help="Name of the complement bucket."),
    ] = None,
    split_by_owner: Annotated[
        int | None,
        typer.Option(
            "--split-by-owner",
            help="Add an owner level under this depth (0 = by organization).",
        ),
    ] = None,
    indent: Annotated[int, typer.Option("--indent", help="JSON indent (0 for compact).")] = 2,
) -> None:
    """Print the planted tree (tree + levels) as JSON."""
    cfg = load_settings()
    engine = TreeQueryEngine(open_database(resolve_db(db, cfg)), cfg.aspect_registry())
    try:
        query = TreeQuery(
            workspace_id=workspace or cfg.workspace.id,
            type=type,
            root_name=name,
            by_name=not not_name,
            include_complement=complement,
            other_label=other_label or cfg.tree.other_label,
            split_by_owner=split_by_owner,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--split-by-owner") from exc

    try:
        planted = engine.repo_tree(query)
    except TreeDepthError as exc:
        console.print(err_tree_shape(str(exc)))
        raise typer.Exit(1) from exc
    except sqlite3.Error as exc:
        console.print(err_query_failed(str(exc)))
        raise typer.Exit(1) from exc

    typer.echo(json.dumps(planted.to_dict(), indent=indent or None))
