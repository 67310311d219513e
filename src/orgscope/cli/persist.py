"""orgscope persist — store analysis results from JSON or JSON Lines files.

Input forms, by content rather than extension:
  .jsonl              → one analysis result per line, read lazily
  anything else       → a JSON object (one result) or a JSON array of results

Records that cannot be parsed are reported as failures alongside the
store's own per-item failures; they never stop the rest of the batch.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table

from orgscope.cli.common import console, load_settings, open_database, resolve_db
from orgscope.cli.errors import err_unreadable_input
from orgscope.db.models import AnalysisResult, analysis_result_from_dict
from orgscope.persist.result import BUILD_STEP, PersistFailure, PersistResult
from orgscope.persist.store import AnalysisStore

logger = logging.getLogger(__name__)

_JSONL_EXTS = {".jsonl", ".ndjson"}


def persist_cmd(
    files: Annotated[
        list[Path],
        typer.Argument(help="Analysis files (.json or .jsonl).", exists=True, dir_okay=False),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace for records that do not name one."),
    ] = None,
) -> None:
    """Persist analysis results; exits 1 if any record failed."""
    cfg = load_settings()
    store = AnalysisStore(open_database(resolve_db(db, cfg)))
    workspace_id = workspace or cfg.workspace.id

    rejected: list[PersistFailure] = []
    outcome = store.persist(_iter_results(files, workspace_id, rejected))
    outcome = outcome + PersistResult(
        attempted_count=len(rejected), failed=tuple(rejected)
    )

    console.print(
        f"[green]✓[/] Persisted [bold]{len(outcome.succeeded)}[/] of "
        f"{outcome.attempted_count} analyses"
    )
    if outcome.failed:
        console.print(_failure_table(outcome))
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


def _iter_results(
    files: list[Path], workspace_id: str, rejected: list[PersistFailure]
) -> Iterator[AnalysisResult]:
    """Yield parsed results lazily; unparseable records go to *rejected*."""
    for path in files:
        for label, raw in _iter_records(path, rejected):
            try:
                yield analysis_result_from_dict(raw, workspace_id)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping %s: %s", label, exc)
                rejected.append(PersistFailure(label, BUILD_STEP, f"Malformed record: {exc}"))


def _iter_records(path: Path, rejected: list[PersistFailure]) -> Iterator[tuple[str, Any]]:
    if path.suffix.lower() in _JSONL_EXTS:
        with path.open(encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                label = f"{path}:{lineno}"
                try:
                    yield label, json.loads(line)
                except json.JSONDecodeError as exc:
                    rejected.append(PersistFailure(label, BUILD_STEP, f"Invalid JSON: {exc}"))
        return

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(err_unreadable_input(str(path), str(exc)))
        rejected.append(PersistFailure(str(path), BUILD_STEP, f"Unreadable file: {exc}"))
        return
    records = data if isinstance(data, list) else [data]
    for i, raw in enumerate(records):
        yield f"{path}[{i}]", raw


def _failure_table(outcome: PersistResult) -> Table:
    table = Table(title=f"{len(outcome.failed)} failed", title_justify="left")
    table.add_column("Repository")
    table.add_column("While trying to", style="dim")
    table.add_column("Message", style="red")
    for failure in outcome.failed:
        table.add_row(failure.repo_url, failure.while_trying_to, failure.message)
    return table
