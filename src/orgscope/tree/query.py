"""Hierarchical fingerprint queries: fingerprint name → value → repositories.

Each TreeQuery is compiled into a single SQLite statement that builds the
nested tree with the JSON1 functions and, in a second column, the list of
repositories that carry no matching fingerprint. The result is checked
against its declared levels before it is returned.

Two shapes exist:

* single name (``by_name`` with a concrete ``root_name``)::

      fingerprint name / fingerprint value / repository

* grouped (``root_name == "*"``, or ``by_name=False`` meaning every name
  *except* ``root_name``)::

      aspect / fingerprint name / fingerprint value / repository

Either shape can gain an ``owner`` level with ``split_by_owner``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any

from orgscope.aspects import AspectRegistry
from orgscope.db.connection import Database
from orgscope.db.models import Fingerprint
from orgscope.db.repository import ALL_WORKSPACES
from orgscope.tree.sunburst import (
    Level,
    PlantedTree,
    SunburstTree,
    split_by,
    validate_planted_tree,
    visit,
)

logger = logging.getLogger(__name__)

WILDCARD = "*"

SINGLE_NAME_LEVELS: tuple[Level, ...] = (
    Level("fingerprint name"),
    Level("fingerprint value"),
    Level("repository"),
)

GROUPED_LEVELS: tuple[Level, ...] = (
    Level("aspect"),
    Level("fingerprint name"),
    Level("fingerprint value"),
    Level("repository"),
)

OWNER_LEVEL = Level("owner")


@dataclass(frozen=True)
class TreeQuery:
    """Parameters of a repo tree query.

    Attributes:
        workspace_id: Workspace to query, or ``"*"`` for all workspaces.
        type: Aspect name (``feature_name`` in storage).
        root_name: Fingerprint name to drill into, or ``"*"`` for every name.
        by_name: When False, select the names that do NOT equal *root_name*.
            Ignored for the wildcard.
        include_complement: Add a bucket of repositories that carry no
            matching fingerprint.
        other_label: Name of that bucket.
        split_by_owner: Insert an "owner" level under the nodes at this
            depth. 0 splits the whole tree by organization, 1 splits each
            name (or aspect) by owner. None leaves the tree as queried.
    """

    workspace_id: str
    type: str
    root_name: str
    by_name: bool = True
    include_complement: bool = False
    other_label: str = "None"
    split_by_owner: int | None = None

    def __post_init__(self) -> None:
        base = len(GROUPED_LEVELS if self.grouped else SINGLE_NAME_LEVELS)
        if self.split_by_owner is not None and not 0 <= self.split_by_owner < base - 1:
            raise ValueError(
                f"split_by_owner must be between 0 and {base - 2}, got {self.split_by_owner}"
            )

    @property
    def grouped(self) -> bool:
        return self.root_name == WILDCARD or not self.by_name

    @property
    def levels(self) -> list[Level]:
        levels = list(GROUPED_LEVELS if self.grouped else SINGLE_NAME_LEVELS)
        if self.split_by_owner is not None:
            levels.insert(self.split_by_owner + 1, OWNER_LEVEL)
        return levels


# ---------------------------------------------------------------------------
# SQL construction
# ---------------------------------------------------------------------------

_REPO_LEAF = """json_object(
    'name', rs.name, 'owner', rs.owner, 'url', rs.url, 'id', rs.id, 'size', 1)"""

_VALUE_NODE = """json_object(
    'name', f.sha,
    'sha', f.sha,
    'type', f.feature_name,
    'fingerprint_name', f.name,
    'data', json(f.data),
    'children', json((
        SELECT json_group_array({repo_leaf})
        FROM repo_fingerprints rf
        JOIN repo_snapshots rs ON rs.id = rf.repo_snapshot_id
        WHERE rf.fingerprint_id = f.id AND {workspace}
    )))"""


def _workspace_predicate(alias: str, workspace_id: str) -> str:
    if workspace_id == ALL_WORKSPACES:
        return "1 = 1"
    return f"{alias}.workspace_id = :workspace_id"


def _name_predicate(query: TreeQuery, alias: str) -> str:
    if query.root_name == WILDCARD:
        return ""
    op = "=" if query.by_name else "<>"
    return f" AND {alias}.name {op} :name"


def _match_predicate(query: TreeQuery) -> str:
    """Fingerprints of the queried kind that occur in the workspace."""
    return (
        f"f.feature_name = :type{_name_predicate(query, 'f')}"
        " AND EXISTS ("
        "SELECT 1 FROM repo_fingerprints rfx"
        " JOIN repo_snapshots rsx ON rsx.id = rfx.repo_snapshot_id"
        f" WHERE rfx.fingerprint_id = f.id AND {_workspace_predicate('rsx', query.workspace_id)})"
    )


def _complement_sql(query: TreeQuery) -> str:
    if not query.include_complement:
        return "NULL"
    return f"""(
    SELECT json_group_array({_REPO_LEAF})
    FROM repo_snapshots rs
    WHERE {_workspace_predicate('rs', query.workspace_id)}
      AND rs.id NOT IN (
        SELECT rf.repo_snapshot_id
        FROM repo_fingerprints rf
        JOIN fingerprints f ON f.id = rf.fingerprint_id
        WHERE f.feature_name = :type{_name_predicate(query, 'f')}
      )
)"""


def build_sql(query: TreeQuery) -> tuple[str, dict[str, Any]]:
    """Compile *query* into SQL returning ``tree`` and ``complement`` columns.

    Returns:
        (sql, named parameters)
    """
    value_node = _VALUE_NODE.format(
        repo_leaf=_REPO_LEAF,
        workspace=_workspace_predicate("rs", query.workspace_id),
    )
    match = _match_predicate(query)

    if query.grouped:
        children = f"""(
        SELECT json_group_array(json_object(
            'name', names.name,
            'children', json((
                SELECT json_group_array({value_node})
                FROM fingerprints f
                WHERE {match} AND f.name = names.name
            ))))
        FROM (SELECT DISTINCT f.name AS name FROM fingerprints f WHERE {match}) names
    )"""
        root_name = query.type
    else:
        children = f"""(
        SELECT json_group_array({value_node})
        FROM fingerprints f
        WHERE {match}
    )"""
        root_name = query.root_name

    sql = f"""
SELECT
    json_object('name', :root_name, 'children', json({children})) AS tree,
    {_complement_sql(query)} AS complement
"""
    params = {
        "root_name": root_name,
        "type": query.type,
        "name": query.root_name,
        "workspace_id": query.workspace_id,
    }
    return sql, params


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TreeQueryEngine:
    """Runs TreeQuery objects against the store and returns validated trees.

    Stateless: each call opens a scoped connection and reflects the store's
    contents at that moment.
    """

    def __init__(self, database: Database, registry: AspectRegistry | None = None) -> None:
        self._db = database
        self._registry = registry or AspectRegistry()

    def repo_tree(self, query: TreeQuery) -> PlantedTree:
        """Run *query* and return its PlantedTree.

        A query that matches nothing returns the bare root with
        ``children: []`` under the full declared levels. That tree is one
        node deep, so it is exempt from the depth check; callers render it
        as "no data".

        Raises:
            sqlite3.Error: If the query fails (logged, then re-raised).
            TreeDepthError: If the tree shape disagrees with its levels.
        """
        sql, params = build_sql(query)
        logger.debug("Tree query for %s/%s: %s", query.type, query.root_name, sql)
        try:
            with self._db.session() as conn:
                row = conn.execute(sql, params).fetchone()
        except sqlite3.Error:
            logger.exception(
                "Tree query failed for %s/%s in %s", query.type, query.root_name, query.workspace_id
            )
            raise

        tree: SunburstTree = json.loads(row["tree"])
        self._resolve_display_names(tree)
        _sort_children(tree)
        complement = json.loads(row["complement"]) if row["complement"] else []
        if complement:
            _fold_complement(tree, query, sorted(complement, key=_sort_key))
        if query.split_by_owner is not None:
            split_by(tree, _owner_of, query.split_by_owner)

        planted = PlantedTree(tree=tree, levels=query.levels)
        validate_planted_tree(planted)
        return planted

    def _resolve_display_names(self, tree: SunburstTree) -> None:
        def resolve(node: SunburstTree, _depth: int) -> bool:
            if "sha" in node:
                fp = Fingerprint(
                    type=node["type"],
                    name=node["fingerprint_name"],
                    sha=node["sha"],
                    data=node.get("data"),
                )
                node["name"] = self._registry.display_value(fp)
            return True

        visit(tree, resolve)


def _owner_of(leaf: SunburstTree) -> str:
    return str(leaf.get("owner") or "unknown")


def _sort_key(node: SunburstTree) -> str:
    return str(node.get("name") or "")


def _sort_children(tree: SunburstTree) -> None:
    def sort(node: SunburstTree, _depth: int) -> bool:
        if node.get("children"):
            node["children"].sort(key=_sort_key)
        return True

    visit(tree, sort)


def _fold_complement(tree: SunburstTree, query: TreeQuery, repos: list[SunburstTree]) -> None:
    """Append the "no matching fingerprint" bucket at the value level."""
    bucket: SunburstTree = {"name": query.other_label, "children": repos}
    if query.grouped:
        bucket = {"name": query.other_label, "children": [bucket]}
    tree.setdefault("children", []).append(bucket)
