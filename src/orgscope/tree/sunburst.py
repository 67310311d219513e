"""Sunburst trees and their declared levels.

A tree is a JSON-shaped dict: every node has a ``name``; intermediate nodes
carry ``children``, leaves carry ``size`` and whatever identifies them
(``url``, ``owner``...). A PlantedTree pairs a tree with one Level per
depth describing what that depth groups by.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from orgscope.errors import TreeDepthError

logger = logging.getLogger(__name__)

SunburstTree = dict[str, Any]


@dataclass(frozen=True)
class Level:
    meaning: str


@dataclass
class PlantedTree:
    tree: SunburstTree
    levels: list[Level] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tree": self.tree,
            "levels": [{"meaning": level.meaning} for level in self.levels],
        }


def visit(
    tree: SunburstTree,
    fn: Callable[[SunburstTree, int], bool],
    depth: int = 0,
) -> None:
    """Depth-first, pre-order walk. Children are skipped when *fn* returns False."""
    if fn(tree, depth):
        for child in tree.get("children") or []:
            visit(child, fn, depth + 1)


def tree_depth(tree: SunburstTree) -> int:
    """Maximum node depth; the root alone has depth 0."""
    deepest = 0

    def record(_node: SunburstTree, depth: int) -> bool:
        nonlocal deepest
        deepest = max(deepest, depth)
        return True

    visit(tree, record)
    return deepest


def leaves_under(tree: SunburstTree) -> list[SunburstTree]:
    leaves: list[SunburstTree] = []

    def collect(node: SunburstTree, _depth: int) -> bool:
        if not node.get("children"):
            leaves.append(node)
        return True

    visit(tree, collect)
    return leaves


def is_empty(tree: SunburstTree) -> bool:
    return not tree.get("children")


def validate_planted_tree(planted: PlantedTree) -> None:
    """Check that the tree is exactly as deep as its declared levels.

    A root with no children is the well-formed "no data" tree and is
    accepted whatever the levels say.

    Raises:
        TreeDepthError: If ``tree_depth + 1 != len(levels)``. The offending
            tree is logged in full first.
    """
    if is_empty(planted.tree):
        return
    depth = tree_depth(planted.tree)
    if depth + 1 != len(planted.levels):
        logger.error(
            "Tree depth %d does not match levels %s: %s",
            depth,
            [level.meaning for level in planted.levels],
            json.dumps(planted.tree),
        )
        raise TreeDepthError(depth + 1, len(planted.levels))


def split_by(
    tree: SunburstTree,
    classify: Callable[[SunburstTree], str],
    target_depth: int,
) -> None:
    """Insert a level under every node at *target_depth*, grouping by leaf class.

    Each node at *target_depth* gets one child per class of the leaves below
    it. Under each class the original subtree is kept, pruned to the leaves
    of that class. The tree grows exactly one level deeper.
    """

    def split(node: SunburstTree, depth: int) -> bool:
        if depth < target_depth:
            return True
        groups: dict[str, list[SunburstTree]] = {}
        for child in node.get("children") or []:
            for key, part in _partition(child, classify).items():
                groups.setdefault(key, []).append(part)
        node["children"] = [
            {"name": key, "children": parts} for key, parts in sorted(groups.items())
        ]
        return False

    visit(tree, split)


def _partition(
    node: SunburstTree, classify: Callable[[SunburstTree], str]
) -> dict[str, SunburstTree]:
    children = node.get("children")
    if not children:
        return {classify(node): node}
    parts: dict[str, list[SunburstTree]] = {}
    for child in children:
        for key, part in _partition(child, classify).items():
            parts.setdefault(key, []).append(part)
    return {key: {**node, "children": kids} for key, kids in parts.items()}
