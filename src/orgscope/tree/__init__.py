"""Sunburst tree queries over stored fingerprints."""

from orgscope.tree.query import WILDCARD, TreeQuery, TreeQueryEngine, build_sql
from orgscope.tree.sunburst import Level, PlantedTree, tree_depth, validate_planted_tree

__all__ = [
    "WILDCARD",
    "TreeQuery",
    "TreeQueryEngine",
    "build_sql",
    "Level",
    "PlantedTree",
    "tree_depth",
    "validate_planted_tree",
]
