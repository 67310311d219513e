"""Tests for tree query construction and execution."""

from __future__ import annotations

import sqlite3

import pytest

from orgscope.aspects import Aspect, AspectRegistry
from orgscope.db.connection import Database
from orgscope.db.models import Fingerprint
from orgscope.tree.query import (
    GROUPED_LEVELS,
    SINGLE_NAME_LEVELS,
    TreeQuery,
    TreeQueryEngine,
    build_sql,
)
from orgscope.tree.sunburst import leaves_under, tree_depth

LODASH_NEW = Fingerprint("npm", "lodash", "l21", "4.17.21")
LODASH_OLD = Fingerprint("npm", "lodash", "l20", "4.17.20")
REACT = Fingerprint("npm", "react", "r16", "16.8.0")
BASE_IMAGE = Fingerprint("docker", "base", "d1", "node:12")


@pytest.fixture
def populated(store, analysis_factory):
    """Five repos in TJVC, two of which carry lodash; one repo elsewhere."""
    store.persist([
        analysis_factory(repo="a", fingerprints=[LODASH_NEW, REACT]),
        analysis_factory(repo="b", fingerprints=[LODASH_OLD]),
        analysis_factory(repo="c", fingerprints=[REACT]),
        analysis_factory(repo="d", fingerprints=[BASE_IMAGE]),
        analysis_factory(repo="e"),
        analysis_factory(repo="z", fingerprints=[LODASH_NEW], workspace_id="ARGO"),
    ])
    return store


@pytest.fixture
def engine(database):
    return TreeQueryEngine(database)


def _child(node, name):
    return next(c for c in node["children"] if c["name"] == name)


def _repo_names(node):
    return sorted(leaf["name"] for leaf in leaves_under(node))


# ------------------------------------------------------------------
# TreeQuery
# ------------------------------------------------------------------


def test_single_name_query_is_not_grouped():
    query = TreeQuery("w", "npm", "lodash")
    assert not query.grouped
    assert query.levels == list(SINGLE_NAME_LEVELS)


def test_wildcard_and_not_name_queries_are_grouped():
    assert TreeQuery("w", "npm", "*").levels == list(GROUPED_LEVELS)
    assert TreeQuery("w", "npm", "lodash", by_name=False).grouped


def test_build_sql_params():
    sql, params = build_sql(TreeQuery("TJVC", "npm", "lodash"))
    assert params == {
        "root_name": "lodash",
        "type": "npm",
        "name": "lodash",
        "workspace_id": "TJVC",
    }
    assert "f.name = :name" in sql
    assert "NULL AS complement" in sql


def test_build_sql_not_name_and_all_workspaces():
    sql, params = build_sql(TreeQuery("*", "npm", "lodash", by_name=False, include_complement=True))
    assert "f.name <> :name" in sql
    assert ":workspace_id" not in sql
    assert params["root_name"] == "npm"


# ------------------------------------------------------------------
# Single fingerprint name
# ------------------------------------------------------------------


def test_repo_tree_single_name(populated, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "lodash"))
    tree = planted.tree

    assert planted.levels == list(SINGLE_NAME_LEVELS)
    assert tree["name"] == "lodash"
    assert [c["name"] for c in tree["children"]] == ["4.17.20", "4.17.21"]
    assert _repo_names(_child(tree, "4.17.21")) == ["a"]
    assert _repo_names(_child(tree, "4.17.20")) == ["b"]
    assert tree_depth(tree) + 1 == len(planted.levels)


def test_repo_tree_leaf_shape(populated, engine):
    tree = engine.repo_tree(TreeQuery("TJVC", "npm", "lodash")).tree
    leaf = _child(tree, "4.17.21")["children"][0]
    assert leaf == {
        "name": "a",
        "owner": "satellite-of-love",
        "url": "https://github.com/satellite-of-love/a",
        "id": "https://github.com/satellite-of-love/a_dead0x",
        "size": 1,
    }


def test_repo_tree_value_node_carries_fingerprint(populated, engine):
    value = _child(engine.repo_tree(TreeQuery("TJVC", "npm", "lodash")).tree, "4.17.21")
    assert value["sha"] == "l21"
    assert value["type"] == "npm"
    assert value["fingerprint_name"] == "lodash"
    assert value["data"] == "4.17.21"


def test_repo_tree_complement_bucket(populated, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "lodash", include_complement=True))
    bucket = _child(planted.tree, "None")
    assert _repo_names(bucket) == ["c", "d", "e"]
    assert len(planted.tree["children"]) == 3


def test_repo_tree_custom_other_label(populated, engine):
    planted = engine.repo_tree(
        TreeQuery("TJVC", "npm", "lodash", include_complement=True, other_label="No lodash")
    )
    assert _repo_names(_child(planted.tree, "No lodash")) == ["c", "d", "e"]


def test_repo_tree_workspace_isolation(populated, engine):
    tree = engine.repo_tree(TreeQuery("ARGO", "npm", "lodash", include_complement=True)).tree
    assert [c["name"] for c in tree["children"]] == ["4.17.21"]
    assert _repo_names(tree) == ["z"]


def test_repo_tree_all_workspaces(populated, engine):
    tree = engine.repo_tree(TreeQuery("*", "npm", "lodash")).tree
    assert _repo_names(_child(tree, "4.17.21")) == ["a", "z"]


def test_repo_tree_empty_result(populated, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "left-pad"))
    assert planted.tree == {"name": "left-pad", "children": []}
    assert planted.levels == list(SINGLE_NAME_LEVELS)


def test_repo_tree_empty_result_with_complement(populated, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "left-pad", include_complement=True))
    assert [c["name"] for c in planted.tree["children"]] == ["None"]
    assert _repo_names(planted.tree) == ["a", "b", "c", "d", "e"]


def test_repo_tree_empty_store(engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "*", include_complement=True))
    assert planted.tree == {"name": "npm", "children": []}


# ------------------------------------------------------------------
# Grouped
# ------------------------------------------------------------------


def test_repo_tree_wildcard(populated, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "*"))
    tree = planted.tree

    assert planted.levels == list(GROUPED_LEVELS)
    assert tree["name"] == "npm"
    assert [c["name"] for c in tree["children"]] == ["lodash", "react"]
    assert _repo_names(_child(_child(tree, "react"), "16.8.0")) == ["a", "c"]
    assert tree_depth(tree) == 3


def test_repo_tree_not_name(populated, engine):
    tree = engine.repo_tree(TreeQuery("TJVC", "npm", "lodash", by_name=False)).tree
    assert [c["name"] for c in tree["children"]] == ["react"]


def test_repo_tree_grouped_complement(populated, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "*", include_complement=True))
    bucket = _child(_child(planted.tree, "None"), "None")
    assert _repo_names(bucket) == ["d", "e"]
    assert tree_depth(planted.tree) + 1 == len(planted.levels)


# ------------------------------------------------------------------
# Display names and errors
# ------------------------------------------------------------------


def test_repo_tree_uses_aspect_display_field(database, store, analysis_factory):
    store.persist(
        analysis_factory(fingerprints=[Fingerprint("npm", "lodash", "x1", {"version": "4.0.0"})])
    )
    registry = AspectRegistry([Aspect("npm", display_field="version")])
    tree = TreeQueryEngine(database, registry).repo_tree(TreeQuery("TJVC", "npm", "lodash")).tree
    assert [c["name"] for c in tree["children"]] == ["4.0.0"]


def test_repo_tree_structured_data_falls_back_to_sha(database, store, analysis_factory):
    store.persist(
        analysis_factory(fingerprints=[Fingerprint("npm", "lodash", "x1", {"version": "4.0.0"})])
    )
    tree = TreeQueryEngine(database).repo_tree(TreeQuery("TJVC", "npm", "lodash")).tree
    assert [c["name"] for c in tree["children"]] == ["x1"]


def test_repo_tree_query_failure_is_raised(tmp_path):
    engine = TreeQueryEngine(Database(tmp_path / "no-schema.db"))
    with pytest.raises(sqlite3.OperationalError):
        engine.repo_tree(TreeQuery("TJVC", "npm", "lodash"))


# ------------------------------------------------------------------
# Owner split
# ------------------------------------------------------------------


@pytest.fixture
def two_orgs(store, analysis_factory):
    store.persist([
        analysis_factory(owner="gizmonic", repo="a", fingerprints=[LODASH_NEW, REACT]),
        analysis_factory(owner="gizmonic", repo="b", fingerprints=[LODASH_OLD]),
        analysis_factory(owner="deep13", repo="c", fingerprints=[LODASH_NEW]),
        analysis_factory(owner="deep13", repo="d"),
    ])
    return store


def test_split_by_owner_at_root(two_orgs, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "lodash", split_by_owner=0))
    tree = planted.tree

    assert [level.meaning for level in planted.levels] == [
        "fingerprint name", "owner", "fingerprint value", "repository",
    ]
    assert [c["name"] for c in tree["children"]] == ["deep13", "gizmonic"]
    assert [v["name"] for v in _child(tree, "deep13")["children"]] == ["4.17.21"]
    assert _repo_names(_child(_child(tree, "gizmonic"), "4.17.20")) == ["b"]
    assert tree_depth(tree) + 1 == len(planted.levels)


def test_split_by_owner_under_values(two_orgs, engine):
    planted = engine.repo_tree(
        TreeQuery("TJVC", "npm", "lodash", include_complement=True, split_by_owner=1)
    )
    newest = _child(planted.tree, "4.17.21")
    assert [o["name"] for o in newest["children"]] == ["deep13", "gizmonic"]
    assert _repo_names(_child(_child(planted.tree, "None"), "deep13")) == ["d"]
    assert tree_depth(planted.tree) + 1 == len(planted.levels)


def test_split_by_owner_grouped(two_orgs, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "*", split_by_owner=1))
    assert planted.levels[2].meaning == "owner"
    assert len(planted.levels) == 5
    react = _child(planted.tree, "react")
    assert [o["name"] for o in react["children"]] == ["gizmonic"]


def test_split_by_owner_empty_result(two_orgs, engine):
    planted = engine.repo_tree(TreeQuery("TJVC", "npm", "left-pad", split_by_owner=0))
    assert planted.tree == {"name": "left-pad", "children": []}


@pytest.mark.parametrize(
    "root_name, depth", [("lodash", 2), ("lodash", -1), ("*", 3)]
)
def test_split_by_owner_rejects_out_of_range_depth(root_name, depth):
    with pytest.raises(ValueError, match="split_by_owner"):
        TreeQuery("TJVC", "npm", root_name, split_by_owner=depth)


# ------------------------------------------------------------------
# Non-finite data
# ------------------------------------------------------------------


def test_repo_tree_after_rejected_nan_fingerprint(store, analysis_factory, engine):
    result = store.persist([
        analysis_factory(repo="bad", fingerprints=[Fingerprint("npm", "x", "n1", float("nan"))]),
        analysis_factory(repo="good", fingerprints=[Fingerprint("npm", "x", "ok", 2)]),
    ])
    assert len(result.failed) == 1

    tree = engine.repo_tree(TreeQuery("TJVC", "npm", "*")).tree
    assert _repo_names(tree) == ["good"]
