"""Tests for orgscope rich error messages."""

from __future__ import annotations

import pytest

from orgscope.cli.errors import (
    err_config,
    err_ideal_not_found,
    err_invalid_json_option,
    err_no_db,
    err_query_failed,
    err_snapshot_not_found,
    err_tree_shape,
    err_unreadable_input,
)


def _has_action(msg: str) -> bool:
    """Every error must contain a cause AND an actionable instruction."""
    lower = msg.lower()
    return any(kw in lower for kw in ["run:", "fix ", "re-run", "check ", "example:", "expected"])


@pytest.mark.parametrize(
    "msg",
    [
        err_no_db(),
        err_config("bad"),
        err_unreadable_input("in.json", "boom"),
        err_tree_shape("Tree has 4 levels but 3 were declared"),
        err_query_failed("no such table"),
        err_snapshot_not_found("o/r@abc"),
        err_ideal_not_found("npm", "lodash", "local"),
        err_invalid_json_option("--data", "Expecting value"),
    ],
)
def test_every_error_has_action(msg: str) -> None:
    assert _has_action(msg)


def test_err_no_db_contains_path() -> None:
    assert "data/store.db" in err_no_db("data/store.db")


def test_err_no_db_suggests_init() -> None:
    assert "orgscope init" in err_no_db()


def test_err_tree_shape_mentions_debug() -> None:
    assert "--log-level DEBUG" in err_tree_shape("x")


def test_err_ideal_not_found_suggests_command() -> None:
    msg = err_ideal_not_found("npm", "lodash", "TJVC")
    assert "orgscope ideal set npm lodash" in msg
    assert "TJVC" in msg


def test_err_invalid_json_option_example_is_json() -> None:
    assert '{"version": "1.2.3"}' in err_invalid_json_option("--data", "x")
