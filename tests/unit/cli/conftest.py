"""Fixtures for CLI tests: isolated cwd, config and database."""

from __future__ import annotations

from pathlib import Path

import pytest

import orgscope.config as config_module
from orgscope.db.connection import Database
from orgscope.db.schema import initialize


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch) -> Path:
    """Run every command from tmp_path with no global config or env overrides."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "_GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    for var in ("ORGSCOPE_DB", "ORGSCOPE_WORKSPACE", "ORGSCOPE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / ".orgscope.db"
    with Database(path).session() as conn:
        initialize(conn)
    return path
