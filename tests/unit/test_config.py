"""Tests for the orgscope config loader."""

from __future__ import annotations

import stat
import warnings
from pathlib import Path

import pytest
import yaml

from orgscope.config import (
    ConfigError,
    OrgscopeConfig,
    ensure_global_config,
    load_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("ORGSCOPE_DB", "ORGSCOPE_WORKSPACE", "ORGSCOPE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def no_global(tmp_path: Path) -> Path:
    return tmp_path / "nonexistent" / "config.yaml"


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path, no_global: Path) -> None:
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)

    assert isinstance(cfg, OrgscopeConfig)
    assert cfg.database.path == ".orgscope.db"
    assert cfg.workspace.id == "local"
    assert cfg.logging.level == "WARNING"
    assert cfg.tree.other_label == "None"
    assert cfg.aspects == []
    assert cfg.aspect_registry().aspects == []


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"workspace": {"id": "TJVC"}})

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.workspace.id == "TJVC"
    assert cfg.database.path == ".orgscope.db"


def test_global_empty_file(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("", encoding="utf-8")
    assert load_config(project_dir=tmp_path, global_config_path=global_cfg).workspace.id == "local"


def test_project_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"workspace": {"id": "TJVC"}, "tree": {"other_label": "Other"}})
    project = tmp_path / "proj"
    project.mkdir()
    _write_yaml(project / "orgscope.yaml", {"workspace": {"id": "ARGO"}})

    cfg = load_config(project_dir=project, global_config_path=global_cfg)
    assert cfg.workspace.id == "ARGO"
    assert cfg.tree.other_label == "Other"


def test_env_overrides_files(tmp_path: Path, no_global: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "orgscope.yaml", {"database": {"path": "from-file.db"}})
    monkeypatch.setenv("ORGSCOPE_DB", "/tmp/env.db")
    monkeypatch.setenv("ORGSCOPE_WORKSPACE", "ENV")
    monkeypatch.setenv("ORGSCOPE_LOG_LEVEL", "debug")

    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert cfg.database.path == "/tmp/env.db"
    assert cfg.workspace.id == "ENV"
    assert cfg.logging.level == "DEBUG"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_global_config_rejects_credentials(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"database": {"api_key": "sk-123"}})
    with pytest.raises(ConfigError, match="database.api_key"):
        load_config(project_dir=tmp_path, global_config_path=global_cfg)


def test_global_config_rejects_credentials_inside_lists(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"aspects": [{"name": "npm", "password": "x"}]})
    with pytest.raises(ConfigError, match="forbidden key"):
        load_config(project_dir=tmp_path, global_config_path=global_cfg)


def test_invalid_log_level(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "orgscope.yaml", {"logging": {"level": "LOUD"}})
    with pytest.raises(ConfigError, match="Unknown logging level"):
        load_config(project_dir=tmp_path, global_config_path=no_global)


def test_unknown_key_warns(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "orgscope.yaml", {"embedding": {"model": "x"}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        load_config(project_dir=tmp_path, global_config_path=no_global)
    assert any("Unknown config key 'embedding'" in str(w.message) for w in caught)


# ---------------------------------------------------------------------------
# Aspects
# ---------------------------------------------------------------------------


def test_aspects_section_builds_registry(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(
        tmp_path / "orgscope.yaml",
        {"aspects": [{"name": "npm", "display_name": "NPM", "display_field": "version"}]},
    )
    registry = load_config(project_dir=tmp_path, global_config_path=no_global).aspect_registry()
    assert registry.display_name("npm") == "NPM"


def test_aspects_must_be_list(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "orgscope.yaml", {"aspects": {"name": "npm"}})
    with pytest.raises(ConfigError, match="must be a list"):
        load_config(project_dir=tmp_path, global_config_path=no_global)


def test_aspect_needs_name(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "orgscope.yaml", {"aspects": [{"display_name": "NPM"}]})
    with pytest.raises(ConfigError, match="needs a 'name'"):
        load_config(project_dir=tmp_path, global_config_path=no_global)


def test_aspect_bad_pattern(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "orgscope.yaml", {"aspects": [{"name": "ci", "name_pattern": "(["}]})
    with pytest.raises(ConfigError, match="Invalid name_pattern"):
        load_config(project_dir=tmp_path, global_config_path=no_global)


# ---------------------------------------------------------------------------
# ensure_global_config
# ---------------------------------------------------------------------------


def test_ensure_global_config_creates_file(tmp_path: Path) -> None:
    target = tmp_path / "home" / ".orgscope" / "config.yaml"
    path = ensure_global_config(target)

    assert path == target
    assert stat.S_IMODE(target.stat().st_mode) == 0o600
    data = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert data["workspace"]["id"] == "local"


def test_ensure_global_config_keeps_existing(tmp_path: Path) -> None:
    target = tmp_path / "config.yaml"
    target.write_text("workspace:\n  id: mine\n", encoding="utf-8")
    ensure_global_config(target)
    assert "mine" in target.read_text(encoding="utf-8")
