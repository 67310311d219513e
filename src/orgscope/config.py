"""orgscope configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site)
  2. Environment variables  (ORGSCOPE_DB, ORGSCOPE_WORKSPACE, ORGSCOPE_LOG_LEVEL)
  3. Per-project orgscope.yaml
  4. Global ~/.orgscope/config.yaml  (defaults only — no credentials)
  5. Hardcoded defaults

All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import logging
import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from orgscope.aspects import AspectRegistry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".orgscope"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "orgscope.yaml"

# Credential-looking keys are forbidden in the global config.
_CREDENTIAL_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["database", "workspace", "logging", "tree", "aspects"]
)

_LOG_LEVELS: frozenset[str] = frozenset(
    ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DatabaseCfg:
    """Store location (orgscope.yaml: database:)."""

    path: str = ".orgscope.db"


@dataclass
class WorkspaceCfg:
    """Default workspace for commands that take one (orgscope.yaml: workspace:)."""

    id: str = "local"


@dataclass
class LoggingCfg:
    level: str = "WARNING"


@dataclass
class TreeCfg:
    """Tree query defaults (orgscope.yaml: tree:).

    Attributes:
        other_label: Name of the bucket holding repos without the fingerprint.
    """

    other_label: str = "None"


@dataclass
class OrgscopeConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    workspace: WorkspaceCfg = field(default_factory=WorkspaceCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)
    tree: TreeCfg = field(default_factory=TreeCfg)
    aspects: list[dict[str, Any]] = field(default_factory=list)

    def aspect_registry(self) -> AspectRegistry:
        """Build the aspect registry declared by the ``aspects:`` section."""
        return AspectRegistry.from_dicts(self.aspects)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_credentials(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _CREDENTIAL_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables, not config files."
                    )
                _scan(v, full)
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                _scan(item, f"{path}[{i}]")

    _scan(data, "")


def _validate_aspects(aspects: Any, source: str) -> list[dict[str, Any]]:
    if not isinstance(aspects, list):
        raise ConfigError(f"'aspects' in {source} must be a list of mappings.")
    for entry in aspects:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ConfigError(f"Every entry of 'aspects' in {source} needs a 'name'.")
        if pattern := entry.get("name_pattern"):
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ConfigError(
                    f"Invalid name_pattern '{pattern}' for aspect '{entry['name']}': {exc}"
                ) from exc
    return aspects


def _validate_log_level(level: str) -> str:
    upper = level.upper()
    if upper not in _LOG_LEVELS:
        raise ConfigError(
            f"Unknown logging level '{level}'. Use one of: {', '.join(sorted(_LOG_LEVELS))}"
        )
    return upper


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> OrgscopeConfig:
    """Build an *OrgscopeConfig* from a merged raw YAML dict."""
    cfg = OrgscopeConfig()

    if "database" in data:
        cfg.database = DatabaseCfg(path=str(data["database"].get("path", cfg.database.path)))

    if "workspace" in data:
        cfg.workspace = WorkspaceCfg(id=str(data["workspace"].get("id", cfg.workspace.id)))

    if "logging" in data:
        cfg.logging = LoggingCfg(
            level=_validate_log_level(str(data["logging"].get("level", cfg.logging.level)))
        )

    if "tree" in data:
        cfg.tree = TreeCfg(
            other_label=str(data["tree"].get("other_label", cfg.tree.other_label))
        )

    if "aspects" in data:
        cfg.aspects = _validate_aspects(data["aspects"], "config")

    return cfg


def _apply_env_overrides(cfg: OrgscopeConfig) -> OrgscopeConfig:
    """Apply ORGSCOPE_* environment variable overrides."""
    if path := os.environ.get("ORGSCOPE_DB"):
        cfg.database.path = path
    if workspace := os.environ.get("ORGSCOPE_WORKSPACE"):
        cfg.workspace.id = workspace
    if level := os.environ.get("ORGSCOPE_LOG_LEVEL"):
        cfg.logging.level = _validate_log_level(level)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> OrgscopeConfig:
    """Load and return a merged *OrgscopeConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *orgscope.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If the global config contains credential-like fields,
            or a value fails validation.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_credentials(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    cfg = _apply_env_overrides(cfg)
    logging.getLogger(__name__).debug("Loaded config: %s", cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.orgscope/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# orgscope global configuration — defaults only.\n"
            "# Never store credentials here.\n"
            "\n"
            "workspace:\n"
            "  id: local\n"
            "\n"
            "logging:\n"
            "  level: WARNING\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
