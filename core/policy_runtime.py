"""Configuration loading and runtime bootstrapping."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

DEFAULTS: dict[str, Any] = {
    "paths": {
        "db_path": "workspace/taskline.db",
        "audit_log_path": "logs/audit.jsonl",
    },
    "scheduling": {
        "strict_validation": True,
        "default_mandatory": True,
        "default_dependency_type": "FS",
    },
    "logging": {"level": "INFO"},
    "api": {"host": "127.0.0.1", "port": 8000},
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_root(root: Path | None = None) -> Path:
    """Runtime root: explicit argument, then ``TASKLINE_ROOT``, then the repo."""
    if root is not None:
        return root.resolve()
    env_root = os.getenv("TASKLINE_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[1]


def ensure_runtime_dirs(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Create the database and audit log directories and return resolved paths."""
    paths_cfg = config.get("paths", {})
    db_path = (root / paths_cfg.get("db_path", "workspace/taskline.db")).resolve()
    audit_log_path = (root / paths_cfg.get("audit_log_path", "logs/audit.jsonl")).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    audit_log_path.parent.mkdir(parents=True, exist_ok=True)

    return {"db_path": db_path, "audit_log_path": audit_log_path}


def load_effective_config(root: Path) -> dict[str, Any]:
    """Built-in defaults, then config/default.yaml, then config/local.yaml."""
    config_dir = root / "config"
    merged = merge_dicts(DEFAULTS, load_yaml(config_dir / "default.yaml"))
    return merge_dicts(merged, load_yaml(config_dir / "local.yaml"))


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single console handler on the ``taskline`` logger tree."""
    logger = logging.getLogger("taskline")
    logger.setLevel(level if isinstance(level, int) else str(level).upper())
    if not any(getattr(h, "_taskline", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handler._taskline = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
