"""Configuration loading and validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from seclog_stats.common.errors import ConfigError
from seclog_stats.common.fs import read_yaml
from seclog_stats.common.schema import validate_config

CONFIG_FILENAME = "seclog.yml"


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if not overlay:
        return base
    return _deep_merge(base, overlay)


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> dict:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    return validate_config(cfg, allow_unknown=allow_unknown)


def apply_overrides(cfg: dict, overrides: dict) -> dict:
    """Return a copy of ``cfg`` with CLI overrides merged in; ``None`` leaves a key alone."""

    pruned = _prune_none(overrides)
    if not pruned:
        return cfg
    return validate_config(_deep_merge(cfg, pruned), allow_unknown=True)


def _prune_none(value: Any) -> Any:
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            pruned = _prune_none(item)
            if pruned is None or pruned == {}:
                continue
            out[key] = pruned
        return out
    return value


def secret_from_env(env_name: str | None) -> str | None:
    if not env_name:
        return None
    value = os.getenv(env_name)
    return value or None
