"""
YAML → config dict loader.

Loads engine tunables from tuning.yaml (bundled with the package) and
optionally merges user overrides from ~/.goliath/tuning.yaml.

Usage:
    from goliath.core.engine.config_loader import load_model_config
    cfg = load_model_config()
    ttl = cfg.get("suggestions", {}).get("ttl_hours", 24)

If the bundled YAML cannot be parsed, all lookups fall back to the Python
defaults in config.py (no crash).  If the user override file exists but has
parse errors, a warning is emitted and the file is ignored.
"""

from __future__ import annotations

import importlib.resources
import warnings
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path, *, warn: bool = False) -> dict[str, Any]:
    """Load a single YAML file; return {} on any error."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        if warn:
            warnings.warn(f"goliath: ignoring {path} ({exc})", stacklevel=3)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path(name: str = "tuning.yaml") -> Path | None:
    """Return the path to a bundled YAML resource, or None if not found."""
    try:
        ref = importlib.resources.files("goliath").joinpath(name)
        with importlib.resources.as_file(ref) as p:
            return p if p.exists() else None
    except (ModuleNotFoundError, FileNotFoundError, TypeError, ValueError):
        candidate = Path(__file__).parent.parent.parent / name
        return candidate if candidate.exists() else None


def get_user_yaml_path(name: str = "tuning.yaml") -> Path | None:
    """Return <data dir>/tuning.yaml if it exists, else None."""
    from ..config import get_data_dir

    p = get_data_dir() / name
    return p if p.exists() else None


def load_yaml(path: Path) -> dict[str, Any]:
    """Load any YAML mapping file, warning (not raising) on parse errors."""
    return _load_yaml_file(path, warn=True)


def load_model_config() -> dict[str, Any]:
    """
    Load and merge engine configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/goliath/tuning.yaml
    2. User override at ~/.goliath/tuning.yaml

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = deep_merge(config, _load_yaml_file(bundled))

    user = get_user_yaml_path()
    if user is not None:
        user_cfg = _load_yaml_file(user, warn=True)
        if user_cfg:
            config = deep_merge(config, user_cfg)

    return config
