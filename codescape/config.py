"""Configuration paths and TOML-backed settings for codescape."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .errors import ConfigError

BASE_DIR = Path(os.environ.get("CODESCAPE_HOME", str(Path.home() / ".codescape"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_LOD_LEVEL = 5


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the whole TOML config.

    Returns an empty dict when the file does not exist.

    Raises:
        ConfigError: the file exists but is not valid TOML.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        raise ConfigError(f"Could not decode {config_path}: {exc}") from exc


def save_config(config: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """Write *config* to TOML, creating the home directory if needed."""
    config_path = path or CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        toml.dump(config, f)
    return config_path


def layout_overrides(config: Dict[str, Any], engine_type: str) -> Dict[str, Any]:
    """Merge ``[layout]`` generic keys with ``[layout.<engine_type>]`` keys.

    Engine-specific keys win over generic ones.
    """
    layout = config.get("layout", {})
    merged = {k: v for k, v in layout.items() if not isinstance(v, dict)}
    merged.update(layout.get(engine_type, {}))
    return merged


def default_lod_level(config: Dict[str, Any]) -> int:
    return int(config.get("lod", {}).get("default_level", DEFAULT_LOD_LEVEL))
