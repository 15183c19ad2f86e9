"""Tests for TOML settings."""

from pathlib import Path

import pytest

from codescape import config
from codescape.errors import ConfigError


def test_missing_file_is_empty():
    """Test that no config file means no settings."""
    assert config.load_config() == {}


def test_save_and_load(temp_dir: Path):
    """Test writing settings under the home directory and reading them back."""
    settings = {"layout": {"spacing": 2.0, "city": {"building_size": 4.0}}, "lod": {"default_level": 3}}
    path = config.save_config(settings)
    assert path == temp_dir / "home" / "config.toml"
    assert config.load_config() == settings


def test_explicit_path(temp_dir: Path):
    """Test reading a config file from an explicit path."""
    path = temp_dir / "other.toml"
    path.write_text("[layout.force]\nmax_iterations = 10\n", encoding="utf-8")
    assert config.load_config(path) == {"layout": {"force": {"max_iterations": 10}}}


def test_invalid_toml_raises(temp_dir: Path):
    """Test that an undecodable file raises ConfigError."""
    path = temp_dir / "bad.toml"
    path.write_text("[layout", encoding="utf-8")
    with pytest.raises(ConfigError, match="bad.toml"):
        config.load_config(path)


def test_layout_overrides():
    """Test generic keys merged under engine-specific ones."""
    settings = {"layout": {"spacing": 2.0, "scale": 3.0, "city": {"scale": 1.5, "street_width": 0.5}}}
    assert config.layout_overrides(settings, "city") == {"spacing": 2.0, "scale": 1.5, "street_width": 0.5}
    assert config.layout_overrides(settings, "force") == {"spacing": 2.0, "scale": 3.0}
    assert config.layout_overrides({}, "cell") == {}


def test_default_lod_level():
    """Test the [lod] default_level setting."""
    assert config.default_lod_level({}) == config.DEFAULT_LOD_LEVEL
    assert config.default_lod_level({"lod": {"default_level": 2}}) == 2
