"""
Unit Tests for Preset Catalog Configuration Module

This module tests config.py which provides the Python interface to
presets.yaml - the catalog of named pipelines and normalization statistics.

Test Categories:
- Config loading: File parsing, caching and path override
- Preset access: Lookup and error messages
- Normalization statistics
- Validation: Catalog integrity checks
"""

from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from tensorprep.config import (
    DEFAULT_PRESETS_PATH,
    get_config,
    get_normalization_stats,
    get_preset_config,
    get_preset_names,
    get_presets_path,
    reload_config,
    validate_config,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_config(clean_config: None, monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test from the bundled catalog with empty caches."""
    monkeypatch.delenv("TENSORPREP_PRESETS_PATH", raising=False)


@pytest.fixture
def write_catalog(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Write a catalog to a temporary file and point the settings at it."""

    def _write(catalog: Dict[str, Any]) -> Path:
        path = tmp_path / "presets.yaml"
        path.write_text(yaml.safe_dump(catalog))
        monkeypatch.setenv("TENSORPREP_PRESETS_PATH", str(path))
        return path

    return _write


# =============================================================================
# Config Loading Tests
# =============================================================================

class TestConfigLoading:
    """Test catalog file loading."""

    def test_bundled_catalog_loads(self) -> None:
        """The bundled catalog parses into a dict with both sections."""
        config = get_config()

        assert isinstance(config, dict)
        assert "normalization" in config
        assert "presets" in config

    def test_default_path(self) -> None:
        """Without an override the bundled file is used."""
        assert get_presets_path() == DEFAULT_PRESETS_PATH
        assert DEFAULT_PRESETS_PATH.name == "presets.yaml"

    def test_config_is_cached(self) -> None:
        """Repeated calls return the same object."""
        assert get_config() is get_config()

    def test_reload_returns_fresh_object(self) -> None:
        """reload_config clears the cache."""
        first = get_config()
        assert reload_config() is not first

    def test_path_override(self, write_catalog) -> None:
        """TENSORPREP_PRESETS_PATH selects another catalog."""
        path = write_catalog({"normalization": {}, "presets": {"only": {"steps": [{"op": "contiguous"}]}}})

        assert get_presets_path() == path
        assert get_preset_names() == ["only"]

    def test_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A missing catalog raises FileNotFoundError naming the path."""
        monkeypatch.setenv("TENSORPREP_PRESETS_PATH", str(tmp_path / "missing.yaml"))
        with pytest.raises(FileNotFoundError, match="missing.yaml"):
            get_config()

    def test_empty_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """An empty catalog loads as an empty dict."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        monkeypatch.setenv("TENSORPREP_PRESETS_PATH", str(path))

        assert get_config() == {}
        assert get_preset_names() == []


# =============================================================================
# Preset Access Tests
# =============================================================================

class TestPresetAccess:
    """Test preset lookup."""

    def test_get_preset_config(self) -> None:
        """A preset entry has a display name, description and steps."""
        preset = get_preset_config("imagenet_classification")

        assert preset["display_name"] == "ImageNet Classification"
        assert preset["description"]
        assert preset["steps"][0] == {"op": "to_tensor", "normalize": True}

    def test_unknown_preset(self) -> None:
        """Unknown presets raise KeyError listing the available ones."""
        with pytest.raises(KeyError) as exc_info:
            get_preset_config("nope")

        assert "Preset 'nope' not found" in str(exc_info.value)
        assert "imagenet_classification" in str(exc_info.value)

    def test_preset_names(self) -> None:
        """Ten presets ship with the catalog."""
        names = get_preset_names()
        assert len(names) == 10
        assert names[0] == "imagenet_classification"
        assert "tflite" in names


# =============================================================================
# Normalization Statistics Tests
# =============================================================================

class TestNormalizationStats:
    """Test named normalization statistics."""

    def test_imagenet(self) -> None:
        """ImageNet statistics match the published values."""
        stats = get_normalization_stats("imagenet")
        assert stats["mean"] == [0.485, 0.456, 0.406]
        assert stats["std"] == [0.229, 0.224, 0.225]

    @pytest.mark.parametrize("name", ["imagenet", "cifar10", "symmetric", "clip"])
    def test_three_channels(self, name: str) -> None:
        """Every bundled statistic covers RGB."""
        stats = get_normalization_stats(name)
        assert len(stats["mean"]) == len(stats["std"]) == 3

    def test_unknown_stats(self) -> None:
        """Unknown statistics raise KeyError."""
        with pytest.raises(KeyError, match="Normalization stats 'nope' not found"):
            get_normalization_stats("nope")


# =============================================================================
# Validation Tests
# =============================================================================

class TestValidation:
    """Test catalog validation."""

    def test_bundled_catalog_is_valid(self) -> None:
        """The shipped catalog has no errors."""
        assert validate_config() == []

    def test_missing_sections(self, write_catalog) -> None:
        """Both top-level sections are required."""
        write_catalog({"metadata": {}})
        errors = validate_config()

        assert "Missing required section: normalization" in errors
        assert "Missing required section: presets" in errors

    def test_bad_statistics(self, write_catalog) -> None:
        """Mismatched, missing and zero std entries are reported."""
        write_catalog(
            {
                "normalization": {
                    "short": {"mean": [0.5, 0.5], "std": [0.5]},
                    "empty": {"mean": [0.5]},
                    "zero": {"mean": [0.5], "std": [0.0]},
                },
                "presets": {},
            }
        )
        errors = validate_config()

        assert any("short has mismatched" in e for e in errors)
        assert any("empty missing mean or std" in e for e in errors)
        assert any("zero has a zero std" in e for e in errors)

    def test_bad_presets(self, write_catalog) -> None:
        """Empty presets, unknown ops and unknown stats are reported."""
        write_catalog(
            {
                "normalization": {},
                "presets": {
                    "hollow": {"steps": []},
                    "warped": {"steps": [{"op": "warp"}]},
                    "unstated": {"steps": [{"op": "normalize", "stats": "missing"}]},
                },
            }
        )
        errors = validate_config()

        assert "Preset hollow has no steps" in errors
        assert "Preset warped step 0 has unknown op: warp" in errors
        assert "Preset unstated step 0 references unknown stats: missing" in errors

    def test_unparseable_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """YAML errors are reported rather than raised."""
        path = tmp_path / "broken.yaml"
        path.write_text("presets: [unclosed")
        monkeypatch.setenv("TENSORPREP_PRESETS_PATH", str(path))

        errors = validate_config()
        assert len(errors) == 1
        assert errors[0].startswith("Failed to load config")
