"""
Preset Catalog Configuration Module

This module provides a Python interface to presets.yaml, the catalog of
named preprocessing pipelines and normalization statistics.

Usage:
    from tensorprep.config import get_config, get_preset_config, get_normalization_stats

    # Get full catalog
    config = get_config()

    # Get one preset's steps
    steps = get_preset_config("clip")["steps"]

    # Get normalization statistics
    imagenet = get_normalization_stats("imagenet")

The bundled catalog lives next to this module. Set
``TENSORPREP_PRESETS_PATH`` to load a different file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml

from tensorprep.settings import get_settings


# =============================================================================
# Constants
# =============================================================================

# Structure: src/tensorprep/config.py -> src/tensorprep/presets.yaml
DEFAULT_PRESETS_PATH = Path(__file__).parent / "presets.yaml"

# Operation names a preset step may use
STEP_OPS = (
    "resize",
    "resize_shortest",
    "center_crop",
    "to_tensor",
    "to_image",
    "normalize",
    "scale",
    "type_cast",
    "permute",
    "layout_convert",
    "unsqueeze",
    "squeeze",
    "reshape",
    "flatten",
    "contiguous",
)


# =============================================================================
# Configuration Loading
# =============================================================================

def get_presets_path() -> Path:
    """Catalog path: ``TENSORPREP_PRESETS_PATH`` if set, else the bundled file."""
    configured = get_settings().PRESETS_PATH
    return Path(configured) if configured else DEFAULT_PRESETS_PATH


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Load and cache the preset catalog.

    Returns:
        Complete catalog dictionary

    Raises:
        FileNotFoundError: If the catalog file is missing
        yaml.YAMLError: If YAML parsing fails

    Example:
        >>> config = get_config()
        >>> config["normalization"]["imagenet"]["mean"]
        [0.485, 0.456, 0.406]
    """
    path = get_presets_path()
    if not path.exists():
        raise FileNotFoundError(
            f"Preset catalog not found: {path}\n"
            f"Expected location: {path.absolute()}"
        )

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def reload_config() -> Dict[str, Any]:
    """
    Force reload of configuration (clears cache).

    Useful for testing or when the catalog file is modified at runtime.

    Returns:
        Freshly loaded configuration dictionary
    """
    get_config.cache_clear()
    return get_config()


# =============================================================================
# Preset Access
# =============================================================================

def get_preset_config(name: str) -> Dict[str, Any]:
    """
    Get the catalog entry for one preset.

    Args:
        name: Preset identifier (e.g., "imagenet_classification", "clip")

    Returns:
        Preset dictionary with ``display_name``, ``description`` and ``steps``

    Raises:
        KeyError: If the preset is not in the catalog

    Example:
        >>> get_preset_config("object_detection")["steps"][1]
        {'op': 'resize', 'height': 640, 'width': 640, 'mode': 'bilinear'}
    """
    presets = get_config().get("presets", {})

    if name not in presets:
        available = list(presets.keys())
        raise KeyError(
            f"Preset '{name}' not found. Available presets: {available}"
        )

    return presets[name]


def get_preset_names() -> List[str]:
    """
    Get list of all preset names, in catalog order.

    Example:
        >>> get_preset_names()[:2]
        ['imagenet_classification', 'resnet_classification']
    """
    return list(get_config().get("presets", {}).keys())


def get_normalization_stats(name: str) -> Dict[str, List[float]]:
    """
    Get per-channel mean/std statistics by name.

    Args:
        name: Statistics identifier (e.g., "imagenet", "clip")

    Returns:
        Dictionary with ``mean`` and ``std`` lists

    Raises:
        KeyError: If the statistics are not in the catalog

    Example:
        >>> get_normalization_stats("symmetric")["std"]
        [0.5, 0.5, 0.5]
    """
    stats = get_config().get("normalization", {})

    if name not in stats:
        available = list(stats.keys())
        raise KeyError(
            f"Normalization stats '{name}' not found. Available: {available}"
        )

    return stats[name]


# =============================================================================
# Validation
# =============================================================================

def validate_config() -> List[str]:
    """
    Validate the preset catalog.

    Returns:
        List of validation error messages (empty if valid)

    Example:
        >>> errors = validate_config()
        >>> if errors:
        ...     print("Validation failed:", errors)
    """
    errors = []

    try:
        config = get_config()
    except (OSError, yaml.YAMLError) as e:
        return [f"Failed to load config: {e}"]

    for section in ["normalization", "presets"]:
        if section not in config:
            errors.append(f"Missing required section: {section}")

    # Check normalization statistics
    stats = config.get("normalization", {})
    for stats_name, entry in stats.items():
        mean = entry.get("mean")
        std = entry.get("std")
        if not mean or not std:
            errors.append(f"Normalization stats {stats_name} missing mean or std")
        elif len(mean) != len(std):
            errors.append(f"Normalization stats {stats_name} has mismatched mean/std lengths")
        elif any(value == 0 for value in std):
            errors.append(f"Normalization stats {stats_name} has a zero std")

    # Check preset steps
    presets = config.get("presets", {})
    for preset_name, preset in presets.items():
        steps = preset.get("steps")
        if not steps:
            errors.append(f"Preset {preset_name} has no steps")
            continue

        for index, step in enumerate(steps):
            op = step.get("op")
            if op not in STEP_OPS:
                errors.append(f"Preset {preset_name} step {index} has unknown op: {op}")
            stats_name = step.get("stats")
            if stats_name is not None and stats_name not in stats:
                errors.append(
                    f"Preset {preset_name} step {index} references unknown stats: {stats_name}"
                )

    return errors
