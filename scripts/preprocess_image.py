"""
Preprocess Image Script - Run a preset pipeline on an image file.

This script is a thin CLI wrapper around the tensorprep package. It loads
an image, runs a catalog preset (optionally in a worker process) and saves
the resulting tensor as a .npy file.

Usage:
    python scripts/preprocess_image.py photo.jpg out.npy                       # imagenet_classification
    python scripts/preprocess_image.py photo.jpg out.npy --preset clip
    python scripts/preprocess_image.py photo.jpg out.npy --preset object_detection --set height=320 --set width=320
    python scripts/preprocess_image.py photo.jpg out.npy --async               # run in a worker process
    python scripts/preprocess_image.py --list                                  # list presets
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import yaml

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from tensorprep.config import get_preset_config, get_preset_names
from tensorprep.exceptions import TensorError
from tensorprep.image import load_image
from tensorprep.logger import setup_logging
from tensorprep.pipeline.dispatch import shutdown_executor
from tensorprep.pipeline.presets import load_preset

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "imagenet_classification"


# =============================================================================
# CLI Functions
# =============================================================================

def parse_overrides(pairs: List[str]) -> Dict[str, Any]:
    """
    Parse ``key=value`` pairs; values are read as YAML scalars or lists.

    Example:
        >>> parse_overrides(["height=320", "mode=bicubic", "dims=[2, 0, 1]"])
        {'height': 320, 'mode': 'bicubic', 'dims': [2, 0, 1]}
    """
    overrides = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Override must be key=value, got: {pair}")
        overrides[key.strip()] = yaml.safe_load(value)
    return overrides


def print_presets() -> None:
    """Print every catalog preset with its description."""
    print()
    print("=" * 60)
    print("tensorprep - Presets")
    print("=" * 60)
    for name in get_preset_names():
        preset = get_preset_config(name)
        print(f"  {name:<26} {preset.get('description', '')}")
    print()


def run(args: argparse.Namespace) -> int:
    """Load, preprocess and save; returns the process exit code."""
    overrides = parse_overrides(args.overrides)
    pipeline = load_preset(args.preset, **overrides)
    image = load_image(args.image)

    if not pipeline.validate(image.shape):
        logger.error(f"Preset {args.preset} cannot process an image of shape {list(image.shape)}")
        return 1

    if args.use_async:
        try:
            result = asyncio.run(pipeline.run_async(image, timeout=args.timeout))
        finally:
            shutdown_executor()
    else:
        result = pipeline.run(image)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    np.save(args.output, result.to_numpy())
    logger.info(
        f"Saved {list(result.shape)} {result.dtype} tensor to {args.output}",
        extra={"shape": result.shape, "dtype": str(result.dtype)},
    )
    return 0


# =============================================================================
# Main
# =============================================================================

def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Preprocess an image with a tensorprep preset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/preprocess_image.py photo.jpg out.npy                   # ImageNet preset
  python scripts/preprocess_image.py photo.jpg out.npy --preset clip     # CLIP preset
  python scripts/preprocess_image.py photo.jpg out.npy --set height=256  # Override a step parameter
  python scripts/preprocess_image.py --list                              # List presets
        """,
    )

    parser.add_argument("image", type=Path, nargs="?", help="Input image file")
    parser.add_argument("output", type=Path, nargs="?", help="Output .npy file")
    parser.add_argument(
        "--preset",
        default=DEFAULT_PRESET,
        help=f"Preset name (default: {DEFAULT_PRESET})",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a preset step parameter (repeatable)",
    )
    parser.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Run the pipeline in a worker process",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Worker timeout in seconds (default: TENSORPREP_DISPATCH_TIMEOUT_SECONDS)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available presets and exit",
    )

    args = parser.parse_args()
    setup_logging()

    if args.list:
        print_presets()
        return 0

    if args.image is None or args.output is None:
        parser.error("image and output are required unless --list is given")

    try:
        return run(args)
    except (TensorError, KeyError, ValueError, argparse.ArgumentTypeError) as e:
        logger.error(f"Preprocessing failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
