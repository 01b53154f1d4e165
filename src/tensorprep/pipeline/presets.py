"""
Pipeline Presets

Builds ready-to-use pipelines for common model families from the preset
catalog (presets.yaml). Every preset expects an HWC uint8 image and
produces a batched float32 tensor.

Usage:
    from tensorprep.pipeline.presets import load_preset

    pipeline = load_preset("imagenet_classification")
    resnet_256 = load_preset("resnet_classification", height=256, width=256)

Functions:
    load_preset: Build a catalog preset, optionally overriding step parameters
    build_op: Build one operation from a step mapping
    build_pipeline: Build a pipeline from a list of step mappings
    custom: Build a resize/convert/normalize pipeline programmatically
    list_presets: Names of every catalog preset
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from tensorprep.config import get_normalization_stats, get_preset_config, get_preset_names
from tensorprep.exceptions import InvalidParameterError, TensorError
from tensorprep.ops.base import TransformOp
from tensorprep.ops.cast import ToImageOp, ToTensorOp, TypeCastOp
from tensorprep.ops.normalize import NormalizeOp, ScaleOp
from tensorprep.ops.resize import CenterCropOp, InterpolationMode, ResizeOp, ResizeShortestOp
from tensorprep.ops.shape_ops import (
    ContiguousOp,
    FlattenOp,
    LayoutConvertOp,
    PermuteOp,
    ReshapeOp,
    SqueezeOp,
    UnsqueezeOp,
)
from tensorprep.pipeline.pipeline import TensorPipeline

logger = logging.getLogger(__name__)


# =============================================================================
# Operation Registry
# =============================================================================

OP_FACTORIES: Dict[str, Callable[..., TransformOp]] = {
    "resize": ResizeOp,
    "resize_shortest": ResizeShortestOp,
    "center_crop": CenterCropOp,
    "to_tensor": ToTensorOp,
    "to_image": ToImageOp,
    "normalize": NormalizeOp,
    "scale": ScaleOp,
    "type_cast": TypeCastOp,
    "permute": PermuteOp,
    "layout_convert": LayoutConvertOp,
    "unsqueeze": UnsqueezeOp,
    "squeeze": SqueezeOp,
    "reshape": ReshapeOp,
    "flatten": FlattenOp,
    "contiguous": ContiguousOp,
}


def build_op(step: Mapping[str, Any]) -> TransformOp:
    """
    Build one operation from a catalog step.

    Args:
        step: Mapping with an ``op`` name plus constructor parameters.
              ``normalize`` steps may name catalog statistics with ``stats``.

    Returns:
        Configured operation

    Raises:
        InvalidParameterError: Unknown op, unknown stats or bad parameters

    Example:
        >>> build_op({"op": "resize", "height": 224, "width": 224, "mode": "bicubic"}).name
        'Resize(224x224, bicubic)'
    """
    params = dict(step)
    op_name = params.pop("op", None)

    if op_name not in OP_FACTORIES:
        raise InvalidParameterError(
            "op", op_name, f"Unknown operation. Available: {sorted(OP_FACTORIES)}"
        )

    if op_name == "normalize" and "stats" in params:
        stats_name = params.pop("stats")
        try:
            stats = get_normalization_stats(stats_name)
        except KeyError as e:
            raise InvalidParameterError("stats", stats_name, str(e)) from e
        params.setdefault("mean", stats["mean"])
        params.setdefault("std", stats["std"])

    try:
        return OP_FACTORIES[op_name](**params)
    except TensorError:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(op_name, params, str(e)) from e


def build_pipeline(steps: Sequence[Mapping[str, Any]], name: Optional[str] = None) -> TensorPipeline:
    """Build a pipeline from step mappings, in order."""
    return TensorPipeline([build_op(step) for step in steps], name=name)


# =============================================================================
# Presets
# =============================================================================

def list_presets() -> List[str]:
    """Names of every preset in the catalog."""
    return get_preset_names()


def load_preset(name: str, **overrides: Any) -> TensorPipeline:
    """
    Build a catalog preset.

    Each override replaces the parameter of the same key in every step that
    declares it, so ``height=256`` resizes to 256 wherever the preset sets a
    height.

    Args:
        name: Preset identifier (see ``list_presets``)
        **overrides: Step parameters to replace

    Returns:
        Named TensorPipeline

    Raises:
        KeyError: If ``name`` is not in the catalog (lists available presets)
        InvalidParameterError: If an override matches no step, or a step is invalid

    Example:
        >>> load_preset("clip").compute_output_shape((480, 640, 3))
        (1, 3, 224, 224)
        >>> load_preset("object_detection", height=320, width=320).compute_output_shape((480, 640, 3))
        (1, 3, 320, 320)
    """
    preset = get_preset_config(name)

    steps = []
    used = set()
    for step in preset["steps"]:
        step = dict(step)
        for key, value in overrides.items():
            if key != "op" and key in step:
                step[key] = value
                used.add(key)
        steps.append(step)

    unused = sorted(set(overrides) - used)
    if unused:
        raise InvalidParameterError(
            "overrides", unused, f"No step in preset '{name}' accepts these parameters"
        )

    pipeline = build_pipeline(steps, name=preset.get("display_name", name))
    logger.debug(f"Loaded preset {name}: {pipeline}")
    return pipeline


def custom(
    height: int,
    width: int,
    mode: InterpolationMode = InterpolationMode.BILINEAR,
    mean: Optional[Sequence[float]] = None,
    std: Optional[Sequence[float]] = None,
    add_batch_dim: bool = True,
    to_chw: bool = True,
) -> TensorPipeline:
    """
    Build a non-catalog pipeline for an HWC uint8 image.

    Steps: to CHW float32 in [0, 1] -> resize -> optional normalize ->
    back to HWC when ``to_chw`` is False -> optional batch dimension.

    Args:
        height: Target height
        width: Target width
        mode: Interpolation algorithm
        mean: Per-channel mean (normalization runs only when both mean and std are given)
        std: Per-channel standard deviation
        add_batch_dim: Prepend a batch dimension
        to_chw: Convert to CHW; otherwise keep HWC

    Example:
        >>> custom(128, 96, to_chw=False).compute_output_shape((480, 640, 3))
        (1, 128, 96, 3)
    """
    operations: List[TransformOp] = [
        ToTensorOp(normalize=True),
        ResizeOp(height, width, mode=mode),
    ]

    if mean is not None and std is not None:
        operations.append(NormalizeOp(mean, std))

    if not to_chw:
        operations.append(PermuteOp.chw_to_hwc())
        operations.append(ContiguousOp())

    if add_batch_dim:
        operations.append(UnsqueezeOp.batch())

    return TensorPipeline(operations, name="Custom")
