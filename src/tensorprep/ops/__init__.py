"""
Operations Module - Transform Operations for Pipelines

Every operation maps a TensorView to a TensorView and infers its output
shape without touching data:
- resize: Nearest/bilinear/bicubic resampling, shortest-edge resize, center crop
- shape_ops: Permute, layout conversion, squeeze/unsqueeze, reshape, flatten
- normalize: Per-channel mean/std normalization and affine scaling
- cast: Type casting and HWC <-> CHW image conversion
"""

from tensorprep.ops.base import IdentityOp, InPlaceTransform, TransformOp
from tensorprep.ops.cast import ToImageOp, ToTensorOp, TypeCastOp
from tensorprep.ops.normalize import NormalizeOp, ScaleOp
from tensorprep.ops.resize import (
    CenterCropOp,
    InterpolationMode,
    ResizeOp,
    ResizeShortestOp,
    center_crop,
    resize,
    shortest_edge_size,
)
from tensorprep.ops.shape_ops import (
    ContiguousOp,
    FlattenOp,
    LayoutConvertOp,
    PermuteOp,
    ReshapeOp,
    SqueezeOp,
    UnsqueezeOp,
)

__all__ = [
    # Contract
    "TransformOp",
    "InPlaceTransform",
    "IdentityOp",
    # Resampling
    "InterpolationMode",
    "resize",
    "shortest_edge_size",
    "center_crop",
    "ResizeOp",
    "ResizeShortestOp",
    "CenterCropOp",
    # Shape and layout
    "PermuteOp",
    "LayoutConvertOp",
    "UnsqueezeOp",
    "SqueezeOp",
    "ReshapeOp",
    "FlattenOp",
    "ContiguousOp",
    # Value transforms
    "NormalizeOp",
    "ScaleOp",
    "TypeCastOp",
    "ToTensorOp",
    "ToImageOp",
]
