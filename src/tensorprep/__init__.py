"""
tensorprep - Tensor Preprocessing for ML Inference

Transforms decoded images into the tensors inference runtimes expect:
resize, crop, normalize and reformat, on a stride-based view/storage
abstraction that makes permutes, squeezes and reshapes zero-copy.

- core: Scalar types, typed storage and strided tensor views
- ops: Transform operations with shape inference
- pipeline: Operation sequencing, worker dispatch and model presets
- image: OpenCV image decoding into HWC uint8 tensors
"""

from tensorprep.core import MemoryLayout, ScalarType, Storage, TensorView
from tensorprep.exceptions import (
    DispatchTimeoutError,
    EmptyPipelineError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    InvalidParameterError,
    InvalidShapeError,
    NotContiguousError,
    ShapeMismatchError,
    SizeMismatchError,
    TensorError,
    TypeMismatchError,
    UnsupportedLayoutError,
)
from tensorprep.ops import (
    CenterCropOp,
    InterpolationMode,
    NormalizeOp,
    PermuteOp,
    ResizeOp,
    ResizeShortestOp,
    ScaleOp,
    ToImageOp,
    ToTensorOp,
    TransformOp,
    TypeCastOp,
    UnsqueezeOp,
)
from tensorprep.pipeline import TensorPipeline, custom, list_presets, load_preset

__all__ = [
    # Core
    "ScalarType",
    "MemoryLayout",
    "Storage",
    "TensorView",
    # Operations
    "TransformOp",
    "InterpolationMode",
    "ResizeOp",
    "ResizeShortestOp",
    "CenterCropOp",
    "PermuteOp",
    "UnsqueezeOp",
    "NormalizeOp",
    "ScaleOp",
    "TypeCastOp",
    "ToTensorOp",
    "ToImageOp",
    # Pipelines
    "TensorPipeline",
    "load_preset",
    "list_presets",
    "custom",
    # Errors
    "TensorError",
    "ShapeMismatchError",
    "SizeMismatchError",
    "InvalidShapeError",
    "NotContiguousError",
    "InvalidParameterError",
    "InvalidArgumentError",
    "IndexOutOfRangeError",
    "TypeMismatchError",
    "UnsupportedLayoutError",
    "EmptyPipelineError",
    "DispatchTimeoutError",
]

__version__ = "0.1.0"
