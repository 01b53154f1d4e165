"""
Type Conversion Operations

Classes:
    TypeCastOp: Convert element values to another ScalarType
    ToTensorOp: HWC/NHWC image -> CHW/NCHW float32 tensor
    ToImageOp: CHW/NCHW tensor -> HWC/NHWC uint8 image
"""

from typing import Sequence, Tuple

import numpy as np

from tensorprep.core.dtype import ScalarType, convert
from tensorprep.core.view import TensorView
from tensorprep.exceptions import ShapeMismatchError
from tensorprep.ops.base import TransformOp


class TypeCastOp(TransformOp):
    """
    Cast to ``target`` using the storage narrowing policy.

    Integer to integer casts clamp exactly and never pass through double
    precision, so 64-bit values survive unchanged when they fit.

    Example:
        >>> view = TensorView.from_numpy(np.array([-1.5, 0.4, 300.0]))
        >>> TypeCastOp.to_uint8()(view).to_numpy().tolist()
        [0, 0, 255]
    """

    requires_contiguous = True

    def __init__(self, target: ScalarType) -> None:
        self.target = ScalarType(target)

    @classmethod
    def to_float32(cls) -> "TypeCastOp":
        return cls(ScalarType.FLOAT32)

    @classmethod
    def to_float64(cls) -> "TypeCastOp":
        return cls(ScalarType.FLOAT64)

    @classmethod
    def to_uint8(cls) -> "TypeCastOp":
        return cls(ScalarType.UINT8)

    @classmethod
    def to_int32(cls) -> "TypeCastOp":
        return cls(ScalarType.INT32)

    @classmethod
    def to_int64(cls) -> "TypeCastOp":
        return cls(ScalarType.INT64)

    @property
    def name(self) -> str:
        return f"TypeCast({self.target})"

    def apply(self, view: TensorView) -> TensorView:
        if view.dtype is self.target:
            return view

        contiguous = self.ensure_contiguous(view)
        converted = convert(contiguous.data, self.target)
        return TensorView.from_buffer(converted, self.target, contiguous.shape)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        return tuple(shape)


def _require_rank(shape: Sequence[int], message: str) -> int:
    if len(shape) not in (3, 4):
        raise ShapeMismatchError(actual=shape, message=message)
    return len(shape)


class ToTensorOp(TransformOp):
    """
    Convert an HWC/NHWC image into a CHW/NCHW float32 tensor.

    Args:
        normalize: Divide values by 255 to map ``[0, 255]`` onto ``[0, 1]``
    """

    requires_contiguous = True

    def __init__(self, normalize: bool = True) -> None:
        self.normalize = normalize

    @property
    def name(self) -> str:
        return f"ToTensor(normalize={self.normalize})"

    def apply(self, view: TensorView) -> TensorView:
        rank = _require_rank(view.shape, "ToTensorOp expects HWC or NHWC input")
        pixels = view.to_numpy().astype(np.float64)
        if self.normalize:
            pixels = pixels * (1.0 / 255.0)

        moved = np.moveaxis(pixels, -1, rank - 3)
        return TensorView.from_numpy(np.ascontiguousarray(moved, dtype=np.float32))

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        rank = _require_rank(shape, "ToTensorOp expects HWC or NHWC input")
        if rank == 3:
            return (shape[2], shape[0], shape[1])
        return (shape[0], shape[3], shape[1], shape[2])


class ToImageOp(TransformOp):
    """
    Convert a CHW/NCHW tensor into an HWC/NHWC uint8 image.

    Values are optionally multiplied by 255, then rounded half away from
    zero and clamped into ``[0, 255]``.
    """

    requires_contiguous = True

    def __init__(self, denormalize: bool = True) -> None:
        self.denormalize = denormalize

    @property
    def name(self) -> str:
        return f"ToImage(denormalize={self.denormalize})"

    def apply(self, view: TensorView) -> TensorView:
        rank = _require_rank(view.shape, "ToImageOp expects CHW or NCHW input")
        values = view.to_numpy().astype(np.float64)
        if self.denormalize:
            values = values * 255.0

        moved = np.ascontiguousarray(np.moveaxis(values, rank - 3, -1))
        pixels = convert(moved.reshape(-1), ScalarType.UINT8)
        return TensorView.from_buffer(pixels, ScalarType.UINT8, moved.shape)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        rank = _require_rank(shape, "ToImageOp expects CHW or NCHW input")
        if rank == 3:
            return (shape[1], shape[2], shape[0])
        return (shape[0], shape[2], shape[3], shape[1])
