"""
Shape and Layout Operations

Thin operation wrappers over the zero-copy TensorView transforms, plus the
layout conversion between NCHW and NHWC.

Classes:
    PermuteOp: Reorder dimensions (zero-copy)
    LayoutConvertOp: Convert a 4D tensor between NCHW and NHWC
    UnsqueezeOp: Insert a size-1 dimension (zero-copy)
    SqueezeOp: Remove size-1 dimensions (zero-copy)
    ReshapeOp: Reshape with an optional -1 wildcard
    FlattenOp: Collapse a range of dimensions
    ContiguousOp: Materialise a row-major copy if needed
"""

from math import prod
from typing import Optional, Sequence, Tuple

from tensorprep.core.layout import MemoryLayout, permute_shape
from tensorprep.core.view import TensorView
from tensorprep.exceptions import (
    IndexOutOfRangeError,
    InvalidParameterError,
    ShapeMismatchError,
    SizeMismatchError,
)
from tensorprep.ops.base import TransformOp


class PermuteOp(TransformOp):
    """
    Permute dimensions without copying.

    Example:
        >>> PermuteOp.hwc_to_chw().compute_output_shape((224, 224, 3))
        (3, 224, 224)
    """

    def __init__(self, dims: Sequence[int]) -> None:
        if not dims:
            raise InvalidParameterError("dims", list(dims), "Cannot be empty")
        self.dims = tuple(dims)

    @classmethod
    def nchw_to_nhwc(cls) -> "PermuteOp":
        return cls((0, 2, 3, 1))

    @classmethod
    def nhwc_to_nchw(cls) -> "PermuteOp":
        return cls((0, 3, 1, 2))

    @classmethod
    def chw_to_hwc(cls) -> "PermuteOp":
        return cls((1, 2, 0))

    @classmethod
    def hwc_to_chw(cls) -> "PermuteOp":
        return cls((2, 0, 1))

    @property
    def name(self) -> str:
        return f"Permute({list(self.dims)})"

    def apply(self, view: TensorView) -> TensorView:
        self._check_rank(view.shape)
        return view.transpose(self.dims)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        self._check_rank(shape)
        return permute_shape(shape, self.dims)

    def _check_rank(self, shape: Sequence[int]) -> None:
        if len(self.dims) != len(shape):
            raise ShapeMismatchError(
                actual=shape,
                message=f"Permute dims length ({len(self.dims)}) must match tensor rank ({len(shape)})",
            )


class LayoutConvertOp(TransformOp):
    """
    Convert a 4D tensor to ``target`` layout.

    The source layout is taken from the view's layout hint. With
    ``force_contiguous`` the result is materialised in the new order.
    """

    def __init__(self, target: MemoryLayout, force_contiguous: bool = True) -> None:
        self.target = MemoryLayout(target)
        self.force_contiguous = force_contiguous

    @classmethod
    def to_nchw(cls, force_contiguous: bool = True) -> "LayoutConvertOp":
        return cls(MemoryLayout.CONTIGUOUS, force_contiguous)

    @classmethod
    def to_nhwc(cls, force_contiguous: bool = True) -> "LayoutConvertOp":
        return cls(MemoryLayout.CHANNELS_LAST, force_contiguous)

    @property
    def name(self) -> str:
        return f"LayoutConvert({self.target.layout_name})"

    def apply(self, view: TensorView) -> TensorView:
        self._check_rank(view.shape)

        if view.layout is self.target:
            return view.contiguous() if self.force_contiguous else view

        result = view.transpose(view.layout.permute_to_other)
        if self.force_contiguous:
            result = result.contiguous()
        return TensorView(result.storage, result.shape, result.strides, result.offset, self.target)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        self._check_rank(shape)
        return permute_shape(shape, self.target.other.permute_to_other)

    def _check_rank(self, shape: Sequence[int]) -> None:
        if len(shape) != 4:
            raise ShapeMismatchError.rank((4,), shape, "LayoutConvert")


def _normalize_dim(dim: int, rank: int) -> int:
    """Map a negative insertion index onto ``[0, rank]``."""
    normalized = dim + rank + 1 if dim < 0 else dim
    if normalized < 0 or normalized > rank:
        raise IndexOutOfRangeError("dim", dim, (-rank - 1, rank))
    return normalized


class UnsqueezeOp(TransformOp):
    """Insert a size-1 dimension; negative ``dim`` counts from the end."""

    def __init__(self, dim: int) -> None:
        self.dim = dim

    @classmethod
    def batch(cls) -> "UnsqueezeOp":
        return cls(0)

    @property
    def name(self) -> str:
        return f"Unsqueeze(dim={self.dim})"

    def apply(self, view: TensorView) -> TensorView:
        return view.unsqueeze(_normalize_dim(self.dim, view.rank))

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        dim = _normalize_dim(self.dim, len(shape))
        return (*shape[:dim], 1, *shape[dim:])


class SqueezeOp(TransformOp):
    """Remove size-1 dimensions, or only ``dim`` when given."""

    def __init__(self, dim: Optional[int] = None) -> None:
        self.dim = dim

    @classmethod
    def batch(cls) -> "SqueezeOp":
        return cls(0)

    @classmethod
    def all(cls) -> "SqueezeOp":
        return cls()

    @property
    def name(self) -> str:
        return f"Squeeze(dim={self.dim})" if self.dim is not None else "Squeeze(all)"

    def apply(self, view: TensorView) -> TensorView:
        return view.squeeze(self.dim)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        shape = tuple(shape)
        if self.dim is not None:
            if self.dim < 0 or self.dim >= len(shape):
                raise IndexOutOfRangeError("dim", self.dim, (0, len(shape) - 1))
            if shape[self.dim] != 1 or len(shape) == 1:
                return shape
            return shape[: self.dim] + shape[self.dim + 1 :]

        squeezed = tuple(d for d in shape if d != 1)
        return squeezed or (1,)


class ReshapeOp(TransformOp):
    """
    Reshape a contiguous tensor; one dimension may be ``-1``.

    Example:
        >>> ReshapeOp((-1, 4)).compute_output_shape((2, 3, 4))
        (6, 4)
    """

    def __init__(self, shape: Sequence[int]) -> None:
        shape = tuple(shape)
        for dim in shape:
            if dim != -1 and dim <= 0:
                raise InvalidParameterError("shape", list(shape), "Dimensions must be positive or -1")
        if shape.count(-1) > 1:
            raise InvalidParameterError("shape", list(shape), "Only one dimension can be -1")
        if not shape:
            raise InvalidParameterError("shape", [], "Cannot be empty")
        self.shape = shape

    @property
    def name(self) -> str:
        return f"Reshape({list(self.shape)})"

    def apply(self, view: TensorView) -> TensorView:
        return view.reshape(self._resolve(view.numel))

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        return self._resolve(prod(shape))

    def _resolve(self, numel: int) -> Tuple[int, ...]:
        if -1 not in self.shape:
            if prod(self.shape) != numel:
                raise SizeMismatchError(
                    actual=(numel,),
                    expected=self.shape,
                    message=f"Cannot reshape tensor of size {numel} to {self.shape} (size {prod(self.shape)})",
                )
            return self.shape

        known = prod(d for d in self.shape if d != -1)
        if numel % known != 0:
            raise InvalidParameterError(
                "shape",
                list(self.shape),
                f"Cannot resolve -1: {numel} is not divisible by {known}",
            )
        return tuple(numel // known if d == -1 else d for d in self.shape)


class FlattenOp(TransformOp):
    """Collapse dimensions ``start_dim..end_dim`` (inclusive) into one."""

    def __init__(self, start_dim: int = 0, end_dim: int = -1) -> None:
        self.start_dim = start_dim
        self.end_dim = end_dim

    @property
    def name(self) -> str:
        return f"Flatten(start={self.start_dim}, end={self.end_dim})"

    def apply(self, view: TensorView) -> TensorView:
        return view.reshape(self.compute_output_shape(view.shape))

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        rank = len(shape)
        end = rank + self.end_dim if self.end_dim < 0 else self.end_dim

        if self.start_dim < 0 or self.start_dim >= rank:
            raise IndexOutOfRangeError("start_dim", self.start_dim, (0, rank - 1))
        if end < self.start_dim or end >= rank:
            raise IndexOutOfRangeError("end_dim", self.end_dim, (self.start_dim, rank - 1))

        return (*shape[: self.start_dim], prod(shape[self.start_dim : end + 1]), *shape[end + 1 :])


class ContiguousOp(TransformOp):
    """Materialise a row-major copy when the input is not contiguous."""

    @property
    def name(self) -> str:
        return "Contiguous"

    def apply(self, view: TensorView) -> TensorView:
        return view.contiguous()

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        return tuple(shape)
