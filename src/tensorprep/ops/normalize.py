"""
Normalization Operations

Per-channel mean/std normalization and affine scaling. Both operations
work out-of-place through ``apply`` and in-place through ``apply_in_place``;
results are narrowed to the tensor's scalar type.

Classes:
    NormalizeOp: ``(x - mean[c]) / std[c]`` per channel
    ScaleOp: ``(x - offset) / scale`` over every element

Constants:
    IMAGENET_MEAN, IMAGENET_STD: ImageNet channel statistics [R, G, B]
    CIFAR10_MEAN, CIFAR10_STD: CIFAR-10 channel statistics [R, G, B]
"""

from typing import List, Sequence, Tuple

import numpy as np

from tensorprep.core.view import TensorView
from tensorprep.exceptions import (
    InvalidParameterError,
    NotContiguousError,
    ShapeMismatchError,
)
from tensorprep.ops.base import InPlaceTransform, TransformOp, channel_count


# =============================================================================
# Constants
# =============================================================================

# Reference: https://pytorch.org/vision/stable/models.html
IMAGENET_MEAN: Tuple[float, ...] = (0.485, 0.456, 0.406)
IMAGENET_STD: Tuple[float, ...] = (0.229, 0.224, 0.225)

CIFAR10_MEAN: Tuple[float, ...] = (0.4914, 0.4822, 0.4465)
CIFAR10_STD: Tuple[float, ...] = (0.2470, 0.2435, 0.2616)


# =============================================================================
# NormalizeOp
# =============================================================================

class NormalizeOp(TransformOp, InPlaceTransform):
    """
    Per-channel normalization of a ``[C, H, W]`` or ``[N, C, H, W]`` tensor.

    Args:
        mean: Per-channel mean
        std: Per-channel standard deviation (no zeros)

    Raises:
        InvalidParameterError: Length mismatch, empty statistics or a zero std

    Example:
        >>> op = NormalizeOp.imagenet()
        >>> out = op(TensorView.zeros((3, 2, 2)))
        >>> round(out[0, 0, 0], 4)
        -2.1179
    """

    requires_contiguous = True

    def __init__(self, mean: Sequence[float], std: Sequence[float]) -> None:
        mean = [float(m) for m in mean]
        std = [float(s) for s in std]

        if len(mean) != len(std):
            raise InvalidParameterError(
                "mean/std",
                f"mean.length={len(mean)}, std.length={len(std)}",
                "Must have same length",
            )
        if not mean:
            raise InvalidParameterError("mean/std", "empty", "Must have at least one channel")
        for index, value in enumerate(std):
            if value == 0:
                raise InvalidParameterError(f"std[{index}]", value, "Standard deviation cannot be zero")

        self.mean: List[float] = mean
        self.std: List[float] = std

    @classmethod
    def imagenet(cls) -> "NormalizeOp":
        return cls(IMAGENET_MEAN, IMAGENET_STD)

    @classmethod
    def cifar10(cls) -> "NormalizeOp":
        return cls(CIFAR10_MEAN, CIFAR10_STD)

    @classmethod
    def symmetric(cls) -> "NormalizeOp":
        """Map ``[0, 1]`` onto ``[-1, 1]``."""
        return cls((0.5, 0.5, 0.5), (0.5, 0.5, 0.5))

    @property
    def name(self) -> str:
        return f"Normalize(mean={self.mean}, std={self.std})"

    def apply(self, view: TensorView) -> TensorView:
        self._validate_shape(view.shape)
        output = view.clone()
        self._normalize(output)
        return output

    def apply_in_place(self, view: TensorView) -> None:
        if not view.is_contiguous:
            raise NotContiguousError("NormalizeOp.apply_in_place")
        self._validate_shape(view.shape)
        self._normalize(view)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        self._validate_shape(shape)
        return tuple(shape)

    def _validate_shape(self, shape: Sequence[int]) -> None:
        channels = channel_count(shape, "NormalizeOp")
        if channels != len(self.mean):
            raise ShapeMismatchError(
                actual=shape,
                message=f"Tensor has {channels} channels, but mean/std has {len(self.mean)}",
            )

    def _normalize(self, view: TensorView) -> None:
        channels = len(self.mean)
        values = view.data.astype(np.float64).reshape(-1, channels, view.shape[-2] * view.shape[-1])
        mean = np.array(self.mean, dtype=np.float64).reshape(1, channels, 1)
        std = np.array(self.std, dtype=np.float64).reshape(1, channels, 1)
        view.storage.write(view.offset, (values - mean) / std)


# =============================================================================
# ScaleOp
# =============================================================================

class ScaleOp(TransformOp, InPlaceTransform):
    """
    Affine rescale ``(x - offset) / scale`` applied to every element.

    Raises:
        InvalidParameterError: If ``scale`` is zero
    """

    requires_contiguous = True

    def __init__(self, scale: float = 255.0, offset: float = 0.0) -> None:
        if scale == 0:
            raise InvalidParameterError("scale", scale, "Cannot be zero")
        self.scale = float(scale)
        self.offset = float(offset)

    @classmethod
    def to_unit(cls) -> "ScaleOp":
        """``[0, 255] -> [0, 1]``"""
        return cls(scale=255.0)

    @classmethod
    def from_unit(cls) -> "ScaleOp":
        """``[0, 1] -> [0, 255]``"""
        return cls(scale=1 / 255.0)

    @classmethod
    def to_symmetric(cls) -> "ScaleOp":
        """``[0, 255] -> [-1, 1]``"""
        return cls(scale=127.5, offset=127.5)

    @property
    def name(self) -> str:
        return f"Scale(scale={self.scale}, offset={self.offset})"

    def apply(self, view: TensorView) -> TensorView:
        output = view.clone()
        self._scale(output)
        return output

    def apply_in_place(self, view: TensorView) -> None:
        if not view.is_contiguous:
            raise NotContiguousError("ScaleOp.apply_in_place")
        self._scale(view)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        return tuple(shape)

    def _scale(self, view: TensorView) -> None:
        values = view.data.astype(np.float64)
        view.storage.write(view.offset, (values - self.offset) / self.scale)
