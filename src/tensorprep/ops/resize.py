"""
Resize and Crop Operations

Resampling kernels for channels-first image tensors (3D ``[C, H, W]`` or
4D ``[N, C, H, W]``), matching ``torch.nn.functional.interpolate``:

    - nearest:  src = floor(dst * src_size / dst_size)
    - bilinear: 2x2 neighbourhood, half-pixel centres by default
    - bicubic:  4x4 neighbourhood, cubic convolution with a = -0.5

Every channel of every batch element is resampled independently. The
result is always a newly allocated contiguous tensor of the input dtype;
integer outputs are rounded and clamped by the storage narrowing policy,
floating outputs are not clamped (bicubic may overshoot the source range).

Functions:
    source_coordinates: Map destination indices to source coordinates
    cubic_weight: Cubic convolution kernel
    resize: Fixed-size resize kernel
    shortest_edge_size: Aspect-preserving target size
    center_crop: Centre crop kernel

Classes:
    InterpolationMode: nearest / bilinear / bicubic
    ResizeOp, ResizeShortestOp, CenterCropOp: Transform operations
"""

import math
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from tensorprep.core.view import TensorView
from tensorprep.exceptions import InvalidParameterError
from tensorprep.ops.base import TransformOp, spatial_size, with_spatial_size


class InterpolationMode(Enum):
    """Resampling algorithm."""

    NEAREST = "nearest"
    BILINEAR = "bilinear"
    BICUBIC = "bicubic"


# =============================================================================
# Coordinate Mapping
# =============================================================================

def source_coordinates(dst_size: int, src_size: int, align_corners: bool = False) -> np.ndarray:
    """
    Source coordinate of every destination index along one axis.

    Half-pixel centres (default):
        src = (dst + 0.5) * (src_size / dst_size) - 0.5
    Corner-aligned:
        src = dst * (src_size - 1) / (dst_size - 1), or 0 when dst_size == 1

    Results are clamped into ``[0, src_size - 1]``.

    Example:
        >>> source_coordinates(4, 2)
        array([0.  , 0.25, 0.75, 1.  ])
    """
    dst = np.arange(dst_size, dtype=np.float64)
    if align_corners:
        if dst_size > 1:
            coords = dst * ((src_size - 1) / (dst_size - 1))
        else:
            coords = np.zeros(dst_size, dtype=np.float64)
    else:
        coords = (dst + 0.5) * (src_size / dst_size) - 0.5
    return np.clip(coords, 0.0, src_size - 1.0)


def nearest_indices(dst_size: int, src_size: int) -> np.ndarray:
    """``floor(dst * src_size / dst_size)`` clamped into range."""
    indices = np.floor(np.arange(dst_size, dtype=np.float64) * (src_size / dst_size))
    return np.clip(indices.astype(np.int64), 0, src_size - 1)


def cubic_weight(t: np.ndarray) -> np.ndarray:
    """
    Cubic convolution kernel with ``a = -0.5``.

        |t| <= 1:      1.5|t|^3 - 2.5|t|^2 + 1
        1 < |t| < 2:  -0.5|t|^3 + 2.5|t|^2 - 4|t| + 2
        otherwise:     0
    """
    at = np.abs(t)
    near = 1.5 * at**3 - 2.5 * at**2 + 1.0
    far = -0.5 * at**3 + 2.5 * at**2 - 4.0 * at + 2.0
    return np.where(at <= 1.0, near, np.where(at < 2.0, far, 0.0))


# =============================================================================
# Kernels
# =============================================================================

def _planes(view: TensorView) -> Tuple[np.ndarray, Tuple[int, ...]]:
    """Contiguous input as planes of shape [N*C, H, W] in the source dtype."""
    contiguous = view.contiguous()
    src_h, src_w = contiguous.shape[-2], contiguous.shape[-1]
    planes = contiguous.data.reshape(-1, src_h, src_w)
    return planes, contiguous.shape


def _resample_nearest(planes: np.ndarray, height: int, width: int) -> np.ndarray:
    _, src_h, src_w = planes.shape
    ys = nearest_indices(height, src_h)
    xs = nearest_indices(width, src_w)
    return planes[:, ys[:, None], xs[None, :]]


def _resample_bilinear(planes: np.ndarray, height: int, width: int, align_corners: bool) -> np.ndarray:
    planes = planes.astype(np.float64)
    _, src_h, src_w = planes.shape

    src_y = source_coordinates(height, src_h, align_corners)
    y0 = np.floor(src_y).astype(np.int64)
    y1 = np.minimum(y0 + 1, src_h - 1)
    fy = (src_y - y0)[:, None]

    src_x = source_coordinates(width, src_w, align_corners)
    x0 = np.floor(src_x).astype(np.int64)
    x1 = np.minimum(x0 + 1, src_w - 1)
    fx = (src_x - x0)[None, :]

    v00 = planes[:, y0[:, None], x0[None, :]]
    v01 = planes[:, y0[:, None], x1[None, :]]
    v10 = planes[:, y1[:, None], x0[None, :]]
    v11 = planes[:, y1[:, None], x1[None, :]]

    return (
        v00 * (1 - fx) * (1 - fy)
        + v01 * fx * (1 - fy)
        + v10 * (1 - fx) * fy
        + v11 * fx * fy
    )


def _resample_bicubic(planes: np.ndarray, height: int, width: int, align_corners: bool) -> np.ndarray:
    planes = planes.astype(np.float64)
    _, src_h, src_w = planes.shape

    src_y = source_coordinates(height, src_h, align_corners)
    y0 = np.floor(src_y).astype(np.int64)
    fy = src_y - y0

    src_x = source_coordinates(width, src_w, align_corners)
    x0 = np.floor(src_x).astype(np.int64)
    fx = src_x - x0

    output = np.zeros((planes.shape[0], height, width), dtype=np.float64)
    for j in range(-1, 3):
        yj = np.clip(y0 + j, 0, src_h - 1)
        wy = cubic_weight(j - fy)[:, None]
        for i in range(-1, 3):
            xi = np.clip(x0 + i, 0, src_w - 1)
            wx = cubic_weight(i - fx)[None, :]
            output += planes[:, yj[:, None], xi[None, :]] * wx * wy
    return output


def resize(
    view: TensorView,
    height: int,
    width: int,
    mode: InterpolationMode = InterpolationMode.BILINEAR,
    align_corners: bool = False,
) -> TensorView:
    """
    Resample the trailing (H, W) axes of ``view`` to ``(height, width)``.

    Args:
        view: 3D [C, H, W] or 4D [N, C, H, W] tensor (materialised if not contiguous)
        height: Target height (> 0)
        width: Target width (> 0)
        mode: Interpolation algorithm
        align_corners: Corner-aligned coordinate mapping (ignored by nearest)

    Returns:
        New tensor with the same rank and dtype

    Raises:
        InvalidParameterError: If ``height`` or ``width`` is not positive
        ShapeMismatchError: If ``view`` is not 3D or 4D

    Example:
        >>> source = TensorView.from_numpy(np.array([[[0.0, 1.0], [2.0, 3.0]]]))
        >>> resize(source, 4, 4).shape
        (1, 4, 4)
    """
    _check_size(height, width)
    spatial_size(view.shape, "Resize")
    mode = InterpolationMode(mode)

    planes, shape = _planes(view)
    if mode is InterpolationMode.NEAREST:
        resampled = _resample_nearest(planes, height, width)
    elif mode is InterpolationMode.BILINEAR:
        resampled = _resample_bilinear(planes, height, width, align_corners)
    else:
        resampled = _resample_bicubic(planes, height, width, align_corners)

    output = TensorView.zeros(with_spatial_size(shape, height, width), dtype=view.dtype)
    output.storage.write(0, resampled)
    return output


def shortest_edge_size(
    height: int,
    width: int,
    shortest_edge: int,
    max_size: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Target (height, width) whose shorter side equals ``shortest_edge``.

    The aspect ratio is preserved and sizes are rounded half up. When
    ``max_size`` is given and the longer side would exceed it, both sides
    are scaled down proportionally. Sides never shrink below 1 pixel.

    Example:
        >>> shortest_edge_size(480, 640, 256)
        (256, 341)
        >>> shortest_edge_size(480, 1920, 256, max_size=512)
        (128, 512)
    """
    scale = shortest_edge / min(height, width)
    new_h = _round_half_up(height * scale)
    new_w = _round_half_up(width * scale)

    if max_size is not None:
        cap = max_size / max(new_h, new_w)
        if cap < 1.0:
            new_h = _round_half_up(new_h * cap)
            new_w = _round_half_up(new_w * cap)

    return max(1, new_h), max(1, new_w)


def center_crop(view: TensorView, height: int, width: int) -> TensorView:
    """
    Crop a ``(height, width)`` window from the centre of ``view``.

    The window starts at ``((H - height) // 2, (W - width) // 2)``.

    Raises:
        InvalidParameterError: If the window is non-positive or larger than the input
        ShapeMismatchError: If ``view`` is not 3D or 4D
    """
    _check_size(height, width)
    src_h, src_w = spatial_size(view.shape, "CenterCrop")
    if height > src_h or width > src_w:
        raise InvalidParameterError(
            "crop size",
            f"{height} x {width}",
            f"Cannot be larger than input size {src_h} x {src_w}",
        )

    top = (src_h - height) // 2
    left = (src_w - width) // 2
    window = view.to_numpy()[..., top : top + height, left : left + width]
    return TensorView.from_numpy(window)


def _check_size(height: int, width: int) -> None:
    if height <= 0 or width <= 0:
        raise InvalidParameterError("height/width", f"{height} x {width}", "Must be positive")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# =============================================================================
# Operations
# =============================================================================

class ResizeOp(TransformOp):
    """
    Resize to a fixed height and width.

    Example:
        >>> op = ResizeOp(224, 224, mode=InterpolationMode.BICUBIC)
        >>> op.compute_output_shape((1, 3, 480, 640))
        (1, 3, 224, 224)
    """

    requires_contiguous = True

    def __init__(
        self,
        height: int,
        width: int,
        mode: InterpolationMode = InterpolationMode.BILINEAR,
        align_corners: bool = False,
    ) -> None:
        _check_size(height, width)
        self.height = height
        self.width = width
        self.mode = InterpolationMode(mode)
        self.align_corners = align_corners

    @property
    def name(self) -> str:
        return f"Resize({self.height}x{self.width}, {self.mode.value})"

    def apply(self, view: TensorView) -> TensorView:
        return resize(view, self.height, self.width, self.mode, self.align_corners)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        spatial_size(shape, "Resize")
        return with_spatial_size(shape, self.height, self.width)


class ResizeShortestOp(TransformOp):
    """Resize so the shorter side equals ``shortest_edge``, keeping aspect ratio."""

    requires_contiguous = True

    def __init__(
        self,
        shortest_edge: int,
        mode: InterpolationMode = InterpolationMode.BILINEAR,
        max_size: Optional[int] = None,
    ) -> None:
        if shortest_edge <= 0:
            raise InvalidParameterError("shortest_edge", shortest_edge, "Must be positive")
        if max_size is not None and max_size <= 0:
            raise InvalidParameterError("max_size", max_size, "Must be positive")
        self.shortest_edge = shortest_edge
        self.mode = InterpolationMode(mode)
        self.max_size = max_size

    @property
    def name(self) -> str:
        return f"ResizeShortest({self.shortest_edge})"

    def apply(self, view: TensorView) -> TensorView:
        height, width = self._target(view.shape)
        return resize(view, height, width, self.mode)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        return with_spatial_size(shape, *self._target(shape))

    def _target(self, shape: Sequence[int]) -> Tuple[int, int]:
        src_h, src_w = spatial_size(shape, "ResizeShortest")
        return shortest_edge_size(src_h, src_w, self.shortest_edge, self.max_size)


class CenterCropOp(TransformOp):
    """Crop a fixed-size window from the centre."""

    requires_contiguous = True

    def __init__(self, height: int, width: int) -> None:
        _check_size(height, width)
        self.height = height
        self.width = width

    @property
    def name(self) -> str:
        return f"CenterCrop({self.height}x{self.width})"

    def apply(self, view: TensorView) -> TensorView:
        return center_crop(view, self.height, self.width)

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        src_h, src_w = spatial_size(shape, "CenterCrop")
        if self.height > src_h or self.width > src_w:
            raise InvalidParameterError(
                "crop size",
                f"{self.height} x {self.width}",
                f"Cannot be larger than input size {src_h} x {src_w}",
            )
        return with_spatial_size(shape, self.height, self.width)
