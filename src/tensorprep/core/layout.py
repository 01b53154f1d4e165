"""
Stride and Layout Algebra

Pure functions mapping a shape and a physical layout to element strides,
plus the permutation helpers used to move between layouts.

Layouts:
    CONTIGUOUS: Row-major (NCHW for 4D), channel varies slowest
    CHANNELS_LAST: NHWC for 4D / HWC order for 3D, channel varies fastest

Example:
    >>> compute_strides((2, 3, 4), MemoryLayout.CONTIGUOUS)
    (12, 4, 1)
    >>> compute_strides((2, 3, 4, 5), MemoryLayout.CHANNELS_LAST)
    (60, 1, 15, 3)
"""

from enum import Enum
from typing import Sequence, Tuple

from tensorprep.exceptions import InvalidArgumentError, UnsupportedLayoutError


class MemoryLayout(Enum):
    """Physical element ordering of a tensor."""

    CONTIGUOUS = "NCHW"
    CHANNELS_LAST = "NHWC"

    @property
    def layout_name(self) -> str:
        return self.value

    @property
    def logical_order(self) -> Tuple[int, ...]:
        """Dimension order of a 4D tensor in this layout."""
        if self is MemoryLayout.CONTIGUOUS:
            return (0, 1, 2, 3)
        return (0, 2, 3, 1)

    @property
    def permute_to_other(self) -> Tuple[int, ...]:
        """Axes to pass to ``transpose`` to convert a 4D tensor to the other layout."""
        if self is MemoryLayout.CONTIGUOUS:
            return (0, 2, 3, 1)
        return (0, 3, 1, 2)

    @property
    def other(self) -> "MemoryLayout":
        if self is MemoryLayout.CONTIGUOUS:
            return MemoryLayout.CHANNELS_LAST
        return MemoryLayout.CONTIGUOUS


def compute_strides(shape: Sequence[int], layout: MemoryLayout = MemoryLayout.CONTIGUOUS) -> Tuple[int, ...]:
    """
    Compute element strides for ``shape`` stored in ``layout``.

    Row-major: ``stride[-1] = 1`` and ``stride[d] = stride[d + 1] * shape[d + 1]``.
    Channels-last (3D ``[C, H, W]`` or 4D ``[N, C, H, W]`` only): the channel
    axis gets stride 1 and the remaining axes get row-major strides as if the
    channel axis were last.

    Args:
        shape: Logical dimensions
        layout: Physical layout

    Returns:
        Tuple of strides, one per dimension

    Raises:
        UnsupportedLayoutError: Channels-last requested for a rank other than 3 or 4
    """
    rank = len(shape)

    if layout is MemoryLayout.CONTIGUOUS:
        strides = [0] * rank
        stride = 1
        for d in range(rank - 1, -1, -1):
            strides[d] = stride
            stride *= shape[d]
        return tuple(strides)

    if rank == 4:
        _, c, h, w = shape
        return (h * w * c, 1, w * c, c)
    if rank == 3:
        c, _, w = shape
        return (1, w * c, c)

    raise UnsupportedLayoutError(
        f"channels-last layout only supports 3D or 4D tensors, got {rank}D"
    )


def validate_permutation(permutation: Sequence[int], rank: int) -> Tuple[int, ...]:
    """
    Check that ``permutation`` is a bijection over ``range(rank)``.

    Raises:
        InvalidArgumentError: Wrong length, axis outside ``[0, rank)`` or duplicate
    """
    if len(permutation) != rank:
        raise InvalidArgumentError(
            f"axes length ({len(permutation)}) must match rank ({rank})"
        )

    seen = set()
    for axis in permutation:
        if axis < 0 or axis >= rank:
            raise InvalidArgumentError(f"Axis {axis} out of range [0, {rank - 1}]")
        if axis in seen:
            raise InvalidArgumentError(f"Duplicate axis: {axis}")
        seen.add(axis)

    return tuple(permutation)


def inverse_permutation(permutation: Sequence[int]) -> Tuple[int, ...]:
    """
    Return the permutation that undoes ``permutation``.

    Example:
        >>> inverse_permutation((2, 0, 1))
        (1, 2, 0)
    """
    validate_permutation(permutation, len(permutation))
    inverse = [0] * len(permutation)
    for position, axis in enumerate(permutation):
        inverse[axis] = position
    return tuple(inverse)


def permute_shape(shape: Sequence[int], permutation: Sequence[int]) -> Tuple[int, ...]:
    """Shape-only counterpart of ``TensorView.transpose``."""
    validate_permutation(permutation, len(shape))
    return tuple(shape[axis] for axis in permutation)
