"""
Transform Operation Contract

Every operation is a pure ``TensorView -> TensorView`` callable paired with
a pure ``shape -> shape`` inference function, so a pipeline can be
validated without touching any data.

Classes:
    TransformOp: Abstract base for all operations
    InPlaceTransform: Mixin for operations that can mutate a view's storage
    IdentityOp: Returns its input unchanged
"""

from abc import ABC, abstractmethod
from typing import Sequence, Tuple

from tensorprep.core.view import TensorView
from tensorprep.exceptions import ShapeMismatchError


class TransformOp(ABC):
    """Base class for tensor transform operations."""

    #: Whether ``apply`` materialises non-contiguous input before running
    requires_contiguous: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable operation name."""

    @abstractmethod
    def apply(self, view: TensorView) -> TensorView:
        """
        Apply this transform to ``view``.

        Args:
            view: Input tensor (never modified)

        Returns:
            Either a zero-copy view of the input or a newly allocated tensor
        """

    @abstractmethod
    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        """
        Infer the output shape for ``shape`` without executing the transform.

        Raises:
            ShapeMismatchError: If ``shape`` is not accepted by this operation
        """

    def __call__(self, view: TensorView) -> TensorView:
        return self.apply(view)

    @staticmethod
    def ensure_contiguous(view: TensorView) -> TensorView:
        """Materialise ``view`` if it is not contiguous."""
        return view.contiguous()

    def __repr__(self) -> str:
        return f"TransformOp({self.name})"


class InPlaceTransform(ABC):
    """Mixin for operations that can overwrite a contiguous view's elements."""

    @abstractmethod
    def apply_in_place(self, view: TensorView) -> None:
        """
        Overwrite ``view``'s elements with the transformed values.

        All validation happens before the first element is written.

        Raises:
            NotContiguousError: If ``view`` is not contiguous
        """


class IdentityOp(TransformOp):
    """No-op transform."""

    @property
    def name(self) -> str:
        return "Identity"

    def apply(self, view: TensorView) -> TensorView:
        return view

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        return tuple(shape)


# =============================================================================
# Shape Inference Helpers
# =============================================================================

def require_image_rank(shape: Sequence[int], operation: str) -> int:
    """
    Check that ``shape`` is 3D ``[C, H, W]`` or 4D ``[N, C, H, W]``.

    Returns:
        The rank (3 or 4)

    Raises:
        ShapeMismatchError: For any other rank
    """
    rank = len(shape)
    if rank not in (3, 4):
        raise ShapeMismatchError.rank((3, 4), shape, operation)
    return rank


def spatial_size(shape: Sequence[int], operation: str) -> Tuple[int, int]:
    """(height, width) of a 3D or 4D channels-first shape."""
    require_image_rank(shape, operation)
    return shape[-2], shape[-1]


def with_spatial_size(shape: Sequence[int], height: int, width: int) -> Tuple[int, ...]:
    """Replace the trailing (height, width) of ``shape``."""
    return (*shape[:-2], height, width)


def channel_count(shape: Sequence[int], operation: str) -> int:
    """Channel dimension of a 3D ``[C, H, W]`` or 4D ``[N, C, H, W]`` shape."""
    rank = require_image_rank(shape, operation)
    return shape[0] if rank == 3 else shape[1]
