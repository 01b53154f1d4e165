"""
Tensor View

A TensorView interprets a Storage through a shape, per-dimension strides
and a base offset:

    offset(i_0, ..., i_k-1) = base + sum(i_d * stride_d)

Shape transforms (transpose, squeeze, unsqueeze, reshape) only rewrite that
metadata and share the storage. Materialising transforms (contiguous,
clone) allocate a fresh storage owned solely by the returned view.

Views are immutable. Contiguity is computed once at construction.

Example:
    >>> view = TensorView.from_buffer(np.arange(24, dtype=np.float32), ScalarType.FLOAT32, (2, 3, 4))
    >>> view.strides
    (12, 4, 1)
    >>> moved = view.transpose((2, 0, 1))
    >>> moved.shape, moved.strides
    ((4, 2, 3), (1, 12, 4))
    >>> moved.storage is view.storage
    True
    >>> moved[0, 1, 0]
    12.0
"""

from dataclasses import dataclass, field
from math import prod
from numbers import Integral
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from tensorprep.core.dtype import ScalarType
from tensorprep.core.layout import MemoryLayout, compute_strides, validate_permutation
from tensorprep.core.storage import Storage
from tensorprep.exceptions import (
    IndexOutOfRangeError,
    InvalidArgumentError,
    InvalidShapeError,
    NotContiguousError,
    SizeMismatchError,
)

Shape = Tuple[int, ...]


# =============================================================================
# Shape Helpers
# =============================================================================

def validate_shape(shape: Sequence[int]) -> Shape:
    """
    Check that ``shape`` is non-empty with strictly positive dimensions.

    Raises:
        InvalidShapeError: If the shape is empty or a dimension is <= 0
    """
    shape = tuple(int(d) for d in shape)
    if not shape:
        raise InvalidShapeError(shape, "Shape cannot be empty")
    for index, dim in enumerate(shape):
        if dim <= 0:
            raise InvalidShapeError(shape, f"Dimension must be positive, got {dim} at index {index}")
    return shape


def numel_of(shape: Sequence[int]) -> int:
    """Number of elements addressed by ``shape``."""
    return prod(shape)


def check_contiguous(shape: Sequence[int], strides: Sequence[int]) -> bool:
    """
    Row-major contiguity test.

    Scans dimensions last to first, skipping size-1 dimensions; every other
    stride must equal the running product of the sizes after it. Size-1
    dimensions never break contiguity, whatever their stored stride.
    """
    expected = 1
    for size, stride in zip(reversed(shape), reversed(strides)):
        if size == 1:
            continue
        if stride != expected:
            return False
        expected *= size
    return True


# =============================================================================
# TensorView
# =============================================================================

@dataclass(frozen=True, eq=False)
class TensorView:
    """
    Logical tensor addressing a shared Storage.

    Attributes:
        storage: Physical buffer (shared with other views)
        shape: Dimensions, each strictly positive
        strides: Signed element step per dimension
        offset: Element index of ``[0, ..., 0]`` in the storage
        layout: Layout hint used to derive strides when none are given
        is_contiguous: Whether the view is row-major contiguous

    Raises:
        InvalidShapeError: Empty shape or non-positive dimension
        InvalidArgumentError: Stride count does not match rank
        IndexOutOfRangeError: A reachable offset falls outside the storage
        UnsupportedLayoutError: Channels-last requested for rank other than 3/4
    """

    storage: Storage
    shape: Shape
    strides: Optional[Shape] = None
    offset: int = 0
    layout: MemoryLayout = MemoryLayout.CONTIGUOUS
    is_contiguous: bool = field(init=False)

    def __post_init__(self) -> None:
        shape = validate_shape(self.shape)
        if self.strides is None:
            strides = compute_strides(shape, self.layout)
        else:
            strides = tuple(int(s) for s in self.strides)
            if len(strides) != len(shape):
                raise InvalidArgumentError(
                    f"strides length ({len(strides)}) must match rank ({len(shape)})"
                )

        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "strides", strides)
        object.__setattr__(self, "is_contiguous", check_contiguous(shape, strides))
        self._check_extent()

    def _check_extent(self) -> None:
        low = self.offset + sum(min(0, (size - 1) * stride) for size, stride in zip(self.shape, self.strides))
        high = self.offset + sum(max(0, (size - 1) * stride) for size, stride in zip(self.shape, self.strides))
        if low < 0:
            raise IndexOutOfRangeError("storage offset", low, (0, self.storage.length - 1))
        if high >= self.storage.length:
            raise IndexOutOfRangeError("storage offset", high, (0, self.storage.length - 1))

    # =========================================================================
    # Construction Surface
    # =========================================================================

    @classmethod
    def zeros(
        cls,
        shape: Sequence[int],
        dtype: ScalarType = ScalarType.FLOAT32,
        layout: MemoryLayout = MemoryLayout.CONTIGUOUS,
    ) -> "TensorView":
        """Allocate a zero-filled tensor."""
        shape = validate_shape(shape)
        return cls(Storage.allocate(dtype, numel_of(shape)), shape, layout=layout)

    @classmethod
    def ones(cls, shape: Sequence[int], dtype: ScalarType = ScalarType.FLOAT32) -> "TensorView":
        """Allocate a tensor filled with ones."""
        shape = validate_shape(shape)
        buffer = np.ones(numel_of(shape), dtype=dtype.numpy_dtype)
        return cls(Storage(buffer, dtype), shape)

    @classmethod
    def from_buffer(
        cls,
        buffer: np.ndarray,
        dtype: ScalarType,
        shape: Sequence[int],
    ) -> "TensorView":
        """
        Wrap an external buffer as a row-major tensor without copying.

        Raises:
            TypeMismatchError: If the buffer's dtype is not ``dtype``
            SizeMismatchError: If the buffer length differs from the shape's numel
        """
        shape = validate_shape(shape)
        storage = Storage.wrap(buffer, dtype)
        if storage.length != numel_of(shape):
            raise SizeMismatchError(
                actual=(storage.length,),
                expected=shape,
                message=f"Data length ({storage.length}) does not match shape {shape} (numel: {numel_of(shape)})",
            )
        return cls(storage, shape)

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> "TensorView":
        """
        Build a tensor from a numpy array, sharing memory when it is C-contiguous.

        A non-contiguous array is copied into a contiguous buffer first.
        """
        dtype = ScalarType.from_numpy(array.dtype)
        contiguous = np.ascontiguousarray(array, dtype=dtype.numpy_dtype)
        shape = contiguous.shape if contiguous.ndim > 0 else (1,)
        return cls.from_buffer(contiguous.reshape(-1), dtype, shape)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def dtype(self) -> ScalarType:
        return self.storage.dtype

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def numel(self) -> int:
        return numel_of(self.shape)

    @property
    def byte_size(self) -> int:
        return self.numel * self.dtype.width

    @property
    def data(self) -> np.ndarray:
        """
        Flat numpy slice of this view's elements in row-major order.

        Shares memory with the storage, so writes are visible to every view.

        Raises:
            NotContiguousError: If the view is not contiguous
        """
        if not self.is_contiguous:
            raise NotContiguousError("Direct data access")
        return self.storage.buffer[self.offset : self.offset + self.numel]

    def _derive(self, shape: Sequence[int], strides: Sequence[int], layout: Optional[MemoryLayout] = None) -> "TensorView":
        return TensorView(
            storage=self.storage,
            shape=tuple(shape),
            strides=tuple(strides),
            offset=self.offset,
            layout=layout or self.layout,
        )

    # =========================================================================
    # Zero-Copy Transforms
    # =========================================================================

    def transpose(self, permutation: Sequence[int]) -> "TensorView":
        """
        Permute dimensions without copying.

        ``shape[i] = old_shape[perm[i]]`` and ``strides[i] = old_strides[perm[i]]``.

        Raises:
            InvalidArgumentError: Wrong length, out-of-range or duplicate axis
        """
        permutation = validate_permutation(permutation, self.rank)
        return self._derive(
            [self.shape[axis] for axis in permutation],
            [self.strides[axis] for axis in permutation],
        )

    def squeeze(self, dim: Optional[int] = None) -> "TensorView":
        """
        Remove size-1 dimensions.

        With ``dim``, only that dimension is removed, and only if its size is
        1; otherwise the view is returned unchanged. Retained strides are
        copied verbatim. A view whose dimensions are all size 1 keeps its
        last dimension so the rank stays >= 1.

        Raises:
            IndexOutOfRangeError: If ``dim`` is outside ``[0, rank)``
        """
        if dim is not None:
            if dim < 0 or dim >= self.rank:
                raise IndexOutOfRangeError("dim", dim, (0, self.rank - 1))
            if self.shape[dim] != 1 or self.rank == 1:
                return self
            keep = [d for d in range(self.rank) if d != dim]
        else:
            keep = [d for d in range(self.rank) if self.shape[d] != 1]
            if not keep:
                keep = [self.rank - 1]
            if len(keep) == self.rank:
                return self

        return self._derive(
            [self.shape[d] for d in keep],
            [self.strides[d] for d in keep],
        )

    def unsqueeze(self, dim: int) -> "TensorView":
        """
        Insert a size-1 dimension at ``dim``.

        The inserted stride is ``stride[dim] * shape[dim]`` of the dimension
        that follows the insertion point, or 1 when appended at the end.

        Raises:
            IndexOutOfRangeError: If ``dim`` is outside ``[0, rank]``
        """
        if dim < 0 or dim > self.rank:
            raise IndexOutOfRangeError("dim", dim, (0, self.rank))

        inserted = self.strides[dim] * self.shape[dim] if dim < self.rank else 1
        shape = list(self.shape)
        strides = list(self.strides)
        shape.insert(dim, 1)
        strides.insert(dim, inserted)
        return self._derive(shape, strides)

    def reshape(self, shape: Sequence[int]) -> "TensorView":
        """
        Reinterpret a contiguous view with a new row-major shape.

        Never copies: call ``contiguous()`` first for non-contiguous views.

        Raises:
            InvalidShapeError: If ``shape`` is empty or non-positive
            SizeMismatchError: If ``shape`` has a different element count
            NotContiguousError: If this view is not contiguous
        """
        shape = validate_shape(shape)
        if numel_of(shape) != self.numel:
            raise SizeMismatchError(
                actual=self.shape,
                expected=shape,
                message=f"Cannot reshape tensor of size {self.numel} to {shape} (size {numel_of(shape)})",
            )
        if not self.is_contiguous:
            raise NotContiguousError("reshape")

        return self._derive(
            shape,
            compute_strides(shape, MemoryLayout.CONTIGUOUS),
            layout=MemoryLayout.CONTIGUOUS,
        )

    # =========================================================================
    # Materialising Transforms
    # =========================================================================

    def contiguous(self) -> "TensorView":
        """Return ``self`` if contiguous, otherwise a row-major copy."""
        if self.is_contiguous:
            return self
        return self._materialize()

    def clone(self) -> "TensorView":
        """Always return a new contiguous copy with its own storage."""
        return self._materialize()

    def _materialize(self) -> "TensorView":
        buffer = self.storage.buffer[self.element_offsets().reshape(-1)]
        return TensorView(Storage(buffer, self.dtype), self.shape)

    def element_offsets(self) -> np.ndarray:
        """
        Storage offset of every element, as an array shaped like the view.

        Iterating the result in row-major order walks the view's elements
        in row-major order.
        """
        offsets = np.full(self.shape, self.offset, dtype=np.int64)
        for d, (size, stride) in enumerate(zip(self.shape, self.strides)):
            axis_shape = [1] * self.rank
            axis_shape[d] = size
            offsets += (np.arange(size, dtype=np.int64) * stride).reshape(axis_shape)
        return offsets

    def to_numpy(self) -> np.ndarray:
        """Copy the elements into a new numpy array with this view's shape."""
        return self.storage.buffer[self.element_offsets()]

    # =========================================================================
    # Element Access
    # =========================================================================

    def storage_offset(self, indices: Sequence[int]) -> int:
        """
        Storage offset of a multi-index.

        Raises:
            InvalidArgumentError: If ``len(indices) != rank``
            IndexOutOfRangeError: If a component is outside ``[0, shape[d])``
        """
        if len(indices) != self.rank:
            raise InvalidArgumentError(
                f"indices length ({len(indices)}) must match rank ({self.rank})"
            )

        position = self.offset
        for d, (index, size, stride) in enumerate(zip(indices, self.shape, self.strides)):
            if index < 0 or index >= size:
                raise IndexOutOfRangeError(f"indices[{d}]", index, (0, size - 1))
            position += index * stride
        return position

    def get(self, indices: Sequence[int]) -> float:
        """Read the element at ``indices`` as a double."""
        return self.storage.get(self.storage_offset(indices))

    def __getitem__(self, indices: Union[int, Sequence[int]]) -> float:
        if isinstance(indices, Integral):
            indices = (indices,)
        return self.get(tuple(indices))

    def __repr__(self) -> str:
        return (
            f"TensorView(shape={list(self.shape)}, dtype={self.dtype}, "
            f"strides={list(self.strides)}, contiguous={self.is_contiguous})"
        )
