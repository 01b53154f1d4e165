"""
Typed Storage

A Storage owns one fixed-length, one-dimensional numpy buffer of a single
ScalarType. Views share storages to express zero-copy shape transforms;
the storage lives as long as any view references it.

Classes:
    Storage: Typed physical buffer with checked scalar and bulk access
"""

from numbers import Integral
from typing import Union

import numpy as np

from tensorprep.core.dtype import ScalarType, convert
from tensorprep.exceptions import (
    IndexOutOfRangeError,
    InvalidArgumentError,
    InvalidParameterError,
    TypeMismatchError,
)


class Storage:
    """
    Physical buffer backing one or more TensorViews.

    The buffer length is fixed at construction and its numpy dtype always
    matches ``dtype``. Writes narrow values to the storage type: floating
    types store as-is, integer types round half away from zero and clamp
    into range (an 8-bit unsigned slot clamps into [0, 255]).

    Example:
        >>> storage = Storage.wrap(np.array([1.0, 2.0, 3.0], dtype=np.float32), ScalarType.FLOAT32)
        >>> storage.length
        3
        >>> storage.get(1)
        2.0
        >>> storage.byte_size
        12
    """

    __slots__ = ("_buffer", "_dtype")

    def __init__(self, buffer: np.ndarray, dtype: ScalarType) -> None:
        """
        Wrap ``buffer`` without copying.

        Args:
            buffer: Numpy array whose dtype matches ``dtype``
            dtype: Declared scalar type

        Raises:
            TypeMismatchError: If ``buffer`` is not a numpy array of ``dtype``
            InvalidArgumentError: If ``buffer`` is not C-contiguous
        """
        if not isinstance(buffer, np.ndarray):
            raise TypeMismatchError(expected=f"numpy array of {dtype}", actual=type(buffer).__name__)

        actual = ScalarType.from_numpy(buffer.dtype)
        if actual is not dtype:
            raise TypeMismatchError(expected=dtype, actual=actual)

        if buffer.ndim != 1:
            if not buffer.flags["C_CONTIGUOUS"]:
                raise InvalidArgumentError(
                    "Cannot wrap a non-contiguous buffer; use np.ascontiguousarray first"
                )
            buffer = buffer.reshape(-1)

        self._buffer = buffer
        self._dtype = dtype

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def allocate(cls, dtype: ScalarType, length: int) -> "Storage":
        """Allocate a zero-filled storage of ``length`` elements."""
        if length < 0:
            raise InvalidParameterError("length", length, "Must be non-negative")
        return cls(np.zeros(length, dtype=dtype.numpy_dtype), dtype)

    @classmethod
    def wrap(cls, buffer: np.ndarray, dtype: ScalarType) -> "Storage":
        """Wrap caller-supplied data, validated against ``dtype``."""
        return cls(buffer, dtype)

    def clone(self) -> "Storage":
        """Deep copy with its own buffer."""
        return Storage(self._buffer.copy(), self._dtype)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def dtype(self) -> ScalarType:
        return self._dtype

    @property
    def length(self) -> int:
        return int(self._buffer.shape[0])

    @property
    def byte_size(self) -> int:
        return self.length * self._dtype.width

    @property
    def buffer(self) -> np.ndarray:
        """The underlying one-dimensional numpy buffer (shared, not copied)."""
        return self._buffer

    def __len__(self) -> int:
        return self.length

    # =========================================================================
    # Scalar Access
    # =========================================================================

    def get(self, index: int) -> float:
        """
        Read element ``index`` widened to double precision.

        Raises:
            IndexOutOfRangeError: If ``index`` is outside ``[0, length)``
        """
        self._check_bounds(index)
        return float(self._buffer[index])

    def item(self, index: int) -> Union[int, float]:
        """
        Read element ``index`` without widening to double.

        Integer storages return an exact Python ``int``, which keeps 64-bit
        values above 2**53 intact.
        """
        self._check_bounds(index)
        return self._buffer[index].item()

    def set(self, index: int, value: Union[int, float]) -> None:
        """
        Write ``value`` at ``index`` using the narrowing policy.

        Python integers written to integer storage are clamped exactly.

        Raises:
            IndexOutOfRangeError: If ``index`` is outside ``[0, length)``
            InvalidParameterError: If NaN is written to integer storage
        """
        self._check_bounds(index)

        if self._dtype.is_integer and isinstance(value, Integral):
            clamped = max(self._dtype.min_value, min(self._dtype.max_value, int(value)))
            self._buffer[index] = clamped
            return

        self._buffer[index] = convert(np.array([value], dtype=np.float64), self._dtype)[0]

    # =========================================================================
    # Bulk Access
    # =========================================================================

    def read(self, start: int = 0, count: int = -1) -> np.ndarray:
        """
        Read ``count`` elements starting at ``start`` as float64.

        Args:
            start: First element index
            count: Number of elements (-1 reads to the end)

        Returns:
            New float64 array
        """
        stop = self.length if count < 0 else start + count
        self._check_range(start, stop)
        return self._buffer[start:stop].astype(np.float64)

    def write(self, start: int, values: np.ndarray) -> None:
        """
        Write ``values`` starting at ``start`` using the narrowing policy.

        Conversion happens before any element is stored, so a failed write
        leaves the storage untouched.
        """
        flat = np.asarray(values).reshape(-1)
        stop = start + flat.shape[0]
        self._check_range(start, stop)
        converted = convert(flat, self._dtype)
        self._buffer[start:stop] = converted

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_bounds(self, index: int) -> None:
        if index < 0 or index >= self.length:
            raise IndexOutOfRangeError("index", index, (0, self.length - 1))

    def _check_range(self, start: int, stop: int) -> None:
        if start < 0 or start > self.length:
            raise IndexOutOfRangeError("start", start, (0, self.length))
        if stop < start or stop > self.length:
            raise IndexOutOfRangeError("stop", stop, (start, self.length))

    def __repr__(self) -> str:
        return f"Storage(dtype={self._dtype}, length={self.length})"
