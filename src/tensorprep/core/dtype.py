"""
Scalar Types

The closed set of ten element types a tensor can hold. Each member carries
its ONNX ``TensorProto.DataType`` code, which the inference runtime uses to
identify tensor payloads and must never be renumbered.

Functions:
    convert: Convert a numpy array to a scalar type using the narrowing policy

Narrowing policy:
    - Floating targets store values as-is (precision loss allowed)
    - Integer targets round half away from zero, then clamp into range
    - Integer-to-integer conversion clamps exactly, never through float64
"""

from enum import Enum
from typing import Union

import numpy as np

from tensorprep.exceptions import InvalidParameterError, TypeMismatchError


class ScalarType(Enum):
    """
    Element type of a tensor, compatible with ONNX TensorProto.DataType.

    Example:
        >>> ScalarType.FLOAT32.onnx_code
        1
        >>> ScalarType.UINT8.width
        1
        >>> ScalarType.from_onnx_code(7)
        <ScalarType.INT64: 'int64'>
    """

    FLOAT32 = "float32"
    FLOAT64 = "float64"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"

    @property
    def onnx_code(self) -> int:
        """ONNX TensorProto.DataType identifier."""
        return _ONNX_CODES[self]

    @property
    def numpy_dtype(self) -> np.dtype:
        """Native-endian numpy dtype backing this scalar type."""
        return np.dtype(self.value)

    @property
    def width(self) -> int:
        """Size of one element in bytes."""
        return self.numpy_dtype.itemsize

    @property
    def is_floating(self) -> bool:
        return self in (ScalarType.FLOAT32, ScalarType.FLOAT64)

    @property
    def is_integer(self) -> bool:
        return not self.is_floating

    @property
    def is_signed(self) -> bool:
        return self.is_floating or self.value.startswith("int")

    @property
    def min_value(self) -> Union[int, float]:
        if self.is_floating:
            return float(np.finfo(self.numpy_dtype).min)
        return int(np.iinfo(self.numpy_dtype).min)

    @property
    def max_value(self) -> Union[int, float]:
        if self.is_floating:
            return float(np.finfo(self.numpy_dtype).max)
        return int(np.iinfo(self.numpy_dtype).max)

    @classmethod
    def from_numpy(cls, dtype: Union[np.dtype, type, str]) -> "ScalarType":
        """
        Resolve the scalar type of a numpy dtype.

        Byte order is ignored, so ``'<f4'`` and ``'>f4'`` both map to FLOAT32.

        Raises:
            TypeMismatchError: If the dtype is not one of the ten scalar types
        """
        resolved = np.dtype(dtype)
        for member in cls:
            if resolved.kind == member.numpy_dtype.kind and resolved.itemsize == member.width:
                return member
        raise TypeMismatchError(expected="one of " + ", ".join(m.value for m in cls), actual=resolved)

    @classmethod
    def from_onnx_code(cls, code: int) -> "ScalarType":
        """
        Resolve a scalar type from its ONNX code.

        Raises:
            InvalidParameterError: If the code is not in the table
        """
        for member, member_code in _ONNX_CODES.items():
            if member_code == code:
                return member
        raise InvalidParameterError(
            "type_code", code, f"Known codes: {sorted(_ONNX_CODES.values())}"
        )

    def __str__(self) -> str:
        return self.value


_ONNX_CODES = {
    ScalarType.FLOAT32: 1,
    ScalarType.UINT8: 2,
    ScalarType.INT8: 3,
    ScalarType.UINT16: 4,
    ScalarType.INT16: 5,
    ScalarType.INT32: 6,
    ScalarType.INT64: 7,
    ScalarType.FLOAT64: 11,
    ScalarType.UINT32: 12,
    ScalarType.UINT64: 13,
}


# =============================================================================
# Conversion
# =============================================================================

def round_half_away(values: np.ndarray) -> np.ndarray:
    """Round to nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def convert(values: np.ndarray, target: ScalarType) -> np.ndarray:
    """
    Convert an array to ``target`` using the narrowing policy.

    Args:
        values: Array of any of the ten scalar types (typically float64)
        target: Scalar type to produce

    Returns:
        New array with dtype ``target.numpy_dtype`` and the same shape

    Raises:
        InvalidParameterError: If a NaN would be written to an integer type

    Example:
        >>> convert(np.array([-3.0, 2.5, 300.0]), ScalarType.UINT8)
        array([  0,   3, 255], dtype=uint8)
    """
    values = np.asarray(values)
    source = ScalarType.from_numpy(values.dtype)

    if target.is_floating:
        return values.astype(target.numpy_dtype)

    low, high = target.min_value, target.max_value

    if source.is_integer:
        # Clamp bounds are representable in the source type, so no float detour
        low = max(low, source.min_value)
        high = min(high, source.max_value)
        return np.clip(values, low, high).astype(target.numpy_dtype)

    as_float = values.astype(np.float64)
    if np.isnan(as_float).any():
        raise InvalidParameterError("value", float("nan"), f"Cannot store NaN in {target}")

    rounded = round_half_away(as_float)
    # float(high) may round up past the true maximum for 64-bit types
    upper = rounded >= float(high)
    lower = rounded <= float(low)
    result = np.where(upper | lower, 0.0, rounded).astype(target.numpy_dtype)
    result[upper] = high
    result[lower] = low
    return result
