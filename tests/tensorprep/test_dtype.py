"""
Unit Tests for Scalar Types

This module tests core/dtype.py:
- ONNX type codes and numpy dtype lookup
- Type attributes (width, signedness, range)
- The narrowing policy used by every write into storage
"""

import numpy as np
import pytest

from tensorprep.core.dtype import ScalarType, convert, round_half_away
from tensorprep.exceptions import InvalidParameterError, TypeMismatchError


# =============================================================================
# Type Codes
# =============================================================================

class TestTypeCodes:
    """Tests for ONNX code and numpy dtype lookup."""

    @pytest.mark.parametrize(
        "scalar_type,code",
        [
            (ScalarType.FLOAT32, 1),
            (ScalarType.UINT8, 2),
            (ScalarType.INT8, 3),
            (ScalarType.UINT16, 4),
            (ScalarType.INT16, 5),
            (ScalarType.INT32, 6),
            (ScalarType.INT64, 7),
            (ScalarType.FLOAT64, 11),
            (ScalarType.UINT32, 12),
            (ScalarType.UINT64, 13),
        ],
    )
    def test_onnx_code_table(self, scalar_type: ScalarType, code: int) -> None:
        """Codes must match ONNX TensorProto.DataType exactly."""
        assert scalar_type.onnx_code == code
        assert ScalarType.from_onnx_code(code) is scalar_type

    def test_ten_scalar_types(self) -> None:
        """The scalar type set is closed at ten members."""
        assert len(ScalarType) == 10

    def test_unknown_onnx_code_raises(self) -> None:
        """Unsupported codes (e.g. 16 = bfloat16) are rejected."""
        with pytest.raises(InvalidParameterError, match="type_code"):
            ScalarType.from_onnx_code(16)

    @pytest.mark.parametrize("scalar_type", list(ScalarType))
    def test_from_numpy_round_trip(self, scalar_type: ScalarType) -> None:
        """Every scalar type resolves back from its own numpy dtype."""
        assert ScalarType.from_numpy(scalar_type.numpy_dtype) is scalar_type

    def test_from_numpy_ignores_byte_order(self) -> None:
        """Big-endian dtypes map to the same scalar type."""
        assert ScalarType.from_numpy(">f4") is ScalarType.FLOAT32
        assert ScalarType.from_numpy("<i8") is ScalarType.INT64

    @pytest.mark.parametrize("dtype", [np.float16, np.bool_, np.complex64])
    def test_from_numpy_unsupported(self, dtype: type) -> None:
        """Dtypes outside the closed set raise TypeMismatchError."""
        with pytest.raises(TypeMismatchError):
            ScalarType.from_numpy(dtype)


# =============================================================================
# Attributes
# =============================================================================

class TestAttributes:
    """Tests for width, signedness and range."""

    @pytest.mark.parametrize(
        "scalar_type,width",
        [
            (ScalarType.INT8, 1),
            (ScalarType.UINT16, 2),
            (ScalarType.FLOAT32, 4),
            (ScalarType.INT64, 8),
            (ScalarType.FLOAT64, 8),
        ],
    )
    def test_width(self, scalar_type: ScalarType, width: int) -> None:
        """Width is the element size in bytes."""
        assert scalar_type.width == width

    def test_signedness(self) -> None:
        """Floats and intN are signed; uintN are not."""
        assert ScalarType.FLOAT32.is_signed
        assert ScalarType.INT16.is_signed
        assert not ScalarType.UINT32.is_signed
        assert ScalarType.FLOAT64.is_floating
        assert ScalarType.UINT8.is_integer

    def test_integer_ranges(self) -> None:
        """Integer ranges come from the two's complement bit width."""
        assert (ScalarType.UINT8.min_value, ScalarType.UINT8.max_value) == (0, 255)
        assert (ScalarType.INT8.min_value, ScalarType.INT8.max_value) == (-128, 127)
        assert ScalarType.UINT64.max_value == 2**64 - 1
        assert ScalarType.INT64.min_value == -(2**63)

    def test_str_is_value(self) -> None:
        """str() gives the lowercase type name."""
        assert str(ScalarType.UINT16) == "uint16"


# =============================================================================
# Narrowing Policy
# =============================================================================

class TestConvert:
    """Tests for convert and round_half_away."""

    def test_round_half_away_from_zero(self) -> None:
        """Ties round away from zero, not to even."""
        values = np.array([0.5, 1.5, 2.5, -0.5, -2.5, 2.4, -2.6])
        assert round_half_away(values).tolist() == [1.0, 2.0, 3.0, -1.0, -3.0, 2.0, -3.0]

    def test_uint8_clamps(self) -> None:
        """Out-of-range values clamp into [0, 255] rather than wrapping."""
        result = convert(np.array([-3.0, 2.5, 254.6, 300.0]), ScalarType.UINT8)
        assert result.dtype == np.uint8
        assert result.tolist() == [0, 3, 255, 255]

    def test_int8_clamps_both_sides(self) -> None:
        """Signed narrowing clamps at both bounds."""
        result = convert(np.array([-1000.0, -128.4, 127.4, 1000.0]), ScalarType.INT8)
        assert result.tolist() == [-128, -128, 127, 127]

    def test_float_target_stores_as_is(self) -> None:
        """Floating targets keep fractional values."""
        result = convert(np.array([0.1, -2.75]), ScalarType.FLOAT32)
        assert result.dtype == np.float32
        assert np.allclose(result, [0.1, -2.75])

    def test_int64_to_int64_exact(self) -> None:
        """Large 64-bit integers never pass through double precision."""
        big = 2**53 + 1
        result = convert(np.array([big, -big], dtype=np.int64), ScalarType.INT64)
        assert result.tolist() == [big, -big]

    def test_int64_to_uint8_clamps_exactly(self) -> None:
        """Integer to integer narrowing clamps into the target range."""
        result = convert(np.array([-5, 100, 2**40], dtype=np.int64), ScalarType.UINT8)
        assert result.tolist() == [0, 100, 255]

    def test_float_to_int64_saturates(self) -> None:
        """Huge floats saturate at the exact 64-bit bounds."""
        result = convert(np.array([1e30, -1e30]), ScalarType.INT64)
        assert result.tolist() == [2**63 - 1, -(2**63)]

    def test_float_to_uint64_saturates(self) -> None:
        """The uint64 upper bound is exact, not rounded through float."""
        result = convert(np.array([1e30, -1.0]), ScalarType.UINT64)
        assert result.tolist() == [2**64 - 1, 0]

    def test_nan_to_integer_raises(self) -> None:
        """NaN has no integer representation."""
        with pytest.raises(InvalidParameterError):
            convert(np.array([1.0, np.nan]), ScalarType.INT32)

    def test_nan_to_float_allowed(self) -> None:
        """NaN is a valid floating value."""
        result = convert(np.array([np.nan]), ScalarType.FLOAT32)
        assert np.isnan(result[0])

    def test_preserves_shape(self) -> None:
        """Conversion is element-wise."""
        result = convert(np.zeros((2, 3)), ScalarType.INT16)
        assert result.shape == (2, 3)
