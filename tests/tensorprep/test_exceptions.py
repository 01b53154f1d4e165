"""
Unit Tests for the Error Taxonomy

This module tests exceptions.py:
- Messages and structured attributes
- Builtin base classes
- Pickling (errors cross process boundaries during dispatch)
"""

import pickle

import pytest

from tensorprep.exceptions import (
    DispatchTimeoutError,
    EmptyPipelineError,
    IndexOutOfRangeError,
    InvalidParameterError,
    NotContiguousError,
    ShapeMismatchError,
    SizeMismatchError,
    TensorError,
    TypeMismatchError,
)


class TestMessages:
    """Tests for messages and attributes."""

    def test_shape_mismatch_default_message(self) -> None:
        """Without a message, expected and actual shapes are listed."""
        error = ShapeMismatchError((1, 2), (3, 4))
        assert str(error) == "Shape mismatch: expected (3, 4), got (1, 2)"

    def test_rank_constructor(self) -> None:
        """Rank errors name the operation and accepted ranks."""
        error = ShapeMismatchError.rank((3, 4), (5, 5), "Resize")
        assert str(error) == "Resize requires a 3D or 4D tensor, got 2D (5, 5)"

    def test_invalid_parameter(self) -> None:
        """Parameter errors carry name, value and reason."""
        error = InvalidParameterError("scale", 0, "Cannot be zero")

        assert str(error) == 'Invalid parameter "scale": 0. Cannot be zero'
        assert (error.name, error.value, error.reason) == ("scale", 0, "Cannot be zero")

    def test_not_contiguous(self) -> None:
        """The operation name is included when known."""
        assert str(NotContiguousError("reshape")).startswith("reshape requires a contiguous tensor")
        assert str(NotContiguousError()).startswith("Operation requires")

    def test_index_out_of_range(self) -> None:
        """Bounds are inclusive in the message."""
        error = IndexOutOfRangeError("dim", 5, (0, 3))
        assert str(error) == "dim 5 out of range [0, 3]"

    def test_dispatch_timeout(self) -> None:
        """Timeouts name the pipeline and the budget."""
        assert str(DispatchTimeoutError("CLIP", 0.5)) == "CLIP did not finish within 0.500s"


class TestHierarchy:
    """Tests for base classes."""

    @pytest.mark.parametrize(
        "error,builtin",
        [
            (ShapeMismatchError((1,)), ValueError),
            (SizeMismatchError((1,)), ShapeMismatchError),
            (InvalidParameterError("x", 1), ValueError),
            (IndexOutOfRangeError("i", 1, (0, 0)), IndexError),
            (TypeMismatchError("uint8", "float32"), TypeError),
            (EmptyPipelineError(), ValueError),
            (DispatchTimeoutError("p", 1.0), TimeoutError),
        ],
    )
    def test_builtin_bases(self, error: TensorError, builtin: type) -> None:
        """Every error is a TensorError and its closest builtin."""
        assert isinstance(error, TensorError)
        assert isinstance(error, builtin)


class TestPickling:
    """Tests for pickling."""

    @pytest.mark.parametrize(
        "error",
        [
            ShapeMismatchError.rank((3, 4), (5,), "Resize"),
            InvalidParameterError("std[1]", 0.0, "Standard deviation cannot be zero"),
            IndexOutOfRangeError("dim", 5, (0, 3)),
            NotContiguousError("reshape"),
            EmptyPipelineError(),
            DispatchTimeoutError("CLIP", 2.0),
        ],
    )
    def test_round_trip(self, error: TensorError) -> None:
        """Type, message and attributes survive pickling."""
        restored = pickle.loads(pickle.dumps(error))

        assert type(restored) is type(error)
        assert str(restored) == str(error)
        assert restored.__dict__ == error.__dict__
