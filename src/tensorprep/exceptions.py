"""
Tensor Error Taxonomy

Every failure raised by tensorprep is a contract violation: synchronous,
immediate and never retryable. Each error also derives from the closest
builtin exception so callers that only know about ``ValueError`` or
``IndexError`` keep working.

Classes:
    TensorError: Base class for all tensorprep errors
    ShapeMismatchError: Shape or rank incompatible with an operation
    SizeMismatchError: Element count does not match a requested shape
    InvalidShapeError: Shape is empty or has a non-positive dimension
    NotContiguousError: Operation requires a contiguous view
    InvalidParameterError: Out-of-domain operation parameter
    InvalidArgumentError: Structurally invalid index/axis argument
    IndexOutOfRangeError: Index outside its valid bounds
    TypeMismatchError: Buffer type disagrees with the declared scalar type
    UnsupportedLayoutError: Memory layout not defined for the given rank
    EmptyPipelineError: Pipeline created without operations
    DispatchTimeoutError: Worker dispatch exceeded its time budget
"""

from typing import Any, Optional, Sequence, Tuple


class TensorError(Exception):
    """Base class for all tensorprep errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __reduce__(self) -> Tuple[Any, ...]:
        # Subclass constructors take structured arguments; unpickling
        # rebuilds from the message and attributes instead
        return (_rebuild_error, (type(self), self.message, dict(self.__dict__)))


def _rebuild_error(cls: type, message: str, state: dict) -> TensorError:
    error = cls.__new__(cls)
    TensorError.__init__(error, message)
    error.__dict__.update(state)
    return error


class ShapeMismatchError(TensorError, ValueError):
    """
    Actual shape or rank is incompatible with the operation's requirement.

    Attributes:
        actual: The shape that was provided
        expected: Expected shape hint, if known
    """

    def __init__(
        self,
        actual: Sequence[int],
        expected: Optional[Sequence[int]] = None,
        message: Optional[str] = None,
    ) -> None:
        self.actual = tuple(actual)
        self.expected = tuple(expected) if expected is not None else None
        super().__init__(
            message or f"Shape mismatch: expected {self.expected}, got {self.actual}"
        )

    @classmethod
    def rank(
        cls,
        expected_ranks: Sequence[int],
        actual: Sequence[int],
        operation: str,
    ) -> "ShapeMismatchError":
        """Build an error for a rank that is not one of ``expected_ranks``."""
        ranks = " or ".join(f"{r}D" for r in expected_ranks)
        return cls(
            actual=actual,
            message=f"{operation} requires a {ranks} tensor, got {len(actual)}D {tuple(actual)}",
        )


class SizeMismatchError(ShapeMismatchError):
    """Element count of a buffer or view does not match the requested shape."""


class InvalidShapeError(TensorError, ValueError):
    """Shape is empty or contains a non-positive dimension."""

    def __init__(self, shape: Sequence[int], reason: str) -> None:
        self.shape = tuple(shape)
        super().__init__(f"Invalid shape {self.shape}: {reason}")


class NotContiguousError(TensorError, ValueError):
    """A contiguity-requiring operation was invoked on a non-contiguous view."""

    def __init__(self, operation: Optional[str] = None) -> None:
        self.operation = operation
        target = operation or "Operation"
        super().__init__(
            f"{target} requires a contiguous tensor. Call contiguous() first."
        )


class InvalidParameterError(TensorError, ValueError):
    """
    A parameter value is outside its domain.

    Attributes:
        name: Parameter name
        value: Offending value
        reason: Optional explanation
    """

    def __init__(self, name: str, value: Any, reason: Optional[str] = None) -> None:
        self.name = name
        self.value = value
        self.reason = reason
        message = f'Invalid parameter "{name}": {value!r}'
        if reason:
            message = f"{message}. {reason}"
        super().__init__(message)


class InvalidArgumentError(TensorError, ValueError):
    """An index vector or axis list fails a structural check."""


class IndexOutOfRangeError(TensorError, IndexError):
    """
    An index lies outside its valid half-open or closed range.

    Attributes:
        index: The offending index
        bounds: (low, high) inclusive bounds that were allowed
    """

    def __init__(self, name: str, index: int, bounds: Tuple[int, int]) -> None:
        self.index = index
        self.bounds = bounds
        super().__init__(
            f"{name} {index} out of range [{bounds[0]}, {bounds[1]}]"
        )


class TypeMismatchError(TensorError, TypeError):
    """A wrapped buffer's physical type disagrees with its declared scalar type."""

    def __init__(self, expected: Any, actual: Any) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"DType mismatch: expected {expected}, but data is {actual}")


class UnsupportedLayoutError(TensorError, ValueError):
    """The requested memory layout is not defined for this rank."""


class EmptyPipelineError(TensorError, ValueError):
    """A pipeline must contain at least one operation."""

    def __init__(self) -> None:
        super().__init__("Pipeline must contain at least one operation")


class DispatchTimeoutError(TensorError, TimeoutError):
    """A pipeline dispatched to a worker did not finish in time."""

    def __init__(self, pipeline: str, timeout: float) -> None:
        self.pipeline = pipeline
        self.timeout = timeout
        super().__init__(f"{pipeline} did not finish within {timeout:.3f}s")
