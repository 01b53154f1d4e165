"""
Core Module - Typed Storage and Strided Tensor Views

- dtype: The ten supported scalar types and the narrowing policy
- layout: Stride computation and permutation algebra
- storage: Fixed-length typed buffers
- view: Shape/stride/offset views over a shared storage
"""

from tensorprep.core.dtype import ScalarType, convert, round_half_away
from tensorprep.core.layout import (
    MemoryLayout,
    compute_strides,
    inverse_permutation,
    permute_shape,
    validate_permutation,
)
from tensorprep.core.storage import Storage
from tensorprep.core.view import TensorView, check_contiguous, numel_of, validate_shape

__all__ = [
    # Scalar types
    "ScalarType",
    "convert",
    "round_half_away",
    # Layout algebra
    "MemoryLayout",
    "compute_strides",
    "validate_permutation",
    "inverse_permutation",
    "permute_shape",
    # Storage and views
    "Storage",
    "TensorView",
    "validate_shape",
    "numel_of",
    "check_contiguous",
]
