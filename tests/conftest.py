"""
Pytest Fixtures - Shared Test Fixtures for tensorprep

This module provides reusable fixtures for all test modules.

Fixtures:
    sample_image: Sample HWC uint8 image (48x64) as a TensorView
    sample_image_square: Sample square HWC uint8 image (32x32) as a TensorView
    sample_chw: Sample CHW float32 tensor (3x8x10)
    sample_nchw: Sample NCHW float32 tensor (2x3x6x5)
    arange_view: Factory for row-major tensors holding 0..numel-1
    clean_config: Resets cached settings and catalog around a test
"""

from typing import Callable, Iterator, Sequence

import numpy as np
import pytest

from tensorprep.config import get_config
from tensorprep.core.dtype import ScalarType
from tensorprep.core.view import TensorView
from tensorprep.settings import get_settings


# =============================================================================
# Image Fixtures
# =============================================================================

@pytest.fixture
def sample_image() -> TensorView:
    """
    Sample landscape RGB image for testing.

    Returns:
        HWC uint8 TensorView with shape [48, 64, 3]
    """
    rng = np.random.default_rng(42)
    return TensorView.from_numpy(rng.integers(0, 256, (48, 64, 3), dtype=np.uint8))


@pytest.fixture
def sample_image_square() -> TensorView:
    """
    Sample square RGB image for testing.

    Returns:
        HWC uint8 TensorView with shape [32, 32, 3]
    """
    rng = np.random.default_rng(43)
    return TensorView.from_numpy(rng.integers(0, 256, (32, 32, 3), dtype=np.uint8))


# =============================================================================
# Tensor Fixtures
# =============================================================================

@pytest.fixture
def sample_chw() -> TensorView:
    """CHW float32 tensor with values in [0, 1), shape [3, 8, 10]."""
    rng = np.random.default_rng(44)
    return TensorView.from_numpy(rng.random((3, 8, 10), dtype=np.float32))


@pytest.fixture
def sample_nchw() -> TensorView:
    """NCHW float32 tensor with values in [0, 1), shape [2, 3, 6, 5]."""
    rng = np.random.default_rng(45)
    return TensorView.from_numpy(rng.random((2, 3, 6, 5), dtype=np.float32))


@pytest.fixture
def arange_view() -> Callable[..., TensorView]:
    """Factory building a row-major tensor holding 0, 1, ..., numel - 1."""

    def _make(shape: Sequence[int], dtype: ScalarType = ScalarType.FLOAT32) -> TensorView:
        numel = int(np.prod(shape))
        buffer = np.arange(numel).astype(dtype.numpy_dtype)
        return TensorView.from_buffer(buffer, dtype, shape)

    return _make


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def clean_config() -> Iterator[None]:
    """Clear settings and catalog caches before and after a test."""
    get_settings.cache_clear()
    get_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_config.cache_clear()
