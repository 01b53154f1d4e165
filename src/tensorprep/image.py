"""
Image I/O Bridge

Decodes images with OpenCV and wraps them as HWC uint8 TensorViews, the
input format every preset expects, and writes HWC uint8 views back out.

Functions:
    load_image: Load image file as an RGB HWC uint8 TensorView
    load_image_from_bytes: Decode image bytes as an RGB HWC uint8 TensorView
    image_to_view: Wrap an RGB numpy image as a TensorView
    view_to_image: Copy an HWC view into an RGB numpy image
    save_image: Encode an HWC uint8 view to an image file
"""

from pathlib import Path
from typing import Union

import cv2
import numpy as np

from tensorprep.core.dtype import ScalarType
from tensorprep.core.view import TensorView
from tensorprep.exceptions import ShapeMismatchError, TypeMismatchError


# =============================================================================
# Image Loading
# =============================================================================

def load_image(image_path: Union[str, Path]) -> TensorView:
    """
    Load an image file as an RGB tensor.

    Uses OpenCV for decoding with explicit BGR to RGB conversion for
    consistency with model training pipelines.

    Args:
        image_path: Path to image file (JPEG, PNG, etc.)

    Returns:
        RGB uint8 TensorView with shape [H, W, 3]

    Raises:
        ValueError: If image cannot be loaded (file not found or corrupted)

    Example:
        >>> image = load_image("path/to/image.jpg")
        >>> image.shape
        (1080, 1920, 3)
        >>> image.dtype
        <ScalarType.UINT8: 'uint8'>
    """
    bgr = cv2.imread(str(image_path), cv2.IMREAD_COLOR)

    if bgr is None:
        raise ValueError(f"Failed to load image: {image_path}")

    return image_to_view(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))


def load_image_from_bytes(image_bytes: bytes) -> TensorView:
    """
    Decode image bytes as an RGB tensor.

    Args:
        image_bytes: Raw image bytes (JPEG, PNG, etc.)

    Returns:
        RGB uint8 TensorView with shape [H, W, 3]

    Raises:
        ValueError: If image cannot be decoded
    """
    if not image_bytes:
        raise ValueError("Failed to decode image from bytes: empty input")

    nparr = np.frombuffer(image_bytes, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ValueError("Failed to decode image from bytes")

    return image_to_view(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))


# =============================================================================
# Conversion
# =============================================================================

def image_to_view(image: np.ndarray) -> TensorView:
    """
    Wrap an HWC image array as a TensorView.

    Grayscale ``[H, W]`` arrays gain a trailing channel dimension. Memory is
    shared when the array is already C-contiguous.

    Raises:
        ShapeMismatchError: If the array is not 2D or 3D
    """
    if image.ndim == 2:
        image = image[:, :, np.newaxis]
    if image.ndim != 3:
        raise ShapeMismatchError(actual=image.shape, message="Expected an [H, W] or [H, W, C] image")
    return TensorView.from_numpy(image)


def view_to_image(view: TensorView) -> np.ndarray:
    """Copy an HWC or NHWC view into a new numpy array of the same dtype."""
    if view.rank not in (3, 4):
        raise ShapeMismatchError.rank((3, 4), view.shape, "view_to_image")
    return view.to_numpy()


def save_image(view: TensorView, image_path: Union[str, Path]) -> None:
    """
    Encode an RGB HWC uint8 view to ``image_path``.

    Raises:
        TypeMismatchError: If the view is not uint8
        ShapeMismatchError: If the view is not [H, W, 1] or [H, W, 3]
        ValueError: If OpenCV cannot encode the file
    """
    if view.dtype is not ScalarType.UINT8:
        raise TypeMismatchError(expected=ScalarType.UINT8, actual=view.dtype)
    if view.rank != 3 or view.shape[2] not in (1, 3):
        raise ShapeMismatchError(actual=view.shape, message="save_image expects an [H, W, 1] or [H, W, 3] view")

    pixels = view.to_numpy()
    if pixels.shape[2] == 3:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)

    if not cv2.imwrite(str(image_path), pixels):
        raise ValueError(f"Failed to write image: {image_path}")
