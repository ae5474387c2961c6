"""
Utility functions: validation, padding, image coercion and memory estimates.
"""

import warnings

import numpy as np
from skimage.util import img_as_ubyte

from vesselflow.errors import ConversionFailed


def validate_patch_size(patch_size: int) -> None:
    """Validate the patch size used for tiling."""
    if not isinstance(patch_size, int) or isinstance(patch_size, bool):
        raise ValueError(f"patch_size must be an integer, got {patch_size!r}")
    if patch_size <= 0:
        raise ValueError(f"patch_size must be positive, got {patch_size}")
    if patch_size < 32:
        warnings.warn(
            f"Very small patch size ({patch_size}) may impact performance",
            UserWarning,
            stacklevel=2,
        )


def validate_overlap(overlap: int, patch_size: int) -> None:
    """Validate overlap against patch size; step must stay positive."""
    if not isinstance(overlap, int) or isinstance(overlap, bool):
        raise ValueError(f"overlap must be an integer, got {overlap!r}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")
    if overlap >= patch_size:
        raise ValueError(
            f"overlap must be smaller than patch_size, got overlap={overlap} "
            f"and patch_size={patch_size}"
        )


def pad_to_size(array: np.ndarray, height: int, width: int, value: int = 0) -> np.ndarray:
    """Pad an (H, W) or (H, W, C) array at the bottom/right up to (height, width).

    The original content stays in the top-left corner.
    """
    if array.ndim not in (2, 3):
        raise ConversionFailed(f"Cannot pad array with {array.ndim} dimensions")
    h, w = array.shape[:2]
    if h == 0 or w == 0:
        raise ConversionFailed("Cannot pad an empty patch")
    if h > height or w > width:
        raise ConversionFailed(
            f"Patch of shape {(h, w)} is larger than target size {(height, width)}"
        )
    if h == height and w == width:
        return array
    pad_width = ((0, height - h), (0, width - w))
    if array.ndim == 3:
        pad_width = pad_width + ((0, 0),)
    return np.pad(array, pad_width, mode="constant", constant_values=value)


def as_rgb_image(image) -> np.ndarray:
    """Coerce an input image to an (H, W, 3) uint8 RGB array.

    Grayscale images are replicated to three channels and an alpha channel is
    dropped. Non-uint8 data is converted with ``img_as_ubyte``.
    """
    if not isinstance(image, np.ndarray):
        raise ConversionFailed(f"Expected np.ndarray, got {type(image).__name__}")
    if image.size == 0:
        raise ConversionFailed("Image is empty")

    if image.dtype != np.uint8:
        try:
            image = img_as_ubyte(image)
        except ValueError as e:
            raise ConversionFailed(f"Cannot convert image of dtype {image.dtype}: {e}") from e

    if image.ndim == 2:
        return np.repeat(image[:, :, np.newaxis], 3, axis=2)
    if image.ndim == 3 and image.shape[2] == 1:
        return np.repeat(image, 3, axis=2)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    if image.ndim == 3 and image.shape[2] == 4:
        return image[:, :, :3]
    raise ConversionFailed(f"Unsupported image shape {image.shape}")


def estimate_memory_usage(
    width: int,
    height: int,
    patch_size: int = 384,
    overlap: int = 64,
) -> dict:
    """Estimate memory needed to segment an image of the given size."""
    validate_overlap(overlap, patch_size)
    step = patch_size - overlap
    needs_tiling = width > patch_size or height > patch_size

    mb = 1024 * 1024
    image_mb = width * height * 3 / mb
    # input batch (1x3xPxP) plus output (1x1xPxP), float32
    patch_mb = patch_size * patch_size * 4 * 4 / mb

    if needs_tiling:
        rows = -(-height // step)
        cols = -(-width // step)
        total_patches = rows * cols
        # sum + count + final map, float32
        buffers_mb = width * height * 4 * 3 / mb
    else:
        total_patches = 1
        buffers_mb = 0.0

    # mask + RGBA overlay
    outputs_mb = width * height * 5 / mb

    return {
        "image_mb": image_mb,
        "buffers_mb": buffers_mb,
        "patch_mb": patch_mb,
        "peak_memory_mb": image_mb + buffers_mb + patch_mb + outputs_mb,
        "total_patches": total_patches,
        "processing_mode": "tiled" if needs_tiling else "single",
    }
