"""Conversion of RGB images into predictor input tensors.

The vessel predictor expects a 3-channel tensor but is trained on the green
channel only: the linearized green intensity is replicated into all three
channels. Linearization happens after resizing and before the channel is
extracted, and the result is requantized to 8 bits, as when drawing into an
8-bit linear-sRGB canvas.
"""

import cv2
import numpy as np

from vesselflow.errors import ConversionFailed
from vesselflow.utils import as_rgb_image

RESAMPLE = cv2.INTER_LINEAR


def srgb_to_linear(values: np.ndarray) -> np.ndarray:
    """Apply the sRGB transfer function to values in [0, 1]."""
    values = np.asarray(values, dtype=np.float64)
    return np.where(
        values <= 0.04045,
        values / 12.92,
        ((values + 0.055) / 1.055) ** 2.4,
    )


# 8-bit sRGB code value -> 8-bit linear code value
_LINEAR_LUT = np.round(srgb_to_linear(np.arange(256) / 255.0) * 255.0).astype(np.uint8)


def linearize_uint8(image: np.ndarray) -> np.ndarray:
    """Convert a gamma-encoded uint8 image to linear light, channel-wise."""
    if image.dtype != np.uint8:
        raise ConversionFailed(f"Expected uint8 image, got {image.dtype}")
    return _LINEAR_LUT[image]


def resize_image(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resize with the pipeline's resample policy; no-op if already sized."""
    if image.shape[0] == height and image.shape[1] == width:
        return image
    try:
        return cv2.resize(image, (width, height), interpolation=RESAMPLE)
    except cv2.error as e:
        raise ConversionFailed(f"Resize to {width}x{height} failed: {e}") from e


class ColorNormalizer:
    """Turns an RGB image into a normalized (3, H, W) float32 tensor."""

    def __init__(self, channel: int = 1) -> None:
        self.channel = channel  # green

    def normalize(self, image: np.ndarray, target_width: int, target_height: int) -> np.ndarray:
        """Resize, linearize and replicate the green channel.

        Parameters
        ----------
        image : np.ndarray
            Image of shape (H, W, 3), (H, W, 4) or (H, W)
        target_width, target_height : int
            Spatial size of the produced tensor

        Returns
        -------
        np.ndarray
            Tensor of shape (3, target_height, target_width), values in [0, 1]

        Raises
        ------
        ConversionFailed
            If the image cannot be resized or converted
        """
        if target_width <= 0 or target_height <= 0:
            raise ConversionFailed(f"Invalid target size {target_width}x{target_height}")

        rgb = as_rgb_image(image)
        resized = resize_image(rgb, target_width, target_height)
        linear = linearize_uint8(resized)

        green = linear[:, :, self.channel].astype(np.float32) / np.float32(255.0)
        return np.ascontiguousarray(np.broadcast_to(green, (3, target_height, target_width)))

    @staticmethod
    def to_batch(tensor: np.ndarray) -> np.ndarray:
        """Add the leading batch axis: (3, H, W) -> (1, 3, H, W)."""
        return tensor[np.newaxis, ...].astype(np.float32, copy=False)
