"""
Image loading and saving (TIFF through tifffile, everything else through OpenCV).
"""

from pathlib import Path

import cv2
import numpy as np
from tifffile import imread, imwrite

from vesselflow.errors import NoInput

TIFF_SUFFIXES = (".tif", ".tiff")


def load_image(path: str | Path) -> np.ndarray:
    """Read an image as RGB, RGBA or grayscale numpy array."""
    path = Path(path)
    if not path.is_file():
        raise NoInput(f"Image file not found: {path}")

    if path.suffix.lower() in TIFF_SUFFIXES:
        image = imread(path)
        # planar (C, H, W) TIFFs -> (H, W, C)
        if image.ndim == 3 and image.shape[0] in (3, 4) and image.shape[2] not in (3, 4):
            image = np.moveaxis(image, 0, -1)
        return image

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise NoInput(f"Image file could not be decoded: {path}")
    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    elif image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return image


def save_image(path: str | Path, image: np.ndarray) -> None:
    """Write a mask (H, W) or an RGB/RGBA overlay."""
    path = Path(path)
    if path.suffix.lower() in TIFF_SUFFIXES:
        imwrite(path, image)
        return

    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    elif image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    if not cv2.imwrite(str(path), image):
        raise OSError(f"Could not write image to {path}")
