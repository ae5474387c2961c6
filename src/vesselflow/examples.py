"""Synthetic data and a toy predictor for demos and tests."""

import cv2
import numpy as np
from skimage.draw import disk, line_aa


def generate_fundus_image(
    shape: tuple[int, int] = (512, 512),
    seed: int | None = None,
    n_vessels: int = 12,
    vessel_width: int = 3,
) -> np.ndarray:
    """Create a fundus-like RGB image with dark branching vessels.

    Parameters
    ----------
    shape : tuple[int, int], default=(512, 512)
        Image size as (height, width)
    seed : int, optional
        Random seed for reproducibility
    n_vessels : int, default=12
        Number of random vessel polylines
    vessel_width : int, default=3
        Approximate vessel thickness in pixels

    Returns
    -------
    np.ndarray
        (H, W, 3) uint8 RGB image
    """
    rng = np.random.default_rng(seed)
    height, width = shape

    image = np.zeros((height, width, 3), dtype=np.float32)
    rr, cc = disk((height / 2, width / 2), min(height, width) * 0.48, shape=(height, width))
    image[rr, cc] = (200.0, 110.0, 60.0)

    vessels = np.zeros((height, width), dtype=np.float32)
    center = np.array([height / 2, width / 2])
    for _ in range(n_vessels):
        point = center + rng.normal(0, min(height, width) * 0.05, size=2)
        angle = rng.uniform(0, 2 * np.pi)
        for _ in range(8):
            angle += rng.normal(0, 0.3)
            step = rng.uniform(0.04, 0.1) * min(height, width)
            nxt = point + step * np.array([np.sin(angle), np.cos(angle)])
            r0, c0 = np.clip(point.astype(int), 0, [height - 1, width - 1])
            r1, c1 = np.clip(nxt.astype(int), 0, [height - 1, width - 1])
            lr, lc, val = line_aa(r0, c0, r1, c1)
            vessels[lr, lc] = np.maximum(vessels[lr, lc], val)
            point = nxt

    if vessel_width > 1:
        kernel = np.ones((vessel_width, vessel_width), dtype=np.uint8)
        vessels = cv2.dilate(vessels, kernel)
    vessels = cv2.GaussianBlur(vessels, (3, 3), 0)

    image *= (1.0 - 0.7 * vessels)[:, :, np.newaxis]
    image += rng.normal(0, 2.0, size=image.shape).astype(np.float32)
    return np.clip(image, 0, 255).astype(np.uint8)


class GreenThresholdPredictor:
    """Deterministic stand-in for the vessel network.

    Dark green intensities inside the fundus disc map to high vessel
    probability through a logistic curve.
    """

    def __init__(self, center: float = 0.08, sharpness: float = 40.0, floor: float = 0.01) -> None:
        self.center = center
        self.sharpness = sharpness
        self.floor = floor  # intensities below this are background, not vessel
        self.calls = 0

    def predict(self, batch: np.ndarray) -> np.ndarray:
        self.calls += 1
        green = batch[0, 1].astype(np.float32)
        probability = 1.0 / (1.0 + np.exp((green - self.center) * self.sharpness))
        probability[green < self.floor] = 0.0
        return probability[np.newaxis, np.newaxis].astype(np.float32)
