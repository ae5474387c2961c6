"""Binary mask thresholding and alpha-matte compositing."""

import cv2
import numpy as np

from vesselflow.errors import ConversionFailed, MaskCreationFailed
from vesselflow.normalization import RESAMPLE
from vesselflow.utils import as_rgb_image


class MaskRenderer:
    """Turns probability maps into masks and vessel cutouts."""

    def __init__(self, cutoff: float = 0.5) -> None:
        self.cutoff = cutoff

    def threshold(self, probability: np.ndarray, cutoff: float | None = None) -> np.ndarray:
        """Map ``probability > cutoff`` to 255 and everything else to 0.

        The comparison is strict, so a probability equal to the cutoff is
        background. NaN values are background as well.
        """
        cutoff = self.cutoff if cutoff is None else cutoff
        probability = np.asarray(probability)
        if probability.ndim != 2:
            raise MaskCreationFailed(
                f"Probability map must be 2-D, got shape {probability.shape}"
            )
        return np.where(probability > cutoff, 255, 0).astype(np.uint8)

    def composite(self, original: np.ndarray, mask: np.ndarray) -> np.ndarray:
        """Apply the mask as the alpha channel of the original image.

        The mask is resized to the original resolution with the same resample
        policy as normalization. Returns an (H, W, 4) RGBA uint8 image.
        """
        try:
            rgb = as_rgb_image(original)
        except ConversionFailed as e:
            raise MaskCreationFailed(str(e)) from e
        if mask.ndim != 2:
            raise MaskCreationFailed(f"Mask must be 2-D, got shape {mask.shape}")

        height, width = rgb.shape[:2]
        alpha = mask.astype(np.uint8, copy=False)
        if alpha.shape != (height, width):
            try:
                alpha = cv2.resize(alpha, (width, height), interpolation=RESAMPLE)
            except cv2.error as e:
                raise MaskCreationFailed(f"Mask resize failed: {e}") from e

        overlay = np.empty((height, width, 4), dtype=np.uint8)
        overlay[:, :, :3] = rgb
        overlay[:, :, 3] = alpha
        return overlay
