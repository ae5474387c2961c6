"""Probability map reconstruction from overlapping patch outputs."""

import threading

import numpy as np

from vesselflow.core import BBox, Image2D, PatchSpec


class TileStitcher:
    """Accumulates patch probabilities and averages them per pixel.

    Overlapping pixels receive several contributions (up to four at patch
    corners); the final value is their plain mean. Only the valid, top-left
    region of each patch output is read, so padding never reaches the
    buffers.

    Examples
    --------
    >>> stitcher = TileStitcher(width=400, height=400)
    >>> for spec in plan_patches(400, 400):
    ...     stitcher.blend(predict(spec), spec)
    >>> probability = stitcher.finalize()
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Output size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self._sum = np.zeros((height, width), dtype=np.float32, order="C")
        self._count = np.zeros((height, width), dtype=np.float32, order="C")
        self._lock = threading.Lock()
        self.patches_blended = 0

    @property
    def bounds(self) -> BBox:
        return BBox(0, 0, self.width, self.height)

    @property
    def total(self) -> np.ndarray:
        return self._sum.copy()

    @property
    def coverage(self) -> np.ndarray:
        return self._count.copy()

    def blend(self, patch_probabilities: np.ndarray, spec: PatchSpec) -> None:
        """Add the valid region of one patch output into the buffers."""
        if patch_probabilities.ndim != 2:
            raise ValueError(
                f"Patch output must be 2-D, got shape {patch_probabilities.shape}"
            )
        ph, pw = patch_probabilities.shape
        if ph < spec.valid_height or pw < spec.valid_width:
            raise ValueError(
                f"Patch output {patch_probabilities.shape} is smaller than valid region "
                f"{(spec.valid_height, spec.valid_width)}"
            )
        if not self.bounds.contains_box(spec.bbox):
            raise ValueError(f"Patch {spec.bbox} lies outside output bounds {self.bounds}")

        valid = patch_probabilities[: spec.valid_height, : spec.valid_width]
        target = spec.get_slices()
        with self._lock:
            self._sum[target] += valid
            self._count[target] += 1.0
            self.patches_blended += 1

    def finalize(self) -> Image2D:
        """Return ``sum / count`` per pixel, 0 where nothing was blended."""
        result = np.zeros_like(self._sum)
        np.divide(self._sum, self._count, out=result, where=self._count > 0)
        return result

    def uncovered_pixels(self) -> int:
        return int(np.count_nonzero(self._count == 0))
