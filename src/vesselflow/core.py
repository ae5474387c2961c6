"""Core data structures: bounding boxes, patch specifications and results."""

from dataclasses import dataclass, field
from typing import Any

import numpy as np

Image2D = np.ndarray  # (H, W) float32 probability map or uint8 mask
ImageRGB = np.ndarray  # (H, W, 3) uint8
ImageRGBA = np.ndarray  # (H, W, 4) uint8


@dataclass(frozen=True)
class BBox:
    """Axis-aligned box with exclusive upper bounds, ``(x0, y0, x1, y1)``."""

    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def shape(self) -> tuple[int, int]:
        """Shape as (height, width), matching numpy ordering."""
        return (self.height, self.width)

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    @classmethod
    def from_size(cls, x: int, y: int, w: int, h: int) -> "BBox":
        return cls(x, y, x + w, y + h)

    def get_slices(self) -> tuple[slice, slice]:
        """Return (row, column) slices for numpy indexing."""
        return (slice(self.y0, self.y1), slice(self.x0, self.x1))

    def contains(self, x: int, y: int) -> bool:
        return self.x0 <= x < self.x1 and self.y0 <= y < self.y1

    def intersects(self, other: "BBox") -> bool:
        """True if the boxes share at least one pixel; touching edges do not count."""
        return (
            self.x0 < other.x1
            and other.x0 < self.x1
            and self.y0 < other.y1
            and other.y0 < self.y1
        )

    def contains_box(self, other: "BBox") -> bool:
        return (
            self.x0 <= other.x0
            and self.y0 <= other.y0
            and other.x1 <= self.x1
            and other.y1 <= self.y1
        )


@dataclass(frozen=True)
class PatchSpec:
    """Location and unpadded extent of one patch within the full image.

    The predictor always sees a ``patch_size x patch_size`` input; the part of
    it that lies inside the image is the valid region, anchored at the
    top-left. Padding, if any, sits at the bottom and right.
    """

    origin_x: int
    origin_y: int
    valid_width: int
    valid_height: int
    index: tuple[int, int] = (0, 0)  # (row, col) in the patch grid

    @property
    def bbox(self) -> BBox:
        return BBox.from_size(self.origin_x, self.origin_y, self.valid_width, self.valid_height)

    def get_slices(self) -> tuple[slice, slice]:
        return self.bbox.get_slices()

    def padding(self, patch_size: int) -> tuple[int, int]:
        """Return (pad_bottom, pad_right) needed to reach patch_size."""
        return (patch_size - self.valid_height, patch_size - self.valid_width)

    def is_padded(self, patch_size: int) -> bool:
        return self.valid_width < patch_size or self.valid_height < patch_size


@dataclass
class SegmentationResult:
    """Outputs of one segmentation request, owned by the caller."""

    mask: Image2D
    overlay: ImageRGBA
    probability: Image2D
    mode: str  # "single" or "tiled"
    stats: Any = None
    skipped: list[PatchSpec] = field(default_factory=list)

    @property
    def is_tiled(self) -> bool:
        return self.mode == "tiled"
