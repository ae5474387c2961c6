"""Patch grid planning for tiled inference."""

from collections.abc import Iterator

import numpy as np

from vesselflow.core import PatchSpec
from vesselflow.utils import validate_overlap, validate_patch_size


class PatchPlan:
    """Lazy, restartable sequence of patches covering an image.

    Each call to ``iter()`` starts a fresh row-major walk over the grid, so the
    plan can be consumed more than once without being materialized.
    """

    def __init__(self, image_width: int, image_height: int, patch_size: int, step: int) -> None:
        self.image_width = image_width
        self.image_height = image_height
        self.patch_size = patch_size
        self.step = step

    @property
    def origins_x(self) -> range:
        return range(0, self.image_width, self.step)

    @property
    def origins_y(self) -> range:
        return range(0, self.image_height, self.step)

    @property
    def grid_shape(self) -> tuple[int, int]:
        """Grid shape as (rows, cols)."""
        return (len(self.origins_y), len(self.origins_x))

    def __len__(self) -> int:
        rows, cols = self.grid_shape
        return rows * cols

    def __iter__(self) -> Iterator[PatchSpec]:
        for row, start_y in enumerate(self.origins_y):
            valid_height = min(self.patch_size, self.image_height - start_y)
            for col, start_x in enumerate(self.origins_x):
                valid_width = min(self.patch_size, self.image_width - start_x)
                yield PatchSpec(
                    origin_x=start_x,
                    origin_y=start_y,
                    valid_width=valid_width,
                    valid_height=valid_height,
                    index=(row, col),
                )

    def __repr__(self) -> str:
        return (
            f"PatchPlan(image={self.image_width}x{self.image_height}, "
            f"patch_size={self.patch_size}, step={self.step}, patches={len(self)})"
        )


class GridSpec:
    """Grid of fixed-size square patches with a fixed overlap.

    Origins advance by ``step = patch_size - overlap`` while they stay inside
    the image. The last origin of a row or column is not clamped, so the final
    patch may extend past the border; its valid region is truncated instead.

    Examples
    --------
    >>> grid = GridSpec(patch_size=384, overlap=64)
    >>> [(p.origin_x, p.origin_y) for p in grid.build_grid(400, 400)]
    [(0, 0), (320, 0), (0, 320), (320, 320)]
    """

    def __init__(self, patch_size: int, overlap: int = 0) -> None:
        validate_patch_size(patch_size)
        validate_overlap(overlap, patch_size)
        self.patch_size = patch_size
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.patch_size - self.overlap

    def grid_shape(self, image_width: int, image_height: int) -> tuple[int, int]:
        """Number of patches as (rows, cols)."""
        return self.build_grid(image_width, image_height).grid_shape

    def build_grid(self, image_width: int, image_height: int) -> PatchPlan:
        if image_width <= 0 or image_height <= 0:
            raise ValueError(
                f"Image size must be positive, got {image_width}x{image_height}"
            )
        return PatchPlan(image_width, image_height, self.patch_size, self.step)

    def coverage(self, image_width: int, image_height: int) -> np.ndarray:
        """Count how many valid patch regions cover each pixel, shape (H, W)."""
        counts = np.zeros((image_height, image_width), dtype=np.int32)
        for spec in self.build_grid(image_width, image_height):
            counts[spec.get_slices()] += 1
        return counts

    def preview(self, image: np.ndarray) -> None:
        """Display the valid region of every patch over the image."""
        import matplotlib.pyplot as plt
        from matplotlib.patches import Rectangle

        height, width = image.shape[:2]
        fig, ax = plt.subplots()
        ax.imshow(image, cmap="gray" if image.ndim == 2 else None)
        ax.axis("off")
        ax.set_aspect("equal")

        for spec in self.build_grid(width, height):
            ax.add_patch(
                Rectangle(
                    (spec.origin_x, spec.origin_y),
                    spec.valid_width,
                    spec.valid_height,
                    fill=False,
                    edgecolor="green" if not spec.is_padded(self.patch_size) else "orange",
                    linewidth=0.8,
                )
            )
        plt.show()
        plt.close(fig)


def plan_patches(
    image_width: int, image_height: int, patch_size: int = 384, overlap: int = 64
) -> PatchPlan:
    """Plan the patches covering an image of the given size."""
    return GridSpec(patch_size=patch_size, overlap=overlap).build_grid(image_width, image_height)
