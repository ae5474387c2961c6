"""
Segmentation parameters.

Defaults match the fixed input size of the vessel predictor (384x384).
"""

from typing import Final

from pydantic import BaseModel, Field, model_validator

# Core parameters
PATCH_SIZE: Final[int] = 384
OVERLAP: Final[int] = 64
STEP: Final[int] = PATCH_SIZE - OVERLAP  # 320
THRESHOLD: Final[float] = 0.5
PADDING_VALUE: Final[int] = 0


class SegmentationConfig(BaseModel):
    """
    Configuration for the VesselSegmenter.
    patch_size must equal the predictor's fixed input size.
    """

    patch_size: int = Field(default=PATCH_SIZE, gt=0)
    overlap: int = Field(default=OVERLAP, ge=0)
    threshold: float = THRESHOLD
    padding_value: int = Field(default=PADDING_VALUE, ge=0, le=255)

    @model_validator(mode="after")
    def _check_overlap(self) -> "SegmentationConfig":
        if self.overlap >= self.patch_size:
            raise ValueError(
                f"overlap must be smaller than patch_size, got overlap={self.overlap} "
                f"and patch_size={self.patch_size}"
            )
        return self

    @property
    def step(self) -> int:
        return self.patch_size - self.overlap
