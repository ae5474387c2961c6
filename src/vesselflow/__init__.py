"""vesselflow: tiled retinal vessel segmentation."""

from vesselflow.callback import (
    CompositeCallback,
    MemoryTracker,
    MetricsCallback,
    ProcessingStats,
    ProgressCallback,
    SegmentationCallback,
)
from vesselflow.config import SegmentationConfig
from vesselflow.core import BBox, PatchSpec, SegmentationResult
from vesselflow.errors import (
    ConversionFailed,
    MaskCreationFailed,
    ModelUnavailable,
    NoInput,
    PredictionFailed,
    SegmentationCancelled,
    SegmentationError,
)
from vesselflow.model import VesselSegmenter
from vesselflow.normalization import ColorNormalizer
from vesselflow.predictor import CallablePredictor, OnnxPredictor, Predictor, as_predictor
from vesselflow.reconstruction import TileStitcher
from vesselflow.rendering import MaskRenderer
from vesselflow.tiling import GridSpec, PatchPlan, plan_patches

__all__ = [
    "BBox",
    "CallablePredictor",
    "ColorNormalizer",
    "CompositeCallback",
    "ConversionFailed",
    "GridSpec",
    "MaskCreationFailed",
    "MaskRenderer",
    "MemoryTracker",
    "MetricsCallback",
    "ModelUnavailable",
    "NoInput",
    "OnnxPredictor",
    "PatchPlan",
    "PatchSpec",
    "PredictionFailed",
    "Predictor",
    "ProcessingStats",
    "ProgressCallback",
    "SegmentationCallback",
    "SegmentationCancelled",
    "SegmentationConfig",
    "SegmentationError",
    "SegmentationResult",
    "TileStitcher",
    "VesselSegmenter",
    "as_predictor",
    "plan_patches",
]
