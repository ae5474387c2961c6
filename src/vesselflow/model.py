"""Vessel segmentation engine.

This module implements vesselflow's request pipeline:
- VesselSegmenter: main processor class with a segment / segment_async interface
- Single pass: images no larger than one patch go through the predictor once
- Tiled pass: larger images are split into overlapping patches whose
  probabilities are averaged back into a full-resolution map
"""

import asyncio
import threading
import time
from typing import Any

import numpy as np

from vesselflow.callback import CompositeCallback, ProcessingStats, SegmentationCallback
from vesselflow.config import SegmentationConfig
from vesselflow.core import Image2D, PatchSpec, SegmentationResult
from vesselflow.errors import (
    ConversionFailed,
    ModelUnavailable,
    NoInput,
    PredictionFailed,
    SegmentationCancelled,
    SegmentationError,
)
from vesselflow.normalization import ColorNormalizer
from vesselflow.predictor import Predictor, as_predictor, run_prediction
from vesselflow.reconstruction import TileStitcher
from vesselflow.rendering import MaskRenderer
from vesselflow.tiling import GridSpec
from vesselflow.utils import as_rgb_image, pad_to_size


class VesselSegmenter:
    """Retinal vessel segmenter with patch-wise inference.

    Chooses the processing mode once per request: images whose width or
    height exceeds ``patch_size`` are tiled, everything else is processed in
    a single predictor call.

    A patch whose crop, padding or normalization fails in the tiled mode is
    skipped and reported through ``on_patch_skipped``; the rest of the image
    is still segmented and pixels covered by no other patch come out as
    background. Predictor failures always abort the request.

    Examples
    --------
    >>> segmenter = VesselSegmenter(OnnxPredictor("vessels.onnx"))
    >>> result = segmenter.segment(image)
    >>> result.mask.shape, result.overlay.shape
    ((1024, 1536), (1024, 1536, 4))

    >>> # From a coroutine
    >>> result = await segmenter.segment_async(image)
    """

    def __init__(
        self,
        predictor: Predictor | Any | None,
        config: SegmentationConfig | dict | None = None,
        normalizer: ColorNormalizer | None = None,
        renderer: MaskRenderer | None = None,
        name: str = "VesselSegmenter",
    ) -> None:
        """Initialize the segmenter.

        Parameters
        ----------
        predictor : Predictor or callable, optional
            External model; ``None`` makes every request fail with ModelUnavailable
        config : SegmentationConfig or dict, optional
            Patch size, overlap and threshold; defaults to 384 / 64 / 0.5
        normalizer : ColorNormalizer, optional
            Converts images into predictor tensors
        renderer : MaskRenderer, optional
            Thresholds probabilities and composites the overlay
        name : str, default="VesselSegmenter"
            Name of the segmenter for logging/debugging
        """
        if config is None:
            config = SegmentationConfig()
        elif isinstance(config, dict):
            config = SegmentationConfig.model_validate(config)
        self.config = config
        self.predictor = as_predictor(predictor) if predictor is not None else None
        self.normalizer = normalizer or ColorNormalizer()
        self.renderer = renderer or MaskRenderer(cutoff=config.threshold)
        self.grid = GridSpec(patch_size=config.patch_size, overlap=config.overlap)
        self.name = name

    def needs_tiling(self, width: int, height: int) -> bool:
        return width > self.config.patch_size or height > self.config.patch_size

    def segment(
        self,
        image: np.ndarray | None,
        callbacks: list[SegmentationCallback] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SegmentationResult:
        """Segment vessels in an image.

        Parameters
        ----------
        image : np.ndarray
            RGB(A) or grayscale image
        callbacks : list[SegmentationCallback], optional
            Callbacks for progress tracking
        cancel_event : threading.Event, optional
            When set, no further predictor calls are issued

        Returns
        -------
        SegmentationResult
            Binary mask, RGBA overlay and probability map

        Raises
        ------
        SegmentationError
            NoInput, ModelUnavailable, ConversionFailed, PredictionFailed,
            MaskCreationFailed or SegmentationCancelled
        """
        if image is None:
            raise NoInput()
        if self.predictor is None:
            raise ModelUnavailable()

        callback = CompositeCallback(callbacks or [])
        stats = ProcessingStats()
        stats.patch_size = self.config.patch_size
        stats.overlap = self.config.overlap
        stats.input_shape = getattr(image, "shape", None)
        width = height = 0

        stats.start_time = time.perf_counter()
        try:
            rgb = as_rgb_image(image)
            height, width = rgb.shape[:2]
            tiled = self.needs_tiling(width, height)
            stats.mode = "tiled" if tiled else "single"
            stats.input_shape = rgb.shape
            stats.total_patches = len(self.grid.build_grid(width, height)) if tiled else 1

            callback.on_processing_start(stats)

            if tiled:
                probability, skipped = self._process_tiled(rgb, callback, stats, cancel_event)
            else:
                probability = self._process_single(rgb, callback, stats, cancel_event)
                skipped = []

            mask = self.renderer.threshold(probability)
            overlay = self.renderer.composite(rgb, mask)

            stats.end_time = time.perf_counter()
            callback.on_processing_end(stats)
        except SegmentationError as e:
            stats.end_time = time.perf_counter()
            callback.on_processing_error(e, stats)
            raise
        except MemoryError as e:
            stats.end_time = time.perf_counter()
            error = SegmentationError(f"Not enough memory to segment a {width}x{height} image")
            callback.on_processing_error(error, stats)
            raise error from e

        return SegmentationResult(
            mask=mask,
            overlay=overlay,
            probability=probability,
            mode=stats.mode,
            stats=stats,
            skipped=skipped,
        )

    async def segment_async(
        self,
        image: np.ndarray | None,
        callbacks: list[SegmentationCallback] | None = None,
    ) -> SegmentationResult:
        """Run ``segment`` in a worker thread.

        Cancelling the awaiting task stops further predictor calls; partial
        state is discarded with the request.
        """
        cancel_event = threading.Event()
        try:
            return await asyncio.to_thread(self.segment, image, callbacks, cancel_event)
        except asyncio.CancelledError:
            cancel_event.set()
            raise

    def segment_file(
        self, path: str, callbacks: list[SegmentationCallback] | None = None
    ) -> SegmentationResult:
        from vesselflow.io import load_image

        return self.segment(load_image(path), callbacks=callbacks)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SegmentationCancelled()

    def _process_single(
        self,
        image: np.ndarray,
        callback: CompositeCallback,
        stats: ProcessingStats,
        cancel_event: threading.Event | None = None,
    ) -> Image2D:
        """Normalize the whole image to one patch and predict once."""
        size = self.config.patch_size
        spec = PatchSpec(0, 0, image.shape[1], image.shape[0])

        callback.on_patch_start(spec, 0, 1)
        tensor = self.normalizer.normalize(image, size, size)
        self._check_cancelled(cancel_event)
        probability = run_prediction(self.predictor, self.normalizer.to_batch(tensor))
        callback.on_patch_end(spec, 0, 1)

        stats.processed_patches = 1
        return probability

    def _extract_patch(self, image: np.ndarray, spec: PatchSpec) -> np.ndarray:
        """Crop the valid region and pad it to a full patch, content top-left."""
        patch = image[spec.get_slices()]
        if patch.shape[:2] != (spec.valid_height, spec.valid_width):
            raise ConversionFailed(
                f"Crop {spec.bbox} returned shape {patch.shape[:2]}, "
                f"expected {(spec.valid_height, spec.valid_width)}"
            )
        size = self.config.patch_size
        return pad_to_size(patch, size, size, value=self.config.padding_value)

    def _process_tiled(
        self,
        image: np.ndarray,
        callback: CompositeCallback,
        stats: ProcessingStats,
        cancel_event: threading.Event | None = None,
    ) -> tuple[Image2D, list[PatchSpec]]:
        """Predict every patch and average the overlapping outputs."""
        height, width = image.shape[:2]
        size = self.config.patch_size
        plan = self.grid.build_grid(width, height)
        total = len(plan)

        stitcher = TileStitcher(width=width, height=height)
        skipped: list[PatchSpec] = []

        for i, spec in enumerate(plan):
            callback.on_patch_start(spec, i, total)
            try:
                patch = self._extract_patch(image, spec)
                tensor = self.normalizer.normalize(patch, size, size)
            except ConversionFailed as e:
                print(
                    f"Warning: skipping patch {spec.index} at "
                    f"({spec.origin_x}, {spec.origin_y}): {e}"
                )
                skipped.append(spec)
                stats.skipped_patches = len(skipped)
                callback.on_patch_skipped(spec, i, e)
                continue

            self._check_cancelled(cancel_event)
            probability = run_prediction(self.predictor, self.normalizer.to_batch(tensor))
            try:
                stitcher.blend(probability, spec)
            except ValueError as e:
                raise PredictionFailed(f"unusable output for patch {spec.index}: {e}") from e

            stats.processed_patches += 1
            callback.on_patch_end(spec, i, total)

        uncovered = stitcher.uncovered_pixels()
        if uncovered:
            print(
                f"Warning: {uncovered} pixels not covered by any patch, "
                "treated as background"
            )
        return stitcher.finalize(), skipped

    def summary(self) -> None:
        """Print segmenter configuration summary."""
        print(f"Vessel Segmenter: {self.name}")
        print("=" * 50)
        print(f"Patch size:     {self.config.patch_size}")
        print(f"Patch overlap:  {self.config.overlap}")
        print(f"Patch step:     {self.config.step}")
        print(f"Threshold:      {self.config.threshold}")
        print(f"Predictor:      {type(self.predictor).__name__ if self.predictor else 'None'}")
        print("=" * 50)
