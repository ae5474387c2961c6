#!/usr/bin/env python3
"""Basic usage example for vesselflow.

This script demonstrates:
- Segmenting a small image in a single predictor call
- Segmenting a large image patch by patch with overlap blending
- Progress and metrics callbacks
- Awaiting a request from asyncio code

Pass an ONNX model path as first argument to use a real network; otherwise a
deterministic green-threshold predictor stands in for it.
"""

import asyncio
import sys

import numpy as np

from vesselflow import MetricsCallback, ProgressCallback, VesselSegmenter
from vesselflow.examples import GreenThresholdPredictor, generate_fundus_image
from vesselflow.io import save_image
from vesselflow.utils import estimate_memory_usage


def build_predictor():
    if len(sys.argv) > 1:
        from vesselflow.predictor import OnnxPredictor

        print(f"Loading model from {sys.argv[1]}")
        return OnnxPredictor(sys.argv[1])
    print("No model given, using GreenThresholdPredictor")
    return GreenThresholdPredictor()


def main():
    """Demonstrate single-pass and tiled segmentation."""
    print("vesselflow Basic Usage Example")
    print("=" * 40)

    segmenter = VesselSegmenter(build_predictor())
    segmenter.summary()
    print()

    # Small image: one predictor call
    small = generate_fundus_image(shape=(320, 320), seed=1)
    result = segmenter.segment(small)
    print(f"Small image {small.shape[:2]} -> mode: {result.mode}")
    print(f"  Vessel pixels: {np.count_nonzero(result.mask)}")
    print()

    # Large image: patch-wise with overlap blending
    large = generate_fundus_image(shape=(1200, 1600), seed=2)
    estimate = estimate_memory_usage(1600, 1200)
    print(f"Large image {large.shape[:2]}: {estimate['total_patches']} patches, "
          f"~{estimate['peak_memory_mb']:.1f} MB peak")

    metrics = MetricsCallback(verbose=True)
    result = segmenter.segment(large, callbacks=[ProgressCallback(), metrics])
    print(f"  Mode: {result.mode}, skipped patches: {len(result.skipped)}")
    print()

    # Same request from asyncio code
    result = asyncio.run(segmenter.segment_async(large))
    print(f"Async request finished: mask {result.mask.shape}, overlay {result.overlay.shape}")

    save_image("vessel_mask.png", result.mask)
    save_image("vessel_overlay.png", result.overlay)
    print("Saved vessel_mask.png and vessel_overlay.png")


if __name__ == "__main__":
    main()
