"""Callback system for progress reporting and monitoring.

Callbacks observe a segmentation request without taking part in it: an
exception raised by a callback is printed and swallowed by
``CompositeCallback`` so monitoring can never abort a request.
"""

import time
import tracemalloc
from dataclasses import dataclass

from vesselflow.core import PatchSpec


@dataclass
class ProcessingStats:
    """Statistics shared with callbacks during one request."""

    start_time: float | None = None
    end_time: float | None = None
    mode: str | None = None
    input_shape: tuple | None = None
    patch_size: int | None = None
    overlap: int | None = None
    total_patches: int = 0
    processed_patches: int = 0
    skipped_patches: int = 0

    @property
    def elapsed_time(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time

    @property
    def patches_per_second(self) -> float:
        elapsed = self.elapsed_time
        return self.processed_patches / elapsed if elapsed > 0 else 0.0


class SegmentationCallback:
    """Base class for callbacks. Every hook is optional."""

    def on_processing_start(self, stats: ProcessingStats) -> None:
        pass

    def on_processing_end(self, stats: ProcessingStats) -> None:
        pass

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        pass

    def on_patch_start(self, spec: PatchSpec, index: int, total: int) -> None:
        pass

    def on_patch_end(self, spec: PatchSpec, index: int, total: int) -> None:
        pass

    def on_patch_skipped(self, spec: PatchSpec, index: int, error: Exception) -> None:
        pass


class CompositeCallback(SegmentationCallback):
    """Dispatches every hook to a list of callbacks."""

    def __init__(self, callbacks: list[SegmentationCallback]) -> None:
        self.callbacks = list(callbacks)

    def _dispatch(self, hook: str, *args) -> None:
        for callback in self.callbacks:
            try:
                getattr(callback, hook)(*args)
            except Exception as e:
                print(f"Callback error in {type(callback).__name__}.{hook}: {e}")

    def on_processing_start(self, stats: ProcessingStats) -> None:
        self._dispatch("on_processing_start", stats)

    def on_processing_end(self, stats: ProcessingStats) -> None:
        self._dispatch("on_processing_end", stats)

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        self._dispatch("on_processing_error", error, stats)

    def on_patch_start(self, spec: PatchSpec, index: int, total: int) -> None:
        self._dispatch("on_patch_start", spec, index, total)

    def on_patch_end(self, spec: PatchSpec, index: int, total: int) -> None:
        self._dispatch("on_patch_end", spec, index, total)

    def on_patch_skipped(self, spec: PatchSpec, index: int, error: Exception) -> None:
        self._dispatch("on_patch_skipped", spec, index, error)


class ProgressCallback(SegmentationCallback):
    """Prints progress of a segmentation request."""

    def __init__(self, verbose: bool = True, show_rate: bool = True) -> None:
        self.verbose = verbose
        self.show_rate = show_rate
        self._start_time: float | None = None

    def on_processing_start(self, stats: ProcessingStats) -> None:
        self._start_time = time.perf_counter()
        if self.verbose:
            mode = stats.mode or "unknown"
            print(f"Starting segmentation ({mode}): {stats.total_patches} patches")

    def on_patch_end(self, spec: PatchSpec, index: int, total: int) -> None:
        if not self.verbose:
            return
        message = f"  Patch {index + 1}/{total} at ({spec.origin_x}, {spec.origin_y})"
        if self.show_rate and self._start_time is not None:
            elapsed = time.perf_counter() - self._start_time
            if elapsed > 0:
                message += f" [{(index + 1) / elapsed:.2f} patches/sec]"
        print(message)

    def on_patch_skipped(self, spec: PatchSpec, index: int, error: Exception) -> None:
        if self.verbose:
            print(f"  Patch {index + 1} at ({spec.origin_x}, {spec.origin_y}) skipped: {error}")

    def on_processing_end(self, stats: ProcessingStats) -> None:
        if self.verbose:
            print(
                f"Segmentation complete: {stats.processed_patches} patches, "
                f"{stats.skipped_patches} skipped in {stats.elapsed_time:.2f}s"
            )

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        if self.verbose:
            print(f"Segmentation failed: {error}")


class MetricsCallback(SegmentationCallback):
    """Collects per-patch timings."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self.stats = ProcessingStats()
        self._patch_times: list[float] = []
        self._patch_start: float | None = None

    def on_processing_start(self, stats: ProcessingStats) -> None:
        self.stats = stats
        self._patch_times = []

    def on_patch_start(self, spec: PatchSpec, index: int, total: int) -> None:
        self._patch_start = time.perf_counter()

    def on_patch_end(self, spec: PatchSpec, index: int, total: int) -> None:
        if self._patch_start is not None:
            self._patch_times.append(time.perf_counter() - self._patch_start)
            self._patch_start = None

    def on_patch_skipped(self, spec: PatchSpec, index: int, error: Exception) -> None:
        self._patch_start = None

    def on_processing_end(self, stats: ProcessingStats) -> None:
        if self.verbose:
            metrics = self.get_detailed_metrics()
            print("Segmentation metrics")
            print("=" * 40)
            for key, value in metrics.items():
                print(f"{key:24s} {value}")

    def get_detailed_metrics(self) -> dict:
        times = self._patch_times
        return {
            "mode": self.stats.mode,
            "total_time_s": self.stats.elapsed_time,
            "patches_processed": self.stats.processed_patches,
            "patches_skipped": self.stats.skipped_patches,
            "patches_per_second": self.stats.patches_per_second,
            "average_patch_time_s": sum(times) / len(times) if times else 0.0,
            "max_patch_time_s": max(times) if times else 0.0,
        }


class MemoryTracker(SegmentationCallback):
    """Tracks Python heap usage with tracemalloc."""

    def __init__(self, detailed: bool = False) -> None:
        self.detailed = detailed
        self._tracking_started = False
        self._started_tracemalloc = False
        self._baseline = 0
        self._peak = 0
        self._per_patch: list[int] = []

    @staticmethod
    def _format_bytes(num_bytes: float) -> str:
        for unit in ("B", "KB", "MB", "GB"):
            if abs(num_bytes) < 1024 or unit == "GB":
                return f"{num_bytes:.1f} {unit}"
            num_bytes /= 1024
        return f"{num_bytes:.1f} GB"

    def _stop(self) -> None:
        if self._started_tracemalloc:
            tracemalloc.stop()
            self._started_tracemalloc = False
        self._tracking_started = False

    def on_processing_start(self, stats: ProcessingStats) -> None:
        if not tracemalloc.is_tracing():
            tracemalloc.start()
            self._started_tracemalloc = True
        self._baseline = tracemalloc.get_traced_memory()[0]
        self._peak = self._baseline
        self._per_patch = []
        self._tracking_started = True

    def on_patch_end(self, spec: PatchSpec, index: int, total: int) -> None:
        if not self._tracking_started:
            return
        current, peak = tracemalloc.get_traced_memory()
        self._per_patch.append(current - self._baseline)
        self._peak = max(self._peak, peak)

    def on_processing_end(self, stats: ProcessingStats) -> None:
        if self._tracking_started:
            self._peak = max(self._peak, tracemalloc.get_traced_memory()[1])
        if self.detailed:
            print(f"Peak memory: {self._format_bytes(self._peak - self._baseline)}")
        self._stop()

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        self._stop()

    def get_memory_stats(self) -> dict:
        return {
            "baseline_memory_bytes": self._baseline,
            "peak_memory_bytes": self._peak,
            "memory_per_patch_bytes": list(self._per_patch),
        }
