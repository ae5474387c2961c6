"""Tests for patch grid planning."""

import numpy as np
import pytest

from vesselflow.tiling import GridSpec, plan_patches


class TestGridSpec:
    """Test GridSpec functionality."""

    def test_step(self):
        """Test step calculation."""
        grid = GridSpec(patch_size=384, overlap=64)
        assert grid.step == 320

    def test_overlap_must_be_smaller_than_patch(self):
        """Test that overlap >= patch_size is a configuration error."""
        with pytest.raises(ValueError, match="smaller than patch_size"):
            GridSpec(patch_size=64, overlap=64)
        with pytest.raises(ValueError, match="smaller than patch_size"):
            GridSpec(patch_size=64, overlap=100)

    def test_negative_overlap(self):
        """Test negative overlap rejection."""
        with pytest.raises(ValueError, match="must be non-negative"):
            GridSpec(patch_size=64, overlap=-1)

    def test_invalid_patch_size(self):
        """Test non-positive patch size rejection."""
        with pytest.raises(ValueError, match="must be positive"):
            GridSpec(patch_size=0)

    def test_invalid_image_size(self):
        """Test empty image rejection."""
        grid = GridSpec(patch_size=64, overlap=8)
        with pytest.raises(ValueError, match="must be positive"):
            grid.build_grid(0, 100)

    def test_scenario_400(self):
        """Test the 400x400 reference scenario."""
        plan = plan_patches(400, 400, patch_size=384, overlap=64)
        specs = list(plan)

        assert len(plan) == 4
        assert len(specs) == 4
        assert [(s.origin_x, s.origin_y) for s in specs] == [
            (0, 0),
            (320, 0),
            (0, 320),
            (320, 320),
        ]
        corner = specs[-1]
        assert corner.valid_width == 80
        assert corner.valid_height == 80
        assert corner.index == (1, 1)

        counts = GridSpec(384, 64).coverage(400, 400)
        assert counts.min() >= 1
        assert counts[0, 0] == 1
        assert counts[350, 350] == 4
        assert counts[10, 350] == 2

    def test_row_major_order(self):
        """Test that patches are emitted row by row."""
        specs = list(plan_patches(1000, 700, patch_size=384, overlap=64))
        ys = [s.origin_y for s in specs]
        assert ys == sorted(ys)
        assert [s.origin_x for s in specs[:4]] == [0, 320, 640, 960]

    def test_origins_not_clamped(self):
        """Test that the last origin is not moved back to fit a full patch."""
        specs = list(plan_patches(1000, 384, patch_size=384, overlap=64))
        # x origins 0, 320, 640, 960; y origins 0, 320
        assert len(specs) == 8
        last = specs[3]
        assert last.origin_x == 960
        assert last.valid_width == 40
        assert specs[4].origin_y == 320
        assert specs[4].valid_height == 64

    def test_grid_shape(self):
        """Test grid shape calculation."""
        grid = GridSpec(patch_size=384, overlap=64)
        assert grid.grid_shape(385, 385) == (2, 2)
        assert grid.grid_shape(384, 384) == (2, 2)
        assert grid.grid_shape(320, 320) == (1, 1)

    def test_plan_is_restartable(self):
        """Test that iterating twice yields the same patches."""
        plan = plan_patches(900, 500, patch_size=256, overlap=32)
        first = list(plan)
        second = list(plan)
        assert first == second
        assert len(first) == len(plan)

    def test_plan_is_lazy(self):
        """Test that the plan yields without materializing the grid."""
        plan = plan_patches(100000, 100000, patch_size=384, overlap=64)
        iterator = iter(plan)
        first = next(iterator)
        assert (first.origin_x, first.origin_y) == (0, 0)
        assert len(plan) == 313 * 313

    @pytest.mark.parametrize(
        "width,height,patch_size,overlap",
        [
            (100, 100, 30, 5),
            (97, 61, 16, 3),
            (400, 400, 384, 64),
            (385, 385, 384, 64),
            (1025, 777, 384, 64),
            (64, 64, 64, 1),
            (50, 200, 40, 39),
        ],
    )
    def test_grid_coverage(self, width, height, patch_size, overlap):
        """Test that valid regions cover every pixel and stay inside the image."""
        grid = GridSpec(patch_size=patch_size, overlap=overlap)
        counts = np.zeros((height, width), dtype=np.int32)
        for spec in grid.build_grid(width, height):
            assert spec.origin_x + spec.valid_width <= width
            assert spec.origin_y + spec.valid_height <= height
            assert 0 < spec.valid_width <= patch_size
            assert 0 < spec.valid_height <= patch_size
            counts[spec.get_slices()] += 1

        assert counts.min() >= 1
        assert np.array_equal(counts, grid.coverage(width, height))


class TestGridPreview:
    """Test the matplotlib grid preview."""

    def test_preview_draws_valid_regions(self, monkeypatch):
        """Test one rectangle per patch, orange where the patch is padded."""
        matplotlib = pytest.importorskip("matplotlib")
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.colors import to_rgba
        from matplotlib.patches import Rectangle

        drawn = []

        def fake_show():
            drawn.extend(p for p in plt.gca().patches if isinstance(p, Rectangle))

        monkeypatch.setattr(plt, "show", fake_show)

        grid = GridSpec(patch_size=384, overlap=64)
        grid.preview(np.zeros((400, 400, 3), dtype=np.uint8))

        assert len(drawn) == len(grid.build_grid(400, 400)) == 4
        assert drawn[0].get_xy() == (0, 0)
        assert drawn[0].get_edgecolor() == to_rgba("green")
        for rect in drawn[1:]:
            assert rect.get_edgecolor() == to_rgba("orange")
        assert (drawn[3].get_width(), drawn[3].get_height()) == (80, 80)
