"""Tests for synthetic data and the demo predictor."""

import numpy as np

from vesselflow.examples import GreenThresholdPredictor, generate_fundus_image
from vesselflow.model import VesselSegmenter


class TestFundusGeneration:
    """Test synthetic fundus images."""

    def test_shape_and_dtype(self):
        """Test output layout."""
        image = generate_fundus_image(shape=(300, 200), seed=1)
        assert image.shape == (300, 200, 3)
        assert image.dtype == np.uint8

    def test_reproducibility(self):
        """Test seed reproducibility."""
        img1 = generate_fundus_image(shape=(128, 128), seed=123)
        img2 = generate_fundus_image(shape=(128, 128), seed=123)
        assert np.array_equal(img1, img2)

    def test_background_outside_disc(self):
        """Test that corners are (near) black."""
        image = generate_fundus_image(shape=(256, 256), seed=0)
        assert image[0, 0].max() < 20

    def test_vessels_darken_green(self):
        """Test that vessels are darker than the fundus background."""
        image = generate_fundus_image(shape=(256, 256), seed=4)
        green = image[:, :, 1]
        center = green[96:160, 96:160]
        assert center.min() < 80
        assert center.max() > 90


class TestGreenThresholdPredictor:
    """Test the demo predictor."""

    def test_output_contract(self):
        """Test output shape and dtype."""
        predictor = GreenThresholdPredictor()
        batch = np.zeros((1, 3, 384, 384), dtype=np.float32)
        output = predictor.predict(batch)
        assert output.shape == (1, 1, 384, 384)
        assert output.dtype == np.float32
        assert predictor.calls == 1

    def test_dark_green_is_vessel(self):
        """Test probability ordering."""
        predictor = GreenThresholdPredictor()
        batch = np.zeros((1, 3, 1, 3), dtype=np.float32)
        batch[0, :, 0] = [0.0, 0.02, 0.3]
        probability = predictor.predict(batch)[0, 0, 0]
        assert probability[0] == 0.0
        assert probability[1] > 0.5
        assert probability[2] < 0.5

    def test_end_to_end(self):
        """Test a tiled segmentation of a synthetic fundus."""
        image = generate_fundus_image(shape=(500, 600), seed=2)
        predictor = GreenThresholdPredictor()
        result = VesselSegmenter(predictor).segment(image)

        assert result.mode == "tiled"
        assert predictor.calls == 4
        assert result.mask.shape == (500, 600)
        vessel_fraction = np.count_nonzero(result.mask) / result.mask.size
        assert 0.0 < vessel_fraction < 0.5
