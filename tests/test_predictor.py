"""Tests for the predictor contract and adapters."""

import numpy as np
import pytest

from vesselflow.errors import ModelUnavailable, PredictionFailed
from vesselflow.predictor import (
    CallablePredictor,
    OnnxPredictor,
    Predictor,
    as_predictor,
    run_prediction,
)


class ZeroPredictor:
    def predict(self, batch):
        return np.zeros((1, 1, batch.shape[2], batch.shape[3]), dtype=np.float32)


class TestAsPredictor:
    """Test predictor coercion."""

    def test_predictor_object_passthrough(self):
        """Test that objects with predict are returned unchanged."""
        predictor = ZeroPredictor()
        assert as_predictor(predictor) is predictor
        assert isinstance(predictor, Predictor)

    def test_callable_wrapped(self):
        """Test wrapping of plain functions."""
        predictor = as_predictor(lambda batch: batch[:, :1])
        assert isinstance(predictor, CallablePredictor)
        batch = np.ones((1, 3, 4, 4), dtype=np.float32)
        assert predictor.predict(batch).shape == (1, 1, 4, 4)

    def test_unsupported_type(self):
        """Test rejection of non-predictors."""
        with pytest.raises(TypeError, match="Unsupported predictor type"):
            as_predictor("model.onnx")

    def test_callable_required(self):
        """Test CallablePredictor validation."""
        with pytest.raises(TypeError, match="must be callable"):
            CallablePredictor(42)


class TestRunPrediction:
    """Test single predictor invocations."""

    def test_output_squeezed(self):
        """Test that (1, 1, H, W) outputs become (H, W) float32."""
        batch = np.zeros((1, 3, 8, 8), dtype=np.float32)
        output = run_prediction(ZeroPredictor(), batch)
        assert output.shape == (8, 8)
        assert output.dtype == np.float32

    def test_2d_output_accepted(self):
        """Test outputs that are already 2-D."""
        predictor = CallablePredictor(lambda batch: np.ones((8, 8)))
        output = run_prediction(predictor, np.zeros((1, 3, 8, 8), dtype=np.float32))
        assert output.shape == (8, 8)
        assert output.dtype == np.float32

    def test_errors_wrapped(self):
        """Test that runtime errors become PredictionFailed."""

        def broken(batch):
            raise RuntimeError("out of memory")

        with pytest.raises(PredictionFailed, match="Prediction failed: out of memory"):
            run_prediction(CallablePredictor(broken), np.zeros((1, 3, 8, 8)))

    def test_prediction_failed_propagated(self):
        """Test that PredictionFailed is not wrapped twice."""

        def broken(batch):
            raise PredictionFailed("backend down")

        with pytest.raises(PredictionFailed) as excinfo:
            run_prediction(CallablePredictor(broken), np.zeros((1, 3, 8, 8)))
        assert excinfo.value.reason == "backend down"

    def test_no_retry(self):
        """Test that a failing predictor is called exactly once."""
        calls = []

        def broken(batch):
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(PredictionFailed):
            run_prediction(CallablePredictor(broken), np.zeros((1, 3, 8, 8)))
        assert len(calls) == 1

    def test_bad_output_shape(self):
        """Test rejection of multi-channel or 1-D outputs."""
        batch = np.zeros((1, 3, 8, 8), dtype=np.float32)
        with pytest.raises(PredictionFailed, match="unexpected output shape"):
            run_prediction(CallablePredictor(lambda b: np.zeros((1, 2, 8, 8))), batch)
        with pytest.raises(PredictionFailed, match="unexpected output shape"):
            run_prediction(CallablePredictor(lambda b: np.zeros(8)), batch)

    def test_non_numeric_output(self):
        """Test that ragged or non-numeric outputs become PredictionFailed."""
        batch = np.zeros((1, 3, 2, 2), dtype=np.float32)
        with pytest.raises(PredictionFailed, match="not a numeric array"):
            run_prediction(CallablePredictor(lambda b: [[0.1, 0.2], [0.3]]), batch)
        with pytest.raises(PredictionFailed, match="not a numeric array"):
            run_prediction(CallablePredictor(lambda b: [["a", "b"], ["c", "d"]]), batch)

    def test_values_not_clamped(self):
        """Test that unbounded outputs pass through."""
        predictor = CallablePredictor(lambda b: np.full((1, 1, 4, 4), -0.25))
        output = run_prediction(predictor, np.zeros((1, 3, 4, 4)))
        assert np.all(output == -0.25)


class TestOnnxPredictor:
    """Test the onnxruntime adapter."""

    def test_missing_model(self, tmp_path):
        """Test that an unloadable model raises ModelUnavailable."""
        with pytest.raises(ModelUnavailable, match="could not be loaded"):
            OnnxPredictor(str(tmp_path / "missing.onnx"))
