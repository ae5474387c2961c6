"""Predictor contract and adapters.

The trained network is an external collaborator. Anything exposing
``predict(batch) -> output`` satisfies the contract: input (1, 3, S, S)
float32 in [0, 1], output (1, 1, S, S) float32 probabilities. Outputs are not
guaranteed to be bounded and are never clamped here.
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

import numpy as np

from vesselflow.errors import ModelUnavailable, PredictionFailed


@runtime_checkable
class Predictor(Protocol):
    def predict(self, batch: np.ndarray) -> np.ndarray: ...


class CallablePredictor:
    """Adapts a plain function to the Predictor contract."""

    def __init__(self, function: Callable[[np.ndarray], np.ndarray]) -> None:
        if not callable(function):
            raise TypeError("function must be callable")
        self.function = function

    def predict(self, batch: np.ndarray) -> np.ndarray:
        return self.function(batch)


class OnnxPredictor:
    """Runs an exported segmentation network with onnxruntime."""

    def __init__(self, model_path: str, providers: list[str] | None = None) -> None:
        import onnxruntime as rt

        self.model_path = model_path
        try:
            self.session = rt.InferenceSession(
                model_path, providers=providers or ["CPUExecutionProvider"]
            )
        except Exception as e:
            raise ModelUnavailable(
                f"The segmentation model could not be loaded from {model_path}: {e}"
            ) from e
        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name

    def predict(self, batch: np.ndarray) -> np.ndarray:
        outputs = self.session.run(
            output_names=[self.output_name], input_feed={self.input_name: batch}
        )
        return outputs[0]


def as_predictor(obj) -> Predictor:
    """Return ``obj`` as a Predictor, wrapping plain callables."""
    if isinstance(obj, Predictor) and callable(getattr(obj, "predict", None)):
        return obj
    if callable(obj):
        return CallablePredictor(obj)
    raise TypeError(f"Unsupported predictor type: {type(obj).__name__}")


def run_prediction(predictor: Predictor, batch: np.ndarray) -> np.ndarray:
    """Invoke the predictor once and return a 2-D float32 probability map."""
    try:
        output = predictor.predict(batch)
    except PredictionFailed:
        raise
    except Exception as e:
        raise PredictionFailed(str(e) or type(e).__name__) from e

    try:
        output = np.asarray(output, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise PredictionFailed(f"output is not a numeric array: {e}") from e
    if output.ndim < 2 or int(np.prod(output.shape[:-2])) != 1:
        raise PredictionFailed(f"unexpected output shape {output.shape}")
    return output.reshape(output.shape[-2:])
