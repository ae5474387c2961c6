"""Error taxonomy for segmentation requests.

Every error carries a human-readable message so callers can surface
``str(error)`` directly.
"""


class SegmentationError(Exception):
    """Base class for all segmentation failures."""

    default_message = "Segmentation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ModelUnavailable(SegmentationError):
    default_message = "The segmentation model could not be loaded or initialized."


class NoInput(SegmentationError):
    default_message = "No image has been provided for segmentation."


class ConversionFailed(SegmentationError):
    default_message = "Failed to convert the image into the required tensor format."


class PredictionFailed(SegmentationError):
    """Raised when the external predictor fails. Never retried."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Prediction failed: {reason}")


class MaskCreationFailed(SegmentationError):
    default_message = "Failed to create the final mask image."


class SegmentationCancelled(SegmentationError):
    default_message = "Segmentation was cancelled before completion."
