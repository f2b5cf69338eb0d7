"""
Exception hierarchy for the prediction engine. Request handlers translate these
into status codes; the core only raises.
"""


class SonarError(Exception):
    """Base class for every error raised by sonar_predictor."""


class ValidationError(SonarError, ValueError):
    """Malformed, wrong-length or out-of-range request input."""


class NotTrainedError(SonarError, RuntimeError):
    """Prediction was attempted before a model exists."""

    def __init__(self, message: str = "Model not trained"):
        super().__init__(message)


class LoadError(SonarError):
    """Dataset or sample source could not be read or held no usable rows."""


class NoSamplesError(LoadError):
    """Sample source was readable but had no usable lines."""
