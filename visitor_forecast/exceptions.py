"""Domain-specific exceptions for the visitor forecaster.

All exceptions inherit from ForecastingError so callers can catch any
benchmark or forecasting failure in one place.
"""


class ForecastingError(Exception):
    """Base exception for all visitor forecaster errors."""


class DataError(ForecastingError):
    """Raised when input data is malformed.

    This exception is raised when:
    - Required columns are missing or dates cannot be parsed
    - Dates are not strictly increasing monthly steps
    - Values are missing, non-numeric or negative
    - An accuracy metric is undefined for the data (e.g. MAPE with a zero actual)
    """


class InsufficientDataError(DataError):
    """Raised when a series is too short to split or to fit seasonal models."""


class FitError(ForecastingError):
    """Raised when a forecasting algorithm fails to fit or to forecast."""


class SeriesTooShortError(InsufficientDataError, FitError):
    """Raised by a model adapter when the series is below the fitting minimum."""


class ShapeMismatchError(ForecastingError):
    """Raised when forecasts with different horizons are combined."""


class EvaluationError(ForecastingError):
    """Raised when the one-shot benchmark fails for a model.

    Attributes:
        model_name: Name of the model whose fit, forecast or scoring failed.
    """

    def __init__(self, model_name, cause):
        self.model_name = model_name
        self.cause = cause
        super().__init__(f"Evaluation failed for {model_name}: {cause}")
