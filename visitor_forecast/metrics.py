"""
Accuracy metrics for forecasting models.

Contains implementations of RMSE, MAPE, MASE and Theil's U as used in the
accuracy table.
"""

import numpy as np
from sklearn.metrics import mean_squared_error

from .exceptions import DataError, ShapeMismatchError


def _as_pair(actual, forecast):
    actual = np.asarray(actual, dtype=float)
    forecast = np.asarray(forecast, dtype=float)
    if actual.shape != forecast.shape:
        raise ShapeMismatchError(f"Got {actual.size} actuals but {forecast.size} forecasts")
    if actual.size == 0:
        raise DataError("Cannot score an empty set")
    return actual, forecast


def rmse(actual, forecast):
    """
    Calculate Root Mean Squared Error (RMSE).

    Args:
        actual: Array of actual values
        forecast: Array of forecasted values

    Returns:
        RMSE value (lower is better)
    """
    actual, forecast = _as_pair(actual, forecast)
    return float(np.sqrt(mean_squared_error(actual, forecast)))


def mape(actual, forecast):
    """
    Calculate Mean Absolute Percentage Error (MAPE) in percent.

    Args:
        actual: Array of actual values
        forecast: Array of forecasted values

    Returns:
        MAPE value (0 to inf, lower is better)

    Raises:
        DataError: If any actual value is zero
    """
    actual, forecast = _as_pair(actual, forecast)
    if (actual == 0).any():
        raise DataError("MAPE is undefined when an actual value is zero")
    return float(np.mean(np.abs((actual - forecast) / actual)) * 100)


def mase(actual, forecast, insample, seasonal_period: int = 1):
    """Compute Mean Absolute Scaled Error (MASE).

    MASE = MAE(forecast) / mean_{t=m+1..n} |Y_t - Y_{t-m}| where Y is the
    in-sample (training) series. With the default period of 1 the scale is
    the naive one-step difference.

    Args:
        actual: actual values being scored
        forecast: corresponding forecast values
        insample: training series used for scaling
        seasonal_period: lag of the naive benchmark (m)

    Returns:
        float MASE value. 0.0 for a perfect forecast on a constant training
        series, inf for any other forecast on one.
    """
    actual, forecast = _as_pair(actual, forecast)
    insample = np.asarray(insample, dtype=float)
    m = int(max(1, seasonal_period))
    if insample.size <= m:
        raise DataError(f"MASE needs more than {m} training observations, got {insample.size}")
    denom = np.mean(np.abs(insample[m:] - insample[:-m]))
    if denom == 0:
        return 0.0 if np.allclose(actual, forecast) else np.inf
    return float(np.mean(np.abs(actual - forecast)) / denom)


def theils_u(actual, forecast):
    """Theil's U statistic comparing the forecast with a no-change forecast.

    Relative changes of the forecast are compared with the actual relative
    changes; 0 is a perfect forecast and 1 matches the naive forecast.

    Returns:
        float U value, NaN when fewer than two points or the actuals never change
    """
    actual, forecast = _as_pair(actual, forecast)
    if actual.size < 2:
        return np.nan
    base = actual[:-1]
    if (base == 0).any():
        raise DataError("Theil's U is undefined when an actual value is zero")
    forecast_change = forecast[1:] / base - 1
    actual_change = actual[1:] / base - 1
    denom = np.sum(actual_change ** 2)
    if denom == 0:
        return np.nan
    return float(np.sqrt(np.sum((forecast_change - actual_change) ** 2) / denom))


def finite_pairs(actual, forecast):
    """Drop positions where the forecast is missing or non-finite."""
    actual, forecast = _as_pair(actual, forecast)
    mask = np.isfinite(forecast)
    return actual[mask], forecast[mask]


def calculate_accuracy(actual, forecast, insample=None, with_theils_u=False):
    """
    Calculate the accuracy table metrics for one model and one set.

    Args:
        actual: Actual values of the set
        forecast: Fitted or forecasted values for the same months
        insample: Training data for the MASE scale; MASE is None without it
        with_theils_u: Also compute Theil's U (None otherwise)

    Returns:
        Dict with keys rmse, mape, mase, theils_u
    """
    actual, forecast = finite_pairs(actual, forecast)
    return {
        "rmse": rmse(actual, forecast),
        "mape": mape(actual, forecast),
        "mase": mase(actual, forecast, insample) if insample is not None else None,
        "theils_u": theils_u(actual, forecast) if with_theils_u else None,
    }
