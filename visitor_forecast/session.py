"""
Interactive re-forecasting at a user-chosen horizon.

A ForecastSession holds the full-series models fitted once at startup and
re-runs only the forecast step when the horizon changes. Nothing is cached
between calls, so each call is a pure function of (model name, horizon).
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .config import ENSEMBLE_NAME, INTERVAL_LEVELS
from .models import EnsembleForecast, ForecastResult, check_horizon, combine

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["Date", "Data", "Forecast"] + [
    f"{bound}{level}" for level in INTERVAL_LEVELS for bound in ("lwr", "upr")
]


class ForecastSession:
    """Per-session forecasting state built from the startup benchmark.

    Args:
        adapters: Model adapters, one per fitted model
        models: Dict of model name -> FittedModel fitted on the full series
        series: Full observed series (used for the history part of frames)
        ensemble_name: Name of the combined forecast
    """

    def __init__(self, adapters, models, series, ensemble_name=ENSEMBLE_NAME):
        self._adapters = {adapter.name: adapter for adapter in adapters}
        if set(self._adapters) != set(models):
            raise ValueError(
                f"Adapters {sorted(self._adapters)} do not match fitted models {sorted(models)}"
            )
        # Keep the adapter order, it is the ensemble member order
        self._models = {name: models[name] for name in self._adapters}
        self._series = series.copy()
        self.ensemble_name = ensemble_name

    @classmethod
    def from_benchmark(cls, result, adapters, ensemble_name=ENSEMBLE_NAME):
        """Create a session from a BenchmarkResult and the adapters that produced it."""
        return cls(adapters, result.models, result.series, ensemble_name=ensemble_name)

    @property
    def model_names(self):
        return list(self._models)

    def reforecast(self, model_name, horizon) -> ForecastResult:
        """
        Forecast horizon months past the end of the series with one model.

        Args:
            model_name: Name of a fitted model (e.g. "ARIMA")
            horizon: Number of months ahead (int >= 1)

        Returns:
            ForecastResult from the full-series fit

        Raises:
            KeyError: If model_name is unknown
            ValueError: If horizon is not an integer >= 1
            FitError: If the model fails to forecast
        """
        if model_name not in self._models:
            raise KeyError(f"Unknown model {model_name!r}; available: {self.model_names}")
        horizon = check_horizon(horizon)
        logger.debug("Re-forecasting %s for %d months", model_name, horizon)
        return self._adapters[model_name].forecast(self._models[model_name], horizon)

    def reforecast_ensemble(self, horizon) -> EnsembleForecast:
        """Forecast with every model and combine the point forecasts."""
        horizon = check_horizon(horizon)
        results = [self.reforecast(name, horizon) for name in self._models]
        return combine(results, name=self.ensemble_name)

    def forecast_frame(self, model_name, horizon):
        """
        Build the chart frame for one model: history followed by the forecast.

        History rows carry Data; forecast rows carry Forecast and the interval
        bounds.

        Returns:
            DataFrame with columns Date, Data, Forecast, lwr80, upr80, lwr95, upr95
        """
        result = self.reforecast(model_name, horizon)
        future = pd.DataFrame({"Date": result.mean.index, "Forecast": result.mean.to_numpy()})
        for level in INTERVAL_LEVELS:
            lower, upper = result.band(level)
            future[f"lwr{level}"] = lower.to_numpy()
            future[f"upr{level}"] = upper.to_numpy()
        return self._with_history(future, FRAME_COLUMNS)

    def ensemble_frame(self, horizon):
        """Chart frame for the combined forecast: Date, Data, Forecast."""
        ensemble = self.reforecast_ensemble(horizon)
        future = pd.DataFrame({"Date": ensemble.mean.index, "Forecast": ensemble.mean.to_numpy()})
        return self._with_history(future, ["Date", "Data", "Forecast"])

    def _with_history(self, future, columns):
        history = pd.DataFrame({"Date": self._series.index, "Data": self._series.to_numpy()})
        frame = pd.concat([history, future], ignore_index=True)
        for column in columns:
            if column not in frame:
                frame[column] = np.nan
        return frame[columns]
