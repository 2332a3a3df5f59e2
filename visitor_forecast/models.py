"""
Model adapters and ensemble combination.

Every forecasting algorithm is wrapped in a ModelAdapter exposing the same
two operations: fit(series) -> FittedModel and forecast(model, horizon) ->
ForecastResult. The benchmark and the interactive session iterate over a
configured list of adapters and never branch on the algorithm.

Contains the Auto-ARIMA (pmdarima), ETS (statsmodels state space), TBATS
and seasonal naive implementations.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import operator
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from pmdarima import auto_arima
from scipy.stats import norm
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.exponential_smoothing.ets import ETSModel, ETSResults
from tbats import TBATS

from .config import (
    DEFAULT_MODELS,
    ENSEMBLE_NAME,
    ETS_RANDOM_STATE,
    ETS_SIMULATIONS,
    INTERVAL_LEVELS,
    MIN_OBSERVATIONS,
    SEASONAL_PERIOD,
)
from .exceptions import DataError, FitError, ForecastingError, SeriesTooShortError, ShapeMismatchError
from .utils import future_month_index

# Suppress warnings for cleaner output
warnings.filterwarnings("ignore", category=ConvergenceWarning)
warnings.filterwarnings("ignore", message=".*Too few observations.*")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """A fitted forecasting model.

    Attributes:
        name: Algorithm name of the adapter that produced it.
        estimator: Opaque fitted object owned by the adapter.
        training: Series the model was fitted on.
        fitted: In-sample one-step fitted values aligned with training
            (NaN where the algorithm has no fitted value).
    """

    name: str
    estimator: Any
    training: pd.Series
    fitted: pd.Series


@dataclass(frozen=True, eq=False)
class ForecastResult:
    """Point forecasts with central prediction intervals.

    Attributes:
        model_name: Algorithm that produced the forecast.
        mean: Point forecasts indexed by the forecast months.
        lower: Lower interval bounds, one column per level (80, 95).
        upper: Upper interval bounds, one column per level (80, 95).
    """

    model_name: str
    mean: pd.Series
    lower: pd.DataFrame
    upper: pd.DataFrame

    @property
    def horizon(self) -> int:
        return len(self.mean)

    @property
    def levels(self) -> tuple:
        return tuple(self.lower.columns)

    def band(self, level: int) -> tuple[pd.Series, pd.Series]:
        """Return the (lower, upper) bounds for one interval level."""
        return self.lower[level], self.upper[level]

    def equals(self, other: ForecastResult) -> bool:
        return (
            self.model_name == other.model_name
            and self.mean.equals(other.mean)
            and self.lower.equals(other.lower)
            and self.upper.equals(other.upper)
        )


@dataclass(frozen=True, eq=False)
class EnsembleForecast:
    """Elementwise mean of several models' point forecasts (no intervals)."""

    name: str
    mean: pd.Series
    members: tuple

    @property
    def horizon(self) -> int:
        return len(self.mean)

    def equals(self, other: EnsembleForecast) -> bool:
        return self.name == other.name and self.members == other.members and self.mean.equals(other.mean)


def check_horizon(horizon) -> int:
    """Validate a forecast horizon and return it as an int (>= 1)."""
    if isinstance(horizon, bool):
        raise ValueError(f"Forecast horizon must be an integer, got {horizon!r}")
    try:
        horizon = operator.index(horizon)
    except TypeError:
        raise ValueError(f"Forecast horizon must be an integer, got {horizon!r}") from None
    if horizon < 1:
        raise ValueError(f"Forecast horizon must be at least 1, got {horizon}")
    return horizon


class ModelAdapter(ABC):
    """Abstract base class for forecasting algorithms.

    Subclasses implement _fit() and _forecast(); the public fit() and
    forecast() methods handle validation, error wrapping and indexing so
    every algorithm behaves identically from the caller's side.
    """

    name: str = ""
    min_observations: int = MIN_OBSERVATIONS

    def fit(self, series: pd.Series) -> FittedModel:
        """Fit the algorithm to a month-start indexed series.

        Args:
            series: Training series (values are copied)

        Returns:
            FittedModel wrapping the library's fitted object

        Raises:
            SeriesTooShortError: If the series has fewer than min_observations values
            FitError: If the underlying library fails
        """
        series = pd.Series(series, dtype=float, copy=True)
        if len(series) < self.min_observations:
            raise SeriesTooShortError(
                f"{self.name} needs at least {self.min_observations} observations, got {len(series)}"
            )
        if not np.isfinite(series.to_numpy()).all():
            raise DataError(f"{self.name} cannot fit a series with missing values")

        logger.debug("Fitting %s on %d observations", self.name, len(series))
        try:
            estimator, fitted = self._fit(series)
        except ForecastingError:
            raise
        except Exception as e:
            raise FitError(f"{self.name} failed to fit: {e}") from e

        fitted = np.asarray(fitted, dtype=float).reshape(-1)
        if fitted.shape != (len(series),):
            raise FitError(f"{self.name} returned {fitted.size} fitted values for {len(series)} observations")
        return FittedModel(
            name=self.name,
            estimator=estimator,
            training=series,
            fitted=pd.Series(fitted, index=series.index, name=self.name),
        )

    def forecast(self, model: FittedModel, horizon: int) -> ForecastResult:
        """Forecast horizon months past the end of the model's training series.

        Args:
            model: FittedModel returned by this adapter's fit()
            horizon: Number of months ahead (>= 1)

        Returns:
            ForecastResult with exactly horizon point forecasts and bounds

        Raises:
            ValueError: If horizon is invalid or the model belongs to another adapter
            FitError: If the underlying library fails
        """
        horizon = check_horizon(horizon)
        if model.name != self.name:
            raise ValueError(f"{self.name} adapter cannot forecast a {model.name} model")

        try:
            mean, bands = self._forecast(model.estimator, horizon)
        except ForecastingError:
            raise
        except Exception as e:
            raise FitError(f"{self.name} failed to forecast {horizon} steps: {e}") from e

        index = future_month_index(model.training.index[-1], horizon)
        lower = pd.DataFrame(index=index)
        upper = pd.DataFrame(index=index)
        for level in INTERVAL_LEVELS:
            lower[level] = self._as_steps(bands[level][0], horizon, f"{level}% lower bound")
            upper[level] = self._as_steps(bands[level][1], horizon, f"{level}% upper bound")
        mean = pd.Series(self._as_steps(mean, horizon, "point forecast"), index=index, name=self.name)
        return ForecastResult(model_name=self.name, mean=mean, lower=lower, upper=upper)

    def _as_steps(self, values, horizon, label):
        values = np.asarray(values, dtype=float).reshape(-1)
        if values.shape != (horizon,):
            raise FitError(f"{self.name} returned {values.size} values for {label}, expected {horizon}")
        return values

    @abstractmethod
    def _fit(self, series: pd.Series) -> tuple[Any, Any]:
        """Return (fitted estimator, in-sample fitted values)."""

    @abstractmethod
    def _forecast(self, estimator: Any, horizon: int) -> tuple[Any, dict]:
        """Return (point forecasts, {level: (lower, upper)})."""

    def __repr__(self):
        return f"{type(self).__name__}()"


class AutoArimaAdapter(ModelAdapter):
    """Seasonal ARIMA with automatic order search (pmdarima.auto_arima)."""

    name = "ARIMA"

    def __init__(self, seasonal_period=SEASONAL_PERIOD, max_p=3, max_d=2, max_q=3,
                 max_P=2, max_D=1, max_Q=2):
        self.seasonal_period = seasonal_period
        self.max_p = max_p
        self.max_d = max_d
        self.max_q = max_q
        self.max_P = max_P
        self.max_D = max_D
        self.max_Q = max_Q

    def _search_configs(self):
        # Increasingly permissive configs to handle short or quiet samples
        return [
            {"seasonal": True, "m": self.seasonal_period, "max_D": self.max_D, "max_P": self.max_P, "max_Q": self.max_Q},
            {"seasonal": True, "m": self.seasonal_period, "max_D": 0, "max_P": self.max_P, "max_Q": self.max_Q},
            {"seasonal": False, "m": 1, "max_D": 0, "max_P": 0, "max_Q": 0},
        ]

    def _fit(self, series):
        last_err = None
        for cfg in self._search_configs():
            try:
                model = auto_arima(
                    series.to_numpy(),
                    seasonal=cfg["seasonal"],
                    m=cfg["m"],
                    max_p=self.max_p, max_d=self.max_d, max_q=self.max_q,
                    max_P=cfg["max_P"], max_D=cfg["max_D"], max_Q=cfg["max_Q"],
                    stepwise=True,
                    suppress_warnings=True,
                    error_action="ignore",
                    trace=False,
                )
            except Exception as e:
                logger.debug("auto_arima config %s failed: %s", cfg, e)
                last_err = e
                continue
            logger.info("ARIMA selected order %s seasonal %s", model.order, model.seasonal_order)
            return model, arima_fitted_values(model)
        raise FitError(f"auto_arima found no viable model: {last_err}")

    def _forecast(self, model, horizon):
        mean = None
        bands = {}
        for level in INTERVAL_LEVELS:
            mean, conf_int = model.predict(n_periods=horizon, return_conf_int=True, alpha=1 - level / 100)
            conf_int = np.asarray(conf_int, dtype=float)
            bands[level] = (conf_int[:, 0], conf_int[:, 1])
        return mean, bands


def arima_fitted_values(model):
    """
    In-sample fitted values of a pmdarima model, NaN over the differencing burn-in.

    The first d + D*m one-step predictions come from the diffuse state
    initialisation rather than from data, so they are not reported.
    """
    fitted = np.asarray(model.predict_in_sample(), dtype=float).copy()
    _, d, _ = model.order
    _, seasonal_d, _, m = model.seasonal_order
    burn_in = d + seasonal_d * m
    fitted[:burn_in] = np.nan
    return fitted


class EtsAdapter(ModelAdapter):
    """Exponential smoothing state space model selected by AICc.

    Candidate error/trend/seasonal combinations are fitted with statsmodels'
    ETSModel; multiplicative components are only tried on strictly positive
    data and additive-error models never get multiplicative seasonality.
    """

    name = "ETS"

    def __init__(self, seasonal_period=SEASONAL_PERIOD, random_state=ETS_RANDOM_STATE,
                 simulations=ETS_SIMULATIONS):
        self.seasonal_period = seasonal_period
        self.random_state = random_state
        self.simulations = simulations

    def candidate_configs(self, series):
        """Yield ETSModel keyword configurations to try on this series."""
        positive = bool((series > 0).all())
        errors = ("add", "mul") if positive else ("add",)
        trends = ((None, False), ("add", False), ("add", True))
        seasonals = (None, "add", "mul") if positive else (None, "add")
        for error, (trend, damped), seasonal in itertools.product(errors, trends, seasonals):
            if error == "add" and seasonal == "mul":
                continue
            yield {"error": error, "trend": trend, "damped_trend": damped, "seasonal": seasonal}

    def _fit(self, series):
        # Prediction row labels come from the endog index, which must be dated
        endog = pd.Series(
            series.to_numpy(),
            index=pd.date_range(start=series.index[0], periods=len(series), freq="MS"),
        )
        best, best_config = None, None
        for config in self.candidate_configs(series):
            try:
                result = ETSModel(
                    endog,
                    seasonal_periods=self.seasonal_period if config["seasonal"] else None,
                    initialization_method="heuristic",
                    **config,
                ).fit(disp=False)
            except Exception as e:
                logger.debug("ETS %s failed: %s", ets_label(config), e)
                continue
            if not np.isfinite(result.aicc):
                continue
            if best is None or result.aicc < best.aicc:
                best, best_config = result, config
        if best is None:
            raise FitError("ETS fitting failed for all configurations")
        logger.info("ETS selected %s (AICc %.2f)", ets_label(best_config), best.aicc)
        return best, best.fittedvalues

    def _forecast(self, result, horizon):
        start = len(result.model.endog)
        # Multiplicative models use simulated intervals; a fixed seed keeps them repeatable
        prediction = result.get_prediction(
            start=start,
            end=start + horizon - 1,
            simulate_repetitions=self.simulations,
            **simulation_seed(self.random_state),
        )
        bands = {}
        for level in INTERVAL_LEVELS:
            frame = prediction.summary_frame(alpha=1 - level / 100)
            bands[level] = (frame["pi_lower"].to_numpy(), frame["pi_upper"].to_numpy())
        return prediction.predicted_mean, bands


def simulation_seed(seed):
    """Seed keyword for ETSResults.simulate (statsmodels 0.15 renamed random_state to rng)."""
    if "rng" in inspect.signature(ETSResults.simulate).parameters:
        return {"rng": np.random.default_rng(seed)}
    return {"random_state": seed}


def ets_label(config):
    """Short ETS(error, trend, seasonal) label, e.g. ETS(M,Ad,M)."""
    letters = {None: "N", "add": "A", "mul": "M"}
    trend = letters[config["trend"]] + ("d" if config["damped_trend"] else "")
    return f"ETS({letters[config['error']]},{trend},{letters[config['seasonal']]})"


class TbatsAdapter(ModelAdapter):
    """TBATS model (trigonometric seasonality, Box-Cox, ARMA errors)."""

    name = "TBATS"

    def __init__(self, seasonal_periods=(SEASONAL_PERIOD,), use_arma_errors=True, n_jobs=1):
        self.seasonal_periods = tuple(seasonal_periods)
        self.use_arma_errors = use_arma_errors
        self.n_jobs = n_jobs

    def _fit(self, series):
        estimator = TBATS(
            seasonal_periods=list(self.seasonal_periods),
            use_arma_errors=self.use_arma_errors,
            show_warnings=False,
            n_jobs=self.n_jobs,
        )
        model = estimator.fit(series.to_numpy())
        return model, model.y_hat

    def _forecast(self, model, horizon):
        mean = None
        bands = {}
        for level in INTERVAL_LEVELS:
            mean, confidence = model.forecast(steps=horizon, confidence_level=level / 100)
            bands[level] = (confidence["lower_bound"], confidence["upper_bound"])
        return mean, bands


class SeasonalNaiveAdapter(ModelAdapter):
    """Seasonal naive baseline: repeat the last observed season.

    Intervals assume normal errors with the in-sample seasonal-difference
    standard deviation, widened by sqrt(k + 1) for the k-th full season ahead.
    """

    name = "SNAIVE"

    def __init__(self, seasonal_period=SEASONAL_PERIOD):
        self.seasonal_period = seasonal_period

    def _fit(self, series):
        y = series.to_numpy()
        m = self.seasonal_period
        fitted = np.full(len(y), np.nan)
        fitted[m:] = y[:-m]
        residuals = y[m:] - y[:-m]
        sigma = float(np.sqrt(np.mean(residuals ** 2)))
        return {"last_season": y[-m:].copy(), "sigma": sigma}, fitted

    def _forecast(self, state, horizon):
        last_season = state["last_season"]
        steps = np.arange(horizon)
        mean = last_season[steps % len(last_season)]
        se = state["sigma"] * np.sqrt(steps // len(last_season) + 1)
        bands = {}
        for level in INTERVAL_LEVELS:
            z = norm.ppf(0.5 + level / 200)
            bands[level] = (mean - z * se, mean + z * se)
        return mean, bands


MODEL_REGISTRY = {
    AutoArimaAdapter.name: AutoArimaAdapter,
    EtsAdapter.name: EtsAdapter,
    TbatsAdapter.name: TbatsAdapter,
    SeasonalNaiveAdapter.name: SeasonalNaiveAdapter,
}


def build_adapters(names=DEFAULT_MODELS):
    """
    Instantiate adapters for the given model names, keeping their order.

    Raises:
        ValueError: If a name is unknown or repeated
    """
    names = list(names)
    unknown = [n for n in names if n not in MODEL_REGISTRY]
    if unknown:
        raise ValueError(f"Unknown models {unknown}; choose from {sorted(MODEL_REGISTRY)}")
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate model names in {names}")
    return [MODEL_REGISTRY[n]() for n in names]


def combine(results, name=ENSEMBLE_NAME) -> EnsembleForecast:
    """
    Combine forecasts by the elementwise mean of their point forecasts.

    Interval bands are not combined. Values at each step are sorted before
    summing so the result is identical for any ordering of the inputs.

    Args:
        results: Sequence of ForecastResult sharing horizon and forecast months
        name: Name of the combined forecast

    Returns:
        EnsembleForecast

    Raises:
        ShapeMismatchError: If results is empty or the forecasts do not line up
    """
    results = list(results)
    if not results:
        raise ShapeMismatchError("No forecasts to combine")
    horizons = sorted({r.horizon for r in results})
    if len(horizons) != 1:
        raise ShapeMismatchError(f"Cannot combine forecasts with different horizons {horizons}")
    index = results[0].mean.index
    for result in results[1:]:
        if not result.mean.index.equals(index):
            raise ShapeMismatchError(
                f"{result.model_name} forecasts different months than {results[0].model_name}"
            )

    stacked = np.sort(np.vstack([r.mean.to_numpy(dtype=float) for r in results]), axis=0)
    # Steps where every member agrees keep that exact value
    unanimous = stacked[0] == stacked[-1]
    mean = np.where(unanimous, stacked[0], stacked.sum(axis=0) / len(results))
    return EnsembleForecast(
        name=name,
        mean=pd.Series(mean, index=index, name=name),
        members=tuple(r.model_name for r in results),
    )
