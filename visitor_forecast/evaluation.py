"""
Benchmark evaluation for the forecasting models.

Fits every configured model on the training window, forecasts the test
window, combines the test forecasts into the ensemble and scores all of them.
Also fits the full-series models used for interactive re-forecasting.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .config import ENSEMBLE_NAME, TRAIN_FRACTION
from .exceptions import EvaluationError, ForecastingError
from .metrics import calculate_accuracy
from .models import EnsembleForecast, build_adapters, combine
from .series import SeriesStore, Split, split_series

logger = logging.getLogger(__name__)

TRAINING_SET = "Training"
TEST_SET = "Test"


@dataclass(frozen=True)
class AccuracyRow:
    """Accuracy of one model on one set (Training or Test)."""

    model: str
    set: str
    rmse: float
    mape: float
    mase: Optional[float]
    theils_u: Optional[float]


@dataclass(frozen=True, eq=False)
class BenchmarkResult:
    """Everything computed once at startup and shared by all sessions.

    Attributes:
        series: Full observed series.
        split: Training/test partition used for scoring.
        rows: Accuracy rows in computation order.
        test_forecasts: Per-model forecasts of the test window.
        test_ensemble: Combined forecast of the test window.
        models: Per-model fits on the full series.
    """

    series: pd.Series
    split: Split
    rows: tuple
    test_forecasts: dict
    test_ensemble: EnsembleForecast
    models: dict


class Evaluator:
    """Scores a fixed list of model adapters on a train/test split.

    Any failure while fitting, forecasting, combining or scoring raises
    EvaluationError naming the model; no partial results are returned.
    """

    def __init__(self, adapters, ensemble_name=ENSEMBLE_NAME, diagnostic_messages=None):
        self.adapters = list(adapters)
        if not self.adapters:
            raise ValueError("At least one model adapter is required")
        names = [adapter.name for adapter in self.adapters]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate model names in {names}")
        if ensemble_name in names:
            raise ValueError(f"Ensemble name {ensemble_name!r} clashes with a model name")
        self.ensemble_name = ensemble_name
        self.diagnostic_messages = diagnostic_messages if diagnostic_messages is not None else []
        # Test-window forecasts from the latest run()
        self.test_forecasts = {}
        self.test_ensemble = None

    @property
    def model_names(self):
        return [adapter.name for adapter in self.adapters]

    @contextmanager
    def _guard(self, model_name):
        try:
            yield
        except ForecastingError as e:
            logger.error("Evaluation of %s failed: %s", model_name, e)
            self.diagnostic_messages.append(f"❌ **{model_name}**: {e}")
            raise EvaluationError(model_name, e) from e

    def forecast_test(self, split: Split):
        """
        Fit each model on the training window and forecast the test window.

        Args:
            split: Training/test partition

        Returns:
            Tuple of (fitted models by name, test ForecastResults by name)
        """
        models, forecasts = {}, {}
        for adapter in self.adapters:
            with self._guard(adapter.name):
                model = adapter.fit(split.training)
                forecasts[adapter.name] = adapter.forecast(model, split.horizon)
            models[adapter.name] = model
            self.diagnostic_messages.append(
                f"✅ **{adapter.name}**: fitted on {len(split.training)} months, "
                f"forecast {split.horizon} test months"
            )
        return models, forecasts

    def combine(self, forecasts):
        """Combine test forecasts (dict by name) into the ensemble forecast."""
        with self._guard(self.ensemble_name):
            return combine(list(forecasts.values()), name=self.ensemble_name)

    def score(self, split, models, forecasts, ensemble):
        """
        Build accuracy rows for the fitted models and the ensemble.

        Training rows compare in-sample fitted values with the training
        actuals; Test rows compare forecasts with the held-out values. The
        MASE scale always comes from the training window.

        Returns:
            List of AccuracyRow: per model Training then Test, then the ensemble
        """
        training = split.training.to_numpy()
        test = split.test.to_numpy()
        rows = []
        for name, model in models.items():
            with self._guard(name):
                in_sample = calculate_accuracy(training, model.fitted.to_numpy(), insample=training)
                out_of_sample = calculate_accuracy(
                    test, forecasts[name].mean.to_numpy(), insample=training, with_theils_u=True
                )
            rows.append(AccuracyRow(model=name, set=TRAINING_SET, **in_sample))
            rows.append(AccuracyRow(model=name, set=TEST_SET, **out_of_sample))

        # The ensemble has no training fit, so no Training row and no MASE
        with self._guard(self.ensemble_name):
            combined = calculate_accuracy(test, ensemble.mean.to_numpy(), with_theils_u=True)
        rows.append(AccuracyRow(model=self.ensemble_name, set=TEST_SET, **combined))
        return rows

    def run(self, split: Split):
        """
        Fit, forecast, combine and score all models on a split.

        Args:
            split: Training/test partition

        Returns:
            List of AccuracyRow in computation order. The per-model test
            forecasts and their combination are kept on test_forecasts and
            test_ensemble once every row has been scored.

        Raises:
            EvaluationError: If any model fails
        """
        models, forecasts = self.forecast_test(split)
        ensemble = self.combine(forecasts)
        rows = self.score(split, models, forecasts, ensemble)
        self.test_forecasts, self.test_ensemble = forecasts, ensemble
        return rows

    def fit_full(self, series):
        """Fit every model on the full series for re-forecasting."""
        models = {}
        for adapter in self.adapters:
            with self._guard(adapter.name):
                models[adapter.name] = adapter.fit(series)
        return models


def run_benchmark(store, adapters=None, train_fraction=TRAIN_FRACTION, ensemble_name=ENSEMBLE_NAME,
                  diagnostic_messages=None) -> BenchmarkResult:
    """
    Run the one-shot benchmark: split, score the models and fit them on the full series.

    Args:
        store: SeriesStore (or month-start indexed Series) with the observations
        adapters: Model adapters to evaluate (defaults to ARIMA, ETS and TBATS)
        train_fraction: Fraction of the series used for training
        ensemble_name: Name of the combined forecast
        diagnostic_messages: Optional list collecting human-readable progress lines

    Returns:
        BenchmarkResult

    Raises:
        InsufficientDataError: If the series cannot be split
        EvaluationError: If any model fails
    """
    adapters = build_adapters() if adapters is None else list(adapters)
    series = store.all() if isinstance(store, SeriesStore) else store.copy()
    split = split_series(series, train_fraction)

    evaluator = Evaluator(adapters, ensemble_name=ensemble_name, diagnostic_messages=diagnostic_messages)
    logger.info("Evaluating %s on %d training and %d test months",
                ", ".join(evaluator.model_names), len(split.training), len(split.test))
    rows = evaluator.run(split)

    models = evaluator.fit_full(series)
    logger.info("Benchmark complete: %d accuracy rows, %d full-series models", len(rows), len(models))
    return BenchmarkResult(
        series=series,
        split=split,
        rows=tuple(rows),
        test_forecasts=evaluator.test_forecasts,
        test_ensemble=evaluator.test_ensemble,
        models=models,
    )
