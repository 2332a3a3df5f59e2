#!/usr/bin/env python3
"""
Tests for the model adapters and ensemble combination.

The library-backed adapters (ARIMA, ETS, TBATS) are fitted once per class on
a synthetic seasonal series; the remaining tests use the seasonal naive
adapter or hand-built forecasts.
"""

import inspect
import unittest

import numpy as np
import pandas as pd
from statsmodels.tsa.exponential_smoothing.ets import ETSResults

from visitor_forecast.exceptions import (
    DataError,
    FitError,
    InsufficientDataError,
    SeriesTooShortError,
    ShapeMismatchError,
)
from visitor_forecast.models import (
    MODEL_REGISTRY,
    AutoArimaAdapter,
    EnsembleForecast,
    EtsAdapter,
    ForecastResult,
    ModelAdapter,
    SeasonalNaiveAdapter,
    TbatsAdapter,
    build_adapters,
    check_horizon,
    combine,
    ets_label,
    simulation_seed,
)
from visitor_forecast.metrics import calculate_accuracy
from visitor_forecast.series import split_series


def create_seasonal_series(n=48, start="2016-01-01", seed=42, noise=10):
    """Monthly series with trend, yearly seasonality and small noise."""
    rng = np.random.RandomState(seed)
    t = np.arange(n)
    values = 1000 + 5 * t + 100 * np.sin(2 * np.pi * t / 12) + rng.normal(0, noise, n)
    return pd.Series(values, index=pd.date_range(start, periods=n, freq="MS"))


def make_result(name, values, start="2020-01-01"):
    """Build a ForecastResult with a +/- 10 band around the given values."""
    index = pd.date_range(start, periods=len(values), freq="MS")
    mean = pd.Series(np.asarray(values, dtype=float), index=index, name=name)
    lower = pd.DataFrame({80: mean - 5, 95: mean - 10}, index=index)
    upper = pd.DataFrame({80: mean + 5, 95: mean + 10}, index=index)
    return ForecastResult(model_name=name, mean=mean, lower=lower, upper=upper)


class CombineTests(unittest.TestCase):
    """Elementwise mean ensemble."""

    def test_elementwise_mean(self):
        results = [make_result("A", [1, 2, 3]), make_result("B", [3, 4, 5]), make_result("C", [5, 6, 10])]
        ensemble = combine(results)
        self.assertIsInstance(ensemble, EnsembleForecast)
        np.testing.assert_allclose(ensemble.mean.to_numpy(), [3, 4, 6])
        self.assertEqual(ensemble.members, ("A", "B", "C"))
        self.assertEqual(ensemble.name, "Combination")
        self.assertEqual(ensemble.horizon, 3)
        self.assertTrue(ensemble.mean.index.equals(results[0].mean.index))

    def test_order_independent(self):
        rng = np.random.RandomState(7)
        a = make_result("A", rng.uniform(0, 1e6, 24))
        b = make_result("B", rng.uniform(0, 1e6, 24))
        c = make_result("C", rng.uniform(0, 1e6, 24))
        reference = combine([a, b, c]).mean.to_numpy()
        for ordering in ([a, c, b], [b, a, c], [b, c, a], [c, a, b], [c, b, a]):
            np.testing.assert_array_equal(combine(ordering).mean.to_numpy(), reference)

    def test_identical_inputs(self):
        # 0.1 and 0.7 do not survive a sum-then-divide round trip
        a = make_result("A", [0.1, 0.7, 1.1])
        ensemble = combine([a, make_result("B", [0.1, 0.7, 1.1]), make_result("C", [0.1, 0.7, 1.1])])
        np.testing.assert_array_equal(ensemble.mean.to_numpy(), a.mean.to_numpy())

    def test_partly_identical_inputs(self):
        ensemble = combine([make_result("A", [0.1, 1.0]), make_result("B", [0.1, 2.0]), make_result("C", [0.1, 6.0])])
        self.assertEqual(ensemble.mean.iloc[0], 0.1)
        self.assertEqual(ensemble.mean.iloc[1], 3.0)

    def test_horizon_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            combine([make_result("A", [1, 2, 3]), make_result("B", [1, 2])])

    def test_index_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            combine([make_result("A", [1, 2]), make_result("B", [1, 2], start="2021-01-01")])

    def test_empty(self):
        with self.assertRaises(ShapeMismatchError):
            combine([])


class AdapterContractTests(unittest.TestCase):
    """Behavior shared by every adapter, checked on the seasonal naive baseline."""

    @classmethod
    def setUpClass(cls):
        cls.series = create_seasonal_series(36)
        cls.adapter = SeasonalNaiveAdapter()
        cls.model = cls.adapter.fit(cls.series)

    def test_fitted_values(self):
        self.assertEqual(self.model.name, "SNAIVE")
        self.assertEqual(len(self.model.fitted), 36)
        self.assertTrue(self.model.fitted.iloc[:12].isna().all())
        np.testing.assert_allclose(self.model.fitted.iloc[12:].to_numpy(), self.series.iloc[:24].to_numpy())

    def test_forecast_lengths(self):
        for horizon in (1, 6, 12, 24):
            with self.subTest(horizon=horizon):
                result = self.adapter.forecast(self.model, horizon)
                self.assertEqual(result.horizon, horizon)
                self.assertEqual(len(result.lower), horizon)
                self.assertEqual(len(result.upper), horizon)
                self.assertEqual(result.levels, (80, 95))
                self.assertEqual(result.mean.index[0], pd.Timestamp("2019-01-01"))
                self.assertEqual(result.mean.index.freqstr, "MS")

    def test_repeats_last_season(self):
        result = self.adapter.forecast(self.model, 24)
        last_season = self.series.iloc[-12:].to_numpy()
        np.testing.assert_allclose(result.mean.to_numpy(), np.tile(last_season, 2))

    def test_interval_ordering(self):
        result = self.adapter.forecast(self.model, 24)
        lower80, upper80 = result.band(80)
        lower95, upper95 = result.band(95)
        self.assertTrue((lower95 <= lower80).all())
        self.assertTrue((lower80 <= result.mean).all())
        self.assertTrue((result.mean <= upper80).all())
        self.assertTrue((upper80 <= upper95).all())
        # Second season is less certain than the first
        width = (upper95 - lower95).to_numpy()
        self.assertGreater(width[12], width[11])

    def test_forecast_repeatable(self):
        first = self.adapter.forecast(self.model, 10)
        second = self.adapter.forecast(self.model, 10)
        self.assertTrue(first.equals(second))

    def test_invalid_horizon(self):
        for horizon in (0, -3, 2.5, "12", True, None):
            with self.subTest(horizon=horizon):
                with self.assertRaises(ValueError):
                    self.adapter.forecast(self.model, horizon)

    def test_wrong_adapter(self):
        with self.assertRaises(ValueError):
            AutoArimaAdapter().forecast(self.model, 3)

    def test_short_series(self):
        with self.assertRaises(SeriesTooShortError) as ctx:
            self.adapter.fit(self.series.iloc[:23])
        self.assertIsInstance(ctx.exception, FitError)
        self.assertIsInstance(ctx.exception, InsufficientDataError)

    def test_missing_values(self):
        series = self.series.copy()
        series.iloc[5] = np.nan
        with self.assertRaises(DataError):
            self.adapter.fit(series)

    def test_training_copied(self):
        series = self.series.copy()
        model = self.adapter.fit(series)
        series.iloc[0] = 0.0
        self.assertNotEqual(model.training.iloc[0], 0.0)

    def test_library_failure_wrapped(self):
        class BrokenAdapter(ModelAdapter):
            name = "BROKEN"

            def _fit(self, series):
                raise RuntimeError("optimizer diverged")

            def _forecast(self, estimator, horizon):
                raise AssertionError("not reached")

        with self.assertRaisesRegex(FitError, "optimizer diverged"):
            BrokenAdapter().fit(self.series)


class RegistryTests(unittest.TestCase):
    """Adapter registry and helpers."""

    def test_build_default_adapters(self):
        adapters = build_adapters()
        self.assertEqual([a.name for a in adapters], ["ARIMA", "ETS", "TBATS"])
        self.assertIsInstance(adapters[0], AutoArimaAdapter)
        self.assertIsInstance(adapters[1], EtsAdapter)
        self.assertIsInstance(adapters[2], TbatsAdapter)

    def test_registry_names(self):
        self.assertEqual(set(MODEL_REGISTRY), {"ARIMA", "ETS", "TBATS", "SNAIVE"})

    def test_unknown_model(self):
        with self.assertRaises(ValueError):
            build_adapters(["ARIMA", "PROPHET"])

    def test_duplicate_model(self):
        with self.assertRaises(ValueError):
            build_adapters(["ETS", "ETS"])

    def test_check_horizon(self):
        self.assertEqual(check_horizon(np.int64(7)), 7)
        self.assertEqual(check_horizon(1), 1)

    def test_ets_candidates(self):
        adapter = EtsAdapter()
        positive = list(adapter.candidate_configs(create_seasonal_series()))
        self.assertIn({"error": "mul", "trend": "add", "damped_trend": True, "seasonal": "mul"}, positive)
        self.assertFalse(any(c["error"] == "add" and c["seasonal"] == "mul" for c in positive))

        with_zero = create_seasonal_series()
        with_zero.iloc[3] = 0.0
        configs = list(adapter.candidate_configs(with_zero))
        self.assertTrue(all(c["error"] == "add" and c["seasonal"] != "mul" for c in configs))

    def test_ets_label(self):
        config = {"error": "mul", "trend": "add", "damped_trend": True, "seasonal": None}
        self.assertEqual(ets_label(config), "ETS(M,Ad,N)")


class LibraryAdapterTests(unittest.TestCase):
    """ARIMA, ETS and TBATS fitted on the same 48-month series."""

    @classmethod
    def setUpClass(cls):
        cls.series = create_seasonal_series(48)
        cls.adapters = {adapter.name: adapter for adapter in build_adapters()}
        cls.models = {name: adapter.fit(cls.series) for name, adapter in cls.adapters.items()}

    def test_fitted_values_aligned(self):
        for name, model in self.models.items():
            with self.subTest(model=name):
                self.assertEqual(model.name, name)
                self.assertTrue(model.fitted.index.equals(self.series.index))

    def test_forecast_shapes(self):
        for name, adapter in self.adapters.items():
            for horizon in (1, 14, 24):
                with self.subTest(model=name, horizon=horizon):
                    result = adapter.forecast(self.models[name], horizon)
                    self.assertEqual(result.horizon, horizon)
                    self.assertEqual(result.model_name, name)
                    self.assertEqual(result.mean.index[0], pd.Timestamp("2020-01-01"))
                    self.assertTrue(np.isfinite(result.mean.to_numpy()).all())
                    for level in (80, 95):
                        lower, upper = result.band(level)
                        self.assertTrue(np.isfinite(lower.to_numpy()).all())
                        self.assertTrue((lower <= upper).all())

    def test_wider_band_contains_narrower(self):
        for name, adapter in self.adapters.items():
            with self.subTest(model=name):
                result = adapter.forecast(self.models[name], 12)
                self.assertTrue((result.lower[95] <= result.lower[80] + 1e-9).all())
                self.assertTrue((result.upper[80] <= result.upper[95] + 1e-9).all())

    def test_arima_mean_inside_band(self):
        result = self.adapters["ARIMA"].forecast(self.models["ARIMA"], 12)
        self.assertTrue((result.lower[95] <= result.mean).all())
        self.assertTrue((result.mean <= result.upper[95]).all())

    def test_forecasts_repeatable(self):
        for name, adapter in self.adapters.items():
            with self.subTest(model=name):
                first = adapter.forecast(self.models[name], 18)
                second = adapter.forecast(self.models[name], 18)
                self.assertTrue(first.equals(second))

    def test_combination_of_library_forecasts(self):
        results = [adapter.forecast(self.models[name], 6) for name, adapter in self.adapters.items()]
        ensemble = combine(results)
        expected = np.mean([r.mean.to_numpy() for r in results], axis=0)
        np.testing.assert_allclose(ensemble.mean.to_numpy(), expected)


class ArimaFittedValuesTests(unittest.TestCase):
    """In-sample fit of the ARIMA adapter on a noiseless seasonal series."""

    @classmethod
    def setUpClass(cls):
        cls.series = create_seasonal_series(48, noise=0)
        cls.model = AutoArimaAdapter().fit(cls.series)

    def _burn_in(self):
        order, seasonal_order = self.model.estimator.order, self.model.estimator.seasonal_order
        return order[1] + seasonal_order[1] * seasonal_order[3]

    def test_differencing_burn_in_masked(self):
        burn_in = self._burn_in()
        self.assertTrue(self.model.fitted.iloc[:burn_in].isna().all())
        self.assertTrue(np.isfinite(self.model.fitted.iloc[burn_in:].to_numpy()).all())

    def test_training_mape_small(self):
        accuracy = calculate_accuracy(self.series.to_numpy(), self.model.fitted.to_numpy())
        self.assertLess(accuracy["mape"], 2.0)


class EtsAdapterTests(unittest.TestCase):
    """ETS on a training window cut out of a longer series."""

    @classmethod
    def setUpClass(cls):
        cls.split = split_series(create_seasonal_series(48), 0.7)
        cls.adapter = EtsAdapter()
        cls.model = cls.adapter.fit(cls.split.training)

    def test_fitted_values_aligned(self):
        self.assertTrue(self.model.fitted.index.equals(self.split.training.index))
        self.assertTrue(np.isfinite(self.model.fitted.to_numpy()).all())

    def test_forecasts_test_window(self):
        result = self.adapter.forecast(self.model, self.split.horizon)
        self.assertEqual(result.horizon, 14)
        self.assertTrue(result.mean.index.equals(self.split.test.index))
        for level in (80, 95):
            lower, upper = result.band(level)
            self.assertTrue((lower <= result.mean).all())
            self.assertTrue((result.mean <= upper).all())

    def test_simulation_seed_keyword(self):
        keyword, = simulation_seed(7)
        self.assertIn(keyword, inspect.signature(ETSResults.simulate).parameters)

    def test_simulated_intervals_repeatable(self):
        estimator = self.model.estimator
        start = len(estimator.model.endog)
        first, second = (
            estimator.get_prediction(start=start, end=start + 5, method="simulated",
                                     simulate_repetitions=200, **simulation_seed(7)).summary_frame()
            for _ in range(2)
        )
        self.assertTrue(first.equals(second))

if __name__ == "__main__":
    unittest.main(verbosity=2)
