"""
Series storage and train/test splitting.

The SeriesStore owns the monthly visitor series for the lifetime of the
process. split_series partitions it into a training window and a held-out
test window using a fixed fraction.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .config import DATE_COLUMN, SEASONAL_PERIOD, TRAIN_FRACTION, VALUE_COLUMN
from .exceptions import DataError, InsufficientDataError
from .utils import coerce_month_start

logger = logging.getLogger(__name__)


class SeriesStore:
    """Immutable monthly time series with calendar metadata.

    Dates are coerced to month starts and must advance by exactly one month
    per observation. Values must be finite and non-negative.
    """

    def __init__(self, dates, values, frequency: int = SEASONAL_PERIOD):
        if frequency != SEASONAL_PERIOD:
            raise ValueError(f"Only monthly series are supported (frequency {SEASONAL_PERIOD})")

        dates = list(dates)
        values = list(values)
        if len(dates) != len(values):
            raise DataError(f"Got {len(dates)} dates but {len(values)} values")
        if not dates:
            raise DataError("Series has no observations")

        index = pd.DatetimeIndex([coerce_month_start(d) for d in dates])
        numeric = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce").astype(float)

        missing = ~np.isfinite(numeric.to_numpy())
        if missing.any():
            position = int(np.flatnonzero(missing)[0])
            raise DataError(f"Missing or non-numeric value at {index[position]:%Y-%m}")
        negative = numeric.to_numpy() < 0
        if negative.any():
            position = int(np.flatnonzero(negative)[0])
            raise DataError(f"Negative visitor count at {index[position]:%Y-%m}")

        # Consecutive observations must be exactly one calendar month apart
        months = index.year * 12 + index.month
        steps = np.diff(np.asarray(months))
        # Ordering is reported before gaps: a swapped pair also leaves a two-month step
        if (steps <= 0).any():
            position = int(np.flatnonzero(steps <= 0)[0])
            previous, current = index[position], index[position + 1]
            raise DataError(f"Dates are not increasing: {current:%Y-%m} follows {previous:%Y-%m}")
        if (steps != 1).any():
            position = int(np.flatnonzero(steps != 1)[0])
            previous, current = index[position], index[position + 1]
            raise DataError(f"Gap in monthly series between {previous:%Y-%m} and {current:%Y-%m}")

        index = pd.date_range(start=index[0], periods=len(index), freq="MS")
        series = pd.Series(numeric.to_numpy(copy=True), index=index, name=VALUE_COLUMN)
        self._series = series
        self._frequency = frequency

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, date_column: str = DATE_COLUMN,
                   value_column: str = VALUE_COLUMN) -> SeriesStore:
        """Build a store from a DataFrame with date and value columns."""
        missing = {date_column, value_column} - set(frame.columns)
        if missing:
            raise DataError(f"Missing columns: {sorted(missing)}")
        return cls(frame[date_column], frame[value_column])

    def length(self) -> int:
        return len(self._series)

    def __len__(self) -> int:
        return self.length()

    def observation_at(self, index: int) -> tuple[pd.Timestamp, float]:
        """Return the (date, value) pair at a 0-based position."""
        return self._series.index[index], float(self._series.iloc[index])

    def all(self) -> pd.Series:
        """Return a copy of the full series."""
        return self._series.copy()

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self._series.index

    @property
    def frequency(self) -> int:
        return self._frequency

    @property
    def start(self) -> tuple[int, int]:
        """(year, month) of the first observation."""
        first = self._series.index[0]
        return first.year, first.month

    @property
    def end(self) -> tuple[int, int]:
        """(year, month) of the last observation."""
        last = self._series.index[-1]
        return last.year, last.month

    def __repr__(self):
        return (f"SeriesStore(start={self.start}, end={self.end}, "
                f"length={self.length()}, frequency={self.frequency})")


@dataclass(frozen=True)
class Split:
    """Training and test windows of a series.

    Attributes:
        training: Observations up to and including the pivot month.
        test: Observations from the month after the pivot onwards.
        pivot: Last training month.
    """

    training: pd.Series
    test: pd.Series
    pivot: pd.Timestamp

    @property
    def horizon(self) -> int:
        """Number of test months, used as the benchmark forecast horizon."""
        return len(self.test)


def split_series(series, train_fraction: float = TRAIN_FRACTION) -> Split:
    """
    Partition a series into training and test windows.

    The pivot is the date at 0-based index floor(train_fraction * length).
    The pivot month is the last training month; the test window starts the
    month after it. With 48 months and 0.7 this gives 34 training and 14 test
    observations.

    Args:
        series: SeriesStore or month-start indexed pandas Series
        train_fraction: Fraction of the series used for training, in (0, 1)

    Returns:
        Split with non-empty, disjoint, chronologically ordered windows

    Raises:
        ValueError: If train_fraction is not in (0, 1)
        InsufficientDataError: If either window would be empty
    """
    if not 0 < train_fraction < 1:
        raise ValueError(f"train_fraction must be between 0 and 1, got {train_fraction}")

    data = series.all() if isinstance(series, SeriesStore) else series
    n = len(data)
    pivot_position = math.floor(train_fraction * n)
    if pivot_position >= n - 1:
        raise InsufficientDataError(
            f"Cannot split {n} observations at fraction {train_fraction}: test set would be empty"
        )

    pivot = data.index[pivot_position]
    test_start = pivot + pd.DateOffset(months=1)
    training = data[data.index <= pivot]
    test = data[data.index >= test_start]
    if training.empty or test.empty:
        raise InsufficientDataError(f"Cannot split {n} observations at fraction {train_fraction}")

    logger.info("Split %d observations at %s: %d training, %d test",
                n, f"{pivot:%Y-%m}", len(training), len(test))
    return Split(training=training, test=test, pivot=pivot)
