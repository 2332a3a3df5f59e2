"""
Utility functions for data loading and date handling.

Contains helper functions for reading the visitor CSV, coercing dates to
month starts and building forecast date indexes.
"""

import pandas as pd

from .exceptions import DataError


def read_visitor_csv(file_obj):
    """
    Read the visitor CSV from a path or file-like object.

    Args:
        file_obj: Path string, pathlib.Path or file-like object

    Returns:
        DataFrame with the raw CSV columns

    Raises:
        DataError: If the file cannot be parsed as CSV
    """
    try:
        return pd.read_csv(file_obj)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataError(f"Failed to read visitor CSV: {e}") from e


def coerce_month_start(date_series):
    """
    Convert ISO date strings or timestamps to month-start timestamps.

    Day resolution is dropped: 2020-03-17 becomes 2020-03-01.
    """
    if isinstance(date_series, pd.Series):
        return date_series.apply(_coerce_single_date)
    return _coerce_single_date(date_series)


def _coerce_single_date(date_val):
    """Helper function to coerce a single date value."""
    if date_val is None or (not isinstance(date_val, str) and pd.isna(date_val)):
        raise DataError("Missing date")

    if isinstance(date_val, str):
        date_val = date_val.strip()

    try:
        parsed = pd.Timestamp(date_val)
    except (ValueError, TypeError) as e:
        raise DataError(f"Cannot parse date: {date_val!r}") from e
    if pd.isna(parsed):
        raise DataError(f"Cannot parse date: {date_val!r}")
    return parsed.to_period("M").to_timestamp()


def future_month_index(last_date, periods):
    """
    Build the month-start index for the periods following last_date.

    Args:
        last_date: Last observed month (Timestamp)
        periods: Number of future months

    Returns:
        DatetimeIndex of length periods with monthly frequency
    """
    start = pd.Timestamp(last_date).to_period("M").to_timestamp() + pd.DateOffset(months=1)
    return pd.date_range(start=start, periods=periods, freq="MS")
