"""
Data validation functions for the visitor CSV.

Contains functions for validating the loaded data and preparing it for the
series store.
"""

import pandas as pd

from .config import DATE_COLUMN, VALUE_COLUMN
from .exceptions import DataError
from .utils import coerce_month_start


def validate_data_format(raw_data, date_column=DATE_COLUMN, value_column=VALUE_COLUMN):
    """
    Validate that the loaded data has the required columns.

    Args:
        raw_data: DataFrame read from the CSV
        date_column: Name of the date column
        value_column: Name of the visitor count column

    Returns:
        bool: True if data format is valid

    Raises:
        DataError: If required columns are missing or the frame is empty
    """
    required_columns = {date_column, value_column}
    if not required_columns.issubset(raw_data.columns):
        missing = sorted(required_columns - set(raw_data.columns))
        raise DataError(f"CSV must contain columns {sorted(required_columns)}; missing {missing}")
    if raw_data.empty:
        raise DataError("CSV contains no observations")
    return True


def prepare_data(raw_data, date_column=DATE_COLUMN, value_column=VALUE_COLUMN):
    """
    Prepare the loaded data for the series store.

    Dates are coerced to month starts and values to floats. Row order is
    kept as read: the series store validates chronology and never re-sorts.

    Args:
        raw_data: DataFrame read from the CSV

    Returns:
        DataFrame with month-start dates and numeric values

    Raises:
        DataError: If a date cannot be parsed or a value is not numeric
    """
    validate_data_format(raw_data, date_column, value_column)
    data = raw_data[[date_column, value_column]].copy()
    data[date_column] = coerce_month_start(data[date_column])

    values = pd.to_numeric(data[value_column], errors="coerce")
    bad_rows = values.isna()
    if bad_rows.any():
        first_bad = data.loc[bad_rows, date_column].iloc[0]
        raise DataError(
            f"{int(bad_rows.sum())} missing or non-numeric {value_column!r} values "
            f"(first at {first_bad:%Y-%m})"
        )
    data[value_column] = values.astype(float)
    return data.reset_index(drop=True)
