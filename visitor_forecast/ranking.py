"""
Accuracy ranking and table coloring.

Filters and orders the benchmark's accuracy rows for display, and maps each
numeric column onto a diverging low -> high color ramp using quantile breaks.
"""

import math
from bisect import bisect_left

import numpy as np
import pandas as pd

from .config import RAMP_COLORS
from .evaluation import TEST_SET

METRIC_COLUMNS = {
    "RMSE": "rmse",
    "MAPE": "mape",
    "MASE": "mase",
    "Theil's U": "theils_u",
}


def rank(rows, include_training=False):
    """
    Order accuracy rows by ascending MAPE.

    Args:
        rows: AccuracyRow sequence in computation order
        include_training: Keep Training rows when True, otherwise Test rows only

    Returns:
        List of AccuracyRow; ties keep computation order and NaN MAPE sorts last
    """
    kept = [row for row in rows if include_training or row.set == TEST_SET]
    return sorted(kept, key=lambda row: (math.isnan(row.mape), row.mape))


def accuracy_frame(rows, decimals=3):
    """Build the display table (Model, Set and the metric columns) from accuracy rows."""
    records = []
    for row in rows:
        record = {"Model": row.model, "Set": row.set}
        for column, field in METRIC_COLUMNS.items():
            value = getattr(row, field)
            record[column] = np.nan if value is None else value
        records.append(record)
    frame = pd.DataFrame(records, columns=["Model", "Set", *METRIC_COLUMNS])
    metric_columns = list(METRIC_COLUMNS)
    frame[metric_columns] = frame[metric_columns].astype(float).round(decimals)
    return frame


def quantile_breaks(values):
    """
    Quantile breaks of the non-missing values at probabilities 0, 1/(k-1), ..., 1.

    Args:
        values: Numeric values of one table column

    Returns:
        List of k floats from min to max (k = number of finite values)
    """
    finite = np.asarray(values, dtype=float)
    finite = finite[np.isfinite(finite)]
    k = finite.size
    if k == 0:
        return []
    if k == 1:
        return [float(finite[0])]
    probs = np.arange(k) / (k - 1)
    return [float(b) for b in np.quantile(finite, probs)]


def _hex_to_rgb(color):
    color = color.lstrip("#")
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def color_ramp(n, colors=RAMP_COLORS):
    """
    Interpolate n colors linearly in RGB through the given anchor colors.

    Returns:
        List of n uppercase hex colors; the first and last are the end anchors
    """
    if n < 1:
        return []
    anchors = np.array([_hex_to_rgb(c) for c in colors], dtype=float)
    anchor_positions = np.linspace(0, 1, len(anchors))
    positions = np.linspace(0, 1, n) if n > 1 else np.array([0.0])
    ramp = []
    for position in positions:
        rgb = [int(round(np.interp(position, anchor_positions, anchors[:, channel]))) for channel in range(3)]
        ramp.append("#{:02X}{:02X}{:02X}".format(*rgb))
    return ramp


def bucket_colors(values, colors=RAMP_COLORS):
    """
    Assign a ramp color to each value of one column.

    With k breaks there are k + 1 colors: a value <= break[0] gets color 0,
    break[i-1] < value <= break[i] gets color i and anything above the last
    break gets the final color. Missing values get None.
    """
    breaks = quantile_breaks(values)
    ramp = color_ramp(len(breaks) + 1, colors)
    result = []
    for value in values:
        if value is None or not np.isfinite(value):
            result.append(None)
        else:
            result.append(ramp[bisect_left(breaks, value)])
    return result
