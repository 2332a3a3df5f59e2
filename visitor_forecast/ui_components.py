"""
UI components for the Streamlit dashboard.

Contains the Altair forecast charts, the styled accuracy table and the
diagnostics panel.
"""

import altair as alt
import numpy as np
import pandas as pd
import streamlit as st

from .config import DEFAULT_MODEL_COLORS, ENSEMBLE_COLOR, INTERVAL_LEVELS, MODEL_COLORS
from .exceptions import ForecastingError
from .ranking import METRIC_COLUMNS, accuracy_frame, bucket_colors, rank


def create_forecast_chart(frame, model_name):
    """
    Create an Altair chart of history, point forecast and interval bands.

    Args:
        frame: DataFrame from ForecastSession.forecast_frame (Date, Data,
            Forecast, lwr80, upr80, lwr95, upr95)
        model_name: Name of the model, used for the title and colors

    Returns:
        Altair chart object
    """
    line_color, *band_colors = MODEL_COLORS.get(model_name, DEFAULT_MODEL_COLORS)
    chart_data = frame.copy()
    chart_data["Date"] = pd.to_datetime(chart_data["Date"])
    base = alt.Chart(chart_data)

    # Widest band first so the narrower one is drawn on top
    layers = []
    for level, color in sorted(zip(INTERVAL_LEVELS, band_colors), reverse=True):
        band = base.mark_area(
            color=color,
            opacity=0.6
        ).encode(
            x=alt.X("Date:T", title="Date"),
            y=alt.Y(f"lwr{level}:Q", title="Visitors"),
            y2=f"upr{level}:Q",
            tooltip=["Date:T", f"lwr{level}:Q", f"upr{level}:Q"]
        )
        layers.append(band)

    layers.append(_history_layer(base))
    layers.append(_forecast_layer(base, line_color))
    return alt.layer(*layers).properties(
        title=f"{model_name} Forecast",
        height=350,
        width="container"
    )


def create_ensemble_chart(frame, ensemble_name):
    """Create an Altair chart of history and the combined point forecast (no bands)."""
    chart_data = frame.copy()
    chart_data["Date"] = pd.to_datetime(chart_data["Date"])
    base = alt.Chart(chart_data)
    return alt.layer(
        _history_layer(base),
        _forecast_layer(base, ENSEMBLE_COLOR),
    ).properties(
        title=f"{ensemble_name} Forecast",
        height=350,
        width="container"
    )


def _history_layer(base):
    return base.mark_line(
        color="black",
        strokeWidth=2
    ).encode(
        x=alt.X("Date:T", title="Date"),
        y=alt.Y("Data:Q", title="Visitors", scale=alt.Scale(zero=False)),
        tooltip=["Date:T", alt.Tooltip("Data:Q", format=",.0f")]
    )


def _forecast_layer(base, color):
    return base.mark_line(
        color=color,
        strokeWidth=2
    ).encode(
        x="Date:T",
        y="Forecast:Q",
        tooltip=["Date:T", alt.Tooltip("Forecast:Q", format=",.0f")]
    )


def style_accuracy_table(frame):
    """
    Color each metric column of an accuracy table on the diverging ramp.

    Args:
        frame: DataFrame from ranking.accuracy_frame

    Returns:
        pandas Styler
    """
    def _column_styles(column):
        return [f"background-color: {color}" if color else "" for color in bucket_colors(column.tolist())]

    metric_columns = [c for c in METRIC_COLUMNS if c in frame.columns]
    return frame.style.apply(_column_styles, axis=0, subset=metric_columns).format(
        precision=3, na_rep="NA", subset=metric_columns
    )


def display_accuracy_table(rows, include_training):
    """Rank accuracy rows by MAPE and show them as a colored table."""
    frame = accuracy_frame(rank(rows, include_training=include_training))
    st.dataframe(style_accuracy_table(frame), hide_index=True, use_container_width=True)


def display_forecast_panel(session, model_name, horizon):
    """
    Render one model's forecast chart; failures are shown in this panel only.

    Returns:
        True if the chart was rendered
    """
    try:
        if model_name == session.ensemble_name:
            chart = create_ensemble_chart(session.ensemble_frame(horizon), model_name)
        else:
            chart = create_forecast_chart(session.forecast_frame(model_name, horizon), model_name)
    except ForecastingError as e:
        st.warning(f"⚠️ {model_name} forecast unavailable for {horizon} months: {e}")
        return False
    st.altair_chart(chart, use_container_width=True)
    return True


def display_diagnostic_messages(messages, max_messages=10):
    """
    Display diagnostic messages grouped by type.

    Args:
        messages: List of diagnostic message strings
        max_messages: Maximum number of messages to display per group
    """
    if not messages:
        st.info("No diagnostic messages available.")
        return

    groups = [
        ("✅ Success Messages", [m for m in messages if m.startswith("✅")], st.success, False),
        ("❌ Errors", [m for m in messages if m.startswith("❌")], st.error, True),
        ("ℹ️ Information", [m for m in messages if not m.startswith(("✅", "❌"))], st.info, False),
    ]
    for title, group, show, expanded in groups:
        if not group:
            continue
        with st.expander(f"{title} ({len(group)})", expanded=expanded):
            for msg in group[:max_messages]:
                show(msg)
            if len(group) > max_messages:
                st.caption(f"... and {len(group) - max_messages} more")


def display_series_summary(series):
    """Show the number of observations and the covered months."""
    cols = st.columns(3)
    cols[0].metric("Observations", f"{len(series)}")
    cols[1].metric("First month", f"{series.index[0]:%Y-%m}")
    cols[2].metric("Last month", f"{series.index[-1]:%Y-%m}")
    if np.any(series.to_numpy() == 0):
        st.caption("Series contains zero counts; MAPE is undefined for sets that include them.")
