"""
Streamlit UI configuration and layout components.

Contains functions for setting up the page configuration and the sidebar
controls.
"""

import warnings

import altair as alt
import streamlit as st

from .config import DEFAULT_HORIZON


def setup_page_config():
    """Configure the Streamlit page settings and styling."""
    st.set_page_config(
        page_title="Website Visitor Forecaster",
        layout="wide",
        page_icon="📈",
        initial_sidebar_state="expanded"
    )

    # Configure Altair for better chart rendering
    alt.data_transformers.enable("json")

    # Suppress warnings for cleaner output
    warnings.filterwarnings("ignore")


def create_sidebar_controls():
    """Create and return all sidebar control values."""
    st.sidebar.markdown("### 📈 **Forecast Settings**")
    horizon = st.sidebar.number_input(
        "📅 Forecast horizon (months)",
        min_value=1,
        value=DEFAULT_HORIZON,
        step=1,
        help="Number of months forecast past the end of the series"
    )

    st.sidebar.markdown("### 📊 **Accuracy Table**")
    include_training = st.sidebar.checkbox(
        "Include training-set rows",
        value=False,
        help="Also show in-sample accuracy of each model on the training window"
    )

    return {
        "horizon": int(horizon),
        "include_training": include_training,
    }
