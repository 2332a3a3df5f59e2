"""
Session state management functions for the Streamlit application.

The benchmark is computed once per process and shared read-only by every
browser session; each session keeps its own ForecastSession in
st.session_state.
"""

import logging

import streamlit as st

from .config import ENSEMBLE_NAME
from .data_validation import prepare_data
from .evaluation import run_benchmark
from .models import build_adapters
from .series import SeriesStore
from .session import ForecastSession
from .utils import read_visitor_csv

logger = logging.getLogger(__name__)


def compute_benchmark(data_path, train_fraction, model_names):
    """
    Load the visitor CSV and run the accuracy benchmark.

    Args:
        data_path: Path of the CSV with dates and visitors columns
        train_fraction: Fraction of the series used for training
        model_names: Names of the models to benchmark

    Returns:
        Tuple of (BenchmarkResult, list of diagnostic messages)
    """
    diagnostic_messages = []
    raw_data = read_visitor_csv(data_path)
    store = SeriesStore.from_frame(prepare_data(raw_data))
    diagnostic_messages.append(
        f"📅 Loaded {store.length()} months from {store.start[0]}-{store.start[1]:02d} "
        f"to {store.end[0]}-{store.end[1]:02d}"
    )
    result = run_benchmark(
        store,
        adapters=build_adapters(model_names),
        train_fraction=train_fraction,
        ensemble_name=ENSEMBLE_NAME,
        diagnostic_messages=diagnostic_messages,
    )
    return result, diagnostic_messages


@st.cache_resource(show_spinner="Fitting forecasting models...")
def load_benchmark(data_path, train_fraction, model_names):
    """Cached compute_benchmark: runs once per process for a given configuration."""
    logger.info("Running benchmark for %s", data_path)
    return compute_benchmark(data_path, train_fraction, tuple(model_names))


def get_forecast_session(benchmark, model_names):
    """
    Return this browser session's ForecastSession, creating it on first use.

    Args:
        benchmark: BenchmarkResult shared across sessions
        model_names: Names of the benchmarked models

    Returns:
        ForecastSession
    """
    session = st.session_state.get("forecast_session")
    # Rebuild when the shared benchmark was recomputed for another configuration
    if session is None or st.session_state.get("forecast_benchmark") is not benchmark:
        session = ForecastSession.from_benchmark(benchmark, build_adapters(model_names),
                                                 ensemble_name=ENSEMBLE_NAME)
        st.session_state.forecast_session = session
        st.session_state.forecast_benchmark = benchmark
    return session
