"""
Website Visitor Forecaster

Benchmarks ARIMA, ETS and TBATS (plus their simple average) on a monthly
website visitor series and serves the forecasts in a Streamlit dashboard:
1. ONE-SHOT BENCHMARK: fit on the first 70% of the series, score on the rest
2. INTERACTIVE FORECASTS: full-series models re-forecast at any horizon
3. ACCURACY TABLE: models ranked by test-set MAPE, colored per column

Run with:
    streamlit run visitor_app.py -- --data website_visitors.csv
"""

import argparse
import logging
import sys
import warnings

import streamlit as st

# Suppress warnings for cleaner output
warnings.filterwarnings("ignore")

from visitor_forecast.config import DEFAULT_DATA_PATH, DEFAULT_MODELS, ENSEMBLE_NAME, TRAIN_FRACTION
from visitor_forecast.exceptions import ForecastingError
from visitor_forecast.models import MODEL_REGISTRY
from visitor_forecast.session_state import get_forecast_session, load_benchmark
from visitor_forecast.ui_components import (
    display_accuracy_table,
    display_diagnostic_messages,
    display_forecast_panel,
    display_series_summary,
)
from visitor_forecast.ui_config import create_sidebar_controls, setup_page_config

logger = logging.getLogger("visitor_app")


def parse_args(argv=None):
    """Parse the options passed after `--` on the streamlit command line."""
    parser = argparse.ArgumentParser(description="Website visitor forecasting dashboard")
    parser.add_argument("--data", default=DEFAULT_DATA_PATH,
                        help="CSV with 'dates' and 'visitors' columns")
    parser.add_argument("--train-fraction", type=float, default=TRAIN_FRACTION,
                        help="Share of the series used for training (default: %(default)s)")
    parser.add_argument("--models", nargs="+", default=list(DEFAULT_MODELS),
                        choices=sorted(MODEL_REGISTRY),
                        help="Models to benchmark and combine")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv=None):
    """Main application entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    setup_page_config()
    st.title("📈 Website Visitor Forecaster")
    controls_config = create_sidebar_controls()

    # Startup failures are fatal: no dashboard without a complete accuracy table
    try:
        benchmark, diagnostic_messages = load_benchmark(args.data, args.train_fraction, tuple(args.models))
    except (ForecastingError, OSError) as e:
        logger.error("Benchmark failed: %s", e)
        st.error(f"❌ Could not build the forecasting benchmark: {e}")
        st.stop()

    session = get_forecast_session(benchmark, args.models)
    horizon = controls_config["horizon"]

    display_series_summary(benchmark.series)

    st.markdown(f"### 🔮 Forecasts for the next {horizon} months")
    panels = session.model_names + [ENSEMBLE_NAME]
    columns = st.columns(2)
    for position, model_name in enumerate(panels):
        with columns[position % 2]:
            display_forecast_panel(session, model_name, horizon)

    st.markdown("### 🏆 Accuracy (ranked by MAPE)")
    split = benchmark.split
    st.caption(
        f"Training: {split.training.index[0]:%Y-%m} to {split.pivot:%Y-%m} "
        f"({len(split.training)} months) • Test: {split.test.index[0]:%Y-%m} to "
        f"{split.test.index[-1]:%Y-%m} ({len(split.test)} months)"
    )
    display_accuracy_table(benchmark.rows, controls_config["include_training"])

    st.markdown("### 🔍 Technical Diagnostics")
    display_diagnostic_messages(diagnostic_messages)


if __name__ == "__main__":
    main(sys.argv[1:])
