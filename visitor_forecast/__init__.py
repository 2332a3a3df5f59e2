# Website visitor forecasting package

"""
Modular components for the Website Visitor Forecaster.

This package contains organized modules for:
- Shared constants and defaults (config)
- Error taxonomy (exceptions)
- Series storage and train/test splitting (series)
- Model adapters and ensemble combination (models)
- Accuracy metrics (metrics)
- One-shot benchmark evaluation (evaluation)
- Interactive re-forecasting (session)
- Accuracy ranking and table coloring (ranking)
- Data loading and validation (utils, data_validation)
- Streamlit layout, charts and session state (ui_config, ui_components, session_state)
"""

__version__ = "0.1.0"
