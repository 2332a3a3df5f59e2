"""Configuration constants for the visitor forecasting benchmark."""

# Monthly data: 12 observations per year
SEASONAL_PERIOD = 12

# Share of the series used for training in the accuracy benchmark
TRAIN_FRACTION = 0.7

# Two full yearly cycles, the practical minimum for the seasonal models
MIN_OBSERVATIONS = 2 * SEASONAL_PERIOD

# Central prediction interval levels, in percent
INTERVAL_LEVELS = (80, 95)

# Name used for the averaged forecast in tables and charts
ENSEMBLE_NAME = "Combination"

# Models benchmarked and combined by default
DEFAULT_MODELS = ("ARIMA", "ETS", "TBATS")

# Dashboard defaults
DEFAULT_HORIZON = 24
DEFAULT_DATA_PATH = "website_visitors.csv"
DATE_COLUMN = "dates"
VALUE_COLUMN = "visitors"

# Seed for simulated ETS prediction intervals (multiplicative models)
ETS_RANDOM_STATE = 2020
ETS_SIMULATIONS = 1000

# Chart colors per model: (line, 80% band, 95% band)
MODEL_COLORS = {
    "ARIMA": ("red", "#F8766D", "#FAACA7"),
    "ETS": ("purple", "#C67CFF", "#DCB0FF"),
    "TBATS": ("olivedrab", "#7DAE00", "#B1CE66"),
    "SNAIVE": ("darkorange", "#FDB863", "#FEE0B6"),
}
ENSEMBLE_COLOR = "#00BFC4"
DEFAULT_MODEL_COLORS = ("steelblue", "#9ECAE1", "#DEEBF7")

# Diverging low -> high ramp for the accuracy table
RAMP_COLORS = ("#5A8AC6", "#FFFFFF", "#F8696B")
