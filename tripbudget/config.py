"""
config.py - environment driven settings and logging setup

All values can be overridden through environment variables. When running on
Streamlit Cloud, app.py copies the app secrets into the environment before
this module is read.
"""

import logging
import os

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DATA_FILE = os.getenv("TRIPBUDGET_DATA_FILE") or os.path.join(_PROJECT_ROOT, "data", "trips_data.json")

RATES_API_URL = (os.getenv("TRIPBUDGET_RATES_URL") or "https://api.exchangerate-api.com/v4/latest").rstrip("/")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# seconds
RATES_TIMEOUT = _env_float("TRIPBUDGET_RATES_TIMEOUT", 10.0)
RATES_MAX_AGE = _env_float("TRIPBUDGET_RATES_MAX_AGE", 3600.0)

LOG_LEVEL = (os.getenv("TRIPBUDGET_LOG_LEVEL") or "INFO").upper()

DEFAULT_USER = (os.getenv("TRIPBUDGET_USER") or "").strip()


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, making sure the package logger has a handler."""
    root = logging.getLogger("tripbudget")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        root.addHandler(handler)
        root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    return logging.getLogger(name)
