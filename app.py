"""
app.py - minimal entrypoint for Streamlit app

Keep this file tiny so streamlit can import it without side-effects.
Run the app with:
    streamlit run app.py

This module copies Streamlit secrets into environment variables (read by
tripbudget.config) and delegates to tripbudget.ui.dashboard.main().
"""
import json as _json
import os

import streamlit as _st

_ENV_SECRETS = (
    "GOOGLE_SHEET_ID",
    "GOOGLE_SERVICE_ACCOUNT_JSON",
    "GOOGLE_SERVICE_ACCOUNT_FILE",
    "TRIPBUDGET_DATA_FILE",
    "TRIPBUDGET_RATES_URL",
    "TRIPBUDGET_RATES_TIMEOUT",
    "TRIPBUDGET_RATES_MAX_AGE",
    "TRIPBUDGET_LOG_LEVEL",
    "TRIPBUDGET_USER",
)


def _export_secrets():
    try:
        secrets = dict(_st.secrets)
    except FileNotFoundError:
        # no secrets.toml when running locally
        return
    for key in _ENV_SECRETS:
        if secrets.get(key) and key not in os.environ:
            os.environ[key] = str(secrets[key])
    # Also support the standard Streamlit table-style service account secret:
    # [gcp_service_account] ...fields...
    if "GOOGLE_SERVICE_ACCOUNT_JSON" not in os.environ and secrets.get("gcp_service_account"):
        os.environ["GOOGLE_SERVICE_ACCOUNT_JSON"] = _json.dumps(dict(secrets["gcp_service_account"]))


_export_secrets()

from tripbudget.ui import dashboard  # noqa: E402  (config reads the env on import)


def main():
    dashboard.main()


if __name__ == "__main__":
    main()
