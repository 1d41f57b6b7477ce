# utils/config.py
import logging

import streamlit as st
from streamlit.errors import StreamlitSecretNotFoundError

from services.bad_debt_report import StatusSheetLayout
from utils.status_constants import OPEN_CASE_ROW_COLOR

logger = logging.getLogger(__name__)

# ----------------------------
# Color Palette Constants
# ----------------------------
PRIMARY_COLOR = "#34a853"  # Fresh green
TEXT_COLOR = "#222222"
BACKGROUND_COLOR = "#ffffff"
CARD_BACKGROUND = "#f5f5f5"

# ----------------------------
# Report Constants
# ----------------------------
CURRENCY_SYMBOL = "£"
SECRETS_SECTION = "bad_debt_report"

# ----------------------------
# Status Sheet Layout
# ----------------------------
def get_status_sheet_layout() -> StatusSheetLayout:
    """
    Column positions for the recovery status sheet.

    Reads the optional [bad_debt_report] section of .streamlit/secrets.toml:

        [bad_debt_report]
        status_id_column = 0
        status_code_column = 57

    Falls back to the defaults (A / BF) when no secrets are configured or a
    setting is not a non-negative integer.
    """
    default = StatusSheetLayout()
    try:
        section = st.secrets[SECRETS_SECTION]
    except (KeyError, FileNotFoundError, StreamlitSecretNotFoundError):
        return default

    try:
        id_column = int(section.get("status_id_column", default.id_column))
        status_column = int(section.get("status_code_column", default.status_column))
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid [{SECRETS_SECTION}] column setting, using defaults: {e}")
        return default

    if id_column < 0 or status_column < 0:
        logger.warning(f"Negative [{SECRETS_SECTION}] column setting, using defaults")
        return default

    return StatusSheetLayout(id_column=id_column, status_column=status_column)

# ----------------------------
# Page Setup Functions
# ----------------------------
def setup_page(title: str = "Bad Debt Report", layout: str = "wide"):
    """
    Centralized page setup function that applies consistent configuration and branding

    Args:
        title: Page title to display in browser tab
        layout: Page layout ('wide' or 'centered')
    """
    st.set_page_config(page_title=title, layout=layout)
    inject_global_styles()

def inject_global_styles():
    st.markdown(
        f"""
        <style>
            html, body, [class*="css"]  {{
                font-family: 'Segoe UI', sans-serif;
                color: {TEXT_COLOR};
                background-color: {BACKGROUND_COLOR};
            }}
            .stButton > button {{
                background-color: {PRIMARY_COLOR};
                color: white;
                border-radius: 6px;
                padding: 0.5rem 1rem;
            }}
            .stMetric {{
                background-color: {CARD_BACKGROUND};
                border-left: 4px solid {OPEN_CASE_ROW_COLOR};
                border-radius: 6px;
                padding: 0.5rem 1rem;
            }}
        </style>
        """,
        unsafe_allow_html=True
    )
