# utils/status_constants.py
"""
Recovery Status Constants - Single Source of Truth

This module provides centralized definitions for the loan and recovery-case
status codes used by the bad debt report, and the display labels shown for
them. Codes are the raw values found in the uploaded sheets; labels are for
presentation only and never feed back into report logic.
"""

from typing import Optional

# =============================================================================
# STATUS CONSTANTS - Single Source of Truth
# =============================================================================

# Loan status (loans sheet) that puts a loan on the bad debt report.
# Matched exactly and case-sensitively.
BAD_DEBT_LOAN_STATUS = "Bad Debt"

# Recovery-case codes (status sheet)
OPEN_CASE_STATUS = "defaulted"
CLOSED_CASE_STATUS = "closed_case"

# Used when a loan has no row (or a blank status) in the status sheet
NOT_AVAILABLE_STATUS = "N/A"

# Display labels - codes without a label are shown as-is
RECOVERY_STATUS_LABELS = {
    OPEN_CASE_STATUS: "Open Case",
    CLOSED_CASE_STATUS: "Closed Case",
}

# Status Colors - keyed by display label
STATUS_COLORS = {
    "Open Case": "#d62728",     # Red
    "Closed Case": "#2ca02c",   # Green
    NOT_AVAILABLE_STATUS: "#6c757d",  # Grey
}

# Fallback for codes with no configured colour
DEFAULT_STATUS_COLOR = "#4a90e2"

# Row background for open cases in the report table
OPEN_CASE_ROW_COLOR = "#fdecea"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def is_bad_debt(loan_status: Optional[str]) -> bool:
    """Check whether a loan status puts the loan on the report."""
    return loan_status == BAD_DEBT_LOAN_STATUS


def is_open_case(recovery_status: Optional[str]) -> bool:
    """Check whether a recovery status is an open (defaulted) case."""
    return recovery_status == OPEN_CASE_STATUS


def get_status_label(recovery_status: Optional[str]) -> str:
    """
    Get the display label for a recovery status code.

    Args:
        recovery_status: Raw status code from the status sheet

    Returns:
        str: Display label, or the code itself when it has no label
    """
    if recovery_status is None:
        return NOT_AVAILABLE_STATUS
    return RECOVERY_STATUS_LABELS.get(recovery_status, recovery_status)


def get_status_color(label: str) -> str:
    """Get the chart colour for a display label."""
    return STATUS_COLORS.get(label, DEFAULT_STATUS_COLOR)
