# utils/display_components.py
"""
Reusable UI components for the bad debt report.
Provides currency formatting, summary metrics, the report table, a status
chart and download buttons.
"""

import io
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st
from xhtml2pdf import pisa

from services.bad_debt_report import AMOUNT_FIELDS, REPORT_COLUMNS, BadDebtReport
from utils.config import CURRENCY_SYMBOL
from utils.status_constants import (
    OPEN_CASE_ROW_COLOR,
    get_status_color,
    get_status_label,
)

AMOUNT_COLUMNS = [REPORT_COLUMNS[attr] for attr in AMOUNT_FIELDS]
STATUS_COLUMN = REPORT_COLUMNS["recovery_status"]
TOTALS_LABEL = "Totals"
EMPTY_REPORT_MESSAGE = "No bad debt loans found in the provided file."


def format_currency(value: Optional[float]) -> str:
    """
    Format an amount as GBP, e.g. 1234.5 -> "£1,234.50", -12 -> "-£12.00".
    """
    if value is None or pd.isna(value):
        return ""
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(value):,.2f}"


def display_metric_row(
    metrics: List[Dict[str, Any]],
    columns: Optional[int] = None
):
    """
    Display a row of metrics using Streamlit columns.

    Args:
        metrics: List of dicts with keys: 'label', 'value', 'delta' (optional), 'help' (optional)
        columns: Number of columns (None = auto-calculate based on metrics count)
    """
    if not metrics:
        return

    n_cols = columns or len(metrics)
    cols = st.columns(n_cols)

    for i, metric in enumerate(metrics):
        with cols[i % n_cols]:
            st.metric(
                label=metric.get('label', ''),
                value=metric.get('value', 0),
                delta=metric.get('delta'),
                help=metric.get('help')
            )


def display_report_summary(report: BadDebtReport):
    """Headline open-case figures above the table."""
    display_metric_row([
        {
            'label': 'Open Cases',
            'value': f"{report.summary.count:,}",
            'help': 'Bad debt loans whose recovery case is still open'
        },
        {
            'label': 'Total Outstanding (Open Cases)',
            'value': format_currency(report.summary.total_outstanding),
            'help': 'Principal at default less recoveries, open cases only'
        },
        {
            'label': 'Bad Debt Loans',
            'value': f"{len(report.rows):,}",
        },
    ])


def build_report_table(report: BadDebtReport, include_totals: bool = True) -> pd.DataFrame:
    """
    Report rows as a display DataFrame.

    Status codes are swapped for their labels and, optionally, a totals row
    is appended. Amounts stay numeric so the table sorts correctly; use
    format_currency (or style_report_table) to render them.
    """
    table = report.to_dataframe()
    table[STATUS_COLUMN] = table[STATUS_COLUMN].map(get_status_label)

    if include_totals and not table.empty:
        totals = report.totals
        totals_row = pd.DataFrame([{
            REPORT_COLUMNS["loan_id"]: TOTALS_LABEL,
            REPORT_COLUMNS["principal_at_default"]: totals.principal_at_default,
            STATUS_COLUMN: "",
            REPORT_COLUMNS["principal_recovered"]: totals.principal_recovered,
            REPORT_COLUMNS["interest_recovered"]: totals.interest_recovered,
            REPORT_COLUMNS["outstanding_balance"]: totals.outstanding_balance,
        }])
        table = pd.concat([table, totals_row], ignore_index=True)

    return table


def style_report_table(report: BadDebtReport, table: pd.DataFrame):
    """Currency formatting plus a highlight on open-case rows."""
    # Positions line up with report.rows; the totals row (if any) is last
    open_rows = [row.is_open_case for row in report.rows]
    open_rows += [False] * (len(table) - len(open_rows))

    def highlight(row: pd.Series) -> List[str]:
        style = f"background-color: {OPEN_CASE_ROW_COLOR}" if open_rows[row.name] else ""
        return [style] * len(row)

    return (
        table.style
        .format({col: format_currency for col in AMOUNT_COLUMNS})
        .apply(highlight, axis=1)
    )


def display_report_table(report: BadDebtReport):
    """Render the report table, or the empty-state message."""
    if not report.rows:
        st.info(EMPTY_REPORT_MESSAGE)
        return

    table = build_report_table(report)
    st.dataframe(style_report_table(report, table), width='stretch', hide_index=True)


def create_status_chart(report: BadDebtReport) -> Optional[alt.Chart]:
    """Bar chart of outstanding balance by recovery status."""
    if not report.rows:
        return None

    table = build_report_table(report, include_totals=False)
    by_status = (
        table.rename(columns={STATUS_COLUMN: "status"})
        .groupby("status", as_index=False)
        .agg(
            loans=(REPORT_COLUMNS["loan_id"], "size"),
            outstanding=(REPORT_COLUMNS["outstanding_balance"], "sum"),
        )
        .sort_values("outstanding", ascending=False)
    )
    labels = by_status["status"].tolist()

    return alt.Chart(by_status).mark_bar().encode(
        x=alt.X("status:N", sort=labels, title="Recovery Status"),
        y=alt.Y("outstanding:Q", title=f"Outstanding Balance ({CURRENCY_SYMBOL})"),
        color=alt.Color(
            "status:N",
            scale=alt.Scale(domain=labels, range=[get_status_color(label) for label in labels]),
            legend=None
        ),
        tooltip=[
            alt.Tooltip("status:N", title="Status"),
            alt.Tooltip("loans:Q", title="Loans"),
            alt.Tooltip("outstanding:Q", title="Outstanding", format=",.2f"),
        ]
    ).properties(height=300)


def create_pdf_from_html(html: str) -> bytes:
    result = io.BytesIO()
    pisa.CreatePDF(io.StringIO(html), dest=result)
    return result.getvalue()


def report_to_html(report: BadDebtReport) -> str:
    """Report table as plain HTML with formatted amounts (used for the PDF)."""
    table = build_report_table(report)
    for col in AMOUNT_COLUMNS:
        table[col] = table[col].map(format_currency)
    summary = report.summary
    return (
        "<h2>Bad Debt Report</h2>"
        f"<p>Open cases: {summary.count} &nbsp; "
        f"Total outstanding (open cases): {format_currency(summary.total_outstanding)}</p>"
        + table.to_html(index=False)
    )


def create_download_button(
    df: pd.DataFrame,
    filename: str = "data.csv",
    label: str = "Download Data",
    file_format: str = "csv",
    html: Optional[str] = None
):
    """
    Create a download button for a DataFrame.

    Args:
        df: DataFrame to download
        filename: Name of downloaded file
        label: Button label
        file_format: Format ('csv' or 'pdf')
        html: HTML to render for 'pdf' (defaults to df.to_html())
    """
    if file_format == "csv":
        data = df.to_csv(index=False).encode('utf-8')
        mime = "text/csv"
    elif file_format == "pdf":
        data = create_pdf_from_html(html or df.to_html(index=False))
        mime = "application/pdf"
    else:
        raise ValueError(f"Unsupported format: {file_format}")

    st.download_button(
        label=label,
        data=data,
        file_name=filename,
        mime=mime
    )
