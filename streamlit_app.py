# streamlit_app.py
"""
Bad Debt Report

Upload the loans export, the recovery status sheet and the recoveries export
to see every "Bad Debt" loan with its recovery status, amounts recovered and
outstanding balance. Open cases are listed first.
"""

import logging

import streamlit as st

from services.bad_debt_report import generate_report
from services.report_inputs import MissingInputError
from utils.config import get_status_sheet_layout, setup_page
from utils.display_components import (
    build_report_table,
    create_download_button,
    create_status_chart,
    display_report_summary,
    display_report_table,
    report_to_html,
)

logger = logging.getLogger(__name__)

setup_page("Bad Debt Report")

# ----------------------------
# Uploads
# ----------------------------
st.title("Bad Debt Report")
st.markdown("""
Upload all three CSV files, then generate the report.

| File | Read by | Columns used |
|------|---------|--------------|
| Loans | header | `Loan ID`, `Loan status`, `Principal remaining` |
| Recovery status | position | A (loan id), BF (recovery status) |
| Recoveries | header | `Auction Id`, `Recovered Principal`, `Recovered Interest` |
""")

col_loans, col_status, col_recoveries = st.columns(3)
with col_loans:
    loans_file = st.file_uploader("Loans (Sheet 1)", type=["csv"], key="loans")
with col_status:
    status_file = st.file_uploader("Recovery Status (Sheet 2)", type=["csv"], key="statuses")
with col_recoveries:
    recoveries_file = st.file_uploader("Recoveries (Sheet 3)", type=["csv"], key="recoveries")

generate_btn = st.button("Generate Report", type="primary")

# ----------------------------
# Report
# ----------------------------
if generate_btn:
    report = None
    try:
        with st.spinner("Processing files..."):
            report = generate_report(
                loans_file.getvalue() if loans_file else None,
                status_file.getvalue() if status_file else None,
                recoveries_file.getvalue() if recoveries_file else None,
                layout=get_status_sheet_layout(),
            )
    except MissingInputError:
        st.error("Please upload all three CSV files.")
    except Exception:
        logger.exception("Error generating report")
        st.error("An error occurred while processing the files. Please check the logs for details.")

    if report is not None:
        st.divider()
        display_report_summary(report)

        st.subheader("Bad Debt Loans")
        display_report_table(report)

        chart = create_status_chart(report)
        if chart is not None:
            st.subheader("Outstanding Balance by Recovery Status")
            st.altair_chart(chart, use_container_width=True)

            table = build_report_table(report)
            col_csv, col_pdf = st.columns(2)
            with col_csv:
                create_download_button(
                    table,
                    filename="bad_debt_report.csv",
                    label="Download Report (CSV)",
                )
            with col_pdf:
                create_download_button(
                    table,
                    filename="bad_debt_report.pdf",
                    label="Download Report (PDF)",
                    file_format="pdf",
                    html=report_to_html(report),
                )
