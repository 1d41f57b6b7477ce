"""
Bad Debt Report Service
=======================

Joins the loans, recovery status and recoveries sheets into the bad debt
report: one row per "Bad Debt" loan with principal at default, recovery
status, amounts recovered and outstanding balance, plus grand totals and an
open-case summary.

Join rules:
- Only loans whose status is exactly "Bad Debt" are reported
- Each loan id is looked up independently in the status and recovery lookups
- A missing status is "N/A", missing recoveries are zero
- Amounts that cannot be parsed count as zero rather than failing the report

Every call is a pure function of its three inputs; nothing is cached.
"""

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import math

import pandas as pd

from services.report_inputs import (
    LoanRecord,
    MissingInputError,
    RawSource,
    RecoveryRecord,
    StatusRecord,
    clean_identifier,
    read_loans,
    read_recoveries,
    read_statuses,
)
from utils.status_constants import NOT_AVAILABLE_STATUS, is_bad_debt, is_open_case

# Configure logging
logger = logging.getLogger(__name__)

# Display column names, in table order
REPORT_COLUMNS = {
    "loan_id": "Loan ID",
    "principal_at_default": "Principal at Default",
    "recovery_status": "Recovery Status",
    "principal_recovered": "Principal Recovered",
    "interest_recovered": "Interest Recovered",
    "outstanding_balance": "Outstanding Balance",
}

AMOUNT_FIELDS = [
    "principal_at_default",
    "principal_recovered",
    "interest_recovered",
    "outstanding_balance",
]


@dataclass(frozen=True)
class StatusSheetLayout:
    """
    Column positions in the recovery status sheet.

    The sheet is a legacy spreadsheet export read by position: column A holds
    the loan id and column BF holds the recovery-case code.
    """
    id_column: int = 0
    status_column: int = 57


@dataclass(frozen=True)
class RecoveredAmounts:
    principal: float = 0.0
    interest: float = 0.0


@dataclass(frozen=True)
class ReportRow:
    """
    One loan on the bad debt report.

    Attributes:
        loan_id: Trimmed loan id (None if the loans sheet had none)
        principal_at_default: Principal remaining when the loan went bad
        recovery_status: Recovery-case code, "N/A" if not in the status sheet
        principal_recovered: Recovered principal, 0 if no recovery row
        interest_recovered: Recovered interest, 0 if no recovery row
        outstanding_balance: Principal at default less all recoveries (may be negative)
    """
    loan_id: Optional[str]
    principal_at_default: float
    recovery_status: str
    principal_recovered: float
    interest_recovered: float
    outstanding_balance: float

    @property
    def is_open_case(self) -> bool:
        return is_open_case(self.recovery_status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dict keyed by display column name"""
        return {label: getattr(self, attr) for attr, label in REPORT_COLUMNS.items()}


@dataclass
class ReportTotals:
    """Grand totals over every report row, open or not."""
    principal_at_default: float = 0.0
    principal_recovered: float = 0.0
    interest_recovered: float = 0.0
    outstanding_balance: float = 0.0

    def add(self, row: ReportRow):
        self.principal_at_default += row.principal_at_default
        self.principal_recovered += row.principal_recovered
        self.interest_recovered += row.interest_recovered
        self.outstanding_balance += row.outstanding_balance


@dataclass(frozen=True)
class DefaultedSummary:
    """Open-case headline figures."""
    count: int
    total_outstanding: float


@dataclass
class BadDebtReport:
    rows: List[ReportRow]
    totals: ReportTotals
    summary: DefaultedSummary = field(default_factory=lambda: DefaultedSummary(0, 0.0))

    def to_dataframe(self) -> pd.DataFrame:
        """Report rows as a DataFrame with display column names"""
        return pd.DataFrame(
            [row.to_dict() for row in self.rows],
            columns=list(REPORT_COLUMNS.values())
        )


class BadDebtReportService:
    """
    Service for building the bad debt report.

    Steps, in order:
    - normalize_amount: messy amount strings to floats
    - build_status_lookup / build_recovery_lookup: id -> status / amounts
    - join_bad_debt_loans: filter, join, derive, accumulate totals
    - sort_open_cases_first: stable partition, open cases on top
    - summarize_defaulted: open-case count and outstanding total
    """

    PARSE_WORKERS = 3

    @staticmethod
    def normalize_amount(raw: Any) -> float:
        """
        Convert a possibly comma-grouped amount to a float.

        None, blank, unparseable and non-finite input all give 0.0.

        Args:
            raw: Amount as exported, e.g. "1,234.56"

        Returns:
            float: Parsed amount, 0.0 if it cannot be read
        """
        if raw is None:
            return 0.0

        cleaned = str(raw).replace(",", "").strip()
        # float() also takes digit separators ("1_000"), which are not decimals
        if not cleaned or "_" in cleaned:
            return 0.0

        try:
            value = float(cleaned)
        except ValueError:
            return 0.0

        if not math.isfinite(value):
            return 0.0
        return value

    @staticmethod
    def build_status_lookup(
        records: Sequence[StatusRecord],
        layout: Optional[StatusSheetLayout] = None
    ) -> Dict[str, str]:
        """
        Map loan id -> recovery-case code from the status sheet.

        Row 0 is the sheet's header and is always skipped here; the parser
        keeps it as data. Rows with a blank id are ignored, a blank or missing
        status becomes "N/A", and the last row for an id wins.

        Args:
            records: Positional status rows, header included at index 0
            layout: Column positions (defaults to A / BF)

        Returns:
            Dict of loan id to status code
        """
        layout = layout or StatusSheetLayout()
        lookup = {}
        skipped = 0

        for record in records[1:]:
            loan_id = clean_identifier(record.value_at(layout.id_column))
            if not loan_id:
                skipped += 1
                continue
            status = clean_identifier(record.value_at(layout.status_column))
            lookup[loan_id] = status or NOT_AVAILABLE_STATUS

        if skipped:
            logger.warning(f"Skipped {skipped} status rows with no loan id")

        return lookup

    @staticmethod
    def build_recovery_lookup(records: Iterable[RecoveryRecord]) -> Dict[str, RecoveredAmounts]:
        """
        Map auction id (same value as loan id) -> recovered amounts.

        Rows with a blank id are ignored and the last row for an id wins.
        """
        lookup = {}
        for record in records:
            if not record.auction_id:
                continue
            lookup[record.auction_id] = RecoveredAmounts(
                principal=BadDebtReportService.normalize_amount(record.recovered_principal),
                interest=BadDebtReportService.normalize_amount(record.recovered_interest),
            )
        return lookup

    @staticmethod
    def join_bad_debt_loans(
        loans: Iterable[LoanRecord],
        status_lookup: Dict[str, str],
        recovery_lookup: Dict[str, RecoveredAmounts]
    ) -> Tuple[List[ReportRow], ReportTotals]:
        """
        Build report rows for every "Bad Debt" loan, in input order.

        Args:
            loans: Loans sheet records
            status_lookup: Output of build_status_lookup
            recovery_lookup: Output of build_recovery_lookup

        Returns:
            (rows, totals) where totals cover every row produced
        """
        rows = []
        totals = ReportTotals()
        no_recovery = RecoveredAmounts()

        for loan in loans:
            if not is_bad_debt(loan.loan_status):
                continue

            if loan.loan_id is None:
                recovery_status = NOT_AVAILABLE_STATUS
                recovered = no_recovery
            else:
                recovery_status = status_lookup.get(loan.loan_id, NOT_AVAILABLE_STATUS)
                recovered = recovery_lookup.get(loan.loan_id, no_recovery)

            principal = BadDebtReportService.normalize_amount(loan.principal_remaining)
            row = ReportRow(
                loan_id=loan.loan_id,
                principal_at_default=principal,
                recovery_status=recovery_status,
                principal_recovered=recovered.principal,
                interest_recovered=recovered.interest,
                outstanding_balance=principal - recovered.principal - recovered.interest,
            )
            rows.append(row)
            totals.add(row)

        return rows, totals

    @staticmethod
    def sort_open_cases_first(rows: Iterable[ReportRow]) -> List[ReportRow]:
        """Open cases first; order within each group is unchanged (sorted is stable)"""
        return sorted(rows, key=lambda row: not row.is_open_case)

    @staticmethod
    def summarize_defaulted(rows: Iterable[ReportRow]) -> DefaultedSummary:
        """
        Count open cases and total their outstanding balance.

        This is narrower than ReportTotals.outstanding_balance, which covers
        every row.
        """
        open_cases = [row for row in rows if row.is_open_case]
        total = 0.0
        for row in open_cases:
            total += row.outstanding_balance
        return DefaultedSummary(count=len(open_cases), total_outstanding=total)

    @staticmethod
    def parse_inputs(
        loans: RawSource,
        statuses: RawSource,
        recoveries: RawSource
    ) -> Tuple[List[LoanRecord], List[StatusRecord], List[RecoveryRecord]]:
        """
        Parse the three uploads concurrently and wait for all of them.

        The first failure is raised and any parse not yet started is
        cancelled; nothing is joined from a partial set.
        """
        with ThreadPoolExecutor(max_workers=BadDebtReportService.PARSE_WORKERS) as executor:
            futures = [
                executor.submit(read_loans, loans),
                executor.submit(read_statuses, statuses),
                executor.submit(read_recoveries, recoveries),
            ]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            for future in futures:
                if future in done and future.exception() is not None:
                    raise future.exception()
            loan_records, status_records, recovery_records = (f.result() for f in futures)

        return loan_records, status_records, recovery_records

    @staticmethod
    def generate_report(
        loans: Optional[RawSource],
        statuses: Optional[RawSource],
        recoveries: Optional[RawSource],
        layout: Optional[StatusSheetLayout] = None
    ) -> BadDebtReport:
        """
        Build the full bad debt report from the three raw uploads.

        Args:
            loans: Loans sheet content (header-keyed)
            statuses: Recovery status sheet content (positional)
            recoveries: Recoveries sheet content (header-keyed)
            layout: Status sheet column positions

        Returns:
            BadDebtReport with sorted rows, grand totals and open-case summary

        Raises:
            MissingInputError: If any input is None (checked before parsing)
            ParseError: If any input cannot be parsed
        """
        supplied = {"loans": loans, "statuses": statuses, "recoveries": recoveries}
        missing = [name for name, source in supplied.items() if source is None]
        if missing:
            raise MissingInputError(missing)

        loan_records, status_records, recovery_records = BadDebtReportService.parse_inputs(
            loans, statuses, recoveries
        )

        status_lookup = BadDebtReportService.build_status_lookup(status_records, layout)
        recovery_lookup = BadDebtReportService.build_recovery_lookup(recovery_records)

        rows, totals = BadDebtReportService.join_bad_debt_loans(
            loan_records, status_lookup, recovery_lookup
        )
        rows = BadDebtReportService.sort_open_cases_first(rows)
        summary = BadDebtReportService.summarize_defaulted(rows)

        logger.info(
            f"Bad debt report: {len(rows)} loans, {summary.count} open cases, "
            f"{summary.total_outstanding:,.2f} outstanding on open cases"
        )

        return BadDebtReport(rows=rows, totals=totals, summary=summary)


# Module-level convenience functions for easy import
def normalize_amount(raw: Any) -> float:
    """Convenience function to normalize an amount"""
    return BadDebtReportService.normalize_amount(raw)


def build_status_lookup(
    records: Sequence[StatusRecord],
    layout: Optional[StatusSheetLayout] = None
) -> Dict[str, str]:
    """Convenience function to build the status lookup"""
    return BadDebtReportService.build_status_lookup(records, layout)


def build_recovery_lookup(records: Iterable[RecoveryRecord]) -> Dict[str, RecoveredAmounts]:
    """Convenience function to build the recovery lookup"""
    return BadDebtReportService.build_recovery_lookup(records)


def join_bad_debt_loans(
    loans: Iterable[LoanRecord],
    status_lookup: Dict[str, str],
    recovery_lookup: Dict[str, RecoveredAmounts]
) -> Tuple[List[ReportRow], ReportTotals]:
    """Convenience function to join loans against both lookups"""
    return BadDebtReportService.join_bad_debt_loans(loans, status_lookup, recovery_lookup)


def sort_open_cases_first(rows: Iterable[ReportRow]) -> List[ReportRow]:
    """Convenience function to put open cases first"""
    return BadDebtReportService.sort_open_cases_first(rows)


def summarize_defaulted(rows: Iterable[ReportRow]) -> DefaultedSummary:
    """Convenience function to summarize open cases"""
    return BadDebtReportService.summarize_defaulted(rows)


def generate_report(
    loans: Optional[RawSource],
    statuses: Optional[RawSource],
    recoveries: Optional[RawSource],
    layout: Optional[StatusSheetLayout] = None
) -> BadDebtReport:
    """Convenience function to generate the bad debt report"""
    return BadDebtReportService.generate_report(loans, statuses, recoveries, layout)
