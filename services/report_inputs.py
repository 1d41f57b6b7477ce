"""
Bad Debt Report Inputs
======================

Parsing and record types for the three uploads that feed the bad debt report:

1. Loans (header-keyed): ``Loan ID``, ``Loan status``, ``Principal remaining``
2. Recovery status (positional): column 0 = loan id, column 57 = status code.
   The header row is kept as row 0 and skipped later by the lookup builder.
3. Recoveries (header-keyed): ``Auction Id``, ``Recovered Principal``,
   ``Recovered Interest``

``Auction Id`` in the recoveries sheet carries the same value as ``Loan ID``
in the loans sheet; the two are joined by value, not by column name.

All values are kept as raw strings here. Numeric coercion happens in
services.bad_debt_report so that messy amounts never fail a parse.
"""

from dataclasses import dataclass
from typing import Any, Dict, IO, List, Optional, Sequence, Union
import csv
import io
import logging

import pandas as pd

logger = logging.getLogger(__name__)

RawSource = Union[bytes, str, IO]

LOAN_ID_FIELD = "Loan ID"
LOAN_STATUS_FIELD = "Loan status"
PRINCIPAL_REMAINING_FIELD = "Principal remaining"

AUCTION_ID_FIELD = "Auction Id"
RECOVERED_PRINCIPAL_FIELD = "Recovered Principal"
RECOVERED_INTEREST_FIELD = "Recovered Interest"

LOAN_REQUIRED_FIELDS = [LOAN_ID_FIELD, LOAN_STATUS_FIELD, PRINCIPAL_REMAINING_FIELD]
RECOVERY_REQUIRED_FIELDS = [AUCTION_ID_FIELD, RECOVERED_PRINCIPAL_FIELD, RECOVERED_INTEREST_FIELD]


class ReportInputError(Exception):
    """Base class for problems with the uploaded report inputs."""
    pass


class MissingInputError(ReportInputError):
    """Raised when one or more of the required datasets was not supplied."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required input(s): {', '.join(self.missing)}")


class ParseError(ReportInputError):
    """Raised when a dataset cannot be turned into rows."""

    def __init__(self, dataset: str, message: str):
        self.dataset = dataset
        super().__init__(f"{dataset}: {message}")


class MissingColumnsError(ParseError):
    """Raised when a header-keyed dataset lacks required columns."""

    def __init__(self, dataset: str, columns: List[str]):
        self.columns = list(columns)
        super().__init__(dataset, f"missing required columns {self.columns}")


# =============================================================================
# RECORD TYPES
# =============================================================================

@dataclass(frozen=True)
class LoanRecord:
    """
    One row of the loans sheet.

    Attributes:
        loan_id: Trimmed loan identifier, None when absent or blank
        loan_status: Loan status exactly as exported (not trimmed)
        principal_remaining: Raw principal string, possibly comma-grouped
    """
    loan_id: Optional[str]
    loan_status: Optional[str]
    principal_remaining: Optional[str]


@dataclass(frozen=True)
class StatusRecord:
    """One positional row of the recovery status sheet."""
    values: List[Optional[str]]

    def value_at(self, index: int) -> Optional[str]:
        """Cell at a column position, None when the row is too short"""
        if 0 <= index < len(self.values):
            return self.values[index]
        return None


@dataclass(frozen=True)
class RecoveryRecord:
    """
    One row of the recoveries sheet.

    Attributes:
        auction_id: Trimmed auction identifier (same value as the loan id)
        recovered_principal: Raw recovered principal string
        recovered_interest: Raw recovered interest string
    """
    auction_id: Optional[str]
    recovered_principal: Optional[str]
    recovered_interest: Optional[str]


def clean_identifier(value: Any) -> Optional[str]:
    """Trim an identifier cell; blank or missing ids become None"""
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


# =============================================================================
# TABULAR PARSING
# =============================================================================

def _read_text(source: RawSource) -> str:
    """Decode an upload to text; strings are CSV content, never paths"""
    if hasattr(source, "read"):
        if hasattr(source, "seek"):
            source.seek(0)
        source = source.read()
    if isinstance(source, bytes):
        source = source.decode("utf-8-sig")
    # A BOM survives in text that was decoded as plain utf-8
    return source.lstrip("\ufeff")


def _cell(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    return str(value)


def _widest_row(text: str) -> int:
    return max((len(fields) for fields in csv.reader(io.StringIO(text))), default=0)


def parse_table(
    source: RawSource,
    header: bool = True,
    dataset: str = "input"
) -> List[Union[Dict[str, Optional[str]], List[Optional[str]]]]:
    """
    Parse CSV content into rows.

    With ``header=True`` each row is a dict keyed by the trimmed header name;
    fields beyond the header (e.g. a trailing comma) are dropped and never
    shift the named columns. With ``header=False`` each row is a positional
    list sized to the widest line in the file, the file's first line is
    returned as row 0, and blank or missing cells are None. Blank lines are
    skipped in both modes and all values are left as strings.

    Args:
        source: CSV content as bytes, text, or a file-like object
        header: Whether the first line holds field names
        dataset: Name used in error messages

    Returns:
        List of rows (dicts or lists depending on ``header``)

    Raises:
        ParseError: If the content cannot be decoded or tokenized
    """
    try:
        text = _read_text(source)
        if header:
            df = pd.read_csv(
                io.StringIO(text),
                header=0,
                index_col=False,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        else:
            width = _widest_row(text)
            if width == 0:
                logger.debug(f"{dataset}: no data")
                return []
            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
    except pd.errors.EmptyDataError:
        logger.debug(f"{dataset}: no data")
        return []
    except (pd.errors.ParserError, csv.Error, UnicodeDecodeError, ValueError) as e:
        raise ParseError(dataset, str(e)) from e

    if header:
        columns = [str(col).strip() for col in df.columns]
        rows = [
            dict(zip(columns, (_cell(v) for v in values)))
            for values in df.itertuples(index=False, name=None)
        ]
    else:
        # Padding is NaN or "" depending on the pandas version; both become None
        rows = [
            [_cell(v) or None for v in values]
            for values in df.itertuples(index=False, name=None)
        ]

    logger.debug(f"{dataset}: parsed {len(rows)} rows")
    return rows


def _require_columns(dataset: str, rows: Sequence[Dict[str, Any]], required: List[str]):
    if not rows:
        return
    missing = [col for col in required if col not in rows[0]]
    if missing:
        raise MissingColumnsError(dataset, missing)


# =============================================================================
# RECORD LOADERS
# =============================================================================

def load_loan_records(rows: Sequence[Dict[str, Any]]) -> List[LoanRecord]:
    """Build LoanRecords from header-keyed loans rows"""
    _require_columns("loans", rows, LOAN_REQUIRED_FIELDS)
    return [
        LoanRecord(
            loan_id=clean_identifier(row.get(LOAN_ID_FIELD)),
            loan_status=row.get(LOAN_STATUS_FIELD),
            principal_remaining=row.get(PRINCIPAL_REMAINING_FIELD),
        )
        for row in rows
    ]


def load_status_records(rows: Sequence[Sequence[Any]]) -> List[StatusRecord]:
    """Wrap positional status rows; the header stays at index 0"""
    return [
        StatusRecord(values=[None if v is None else str(v) for v in row])
        for row in rows
    ]


def load_recovery_records(rows: Sequence[Dict[str, Any]]) -> List[RecoveryRecord]:
    """Build RecoveryRecords from header-keyed recoveries rows"""
    _require_columns("recoveries", rows, RECOVERY_REQUIRED_FIELDS)
    return [
        RecoveryRecord(
            auction_id=clean_identifier(row.get(AUCTION_ID_FIELD)),
            recovered_principal=row.get(RECOVERED_PRINCIPAL_FIELD),
            recovered_interest=row.get(RECOVERED_INTEREST_FIELD),
        )
        for row in rows
    ]


def read_loans(source: RawSource) -> List[LoanRecord]:
    """Parse the loans upload into LoanRecords"""
    return load_loan_records(parse_table(source, header=True, dataset="loans"))


def read_statuses(source: RawSource) -> List[StatusRecord]:
    """Parse the status upload positionally (header kept as row 0)"""
    return load_status_records(parse_table(source, header=False, dataset="statuses"))


def read_recoveries(source: RawSource) -> List[RecoveryRecord]:
    """Parse the recoveries upload into RecoveryRecords"""
    return load_recovery_records(parse_table(source, header=True, dataset="recoveries"))
