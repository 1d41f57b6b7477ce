"""
Unit tests for report input parsing.

Tests cover:
- Header-keyed and positional parsing
- Header trimming and blank lines
- Short, wide and blank-celled rows in the status sheet
- Trailing delimiters and byte order marks
- Required column checks
- Parse failures and error types
"""

import io

import pytest

from services.report_inputs import (
    LoanRecord,
    MissingColumnsError,
    MissingInputError,
    ParseError,
    ReportInputError,
    StatusRecord,
    clean_identifier,
    load_loan_records,
    load_recovery_records,
    parse_table,
    read_loans,
    read_recoveries,
    read_statuses,
)


class TestParseTable:
    """Test the tabular parser"""

    def test_header_rows(self):
        """Test header-keyed rows keep raw string values"""
        rows = parse_table("a,b\n1,\"2,000\"\n")
        assert rows == [{"a": "1", "b": "2,000"}]

    def test_headers_trimmed(self):
        """Test header names are trimmed"""
        rows = parse_table(" Loan ID , Loan status \nL1,Bad Debt\n")
        assert list(rows[0].keys()) == ["Loan ID", "Loan status"]

    def test_values_not_trimmed(self):
        """Test cell values are left as exported"""
        rows = parse_table("a,b\n x ,Bad Debt \n")
        assert rows[0] == {"a": " x ", "b": "Bad Debt "}

    def test_empty_cells_are_blank_strings(self):
        """Test empty cells and NA-like text stay strings"""
        rows = parse_table("a,b,c\n,NA,null\n")
        assert rows[0] == {"a": "", "b": "NA", "c": "null"}

    def test_blank_lines_skipped(self):
        """Test empty lines are dropped"""
        rows = parse_table("a,b\n1,2\n\n3,4\n\n")
        assert [row["a"] for row in rows] == ["1", "3"]

    def test_trailing_commas_do_not_shift_columns(self):
        """Test a trailing delimiter on data lines keeps fields under their names"""
        rows = parse_table(
            "Loan ID,Loan status,Principal remaining\nL1,Bad Debt,100,\nL2,Live,200,\n"
        )
        assert list(rows[0].keys()) == ["Loan ID", "Loan status", "Principal remaining"]
        assert rows[0]["Loan ID"] == "L1"
        assert rows[1] == {"Loan ID": "L2", "Loan status": "Live", "Principal remaining": "200"}

    def test_positional_keeps_header(self):
        """Test header row is returned as row 0 without a header"""
        rows = parse_table("id,status\nL1,defaulted\n", header=False)
        assert rows == [["id", "status"], ["L1", "defaulted"]]

    def test_positional_short_rows_padded_with_none(self):
        """Test cells missing from short rows come back as None"""
        rows = parse_table("a,b,c\n1\n2,3\n", header=False)
        assert rows[1] == ["1", None, None]
        assert rows[2] == ["2", "3", None]

    def test_positional_blank_cells_are_none(self):
        """Test empty positional cells come back as None"""
        rows = parse_table("a,,c\n", header=False)
        assert rows == [["a", None, "c"]]

    def test_positional_row_wider_than_header(self):
        """Test rows longer than the first line are kept in full"""
        rows = parse_table("id,status\nL1,defaulted,extra\n", header=False)
        assert rows[0] == ["id", "status", None]
        assert rows[1] == ["L1", "defaulted", "extra"]

    def test_bytes_with_bom(self):
        """Test binary content with a UTF-8 BOM"""
        rows = parse_table(b"\xef\xbb\xbfLoan ID,x\nL1,1\n")
        assert rows == [{"Loan ID": "L1", "x": "1"}]

    def test_text_with_bom(self):
        """Test already-decoded text that still starts with a BOM"""
        rows = parse_table("\ufeffLoan ID,x\nL1,1\n")
        assert rows == [{"Loan ID": "L1", "x": "1"}]

    def test_file_like(self):
        """Test file-like input is read from the start"""
        buffer = io.BytesIO(b"a\n1\n")
        buffer.read()
        assert parse_table(buffer) == [{"a": "1"}]

    def test_empty_content(self):
        """Test empty content yields no rows"""
        assert parse_table("") == []
        assert parse_table(b"", header=False) == []

    def test_header_only(self):
        """Test header with no data rows"""
        assert parse_table("a,b\n") == []

    def test_unterminated_quote_is_parse_error(self):
        """Test tokenizing failures raise ParseError"""
        with pytest.raises(ParseError) as exc_info:
            parse_table("a,b\n\"1,2\n", dataset="loans")
        assert exc_info.value.dataset == "loans"
        assert isinstance(exc_info.value, ReportInputError)

    def test_undecodable_bytes_is_parse_error(self):
        """Test invalid UTF-8 raises ParseError"""
        with pytest.raises(ParseError):
            parse_table(b"a,b\n\xff\xfe,1\n")


class TestLoaders:
    """Test record loaders"""

    def test_loan_records(self):
        """Test loan id trimmed, status kept verbatim"""
        rows = [{"Loan ID": " L1 ", "Loan status": "Bad Debt ", "Principal remaining": "1,000"}]
        assert load_loan_records(rows) == [LoanRecord("L1", "Bad Debt ", "1,000")]

    def test_blank_loan_id_is_none(self):
        """Test blank loan id"""
        rows = [{"Loan ID": "  ", "Loan status": "Bad Debt", "Principal remaining": ""}]
        assert load_loan_records(rows)[0].loan_id is None

    def test_loan_missing_columns(self):
        """Test required loan columns"""
        with pytest.raises(MissingColumnsError) as exc_info:
            load_loan_records([{"Loan ID": "L1"}])
        assert exc_info.value.columns == ["Loan status", "Principal remaining"]
        assert exc_info.value.dataset == "loans"

    def test_recovery_missing_columns(self):
        """Test required recovery columns"""
        with pytest.raises(MissingColumnsError) as exc_info:
            load_recovery_records([{"Loan ID": "L1", "Recovered Principal": "1"}])
        assert exc_info.value.columns == ["Auction Id", "Recovered Interest"]

    def test_no_rows_skips_column_check(self):
        """Test empty datasets are not rejected"""
        assert load_loan_records([]) == []
        assert load_recovery_records([]) == []

    def test_read_loans(self):
        """Test loans upload end to end"""
        records = read_loans("Loan ID,Loan status,Principal remaining\nL1,Bad Debt,\"1,000.00\"\n")
        assert records == [LoanRecord("L1", "Bad Debt", "1,000.00")]

    def test_read_statuses(self):
        """Test status upload keeps the header row"""
        records = read_statuses("id,s\nL1,defaulted\n")
        assert records[0] == StatusRecord(values=["id", "s"])
        assert records[1].value_at(1) == "defaulted"
        assert records[1].value_at(57) is None

    def test_read_recoveries(self):
        """Test recoveries upload end to end"""
        records = read_recoveries(
            "Auction Id,Recovered Principal,Recovered Interest\n L1 ,\"1,000\",\n"
        )
        assert records[0].auction_id == "L1"
        assert records[0].recovered_principal == "1,000"
        assert records[0].recovered_interest == ""


class TestErrors:
    """Test error types"""

    def test_missing_input_error(self):
        """Test missing input names are kept"""
        err = MissingInputError(["loans", "recoveries"])
        assert err.missing == ["loans", "recoveries"]
        assert "loans, recoveries" in str(err)
        assert isinstance(err, ReportInputError)

    def test_missing_columns_is_parse_error(self):
        """Test MissingColumnsError is a ParseError"""
        assert issubclass(MissingColumnsError, ParseError)

    def test_clean_identifier(self):
        """Test identifier cleaning"""
        assert clean_identifier(" L1 ") == "L1"
        assert clean_identifier("") is None
        assert clean_identifier(None) is None
        assert clean_identifier(42) == "42"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
