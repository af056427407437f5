"""
Tests for CSV import and export of transactions
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_sync.models.records import Transaction, TransactionType
from finance_sync.services.csv_transfer import (
    CSVFormatError,
    export_transactions_csv,
    parse_transactions_csv,
    sanitize_csv_value,
)


class TestParse:

    def test_rows_become_candidates(self):
        rent = uuid4()
        candidates, errors = parse_transactions_csv(
            "\ufeffdate,TYPE,Category,Amount\n"
            "03/01/2024,Expense,Rent,\"$1,200.00\"\n"
            "15.03.2024,income,,300\n",
            {("rent", "expense"): rent},
        )

        assert errors == []
        assert candidates[0].type == TransactionType.EXPENSE
        assert candidates[0].amount == Decimal("1200.00")
        assert candidates[0].category_id == rent
        assert candidates[0].date == date(2024, 3, 1)
        assert candidates[1].category_id is None
        assert candidates[1].description is None
        assert candidates[1].date == date(2024, 3, 15)

    def test_empty_date_means_today(self):
        candidates, _ = parse_transactions_csv("Date,Type,Category,Amount\n,expense,,4\n")
        assert candidates[0].date == date.today()

    def test_bad_rows_are_reported_and_skipped(self):
        candidates, errors = parse_transactions_csv(
            "Date,Type,Category,Amount\n"
            "2024-03-01,expense,,-5\n"
            "2024-03-02,transfer,,5\n"
            "2024-03-03,expense,,5\n"
        )

        assert len(candidates) == 1
        assert [e.split(":")[0] for e in errors] == ["Row 1", "Row 2"]

    def test_missing_columns(self):
        with pytest.raises(CSVFormatError, match="Missing required columns: category"):
            parse_transactions_csv("Date,Type,Amount\n2024-03-01,expense,5\n")

    def test_empty_file(self):
        with pytest.raises(CSVFormatError, match="The file is empty"):
            parse_transactions_csv("")


class TestExport:

    def test_formula_cells_are_neutralized(self):
        transaction = Transaction(
            id=uuid4(),
            user_id=uuid4(),
            type="expense",
            amount="9.5",
            date="2024-03-04",
            description="=HYPERLINK(\"x\")",
        )

        text = export_transactions_csv([transaction])
        candidates, errors = parse_transactions_csv(text)

        assert text.splitlines()[0] == "Date,Type,Category,Amount,Description"
        assert "\t=HYPERLINK" in text
        assert errors == []
        assert candidates[0].amount == Decimal("9.50")
        assert candidates[0].date == date(2024, 3, 4)

    def test_sanitize_leaves_plain_text(self):
        assert sanitize_csv_value("  Groceries ") == "Groceries"
        assert sanitize_csv_value(None) == ""
        assert sanitize_csv_value("+1 555") == "\t+1 555"
