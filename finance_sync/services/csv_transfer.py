"""
CSV Import and Export of Transactions

Columns: Date, Type, Category, Amount, Description. Header names are
matched case-insensitively; Description is optional on import.

Rows are independent. A bad row is reported as "Row N: reason" and the
remaining rows are still returned.
"""

import csv
from datetime import date, datetime
from io import StringIO
from typing import Iterable, Mapping, Optional
from uuid import UUID

from pydantic import ValidationError

from finance_sync.models.records import Transaction, TransactionCreate
from finance_sync.models.results import Failure


REQUIRED_COLUMNS = ("date", "type", "category", "amount")
EXPORT_COLUMNS = ["Date", "Type", "Category", "Amount", "Description"]
DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y")

FORMULA_TRIGGERS = ("=", "+", "-", "@", "\t", "\r")


class CSVFormatError(ValueError):
    """The file as a whole cannot be read as a transactions export."""


def _parse_date(value: str) -> date:
    value = value.strip()
    if not value:
        return date.today()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date '{value}'")


def _clean_amount(value: str) -> str:
    return value.strip().replace("$", "").replace(",", "").replace(" ", "")


def sanitize_csv_value(value: Optional[str]) -> str:
    """Neutralize cells a spreadsheet would run as a formula."""
    if not value or not value.strip():
        return ""
    value = value.strip()
    if value.startswith(FORMULA_TRIGGERS):
        return "\t" + value
    return value


def parse_transactions_csv(
    content: str,
    category_ids: Optional[Mapping[tuple[str, str], UUID]] = None,
) -> tuple[list[TransactionCreate], list[str]]:
    """
    Read transaction candidates from CSV text.

    Args:
        content: The file's text
        category_ids: (casefolded category name, type) -> id; unknown or
            empty categories import as uncategorized

    Returns:
        (candidates, errors)

    Raises:
        CSVFormatError: No header row, or a required column is missing
    """
    reader = csv.DictReader(StringIO(content.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise CSVFormatError("The file is empty")

    columns = {name.strip().lower(): name for name in reader.fieldnames if name}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise CSVFormatError(f"Missing required columns: {', '.join(missing)}")

    category_ids = category_ids or {}
    candidates: list[TransactionCreate] = []
    errors: list[str] = []

    for number, raw in enumerate(reader, start=1):
        def cell(column: str) -> str:
            name = columns.get(column)
            return (raw.get(name) or "").strip() if name else ""

        try:
            kind = cell("type").lower()
            category = cell("category").casefold()
            candidates.append(TransactionCreate(
                type=kind,
                amount=_clean_amount(cell("amount")),
                category_id=category_ids.get((category, kind)),
                description=cell("description") or None,
                date=_parse_date(cell("date")),
            ))
        except ValidationError as e:
            errors.append(f"Row {number}: {'; '.join(Failure.from_validation(e).details)}")
        except ValueError as e:
            errors.append(f"Row {number}: {e}")

    return candidates, errors


def export_transactions_csv(
    transactions: Iterable[Transaction],
    category_names: Optional[Mapping[str, str]] = None,
) -> str:
    """Write transactions as CSV text that parse_transactions_csv reads back."""
    category_names = category_names or {}
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    for t in transactions:
        category = category_names.get(str(t.category_id), "") if t.category_id else ""
        writer.writerow([
            t.date.isoformat(),
            t.type.value,
            sanitize_csv_value(category),
            f"{t.amount:.2f}",
            sanitize_csv_value(t.description),
        ])
    return output.getvalue()
