"""
Receipt Text Parser

Turns OCR text into a ReceiptData guess.

DESIGN DECISION: Simple, transparent heuristics rather than ML:
1. The user reviews every field before anything is saved
2. A wrong guess is obvious and easy to correct
3. Failures degrade to defaults instead of errors

The parser NEVER raises. Anything it cannot find keeps its default:
"Unknown Merchant", amount 0.00, today's date, "General", no items.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog

from finance_sync.models.receipt import ReceiptData, ReceiptItem


logger = structlog.get_logger(__name__)

# "Total: $42.50", "AMOUNT 18", "sum 3.5"; \b keeps "subtotal" out
AMOUNT_PATTERN = re.compile(r"\b(?:total|amount|sum)\b[\s:]*\$?(\d+(?:\.\d+)?)", re.IGNORECASE)
DATE_PATTERN = re.compile(r"(\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2})")
ITEM_PATTERN = re.compile(r"^(.+?)\s+\$?(\d+\.\d{2})$")

# Summary lines that look like items but are not
NON_ITEM_WORDS = ("total", "tax", "amount", "change", "cash", "balance")

CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Groceries", ("grocery", "market", "supermarket", "foods")),
    ("Transportation", ("gas", "fuel", "petrol", "station")),
    ("Dining", ("restaurant", "cafe", "coffee", "diner", "bistro", "pizza")),
]


def _merchant(lines: list[str]) -> str:
    if not lines:
        return "Unknown Merchant"
    letters = re.sub(r"[^a-zA-Z\s]", "", lines[0])
    return " ".join(letters.split()) or "Unknown Merchant"


def _amount(text: str) -> Optional[Decimal]:
    # Receipts repeat "total" (item totals, then the grand total); the last wins
    matches = AMOUNT_PATTERN.findall(text)
    if not matches:
        return None
    try:
        return Decimal(matches[-1])
    except InvalidOperation:
        return None


def _date(text: str) -> Optional[date]:
    match = DATE_PATTERN.search(text)
    if not match:
        return None
    value = match.group(1)
    formats = ["%Y-%m-%d"] if "-" in value else ["%m/%d/%Y", "%m/%d/%y", "%d/%m/%Y", "%d/%m/%y"]
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def _items(lines: list[str]) -> list[ReceiptItem]:
    items = []
    for line in lines[1:]:
        match = ITEM_PATTERN.match(line)
        if not match:
            continue
        if any(word in line.lower() for word in NON_ITEM_WORDS):
            continue
        name = match.group(1).strip().rstrip(":").strip()
        if not name:
            continue
        items.append(ReceiptItem(name=name[:200], price=Decimal(match.group(2))))
    return items


def guess_category(merchant: str) -> str:
    """
    Suggest a category name from the merchant.

    This is a SUGGESTION only - the user picks the real category.
    """
    merchant_lower = merchant.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(kw in merchant_lower for kw in keywords):
            return category
    return "General"


def parse_receipt_text(
    text: str,
    today: Optional[date] = None,
    confidence: float = 0.0,
) -> ReceiptData:
    """
    Best-effort receipt parsing.

    Args:
        text: Raw OCR text
        today: Date used when the receipt shows none
        confidence: OCR confidence to carry on the result

    Returns:
        ReceiptData; missing fields keep their defaults
    """
    text = text or ""
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    merchant = _merchant(lines)
    amount = _amount(text)
    receipt_date = _date(text) or today or date.today()

    receipt = ReceiptData(
        merchant=merchant,
        amount=amount if amount is not None else Decimal("0.00"),
        date=receipt_date,
        category=guess_category(merchant),
        items=_items(lines),
        confidence=min(max(confidence, 0.0), 1.0),
        raw_text=text,
    )

    logger.debug(
        "receipt_parsed",
        merchant=receipt.merchant,
        amount=str(receipt.amount),
        items=len(receipt.items),
        found_amount=amount is not None,
    )
    return receipt
