"""
Financial Views

DESIGN DECISION: Views are PURE functions of the synchronized collections.
Nothing here is cached or stored; every call recomputes from the records
it is given, so a view can never drift from the data it summarizes.

All money stays Decimal. Percentages are Decimal too, so a total of
1000.00 against a limit of 1000.00 is exactly 100, not 99.99999.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, Field

from finance_sync.models.records import Transaction, TransactionType


ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
UNCATEGORIZED = "Uncategorized"


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal


class FinancialSummary(BaseModel):
    """Income, expenses and the expense breakdown of a set of transactions."""

    income: Decimal = ZERO
    expenses: Decimal = ZERO
    net: Decimal = ZERO
    transaction_count: int = 0
    category_totals: list[CategoryTotal] = Field(default_factory=list)


class BudgetStatus(BaseModel):
    over_budget: bool
    close_to_limit: bool
    remaining: Decimal
    percent_used: Decimal


class PeriodComparison(BaseModel):
    """
    This month against last month.

    A change is None when last month's value is zero: there is nothing
    to compare against, and a percentage would be infinite.
    """

    current: FinancialSummary
    previous: FinancialSummary
    income_change: Optional[Decimal] = None
    expense_change: Optional[Decimal] = None
    savings_change: Decimal = ZERO


def summarize_transactions(
    transactions: Iterable[Transaction],
    category_names: Optional[Mapping[str, str]] = None,
) -> FinancialSummary:
    """
    Totals for a set of transactions.

    Args:
        transactions: Any iterable of transactions
        category_names: category id (as str) -> display name

    Returns:
        FinancialSummary with expense totals per category, largest first
    """
    names = category_names or {}
    income = ZERO
    expenses = ZERO
    count = 0
    by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for transaction in transactions:
        count += 1
        if transaction.type == TransactionType.INCOME:
            income += transaction.amount
            continue

        expenses += transaction.amount
        if transaction.category_id is None:
            label = UNCATEGORIZED
        else:
            label = names.get(str(transaction.category_id), UNCATEGORIZED)
        by_category[label] += transaction.amount

    totals = sorted(
        (CategoryTotal(category=name, amount=amount) for name, amount in by_category.items()),
        key=lambda t: t.amount,
        reverse=True,
    )

    return FinancialSummary(
        income=income,
        expenses=expenses,
        net=income - expenses,
        transaction_count=count,
        category_totals=totals,
    )


def budget_status(
    expenses: Decimal,
    monthly_limit: Decimal,
    warning_ratio: Decimal | float = Decimal("0.9"),
) -> BudgetStatus:
    """
    Where spending stands against a monthly limit.

    Over budget means strictly above a positive limit. Close to limit
    means strictly above limit * warning_ratio without being over.
    A zero limit is treated as "no budget set": never over, 0% used.
    """
    ratio = Decimal(str(warning_ratio))
    over = monthly_limit > 0 and expenses > monthly_limit
    close = monthly_limit > 0 and not over and expenses > monthly_limit * ratio

    if monthly_limit > 0:
        percent = (expenses / monthly_limit * HUNDRED).quantize(Decimal("0.01"))
    else:
        percent = Decimal("0.00")

    return BudgetStatus(
        over_budget=over,
        close_to_limit=close,
        remaining=monthly_limit - expenses,
        percent_used=percent,
    )


def transactions_in_month(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> list[Transaction]:
    return [t for t in transactions if t.date.year == year and t.date.month == month]


def filter_transactions(
    transactions: Iterable[Transaction],
    kind: Optional[TransactionType] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Transaction]:
    """
    Narrow a list of transactions for display, keeping their order.

    Args:
        kind: Only income or only expenses; None keeps both
        start: Earliest date kept
        end: Latest date kept; the whole end day is included
    """
    return [
        t for t in transactions
        if (kind is None or t.type == kind)
        and (start is None or t.date >= start)
        and (end is None or t.date <= end)
    ]


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def _percent_change(current: Decimal, previous: Decimal) -> Optional[Decimal]:
    if previous == 0:
        return None
    return ((current - previous) / previous * HUNDRED).quantize(Decimal("0.1"))


def month_over_month(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
    category_names: Optional[Mapping[str, str]] = None,
) -> PeriodComparison:
    """Compare the month containing `today` with the one before it."""
    today = today or date.today()
    records = list(transactions)

    prev_year, prev_month = previous_month(today.year, today.month)
    current = summarize_transactions(
        transactions_in_month(records, today.year, today.month), category_names,
    )
    previous = summarize_transactions(
        transactions_in_month(records, prev_year, prev_month), category_names,
    )

    return PeriodComparison(
        current=current,
        previous=previous,
        income_change=_percent_change(current.income, previous.income),
        expense_change=_percent_change(current.expenses, previous.expenses),
        savings_change=current.net - previous.net,
    )


def format_change(change: Optional[Decimal]) -> str:
    """Render a percent change for display: '+12.5%', '-3.0%' or 'no prior data'."""
    if change is None:
        return "no prior data"
    sign = "+" if change >= 0 else ""
    return f"{sign}{change}%"
