"""
Tests for derived views: totals, budget status, month comparison, goals
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_sync.models.records import Goal, Transaction, TransactionType
from finance_sync.views import (
    budget_status,
    describe_deadline,
    filter_transactions,
    format_change,
    goal_progress,
    goals_overview,
    month_over_month,
    previous_month,
    reached_milestone,
    summarize_transactions,
)
from finance_sync.views.financial import UNCATEGORIZED


USER = uuid4()


def make_transaction(kind, amount, on="2024-03-10", category_id=None):
    return Transaction(
        id=uuid4(),
        user_id=USER,
        type=kind,
        amount=amount,
        date=on,
        category_id=category_id,
    )


def make_goal(target, saved, deadline=None):
    return Goal(
        id=uuid4(),
        user_id=USER,
        name="Emergency fund",
        target_amount=target,
        saved_amount=saved,
        deadline=deadline,
    )


class TestSummary:

    def test_totals_and_breakdown(self):
        food, rent = uuid4(), uuid4()
        names = {str(food): "Food", str(rent): "Rent"}
        summary = summarize_transactions([
            make_transaction("income", "3000"),
            make_transaction("expense", "40", category_id=food),
            make_transaction("expense", "1200", category_id=rent),
            make_transaction("expense", "60", category_id=food),
            make_transaction("expense", "15"),
        ], names)

        assert summary.income == Decimal("3000.00")
        assert summary.expenses == Decimal("1315.00")
        assert summary.net == Decimal("1685.00")
        assert summary.transaction_count == 5
        assert [(t.category, t.amount) for t in summary.category_totals] == [
            ("Rent", Decimal("1200.00")),
            ("Food", Decimal("100.00")),
            (UNCATEGORIZED, Decimal("15.00")),
        ]

    def test_unknown_category_is_uncategorized(self):
        summary = summarize_transactions([make_transaction("expense", "5", category_id=uuid4())])
        assert summary.category_totals[0].category == UNCATEGORIZED

    def test_empty(self):
        summary = summarize_transactions([])
        assert summary.net == Decimal("0.00")
        assert summary.category_totals == []


class TestFilter:

    def test_kind_keeps_order(self):
        rows = [
            make_transaction("expense", "5", on="2024-03-03"),
            make_transaction("income", "100", on="2024-03-01"),
            make_transaction("expense", "7", on="2024-03-02"),
        ]

        kept = filter_transactions(rows, kind=TransactionType.EXPENSE)

        assert kept == [rows[0], rows[2]]

    def test_date_bounds_are_inclusive(self):
        rows = [make_transaction("expense", "1", on=f"2024-03-{day:02d}") for day in (1, 5, 10, 11)]

        kept = filter_transactions(rows, start=date(2024, 3, 5), end=date(2024, 3, 10))

        assert [t.date.day for t in kept] == [5, 10]

    def test_no_filters_keeps_everything(self):
        rows = [make_transaction("income", "1"), make_transaction("expense", "2")]
        assert filter_transactions(rows) == rows

    def test_end_before_start_keeps_nothing(self):
        rows = [make_transaction("expense", "1", on="2024-03-05")]
        assert filter_transactions(rows, start=date(2024, 3, 6), end=date(2024, 3, 4)) == []


class TestBudgetStatus:
    """Limit of 1000 with the default 90% warning line."""

    @pytest.mark.parametrize("spent, over, close", [
        ("800", False, False),
        ("900", False, False),
        ("950", False, True),
        ("1000", False, True),
        ("1001", True, False),
    ])
    def test_thresholds(self, spent, over, close):
        status = budget_status(Decimal(spent), Decimal("1000"))
        assert status.over_budget is over
        assert status.close_to_limit is close

    def test_exact_limit_is_one_hundred_percent(self):
        status = budget_status(Decimal("1000.00"), Decimal("1000.00"))
        assert status.percent_used == Decimal("100.00")
        assert status.remaining == Decimal("0.00")

    def test_remaining_goes_negative_when_over(self):
        status = budget_status(Decimal("1250"), Decimal("1000"))
        assert status.remaining == Decimal("-250")
        assert status.percent_used == Decimal("125.00")

    def test_zero_limit_is_never_over(self):
        status = budget_status(Decimal("50"), Decimal("0"))
        assert not status.over_budget
        assert not status.close_to_limit
        assert status.percent_used == Decimal("0.00")

    def test_custom_warning_ratio(self):
        status = budget_status(Decimal("800"), Decimal("1000"), warning_ratio=0.75)
        assert status.close_to_limit


class TestMonthOverMonth:

    def test_no_prior_data(self):
        comparison = month_over_month([make_transaction("income", "100")], today=date(2024, 3, 20))
        assert comparison.income_change is None
        assert format_change(comparison.income_change) == "no prior data"

    def test_percent_change(self):
        comparison = month_over_month([
            make_transaction("expense", "100", on="2024-02-10"),
            make_transaction("expense", "150", on="2024-03-10"),
            make_transaction("expense", "999", on="2023-03-10"),
        ], today=date(2024, 3, 20))

        assert comparison.expense_change == Decimal("50.0")
        assert format_change(comparison.expense_change) == "+50.0%"
        assert comparison.savings_change == Decimal("-50.00")

    def test_decrease_formats_with_minus(self):
        assert format_change(Decimal("-12.5")) == "-12.5%"

    def test_january_compares_with_december(self):
        comparison = month_over_month([
            make_transaction("income", "200", on="2023-12-05"),
            make_transaction("income", "100", on="2024-01-05"),
        ], today=date(2024, 1, 15))

        assert comparison.previous.income == Decimal("200.00")
        assert comparison.income_change == Decimal("-50.0")

    def test_previous_month(self):
        assert previous_month(2024, 1) == (2023, 12)
        assert previous_month(2024, 7) == (2024, 6)


class TestGoalProgress:

    def test_exactly_funded(self):
        progress = goal_progress(make_goal("500", "500"))
        assert progress.percent == Decimal("100.00")
        assert progress.completed
        assert progress.milestone == 100
        assert progress.remaining == Decimal("0.00")

    def test_over_funded(self):
        """101% is reported as such but drawn as a full bar."""
        progress = goal_progress(make_goal("100", "101"))
        assert progress.percent == Decimal("101.00")
        assert progress.display_percent == Decimal("100")
        assert progress.completed
        assert progress.remaining == Decimal("0.00")

    def test_partial(self):
        progress = goal_progress(make_goal("1000", "300"))
        assert progress.percent == Decimal("30.00")
        assert not progress.completed
        assert progress.milestone == 25

    @pytest.mark.parametrize("percent, expected", [
        (Decimal("10"), None),
        (Decimal("25"), 25),
        (Decimal("74.99"), 50),
        (Decimal("150"), 100),
    ])
    def test_milestones(self, percent, expected):
        assert reached_milestone(percent) == expected

    def test_days_left(self):
        progress = goal_progress(make_goal("100", "0", deadline=date(2024, 3, 31)), today=date(2024, 3, 21))
        assert progress.days_left == 10

    @pytest.mark.parametrize("days, text", [
        (None, "No deadline"),
        (-1, "Overdue by 1 day"),
        (-3, "Overdue by 3 days"),
        (0, "Due today"),
        (1, "1 day left"),
        (12, "12 days left"),
    ])
    def test_describe_deadline(self, days, text):
        assert describe_deadline(days) == text


class TestGoalsOverview:

    def test_empty(self):
        overview = goals_overview([])
        assert overview.total_goals == 0
        assert overview.overall_percent == Decimal("0.00")

    def test_counts_and_totals(self):
        overview = goals_overview([
            make_goal("100", "100"),
            make_goal("300", "50"),
        ])
        assert overview.completed_goals == 1
        assert overview.active_goals == 1
        assert overview.total_saved == Decimal("150.00")
        assert overview.overall_percent == Decimal("37.50")
