"""Derived views over synchronized collections."""

from finance_sync.views.financial import (
    BudgetStatus,
    CategoryTotal,
    FinancialSummary,
    PeriodComparison,
    budget_status,
    filter_transactions,
    format_change,
    month_over_month,
    previous_month,
    summarize_transactions,
    transactions_in_month,
)
from finance_sync.views.goals import (
    GoalProgress,
    GoalsOverview,
    describe_deadline,
    goal_progress,
    goals_overview,
    reached_milestone,
)

__all__ = [
    # Financial
    "BudgetStatus",
    "CategoryTotal",
    "FinancialSummary",
    "PeriodComparison",
    "budget_status",
    "filter_transactions",
    "format_change",
    "month_over_month",
    "previous_month",
    "summarize_transactions",
    "transactions_in_month",
    # Goals
    "GoalProgress",
    "GoalsOverview",
    "describe_deadline",
    "goal_progress",
    "goals_overview",
    "reached_milestone",
]
