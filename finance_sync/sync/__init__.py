"""Synchronized record collections."""

from finance_sync.sync.base import Notice, Notifier, RecordSync, SyncState
from finance_sync.sync.records import (
    BudgetSync,
    CategorySync,
    DocumentSync,
    GoalSync,
    ImportSummary,
    TransactionSync,
)

__all__ = [
    "BudgetSync",
    "CategorySync",
    "DocumentSync",
    "GoalSync",
    "ImportSummary",
    "Notice",
    "Notifier",
    "RecordSync",
    "SyncState",
    "TransactionSync",
]
