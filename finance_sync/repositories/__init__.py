"""Record repositories package."""

from finance_sync.repositories.base import RecordRepository
from finance_sync.repositories.records import (
    BudgetRepository,
    CategoryRepository,
    ChatRepository,
    DocumentRepository,
    GoalRepository,
    TransactionRepository,
)

__all__ = [
    "BudgetRepository",
    "CategoryRepository",
    "ChatRepository",
    "DocumentRepository",
    "GoalRepository",
    "RecordRepository",
    "TransactionRepository",
]
