"""
Data Models Package

All data flowing through Finance Sync conforms to these pydantic schemas:
database rows, client candidates, realtime events, results and receipts.
"""

from finance_sync.models.records import (
    Budget,
    BudgetCreate,
    BudgetUpdate,
    Category,
    CategoryCreate,
    CategoryUpdate,
    ChatMessage,
    ChatMessageCreate,
    Document,
    DocumentCreate,
    DocumentUpdate,
    Goal,
    GoalCreate,
    GoalPriority,
    GoalType,
    GoalUpdate,
    MessageSender,
    Money,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from finance_sync.models.events import ChangeEvent, ChangeType
from finance_sync.models.results import (
    ErrorKind,
    Failure,
    Result,
    Success,
    failure,
    success,
)
from finance_sync.models.receipt import (
    ExtractedText,
    ExtractionMetadata,
    ImageCheck,
    ImageQuality,
    ReceiptData,
    ReceiptItem,
    ReceiptScan,
)
from finance_sync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "Budget",
    "BudgetCreate",
    "BudgetUpdate",
    "Category",
    "CategoryCreate",
    "CategoryUpdate",
    "ChatMessage",
    "ChatMessageCreate",
    "Document",
    "DocumentCreate",
    "DocumentUpdate",
    "Goal",
    "GoalCreate",
    "GoalPriority",
    "GoalType",
    "GoalUpdate",
    "MessageSender",
    "Money",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "TransactionUpdate",
    # Realtime
    "ChangeEvent",
    "ChangeType",
    # Results
    "ErrorKind",
    "Failure",
    "Result",
    "Success",
    "failure",
    "success",
    # Receipts
    "ExtractedText",
    "ExtractionMetadata",
    "ImageCheck",
    "ImageQuality",
    "ReceiptData",
    "ReceiptItem",
    "ReceiptScan",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
