"""
Audit Models for Finance Sync

Significant actions on a user's financial records are recorded as
audit events. They go to the structured local log so that every
load, mutation, realtime hiccup and receipt scan can be traced.

DESIGN DECISION: Audit events are append-only facts. They describe
what happened; they never carry the full record (amounts and names
are kept to what is needed for debugging).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Collection lifecycle
    RECORDS_LOADED = "records_loaded"
    LOAD_FAILED = "load_failed"

    # Mutations
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    MUTATION_FAILED = "mutation_failed"
    VALIDATION_FAILED = "validation_failed"

    # Realtime
    REALTIME_SUBSCRIBED = "realtime_subscribed"
    REALTIME_ERROR = "realtime_error"

    # Receipts
    RECEIPT_SCANNED = "receipt_scanned"
    RECEIPT_REJECTED = "receipt_rejected"

    # Assistant
    CHAT_REPLIED = "chat_replied"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What is this about?
    table: Optional[str] = Field(
        default=None,
        description="Table of the record(s) involved"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )
    user_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "table": self.table,
            "entity_id": self.entity_id,
            "user_id": str(self.user_id) if self.user_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.records_loaded("transactions", user_id, 12)
        event = AuditEventBuilder.mutation_failed("budgets", "create", message)
    """

    @staticmethod
    def records_loaded(table: str, user_id: UUID, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_LOADED,
            table=table,
            user_id=user_id,
            description=f"Loaded {count} {table} record(s)",
            details={"count": count},
        )

    @staticmethod
    def load_failed(table: str, user_id: Optional[UUID], error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            table=table,
            user_id=user_id,
            description=f"Failed to load {table}",
            error_message=error,
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        table: str,
        entity_id: str,
        user_id: Optional[UUID],
    ) -> AuditEvent:
        verb = event_type.value.removeprefix("record_")
        return AuditEvent(
            event_type=event_type,
            table=table,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{table} record {verb}",
        )

    @staticmethod
    def mutation_failed(
        table: str,
        operation: str,
        error: str,
        validation: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.VALIDATION_FAILED if validation
                else AuditEventType.MUTATION_FAILED
            ),
            severity=AuditSeverity.WARNING,
            table=table,
            description=f"{operation} on {table} failed",
            details={"operation": operation},
            error_message=error,
        )

    @staticmethod
    def realtime_subscribed(table: str, user_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REALTIME_SUBSCRIBED,
            severity=AuditSeverity.DEBUG,
            table=table,
            user_id=user_id,
            description=f"Realtime channel opened for {table}",
        )

    @staticmethod
    def realtime_error(table: str, user_id: Optional[UUID], error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REALTIME_ERROR,
            severity=AuditSeverity.WARNING,
            table=table,
            user_id=user_id,
            description=f"Realtime updates for {table} unavailable",
            error_message=error,
        )

    @staticmethod
    def receipt_scanned(filename: str, merchant: str, amount: str, confidence: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCANNED,
            description=f"Receipt scanned: {filename}",
            details={
                "merchant": merchant,
                "amount": amount,
                "confidence": confidence,
            },
        )

    @staticmethod
    def receipt_rejected(filename: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_REJECTED,
            severity=AuditSeverity.WARNING,
            description=f"Receipt rejected: {filename}",
            error_message=reason,
        )

    @staticmethod
    def chat_replied(user_id: UUID, used_model: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_REPLIED,
            user_id=user_id,
            description="Assistant replied",
            details={"used_model": used_model},
        )

    @staticmethod
    def external_service_error(service: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )
