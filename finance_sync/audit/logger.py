"""
Audit Logger

DESIGN DECISION: Every significant action on financial records is logged.
This provides:
1. Traceability of loads, mutations and realtime reconciliation
2. Debugging capability when a collection drifts from the store
3. Visibility into degraded realtime channels

The audit logger:
- Writes structured JSON through structlog
- Is synchronous (it never touches the network), so realtime
  handlers can log without awaiting
- Never raises (a logging failure must not break a sync operation)
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from finance_sync.models.audit import AuditEvent, AuditEventBuilder, AuditEventType


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))


class AuditLogger:
    """Central audit logging service."""

    def __init__(self, logger_name: str = "finance_sync.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        try:
            log_dict = event.to_log_dict()
            severity = event.severity.value

            if severity in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must never take the caller down with it
            logging.getLogger(__name__).warning("audit logging failed: %s", e)

    def log_loaded(self, table: str, user_id: UUID, count: int) -> None:
        self.log(AuditEventBuilder.records_loaded(table, user_id, count))

    def log_load_failed(self, table: str, user_id: Optional[UUID], error: str) -> None:
        self.log(AuditEventBuilder.load_failed(table, user_id, error))

    def log_created(self, table: str, entity_id: str, user_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.record_changed(
            AuditEventType.RECORD_CREATED, table, entity_id, user_id,
        ))

    def log_updated(self, table: str, entity_id: str, user_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.record_changed(
            AuditEventType.RECORD_UPDATED, table, entity_id, user_id,
        ))

    def log_deleted(self, table: str, entity_id: str, user_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.record_changed(
            AuditEventType.RECORD_DELETED, table, entity_id, user_id,
        ))

    def log_mutation_failed(
        self,
        table: str,
        operation: str,
        error: str,
        validation: bool = False,
    ) -> None:
        self.log(AuditEventBuilder.mutation_failed(table, operation, error, validation))

    def log_realtime_subscribed(self, table: str, user_id: UUID) -> None:
        self.log(AuditEventBuilder.realtime_subscribed(table, user_id))

    def log_realtime_error(self, table: str, user_id: Optional[UUID], error: str) -> None:
        self.log(AuditEventBuilder.realtime_error(table, user_id, error))

    def log_receipt_scanned(self, filename: str, merchant: str, amount: str, confidence: float) -> None:
        self.log(AuditEventBuilder.receipt_scanned(filename, merchant, amount, confidence))

    def log_receipt_rejected(self, filename: str, reason: str) -> None:
        self.log(AuditEventBuilder.receipt_rejected(filename, reason))

    def log_chat_replied(self, user_id: UUID, used_model: bool) -> None:
        self.log(AuditEventBuilder.chat_replied(user_id, used_model))

    def log_external_service_error(self, service: str, error_message: str) -> None:
        self.log(AuditEventBuilder.external_service_error(service, error_message))
