"""
Realtime Change Events

The realtime feed delivers one payload per row change. Different client
libraries shape that payload differently:

    JS client:        {"eventType": "INSERT", "new": {...}, "old": {...}}
    realtime-py:      {"data": {"type": "INSERT", "record": {...},
                                "old_record": {...}, "table": ...}}

ChangeEvent normalizes both into one model.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """One INSERT, UPDATE or DELETE notification for a watched table."""

    model_config = ConfigDict(frozen=True)

    event_type: ChangeType
    table: Optional[str] = None
    new: dict[str, Any] = Field(default_factory=dict)
    old: dict[str, Any] = Field(default_factory=dict)

    @property
    def record_id(self) -> Optional[str]:
        """Identity of the changed row, from the new image or the old one."""
        value = self.new.get("id") or self.old.get("id")
        return str(value) if value is not None else None

    @property
    def record(self) -> dict[str, Any]:
        """The row image that matters for this event type."""
        if self.event_type == ChangeType.DELETE:
            return self.old
        return self.new

    @classmethod
    def from_payload(cls, payload: dict[str, Any], table: Optional[str] = None) -> "ChangeEvent":
        """
        Build a ChangeEvent from a raw realtime payload.

        Raises:
            ValueError: If the payload carries no recognizable event type
        """
        body = payload.get("data") if isinstance(payload.get("data"), dict) else payload

        event_type = (
            body.get("eventType")
            or body.get("type")
            or body.get("event_type")
        )
        if not event_type:
            raise ValueError(f"Realtime payload has no event type: {sorted(body)}")

        new = body.get("new") if body.get("new") is not None else body.get("record")
        old = body.get("old") if body.get("old") is not None else body.get("old_record")

        return cls(
            event_type=ChangeType(str(event_type).upper()),
            table=body.get("table") or table,
            new=new or {},
            old=old or {},
        )
