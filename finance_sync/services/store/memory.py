"""
In-Memory Store

A RemoteStore that keeps every table in process memory. It is used by the
test suite and by the offline demo mode (APP_STORE_BACKEND=memory).

It behaves like the hosted database where the sync layer can tell the
difference:
- ids and timestamps are assigned by the store, not the client
- the unique constraints on budgets and categories are enforced with
  the same constraint names the database uses
- every mutation is echoed to open channels on the next loop iteration,
  after the mutating call has already returned
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from finance_sync.models.events import ChangeEvent, ChangeType
from finance_sync.services.store.interface import (
    ChannelHandle,
    DuplicateError,
    ErrorCallback,
    EventCallback,
    NotFoundError,
    RemoteStore,
    StoreResponse,
)


logger = structlog.get_logger(__name__)

# table -> (constraint name, columns)
UNIQUE_CONSTRAINTS: dict[str, tuple[str, tuple[str, ...]]] = {
    "budgets": ("unique_user_budget_month_year", ("user_id", "month", "year")),
    "categories": ("unique_category_name_type", ("user_id", "name", "type")),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _key(value: Any) -> Any:
    return str(value) if isinstance(value, UUID) else value


class InMemoryStore(RemoteStore):
    """
    Dictionary-backed RemoteStore.

    Args:
        user_id: The signed-in user reported by current_user_id()
    """

    def __init__(self, user_id: Optional[UUID] = None):
        self._user_id = user_id
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._channels: dict[str, tuple[ChannelHandle, EventCallback]] = {}
        self._files: dict[tuple[str, str], bytes] = {}
        self._channel_seq = 0
        self.channels_opened = 0

    # -------------------------------------------------------------------------
    # Inspection helpers
    # -------------------------------------------------------------------------

    @property
    def open_channel_count(self) -> int:
        return len(self._channels)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(row) for row in self._tables.get(table, {}).values()]

    def file(self, bucket: str, path: str) -> Optional[bytes]:
        return self._files.get((bucket, path))

    def sign_in(self, user_id: Optional[UUID]) -> None:
        self._user_id = user_id

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def _violates_unique(self, table: str, row: dict[str, Any], ignore_id: Optional[str] = None) -> Optional[str]:
        constraint = UNIQUE_CONSTRAINTS.get(table)
        if constraint is None:
            return None
        name, columns = constraint
        candidate = tuple(_key(row.get(col)) for col in columns)
        for existing_id, existing in self._table(table).items():
            if existing_id == ignore_id:
                continue
            if tuple(_key(existing.get(col)) for col in columns) == candidate:
                return name
        return None

    def _duplicate(self, constraint: str) -> StoreResponse:
        return StoreResponse(error=DuplicateError(
            f'duplicate key value violates unique constraint "{constraint}"',
            code="23505",
        ))

    def _echo(self, table: str, event_type: ChangeType, new: dict, old: dict) -> None:
        """Deliver the change to matching channels on the next loop iteration."""
        owner = _key((new or old).get("user_id"))
        event = ChangeEvent(event_type=event_type, table=table, new=new, old=old)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        for handle, callback in list(self._channels.values()):
            if handle.table == table and str(handle.user_id) == owner:
                loop.call_soon(self._deliver, handle.name, callback, event)

    def _deliver(self, name: str, callback: EventCallback, event: ChangeEvent) -> None:
        # Channel may have been closed between scheduling and delivery
        if name in self._channels:
            callback(event)

    # -------------------------------------------------------------------------
    # RemoteStore
    # -------------------------------------------------------------------------

    async def current_user_id(self) -> Optional[UUID]:
        return self._user_id

    async def select_for_user(
        self,
        table: str,
        user_id: UUID,
        order_by: Optional[str] = None,
        descending: bool = False,
        include_shared: bool = False,
        filters: Optional[dict[str, Any]] = None,
    ) -> StoreResponse:
        owner = str(user_id)
        rows = [
            copy.deepcopy(row)
            for row in self._table(table).values()
            if _key(row.get("user_id")) == owner
            or (include_shared and row.get("user_id") is None)
        ]
        for column, value in (filters or {}).items():
            rows = [r for r in rows if r.get(column) == _key(value)]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: str(r[order_by]), reverse=descending)
            rows = present + missing
        return StoreResponse(data=rows)

    async def insert(self, table: str, row: dict[str, Any]) -> StoreResponse:
        stored = {k: _key(v) for k, v in row.items()}
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", _now())
        stored.setdefault("updated_at", stored["created_at"])

        if stored["id"] in self._table(table):
            return self._duplicate(f"{table}_pkey")
        violated = self._violates_unique(table, stored)
        if violated:
            return self._duplicate(violated)

        self._table(table)[stored["id"]] = stored
        self._echo(table, ChangeType.INSERT, copy.deepcopy(stored), {})
        return StoreResponse(data=copy.deepcopy(stored))

    async def update(self, table: str, record_id: UUID, changes: dict[str, Any]) -> StoreResponse:
        existing = self._table(table).get(str(record_id))
        if existing is None:
            return StoreResponse(error=NotFoundError(f"Row not found: {record_id}", code="PGRST116"))

        updated = {**existing, **{k: _key(v) for k, v in changes.items()}}
        if "updated_at" not in changes:
            updated["updated_at"] = _now()
        violated = self._violates_unique(table, updated, ignore_id=str(record_id))
        if violated:
            return self._duplicate(violated)

        self._table(table)[str(record_id)] = updated
        self._echo(table, ChangeType.UPDATE, copy.deepcopy(updated), copy.deepcopy(existing))
        return StoreResponse(data=copy.deepcopy(updated))

    async def upsert(self, table: str, row: dict[str, Any], on_conflict: str) -> StoreResponse:
        columns = [col.strip() for col in on_conflict.split(",")]
        target = tuple(_key(row.get(col)) for col in columns)
        for existing_id, existing in self._table(table).items():
            if tuple(_key(existing.get(col)) for col in columns) == target:
                return await self.update(table, UUID(existing_id), row)
        return await self.insert(table, row)

    async def delete(self, table: str, record_id: UUID) -> StoreResponse:
        removed = self._table(table).pop(str(record_id), None)
        if removed is not None:
            self._echo(table, ChangeType.DELETE, {}, copy.deepcopy(removed))
        # Deleting a missing row is not an error in PostgREST either
        return StoreResponse(data=None)

    async def upload_file(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> StoreResponse:
        if (bucket, path) in self._files:
            return StoreResponse(error=DuplicateError(f"The resource already exists: {path}"))
        self._files[(bucket, path)] = data
        return StoreResponse(data=path)

    async def open_channel(
        self,
        table: str,
        user_id: UUID,
        on_event: EventCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ChannelHandle:
        self._channel_seq += 1
        self.channels_opened += 1
        name = f"{table}-realtime-{user_id}-{self._channel_seq}"
        handle = ChannelHandle(name=name, table=table, user_id=user_id)
        self._channels[name] = (handle, on_event)
        logger.debug("memory_channel_opened", channel=name)
        return handle

    async def close_channel(self, handle: ChannelHandle) -> None:
        self._channels.pop(handle.name, None)
