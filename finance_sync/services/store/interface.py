"""
Abstract Remote Store Interface

DESIGN DECISION: The hosted database is reached only through this interface.
This allows us to:
1. Run against Supabase in production
2. Use an in-memory store for tests and offline demos
3. Keep repositories and sync logic unaware of the client library

Row operations follow the store's own convention: they do not raise,
they return a StoreResponse carrying either `data` or `error`.
Realtime channel setup is the exception: open_channel raises
RealtimeError, because the caller has to decide how to degrade.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from finance_sync.models.events import ChangeEvent


class StoreError(Exception):
    """Base exception for store operations."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[str] = None):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)


class NotFoundError(StoreError):
    """Row not found in the store."""
    pass


class DuplicateError(StoreError):
    """A unique constraint rejected the row."""
    pass


class StoreConnectionError(StoreError):
    """Could not reach the store."""
    pass


class RealtimeError(StoreError):
    """A realtime channel could not be opened or was dropped."""
    pass


class StoreResponse(BaseModel):
    """`{data, error}` pair returned by every row operation."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    data: Any = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ChannelHandle(BaseModel):
    """Opaque reference to an open realtime channel."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    table: str
    user_id: UUID
    channel: Any = None


EventCallback = Callable[[ChangeEvent], None]
ErrorCallback = Callable[[str], None]


class RemoteStore(ABC):
    """
    Abstract interface for the hosted database.

    Every table is scoped by a `user_id` column; row-level security
    on the server enforces the same scoping.
    """

    @abstractmethod
    async def current_user_id(self) -> Optional[UUID]:
        """Identity of the signed-in user, or None when signed out."""
        pass

    @abstractmethod
    async def select_for_user(
        self,
        table: str,
        user_id: UUID,
        order_by: Optional[str] = None,
        descending: bool = False,
        include_shared: bool = False,
        filters: Optional[dict[str, Any]] = None,
    ) -> StoreResponse:
        """
        Select every row of `table` owned by `user_id`.

        Args:
            table: Table name
            user_id: Owner to filter on
            order_by: Column to sort by
            descending: Sort direction
            include_shared: Also return rows with a null owner
                (shared system rows, e.g. default categories)
            filters: Extra column == value conditions

        Returns:
            StoreResponse with `data` as a list of row dicts
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: dict[str, Any]) -> StoreResponse:
        """Insert one row; `data` is the canonical row with server defaults."""
        pass

    @abstractmethod
    async def update(self, table: str, record_id: UUID, changes: dict[str, Any]) -> StoreResponse:
        """Update one row by id; `data` is the updated row."""
        pass

    @abstractmethod
    async def upsert(self, table: str, row: dict[str, Any], on_conflict: str) -> StoreResponse:
        """Insert or update on the `on_conflict` column list; `data` is the row."""
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: UUID) -> StoreResponse:
        """Delete one row by id; `data` is None."""
        pass

    @abstractmethod
    async def upload_file(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> StoreResponse:
        """Put a file in object storage; `data` is the stored path."""
        pass

    @abstractmethod
    async def open_channel(
        self,
        table: str,
        user_id: UUID,
        on_event: EventCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ChannelHandle:
        """
        Open a change feed for (table, user).

        `on_event` receives every INSERT/UPDATE/DELETE matching
        `user_id=eq.<id>`, in delivery order. `on_error` is told when an
        open channel later fails.

        Raises:
            RealtimeError: If the subscription is denied or times out
        """
        pass

    @abstractmethod
    async def close_channel(self, handle: ChannelHandle) -> None:
        """Close a channel opened by open_channel."""
        pass
