"""
Supabase Store Implementation

DESIGN DECISION: Supabase provides everything the app needs from one place:
1. Postgres tables guarded by row-level security
2. Realtime change feeds filtered per user
3. Object storage for receipts
4. Auth, whose user id scopes all of the above

TRADEOFFS:
- The async client must stay on one event loop for its lifetime
- Realtime delivery, ordering and reconnects are the service's business;
  we only report channel failures

Query builders are passed as factories so tenacity can rebuild and
re-send a request after a transport failure. PostgREST API errors
(constraint violations, RLS denials) are final and are never retried.
"""

import asyncio
from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_sync.config import get_settings
from finance_sync.config.settings import SupabaseSettings
from finance_sync.models.events import ChangeEvent
from finance_sync.services.store.interface import (
    ChannelHandle,
    DuplicateError,
    ErrorCallback,
    EventCallback,
    RealtimeError,
    RemoteStore,
    StoreConnectionError,
    StoreError,
    StoreResponse,
)


logger = structlog.get_logger(__name__)

SUBSCRIBE_TIMEOUT_SECONDS = 10.0


def _status_name(status: Any) -> str:
    return str(getattr(status, "value", status)).upper()


def _api_error(exc: APIError) -> StoreError:
    """Map a PostgREST error onto our exception hierarchy."""
    message = exc.message or str(exc)
    code = getattr(exc, "code", None)
    details = getattr(exc, "details", None)
    if code == "23505" or "duplicate key value" in message:
        return DuplicateError(message, code=code, details=details)
    return StoreError(message, code=code, details=details)


class SupabaseStore(RemoteStore):
    """
    RemoteStore backed by the Supabase async client.

    Create with `await SupabaseStore.connect()`; the constructor
    accepts an existing client for callers that build their own.
    """

    def __init__(self, client: AsyncClient, schema: str = "public"):
        self._client = client
        self._schema = schema
        self._channel_seq = 0

    @classmethod
    async def connect(cls, settings: Optional[SupabaseSettings] = None) -> "SupabaseStore":
        """Create a store from SUPABASE_* settings."""
        settings = settings or get_settings().supabase
        try:
            client = await acreate_client(settings.url, settings.key)
        except Exception as e:
            raise StoreConnectionError(f"Failed to connect to Supabase: {e}")
        return cls(client, schema=settings.schema_name)

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    @retry(
        retry=retry_if_exception_type(StoreConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _execute(self, build: Callable[[], Any]) -> Any:
        try:
            response = await build().execute()
        except APIError as e:
            raise _api_error(e)
        except StoreError:
            raise
        except Exception as e:
            # Transport-level problem (timeout, DNS, connection reset)
            raise StoreConnectionError(f"Supabase request failed: {e}")
        return response.data

    async def _run(self, build: Callable[[], Any], single: bool = False) -> StoreResponse:
        try:
            data = await self._execute(build)
        except StoreError as e:
            return StoreResponse(error=e)

        if single:
            if isinstance(data, list):
                if not data:
                    return StoreResponse(error=StoreError("Row not found", code="PGRST116"))
                data = data[0]
        return StoreResponse(data=data)

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def current_user_id(self) -> Optional[UUID]:
        try:
            response = await self._client.auth.get_user()
        except Exception as e:
            logger.warning("current_user_lookup_failed", error=str(e))
            return None
        user = getattr(response, "user", None)
        if user is None:
            return None
        return UUID(str(user.id))

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    async def select_for_user(
        self,
        table: str,
        user_id: UUID,
        order_by: Optional[str] = None,
        descending: bool = False,
        include_shared: bool = False,
        filters: Optional[dict[str, Any]] = None,
    ) -> StoreResponse:
        def build():
            query = self._client.table(table).select("*")
            if include_shared:
                query = query.or_(f"user_id.eq.{user_id},user_id.is.null")
            else:
                query = query.eq("user_id", str(user_id))
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if order_by:
                query = query.order(order_by, desc=descending)
            return query

        response = await self._run(build)
        if response.ok and response.data is None:
            return StoreResponse(data=[])
        return response

    async def insert(self, table: str, row: dict[str, Any]) -> StoreResponse:
        return await self._run(
            lambda: self._client.table(table).insert(row),
            single=True,
        )

    async def update(self, table: str, record_id: UUID, changes: dict[str, Any]) -> StoreResponse:
        return await self._run(
            lambda: self._client.table(table).update(changes).eq("id", str(record_id)),
            single=True,
        )

    async def upsert(self, table: str, row: dict[str, Any], on_conflict: str) -> StoreResponse:
        return await self._run(
            lambda: self._client.table(table).upsert(row, on_conflict=on_conflict),
            single=True,
        )

    async def delete(self, table: str, record_id: UUID) -> StoreResponse:
        response = await self._run(
            lambda: self._client.table(table).delete().eq("id", str(record_id)),
        )
        if not response.ok:
            return response
        return StoreResponse(data=None)

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    async def upload_file(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> StoreResponse:
        try:
            await self._client.storage.from_(bucket).upload(
                path,
                data,
                {"content-type": content_type},
            )
        except Exception as e:
            return StoreResponse(error=StoreError(f"Failed to upload {path}: {e}"))
        return StoreResponse(data=path)

    # -------------------------------------------------------------------------
    # Realtime
    # -------------------------------------------------------------------------

    async def open_channel(
        self,
        table: str,
        user_id: UUID,
        on_event: EventCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> ChannelHandle:
        self._channel_seq += 1
        name = f"{table}-realtime-{user_id}-{self._channel_seq}"
        loop = asyncio.get_running_loop()
        joined: asyncio.Future = loop.create_future()

        def handle_change(payload: dict[str, Any]) -> None:
            try:
                event = ChangeEvent.from_payload(payload, table=table)
            except ValueError as e:
                logger.warning("realtime_payload_rejected", table=table, error=str(e))
                return
            on_event(event)

        def handle_status(status: Any, err: Optional[Exception] = None) -> None:
            state = _status_name(status)
            logger.debug("realtime_status", channel=name, status=state)
            if state == "SUBSCRIBED":
                if not joined.done():
                    joined.set_result(True)
            elif state in ("CHANNEL_ERROR", "TIMED_OUT", "CLOSED"):
                message = f"{state}: {err}" if err else state
                if not joined.done():
                    joined.set_exception(RealtimeError(message))
                elif on_error is not None and state != "CLOSED":
                    on_error(message)

        channel = None
        try:
            channel = self._client.channel(name)
            channel.on_postgres_changes(
                "*",
                callback=handle_change,
                table=table,
                schema=self._schema,
                filter=f"user_id=eq.{user_id}",
            )
            await channel.subscribe(handle_status)
            await asyncio.wait_for(joined, timeout=SUBSCRIBE_TIMEOUT_SECONDS)
        except (RealtimeError, asyncio.CancelledError):
            await self._remove_channel(channel, name)
            raise
        except asyncio.TimeoutError:
            await self._remove_channel(channel, name)
            raise RealtimeError(f"Timed out subscribing to {table}")
        except Exception as e:
            await self._remove_channel(channel, name)
            raise RealtimeError(f"Failed to subscribe to {table}: {e}")

        return ChannelHandle(name=name, table=table, user_id=user_id, channel=channel)

    async def close_channel(self, handle: ChannelHandle) -> None:
        await self._remove_channel(handle.channel, handle.name)

    async def _remove_channel(self, channel: Any, name: str) -> None:
        if channel is None:
            return
        try:
            await self._client.remove_channel(channel)
        except Exception as e:
            logger.warning("realtime_close_failed", channel=name, error=str(e))
