"""
Realtime Channel Registry

DESIGN DECISION: At most ONE change-feed channel per (table, user).
Any number of listeners may want updates for the same pair (several
collections, several screens); they all share that one channel and
the registry fans each event out to all of them.

Lifecycle:
- The registry starts empty. It is created once per process by
  create_app_components() and injected wherever it is needed, so tests
  can build their own and count channels without leaking state.
- The registry as a whole is never torn down. Each entry cleans itself
  up when its last handler unsubscribes.

Concurrency: subscribe and unsubscribe run under one asyncio.Lock.
Opening and closing a channel both suspend; holding the lock across
those awaits is what keeps "last handler removed, so close the channel"
atomic with respect to a new handler joining the same key.

Failure policy: a channel that cannot be opened, or fails later, is
logged and left in the registry without a live feed. A subscribe that is
cancelled while the channel opens registers nothing. Listeners keep
their data from the initial load; they just stop receiving pushes
(silent degradation).
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

import structlog

from finance_sync.audit import AuditLogger
from finance_sync.models.events import ChangeEvent
from finance_sync.services.store.interface import ChannelHandle, RealtimeError, RemoteStore


logger = structlog.get_logger(__name__)

Handler = Callable[[ChangeEvent], None]
Unsubscribe = Callable[[], Awaitable[None]]


def channel_key(table: str, user_id: UUID) -> str:
    return f"{table}:{user_id}"


class _ChannelEntry:
    """One (table, user) feed and the handlers listening to it."""

    def __init__(self, table: str, user_id: UUID):
        self.table = table
        self.user_id = user_id
        self.handle: Optional[ChannelHandle] = None
        self.handlers: dict[int, Handler] = {}
        self.last_error: Optional[str] = None
        self.events_dispatched = 0

    @property
    def is_live(self) -> bool:
        return self.handle is not None and self.last_error is None

    def dispatch(self, event: ChangeEvent) -> None:
        """Hand the event to every current handler, in registration order."""
        self.events_dispatched += 1
        for token, handler in list(self.handlers.items()):
            try:
                handler(event)
            except Exception as e:
                # One broken listener must not starve the others
                logger.error(
                    "realtime_handler_failed",
                    table=self.table,
                    handler=token,
                    event_type=event.event_type.value,
                    error=str(e),
                    exc_info=True,
                )


class ChannelRegistry:
    """
    Process-wide registry of realtime channels keyed by `table:userId`.

    Usage:
        unsubscribe = await registry.subscribe("transactions", user_id, handler)
        ...
        await unsubscribe()
    """

    def __init__(self, store: RemoteStore, audit_logger: Optional[AuditLogger] = None):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._entries: dict[str, _ChannelEntry] = {}
        self._lock = asyncio.Lock()
        self._next_token = 0

    async def subscribe(self, table: str, user_id: UUID, handler: Handler) -> Unsubscribe:
        """
        Register `handler` for changes to `table` rows owned by `user_id`.

        Opens the channel only if this is the first handler for the key.

        Returns:
            An async callable that removes the handler. Calling it more
            than once is harmless.
        """
        key = channel_key(table, user_id)

        async with self._lock:
            self._next_token += 1
            token = self._next_token

            entry = self._entries.get(key)
            if entry is None:
                entry = _ChannelEntry(table, user_id)
                await self._open(key, entry)
                # Registered only once the open returns; a subscriber
                # cancelled mid-handshake leaves no entry behind
                self._entries[key] = entry

            entry.handlers[token] = handler
            logger.debug("realtime_handler_added", key=key, handlers=len(entry.handlers))

        async def unsubscribe() -> None:
            await self._unsubscribe(key, token)

        return unsubscribe

    async def _open(self, key: str, entry: _ChannelEntry) -> None:
        def on_error(message: str) -> None:
            entry.last_error = message
            self._audit.log_realtime_error(entry.table, entry.user_id, message)

        try:
            entry.handle = await self._store.open_channel(
                entry.table,
                entry.user_id,
                entry.dispatch,
                on_error,
            )
        except RealtimeError as e:
            entry.last_error = e.message
            self._audit.log_realtime_error(entry.table, entry.user_id, e.message)
            return

        self._audit.log_realtime_subscribed(entry.table, entry.user_id)

    async def _unsubscribe(self, key: str, token: int) -> None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or token not in entry.handlers:
                return

            del entry.handlers[token]
            logger.debug("realtime_handler_removed", key=key, handlers=len(entry.handlers))

            if not entry.handlers:
                del self._entries[key]
                if entry.handle is not None:
                    await self._store.close_channel(entry.handle)
                logger.debug("realtime_channel_closed", key=key)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def channel_count(self) -> int:
        """Number of (table, user) keys with a channel, live or degraded."""
        return len(self._entries)

    def handler_count(self, table: str, user_id: UUID) -> int:
        entry = self._entries.get(channel_key(table, user_id))
        return len(entry.handlers) if entry else 0

    def is_live(self, table: str, user_id: UUID) -> bool:
        entry = self._entries.get(channel_key(table, user_id))
        return bool(entry and entry.is_live)

    def debug_info(self) -> dict[str, Any]:
        return {
            "total_channels": len(self._entries),
            "live_channels": sum(1 for e in self._entries.values() if e.is_live),
            "channels": [
                {
                    "key": key,
                    "live": entry.is_live,
                    "handlers": len(entry.handlers),
                    "events_dispatched": entry.events_dispatched,
                    "last_error": entry.last_error,
                }
                for key, entry in self._entries.items()
            ],
        }
