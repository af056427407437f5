"""
Remote Store Package

Provides the abstract store interface and its implementations.
Supabase is the production backend; the in-memory store serves tests
and offline demos.
"""

from finance_sync.services.store.interface import (
    ChannelHandle,
    DuplicateError,
    NotFoundError,
    RealtimeError,
    RemoteStore,
    StoreConnectionError,
    StoreError,
    StoreResponse,
)
from finance_sync.services.store.memory import InMemoryStore

__all__ = [
    # Interface
    "ChannelHandle",
    "RemoteStore",
    "StoreResponse",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "RealtimeError",
    "StoreConnectionError",
    "StoreError",
    # Implementations
    "InMemoryStore",
]
