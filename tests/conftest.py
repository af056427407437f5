"""
Shared fixtures for Finance Sync tests.

No test talks to the network. The hosted database is replaced by
InMemoryStore, plus two doubles built on it:
- FlakyStore: chosen operations fail
- GatedStore: chosen operations wait until the test releases them
"""

import asyncio
from typing import Any, Optional
from uuid import UUID, uuid4

import pytest

from finance_sync.audit import AuditLogger
from finance_sync.realtime import ChannelRegistry
from finance_sync.repositories import (
    BudgetRepository,
    CategoryRepository,
    DocumentRepository,
    GoalRepository,
    TransactionRepository,
)
from finance_sync.services.store import (
    InMemoryStore,
    RealtimeError,
    StoreConnectionError,
    StoreResponse,
)
from finance_sync.sync import BudgetSync, CategorySync, DocumentSync, GoalSync, TransactionSync


async def flush(rounds: int = 5) -> None:
    """Let scheduled realtime echoes and pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(condition, rounds: int = 50) -> None:
    for _ in range(rounds):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def transaction_row(user_id: UUID, **overrides: Any) -> dict[str, Any]:
    row = {
        "id": str(uuid4()),
        "user_id": str(user_id),
        "type": "expense",
        "amount": "10.00",
        "description": "Coffee",
        "date": "2024-03-01",
    }
    row.update(overrides)
    return row


class FlakyStore(InMemoryStore):
    """InMemoryStore whose operations fail while named in `failing`."""

    def __init__(self, user_id: Optional[UUID] = None):
        super().__init__(user_id)
        self.failing: set[str] = set()

    def _failure(self) -> StoreResponse:
        return StoreResponse(error=StoreConnectionError("connection reset by peer"))

    async def select_for_user(self, *args, **kwargs) -> StoreResponse:
        if "select" in self.failing:
            return self._failure()
        return await super().select_for_user(*args, **kwargs)

    async def insert(self, table, row) -> StoreResponse:
        if "insert" in self.failing:
            return self._failure()
        return await super().insert(table, row)

    async def update(self, table, record_id, changes) -> StoreResponse:
        if "update" in self.failing:
            return self._failure()
        return await super().update(table, record_id, changes)

    async def delete(self, table, record_id) -> StoreResponse:
        if "delete" in self.failing:
            return self._failure()
        return await super().delete(table, record_id)

    async def open_channel(self, table, user_id, on_event, on_error=None):
        if "open" in self.failing:
            raise RealtimeError("channel error: subscription timed out")
        return await super().open_channel(table, user_id, on_event, on_error)


class GatedStore(InMemoryStore):
    """InMemoryStore whose selects and writes wait on a gate while `hold` is set."""

    def __init__(self, user_id: Optional[UUID] = None):
        super().__init__(user_id)
        self.hold = False
        self.gates: list[asyncio.Event] = []

    async def _gate(self) -> None:
        if self.hold:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()

    async def select_for_user(self, *args, **kwargs) -> StoreResponse:
        await self._gate()
        return await super().select_for_user(*args, **kwargs)

    async def insert(self, table, row) -> StoreResponse:
        await self._gate()
        return await super().insert(table, row)

    async def update(self, table, record_id, changes) -> StoreResponse:
        await self._gate()
        return await super().update(table, record_id, changes)

    async def upsert(self, table, row, on_conflict) -> StoreResponse:
        await self._gate()
        return await super().upsert(table, row, on_conflict)

    async def delete(self, table, record_id) -> StoreResponse:
        await self._gate()
        return await super().delete(table, record_id)


class RecordingNotifier:
    def __init__(self):
        self.notices = []

    def __call__(self, notice) -> None:
        self.notices.append(notice)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def store(user_id) -> InMemoryStore:
    return InMemoryStore(user_id=user_id)


@pytest.fixture
def flaky_store(user_id) -> FlakyStore:
    return FlakyStore(user_id=user_id)


@pytest.fixture
def gated_store(user_id) -> GatedStore:
    return GatedStore(user_id=user_id)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def registry(store, audit_logger) -> ChannelRegistry:
    return ChannelRegistry(store, audit_logger)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def transactions(store, registry, audit_logger, notifier) -> TransactionSync:
    return TransactionSync(TransactionRepository(store), registry, audit_logger, notifier)


@pytest.fixture
def categories(store, registry, audit_logger, notifier) -> CategorySync:
    return CategorySync(CategoryRepository(store), registry, audit_logger, notifier)


@pytest.fixture
def budgets(store, registry, audit_logger, notifier) -> BudgetSync:
    return BudgetSync(BudgetRepository(store), registry, audit_logger, notifier)


@pytest.fixture
def goals(store, registry, audit_logger, notifier) -> GoalSync:
    return GoalSync(GoalRepository(store), registry, audit_logger, notifier)


@pytest.fixture
def documents(store, registry, audit_logger, notifier) -> DocumentSync:
    return DocumentSync(DocumentRepository(store), registry, audit_logger, notifier)
