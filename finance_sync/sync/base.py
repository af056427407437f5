"""
Record Synchronization

A RecordSync keeps one user's records of one entity type in memory and
consistent with the store: it loads them, applies local mutations once
the store confirms them, and folds in realtime changes made elsewhere
(another tab, another device, a database trigger).

State machine:

    UNINITIALIZED --load--> LOADING --ok--> READY
                               |
                               +--fail--> ERROR --retry--> LOADING

A failed mutation while READY keeps the collection and only sets `error`.

DESIGN DECISIONS:
- The store's row is the truth. A created record is appended only after
  the store returns it, with the store-assigned id and timestamps.
- An insert is echoed back through the realtime feed. Whichever arrives
  first (the insert response or the echo) adds the record; the other is
  a no-op because records are matched by id.
- Loads supersede each other, as do updates of the same record. The
  older call is cancelled and its response is never applied.
- Switching or signing out the user starts a new activation. A response
  that arrives for an earlier activation is dropped, so one user's
  records never land in another user's collection.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, ClassVar, Coroutine, Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from finance_sync.audit import AuditLogger
from finance_sync.models.events import ChangeEvent, ChangeType
from finance_sync.models.results import ErrorKind, Failure, Result, Success, failure
from finance_sync.realtime import ChannelRegistry, Unsubscribe
from finance_sync.repositories.base import Candidate, RecordRepository


logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=BaseModel)


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class Notice(BaseModel):
    """A user-facing message, typically rendered as a toast."""

    model_config = ConfigDict(frozen=True)

    level: str = "error"
    title: str
    message: str


Notifier = Callable[[Notice], None]


class RecordSync(Generic[R]):
    """
    Synchronized, ordered collection of one entity type for one user.

    Args:
        repository: Translates operations into store calls
        registry: Shared realtime registry; None disables live updates
        audit_logger: Audit trail for loads and mutations
        notifier: Called with a Notice for every surfaced failure
    """

    label: ClassVar[str] = "record"
    plural: ClassVar[str] = "records"

    def __init__(
        self,
        repository: RecordRepository[R],
        registry: Optional[ChannelRegistry] = None,
        audit_logger: Optional[AuditLogger] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._repo = repository
        self._registry = registry
        self._audit = audit_logger or AuditLogger()
        self._notifier = notifier

        self._records: list[R] = []
        self._state = SyncState.UNINITIALIZED
        self._error: Optional[str] = None
        self._user_id: Optional[UUID] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._inflight: dict[str, asyncio.Task] = {}
        self._generation = 0

    # -------------------------------------------------------------------------
    # Observable state
    # -------------------------------------------------------------------------

    @property
    def table(self) -> str:
        return self._repo.table

    @property
    def records(self) -> list[R]:
        """Snapshot of the collection, in store order plus local appends."""
        return list(self._records)

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def loading(self) -> bool:
        return self._state == SyncState.LOADING

    @property
    def user_id(self) -> Optional[UUID]:
        return self._user_id

    @property
    def is_live(self) -> bool:
        """True only while the shared channel is actually delivering changes."""
        if self._registry is None or self._unsubscribe is None or self._user_id is None:
            return False
        return self._registry.is_live(self.table, self._user_id)

    def get(self, record_id: Any) -> Optional[R]:
        index = self._index_of(record_id)
        return self._records[index] if index is not None else None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def activate(self, user_id: UUID) -> Result:
        """Load the user's records, then start listening for changes."""
        if self._user_id is not None and self._user_id != user_id:
            await self.deactivate()

        self._user_id = user_id
        generation = self._generation
        result = await self.load()

        if self._registry is not None and self._unsubscribe is None and not self._is_stale(generation):
            unsubscribe = await self._registry.subscribe(self.table, user_id, self.apply_change)
            if self._is_stale(generation):
                await unsubscribe()
            else:
                self._unsubscribe = unsubscribe
        return result

    async def deactivate(self) -> None:
        """Stop listening and forget the user's records."""
        self._generation += 1
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()

        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            await unsubscribe()

        self._records = []
        self._state = SyncState.UNINITIALIZED
        self._error = None
        self._user_id = None

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self) -> Result:
        """
        Replace the collection with the store's current rows.

        Returns:
            Success with the loaded records, or Failure. On failure the
            collection is empty and the state is ERROR. A load replaced
            by a newer one returns Failure(kind=superseded).
        """
        if self._user_id is None:
            return self._not_ready()

        self._state = SyncState.LOADING
        self._error = None
        return await self._run_latest("load", self._load(self._user_id))

    async def refresh(self) -> Result:
        return await self.load()

    async def _load(self, user_id: UUID) -> Result:
        result = await self._repo.list_for_user(user_id)
        if not result.ok:
            self._records = []
            self._state = SyncState.ERROR
            self._error = result.error
            self._audit.log_load_failed(self.table, user_id, result.error)
            self._notify("error", f"Failed to load {self.plural}", result.error)
            return result

        self._records = list(result.value)
        self._state = SyncState.READY
        self._audit.log_loaded(self.table, user_id, len(self._records))
        return Success(value=self.records)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, candidate: Candidate) -> Result:
        """Validate, check, insert; the canonical record joins the collection."""
        if self._user_id is None:
            return self._not_ready()

        validated = self._repo.validate_candidate(candidate)
        if not validated.ok:
            return self._mutation_failed("create", validated)

        rejected = self._check_candidate(validated.value)
        if rejected is not None:
            return self._mutation_failed("create", rejected)

        generation = self._generation
        result = await self._repo.create(self._user_id, validated.value)
        if self._is_stale(generation):
            return self._discarded()
        if not result.ok:
            return self._mutation_failed("create", result)

        record = result.value
        if self._index_of(record.id) is None:
            self._records.append(record)
        self._mutation_succeeded()
        self._audit.log_created(self.table, str(record.id), self._user_id)
        return result

    async def update(self, record_id: UUID, changes: Candidate) -> Result:
        """
        Apply a partial update.

        The confirmed record replaces the local one at the same position,
        or is appended if the collection does not hold it.
        """
        if self._user_id is None:
            return self._not_ready()

        validated = self._repo.validate_changes(changes)
        if not validated.ok:
            return self._mutation_failed("update", validated)

        rejected = self._check_changes(record_id, validated.value)
        if rejected is not None:
            return self._mutation_failed("update", rejected)

        generation = self._generation
        result = await self._run_latest(
            f"update:{record_id}",
            self._repo.update(record_id, validated.value),
        )
        if self._is_stale(generation):
            return self._discarded()
        if not result.ok:
            if result.kind == ErrorKind.SUPERSEDED:
                return result
            return self._mutation_failed("update", result)

        self._replace_or_append(result.value)
        self._mutation_succeeded()
        self._audit.log_updated(self.table, str(record_id), self._user_id)
        return result

    async def delete(self, record_id: UUID) -> Result:
        if self._user_id is None:
            return self._not_ready()

        generation = self._generation
        result = await self._repo.delete(record_id)
        if self._is_stale(generation):
            return self._discarded()
        if not result.ok:
            return self._mutation_failed("delete", result)

        self._remove(record_id)
        self._mutation_succeeded()
        self._audit.log_deleted(self.table, str(record_id), self._user_id)
        return result

    def _check_candidate(self, candidate: BaseModel) -> Optional[Failure]:
        """Entity-specific rejection of a create before any network call."""
        return None

    def _check_changes(self, record_id: UUID, patch: BaseModel) -> Optional[Failure]:
        """Entity-specific rejection of an update before any network call."""
        return None

    # -------------------------------------------------------------------------
    # Realtime
    # -------------------------------------------------------------------------

    def apply_change(self, event: ChangeEvent) -> None:
        """
        Fold one realtime change into the collection.

        INSERT appends unless the record is already present, UPDATE
        replaces or appends, DELETE removes (a miss is fine). Rows of
        other users are ignored.
        """
        if self._user_id is None:
            return

        owner = event.record.get("user_id")
        if owner is not None and str(owner) != str(self._user_id):
            return

        if event.event_type == ChangeType.DELETE:
            if event.record_id is None:
                logger.warning("realtime_delete_without_id", table=self.table)
                return
            self._remove(event.record_id)
            return

        try:
            record = self._repo.parse_row(event.new)
        except (ValidationError, TypeError) as e:
            logger.warning(
                "realtime_row_rejected",
                table=self.table,
                event_type=event.event_type.value,
                error=str(e),
            )
            return

        if event.event_type == ChangeType.INSERT:
            if self._index_of(record.id) is None:
                self._records.append(record)
        else:
            self._replace_or_append(record)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run_latest(self, key: str, coro: Coroutine[Any, Any, Result]) -> Result:
        """Run `coro`, cancelling any earlier call still running under `key`."""
        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(coro)
        self._inflight[key] = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._inflight.get(key) is task:
                # Our own caller was cancelled, not superseded
                raise
            logger.debug("request_superseded", table=self.table, key=key)
            return failure(f"Superseded by a newer {self.label} request", ErrorKind.SUPERSEDED)
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    def _index_of(self, record_id: Any) -> Optional[int]:
        wanted = str(record_id)
        for index, record in enumerate(self._records):
            if str(record.id) == wanted:
                return index
        return None

    def _replace_or_append(self, record: R) -> None:
        index = self._index_of(record.id)
        if index is None:
            self._records.append(record)
        else:
            self._records[index] = record

    def _remove(self, record_id: Any) -> None:
        index = self._index_of(record_id)
        if index is not None:
            del self._records[index]

    def _mutation_succeeded(self) -> None:
        if self._state == SyncState.READY:
            self._error = None

    def _mutation_failed(self, operation: str, result: Failure) -> Failure:
        self._error = result.error
        self._audit.log_mutation_failed(
            self.table,
            operation,
            result.error,
            validation=result.kind == ErrorKind.VALIDATION,
        )
        self._notify("error", f"Failed to {operation} {self.label}", result.error)
        return result

    def _is_stale(self, generation: int) -> bool:
        """True once the activation a request was made under has ended."""
        return generation != self._generation

    def _discarded(self) -> Failure:
        logger.debug("response_dropped_after_user_change", table=self.table)
        return failure(f"The {self.label} request belonged to a previous session", ErrorKind.SUPERSEDED)

    def _not_ready(self) -> Failure:
        return failure("Not signed in", ErrorKind.NOT_READY)

    def _notify(self, level: str, title: str, message: str) -> None:
        if self._notifier is not None:
            self._notifier(Notice(level=level, title=title, message=message))
