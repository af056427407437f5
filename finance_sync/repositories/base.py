"""
Record Repository Base

A repository is a thin translator between what the UI wants
("add this expense") and what the store does (insert a row).

GUARANTEES:
- Candidates are validated BEFORE any network call
- Every method returns a Result; nothing is raised to the caller
- Created/updated records are the store's canonical rows, so server
  defaults (ids, timestamps) are never guessed client-side
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, Optional, TypeVar, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from finance_sync.errors import describe_store_error
from finance_sync.models.results import ErrorKind, Failure, Result, Success, failure
from finance_sync.services.store.interface import RemoteStore, StoreResponse


logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=BaseModel)

Candidate = Union[BaseModel, dict[str, Any]]


class RecordRepository(Generic[R]):
    """
    Generic repository for one table.

    Subclasses set the table name, the model classes and the load order.
    """

    table: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    create_model: ClassVar[type[BaseModel]]
    update_model: ClassVar[Optional[type[BaseModel]]] = None

    order_by: ClassVar[Optional[str]] = "created_at"
    descending: ClassVar[bool] = False
    include_shared: ClassVar[bool] = False
    filters: ClassVar[Optional[dict[str, Any]]] = None
    stamps_updated_at: ClassVar[bool] = True

    def __init__(self, store: RemoteStore):
        self._store = store

    @property
    def store(self) -> RemoteStore:
        return self._store

    # -------------------------------------------------------------------------
    # Validation and parsing
    # -------------------------------------------------------------------------

    def validate_candidate(self, candidate: Candidate) -> Result:
        """Check a create candidate without touching the network."""
        if isinstance(candidate, self.create_model):
            return Success(value=candidate)
        if isinstance(candidate, BaseModel):
            candidate = candidate.model_dump(exclude_unset=True)
        try:
            return Success(value=self.create_model.model_validate(candidate))
        except ValidationError as e:
            return Failure.from_validation(e)

    def validate_changes(self, changes: Candidate) -> Result:
        """Check a partial update without touching the network."""
        if self.update_model is None:
            return failure(f"{self.table} records cannot be edited", ErrorKind.VALIDATION)
        if isinstance(changes, BaseModel) and not isinstance(changes, self.update_model):
            changes = changes.model_dump(exclude_unset=True)
        try:
            patch = (
                changes if isinstance(changes, self.update_model)
                else self.update_model.model_validate(changes)
            )
        except ValidationError as e:
            return Failure.from_validation(e)
        if not patch.model_fields_set:
            return failure("No changes to apply", ErrorKind.VALIDATION)
        return Success(value=patch)

    def parse_row(self, row: dict[str, Any]) -> R:
        return self.model.model_validate(row)

    def _parse_response(self, response: StoreResponse, context: str) -> Result:
        if not response.ok:
            message = describe_store_error(response.error)
            logger.warning(
                "store_request_failed",
                table=self.table,
                operation=context,
                error=response.error.message,
                code=response.error.code,
            )
            return failure(message, ErrorKind.STORE)
        try:
            return Success(value=self.parse_row(response.data))
        except (ValidationError, TypeError) as e:
            logger.error("unexpected_row_shape", table=self.table, operation=context, error=str(e))
            return failure(f"Unexpected {self.table} data from the store", ErrorKind.STORE)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def list_for_user(self, user_id: UUID) -> Result:
        """Load every record the user owns, in the table's display order."""
        response = await self._store.select_for_user(
            self.table,
            user_id,
            order_by=self.order_by,
            descending=self.descending,
            include_shared=self.include_shared,
            filters=self.filters,
        )
        if not response.ok:
            return failure(describe_store_error(response.error), ErrorKind.STORE)
        try:
            records = [self.parse_row(row) for row in response.data or []]
        except (ValidationError, TypeError) as e:
            # All or nothing: a half-parsed collection would look complete
            logger.error("unexpected_row_shape", table=self.table, operation="load", error=str(e))
            return failure(f"Unexpected {self.table} data from the store", ErrorKind.STORE)
        return Success(value=records)

    async def create(self, user_id: UUID, candidate: Candidate) -> Result:
        """Validate and insert a candidate; returns the canonical record."""
        validated = self.validate_candidate(candidate)
        if not validated.ok:
            return validated

        row = validated.value.to_row()
        row["user_id"] = str(user_id)
        response = await self._store.insert(self.table, row)
        return self._parse_response(response, "create")

    async def update(self, record_id: UUID, changes: Candidate) -> Result:
        """Validate and apply a partial update; returns the updated record."""
        validated = self.validate_changes(changes)
        if not validated.ok:
            return validated

        row = validated.value.to_row()
        if self.stamps_updated_at:
            row["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = await self._store.update(self.table, record_id, row)
        return self._parse_response(response, "update")

    async def delete(self, record_id: UUID) -> Result:
        response = await self._store.delete(self.table, record_id)
        if not response.ok:
            return failure(describe_store_error(response.error), ErrorKind.STORE)
        return Success(value=None)
