"""
Entity Repositories

One repository per table. Most of them only declare which table and
models they use. Budgets add the monthly upsert the budget screen relies on,
and documents add the file upload and a delete that only flags the row.
"""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import PurePath
from typing import Optional
from uuid import UUID, uuid4

from pydantic import ValidationError

from finance_sync.errors import describe_store_error
from finance_sync.models.records import (
    Budget,
    BudgetCreate,
    BudgetUpdate,
    Category,
    CategoryCreate,
    CategoryUpdate,
    ChatMessage,
    ChatMessageCreate,
    Document,
    DocumentCreate,
    DocumentUpdate,
    Goal,
    GoalCreate,
    GoalUpdate,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)
from finance_sync.models.results import ErrorKind, Failure, Result, Success, failure
from finance_sync.repositories.base import RecordRepository


class TransactionRepository(RecordRepository[Transaction]):
    """Income and expense entries, newest first."""

    table = "transactions"
    model = Transaction
    create_model = TransactionCreate
    update_model = TransactionUpdate
    order_by = "date"
    descending = True


class CategoryRepository(RecordRepository[Category]):
    """User categories plus the shared system categories, by name."""

    table = "categories"
    model = Category
    create_model = CategoryCreate
    update_model = CategoryUpdate
    order_by = "name"
    include_shared = True
    stamps_updated_at = False


class GoalRepository(RecordRepository[Goal]):
    """Savings goals, newest first."""

    table = "financial_goals"
    model = Goal
    create_model = GoalCreate
    update_model = GoalUpdate
    order_by = "created_at"
    descending = True


class BudgetRepository(RecordRepository[Budget]):
    """Monthly budgets. One row per (user, month, year)."""

    table = "budgets"
    model = Budget
    create_model = BudgetCreate
    update_model = BudgetUpdate
    order_by = "created_at"
    descending = True

    async def upsert_month(
        self,
        user_id: UUID,
        monthly_limit: Decimal,
        month: int,
        year: int,
        current_spent: Optional[Decimal] = None,
    ) -> Result:
        """
        Set the limit for (month, year), creating the budget if needed.

        Goes through the database's (user_id, month, year) conflict target,
        so two devices setting the limit at once cannot create two rows.
        """
        values = {"monthly_limit": monthly_limit, "month": month, "year": year}
        if current_spent is not None:
            values["current_spent"] = current_spent
        try:
            candidate = BudgetCreate.model_validate(values)
        except ValidationError as e:
            return Failure.from_validation(e)

        row = candidate.to_row()
        row["user_id"] = str(user_id)
        response = await self._store.upsert(self.table, row, on_conflict="user_id,month,year")
        return self._parse_response(response, "upsert")


class DocumentRepository(RecordRepository[Document]):
    """
    Uploaded documents, newest first.

    Deleting a document only flags the row; flagged rows are never loaded.
    """

    table = "documents"
    model = Document
    create_model = DocumentCreate
    update_model = DocumentUpdate
    order_by = "uploaded_at"
    descending = True
    filters = {"deleted": False}
    stamps_updated_at = False
    bucket = "documents"

    async def upload(
        self,
        user_id: UUID,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> Result:
        """Store the file in the documents bucket, then record it."""
        name = PurePath(filename).name
        validated = self.validate_candidate({
            "name": name,
            "file_url": name,
            "file_type": content_type,
            "size_bytes": len(data),
        })
        if not validated.ok:
            return validated

        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        path = f"{user_id}/{stamp}-{uuid4().hex[:8]}-{name}"
        response = await self._store.upload_file(
            self.bucket, path, data, content_type or "application/octet-stream",
        )
        if not response.ok:
            return failure(describe_store_error(response.error), ErrorKind.STORE)

        candidate = validated.value.model_copy(update={"file_url": path})
        return await self.create(user_id, candidate)

    async def delete(self, record_id: UUID) -> Result:
        response = await self._store.update(self.table, record_id, {"deleted": True})
        if not response.ok:
            return failure(describe_store_error(response.error), ErrorKind.STORE)
        return Success(value=None)


class ChatRepository(RecordRepository[ChatMessage]):
    """Assistant conversation, oldest first. Messages are never edited."""

    table = "chat_history"
    model = ChatMessage
    create_model = ChatMessageCreate
    update_model = None
    order_by = "created_at"
    descending = False
    stamps_updated_at = False
