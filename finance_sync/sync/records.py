"""
Entity Collections

The entity-specific behaviour on top of RecordSync: duplicate checks
that can be answered from the local collection, and the few operations
the screens need beyond create/update/delete.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finance_sync.audit import AuditLogger
from finance_sync.config import get_settings
from finance_sync.config.settings import AppSettings
from finance_sync.models.events import ChangeEvent, ChangeType
from finance_sync.models.records import (
    Budget,
    BudgetCreate,
    Category,
    CategoryCreate,
    CategoryUpdate,
    Document,
    Goal,
    Transaction,
    TransactionType,
    to_money,
)
from finance_sync.models.results import ErrorKind, Failure, Result, Success, failure
from finance_sync.realtime import ChannelRegistry
from finance_sync.repositories import BudgetRepository, DocumentRepository
from finance_sync.repositories.base import Candidate
from finance_sync.sync.base import Notifier, RecordSync
from finance_sync.views import FinancialSummary, summarize_transactions


class ImportSummary(BaseModel):
    """Outcome of a bulk import; failures are "Row N: reason" lines."""

    imported: list[Transaction] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class TransactionSync(RecordSync[Transaction]):
    label = "transaction"
    plural = "transactions"

    def totals(self, category_names: Optional[Mapping[str, str]] = None) -> FinancialSummary:
        return summarize_transactions(self._records, category_names)

    def expenses(self) -> list[Transaction]:
        return [t for t in self._records if t.type == TransactionType.EXPENSE]

    async def import_many(self, candidates: Iterable[Candidate]) -> Result:
        """
        Create many transactions at once, e.g. from a CSV file.

        Rows succeed or fail on their own. Failed rows are listed in the
        summary and reported in one notice, not one per row.

        Returns:
            Success(ImportSummary), or Failure when nothing was given
        """
        if self._user_id is None:
            return self._not_ready()

        rows = list(candidates)
        if not rows:
            return self._mutation_failed(
                "import",
                failure("No transactions to import", ErrorKind.VALIDATION),
            )

        user_id = self._user_id
        generation = self._generation
        results = await asyncio.gather(*(self._repo.create(user_id, row) for row in rows))
        if self._is_stale(generation):
            return self._discarded()

        summary = ImportSummary()
        for number, result in enumerate(results, start=1):
            if not result.ok:
                summary.failed.append(f"Row {number}: {result.error}")
                continue
            if self._index_of(result.value.id) is None:
                self._records.append(result.value)
            summary.imported.append(result.value)
            self._audit.log_created(self.table, str(result.value.id), user_id)

        if summary.failed:
            self._error = f"{len(summary.failed)} of {len(rows)} transactions were not imported"
            self._notify("error", "Some transactions were not imported", self._error)
        else:
            self._mutation_succeeded()
        return Success(value=summary)


class CategorySync(RecordSync[Category]):
    """The user's categories together with the shared system ones."""

    label = "category"
    plural = "categories"

    def name_map(self) -> dict[str, str]:
        """category id (as str) -> name, for labelling transactions."""
        return {str(c.id): c.name for c in self._records}

    def of_type(self, kind: TransactionType) -> list[Category]:
        return [c for c in self._records if c.type == kind]

    def _conflicts(self, name: str, kind: TransactionType, ignore_id: Optional[str] = None) -> bool:
        wanted = name.strip().casefold()
        for category in self._records:
            if ignore_id is not None and str(category.id) == ignore_id:
                continue
            # System categories have no owner and never clash with the user's
            if category.user_id is None:
                continue
            if category.type == kind and category.name.strip().casefold() == wanted:
                return True
        return False

    def _check_candidate(self, candidate: CategoryCreate) -> Optional[Failure]:
        if self._conflicts(candidate.name, candidate.type):
            return failure("A category with this name and type already exists", ErrorKind.VALIDATION)
        return None

    def _check_changes(self, record_id: UUID, patch: CategoryUpdate) -> Optional[Failure]:
        if patch.name is None and patch.type is None:
            return None
        current = self.get(record_id)
        if current is None:
            return None
        name = patch.name if patch.name is not None else current.name
        kind = patch.type if patch.type is not None else current.type
        if self._conflicts(name, kind, ignore_id=str(record_id)):
            return failure("A category with this name and type already exists", ErrorKind.VALIDATION)
        return None


class BudgetSync(RecordSync[Budget]):
    """Monthly budgets; at most one per (month, year)."""

    label = "budget"
    plural = "budgets"

    _repo: BudgetRepository

    def for_month(self, month: int, year: int) -> Optional[Budget]:
        for budget in self._records:
            if budget.month == month and budget.year == year:
                return budget
        return None

    def current_budget(self, today: Optional[date] = None) -> Optional[Budget]:
        today = today or date.today()
        return self.for_month(today.month, today.year)

    def _check_candidate(self, candidate: BudgetCreate) -> Optional[Failure]:
        if self.for_month(candidate.month, candidate.year) is not None:
            return failure("Budget for this month already exists", ErrorKind.VALIDATION)
        return None

    async def set_monthly_limit(
        self,
        monthly_limit: Any,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> Result:
        """
        Create or change the limit for a month (default: the current one).

        Uses the store's upsert, so it is safe even when the local
        collection has not seen a budget another device just created.
        """
        if self._user_id is None:
            return self._not_ready()

        today = date.today()
        month = month or today.month
        year = year or today.year

        generation = self._generation
        result = await self._repo.upsert_month(self._user_id, to_money(monthly_limit), month, year)
        if self._is_stale(generation):
            return self._discarded()
        if not result.ok:
            return self._mutation_failed("save", result)

        budget = result.value
        self._replace_or_append(budget)
        self._mutation_succeeded()
        self._audit.log_updated(self.table, str(budget.id), self._user_id)
        return result

    async def record_spent(
        self,
        amount: Any,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> Result:
        """Add `amount` to the month's current_spent."""
        if self._user_id is None:
            return self._not_ready()

        today = date.today()
        budget = self.for_month(month or today.month, year or today.year)
        if budget is None:
            return self._mutation_failed(
                "update",
                failure("No budget set for this month", ErrorKind.VALIDATION),
            )

        amount = to_money(amount)
        if not isinstance(amount, Decimal):
            return self._mutation_failed("update", failure("Invalid amount", ErrorKind.VALIDATION))

        spent = budget.current_spent + amount
        return await self.update(budget.id, {"current_spent": spent})


class GoalSync(RecordSync[Goal]):
    label = "goal"
    plural = "goals"

    def active(self) -> list[Goal]:
        return [g for g in self._records if not g.is_completed]

    def completed(self) -> list[Goal]:
        return [g for g in self._records if g.is_completed]

    async def add_savings(self, goal_id: UUID, amount: Any) -> Result:
        """
        Put `amount` towards a goal.

        The goal is marked completed once saved_amount reaches the target.
        """
        if self._user_id is None:
            return self._not_ready()

        goal = self.get(goal_id)
        if goal is None:
            return self._mutation_failed("update", failure("Goal not found", ErrorKind.VALIDATION))

        amount = to_money(amount)
        if not isinstance(amount, Decimal) or amount <= 0:
            return self._mutation_failed(
                "update",
                failure("Amount must be positive", ErrorKind.VALIDATION),
            )

        saved = goal.saved_amount + amount
        return await self.update(goal_id, {
            "saved_amount": saved,
            "is_completed": saved >= goal.target_amount,
        })


class DocumentSync(RecordSync[Document]):
    """
    The user's document library.

    Deleting a document flags its row instead of removing it. Locally the
    document leaves the collection either way, and a flagged row arriving
    over the realtime feed is treated as a delete.
    """

    label = "document"
    plural = "documents"

    _repo: DocumentRepository

    def __init__(
        self,
        repository: DocumentRepository,
        registry: Optional[ChannelRegistry] = None,
        audit_logger: Optional[AuditLogger] = None,
        notifier: Optional[Notifier] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        super().__init__(repository, registry, audit_logger, notifier)
        self._settings = app_settings or get_settings().app

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> Result:
        """Store a file and add it to the library."""
        if self._user_id is None:
            return self._not_ready()

        if not data:
            return self._mutation_failed(
                "upload",
                failure("The uploaded file is empty", ErrorKind.VALIDATION),
            )
        if len(data) > self._settings.max_document_size_bytes:
            return self._mutation_failed(
                "upload",
                failure(
                    f"File is too large. Maximum size is {self._settings.max_document_size_mb} MB",
                    ErrorKind.VALIDATION,
                ),
            )

        generation = self._generation
        result = await self._repo.upload(self._user_id, data, filename, content_type)
        if self._is_stale(generation):
            return self._discarded()
        if not result.ok:
            return self._mutation_failed("upload", result)

        document = result.value
        if self._index_of(document.id) is None:
            self._records.append(document)
        self._mutation_succeeded()
        self._audit.log_created(self.table, str(document.id), self._user_id)
        return result

    def apply_change(self, event: ChangeEvent) -> None:
        if event.event_type != ChangeType.DELETE and event.new.get("deleted") is True:
            event = event.model_copy(update={"event_type": ChangeType.DELETE, "old": event.new})
        super().apply_change(event)
