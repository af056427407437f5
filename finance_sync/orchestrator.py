"""
Main Orchestrator for Finance Sync

This module ties together all the components for one signed-in user:
1. The synchronized collections (transactions, categories, budgets, goals,
   documents)
2. Receipt scanning (upload -> OCR -> parse -> review -> transaction)
3. The finance assistant chat

DESIGN DECISION: The orchestrator enforces the boundaries:
- A scanned receipt becomes a transaction only when the user accepts it
- The assistant only sees numbers derived from the user's records
- Every view is recomputed from the collections on demand

This is the "glue" the presentation layer talks to; pages never touch
the store directly.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, ValidationError

from finance_sync.assistant import ChatSession, FinanceAssistant, build_snapshot
from finance_sync.audit import AuditLogger, configure_logging
from finance_sync.config import Settings, get_settings
from finance_sync.models.receipt import ReceiptScan
from finance_sync.models.records import Budget, Transaction
from finance_sync.models.results import ErrorKind, Result, Success, failure
from finance_sync.realtime import ChannelRegistry
from finance_sync.repositories import (
    BudgetRepository,
    CategoryRepository,
    ChatRepository,
    DocumentRepository,
    GoalRepository,
    TransactionRepository,
)
from finance_sync.services.csv_transfer import (
    CSVFormatError,
    export_transactions_csv,
    parse_transactions_csv,
)
from finance_sync.services.ocr import (
    MindeeTextExtractor,
    PlainTextExtractor,
    ReceiptService,
    TextExtractor,
)
from finance_sync.services.store import InMemoryStore, RemoteStore
from finance_sync.services.store.supabase_store import SupabaseStore
from finance_sync.sync import (
    BudgetSync,
    CategorySync,
    DocumentSync,
    GoalSync,
    Notifier,
    TransactionSync,
)
from finance_sync.views import (
    BudgetStatus,
    FinancialSummary,
    GoalProgress,
    GoalsOverview,
    PeriodComparison,
    budget_status,
    goal_progress,
    goals_overview,
    month_over_month,
    summarize_transactions,
)


logger = structlog.get_logger(__name__)

RECENT_TRANSACTIONS = 5


class DashboardView(BaseModel):
    """Everything the dashboard shows, derived from the collections."""

    today: date
    overall: FinancialSummary
    comparison: PeriodComparison
    budget: Optional[Budget] = None
    budget_status: Optional[BudgetStatus] = None
    goals: list[GoalProgress]
    goals_overview: GoalsOverview
    recent_transactions: list[Transaction]

    @property
    def this_month(self) -> FinancialSummary:
        return self.comparison.current

    def snapshot(self) -> str:
        """Text digest handed to the finance assistant."""
        return build_snapshot(
            self.overall,
            budget=self.budget_status,
            monthly_limit=self.budget.monthly_limit if self.budget else None,
            goals=self.goals_overview,
            comparison=self.comparison,
        )


class AppComponents(NamedTuple):
    settings: Settings
    store: RemoteStore
    registry: ChannelRegistry
    audit_logger: AuditLogger
    receipt_service: ReceiptService
    assistant: FinanceAssistant


class FinanceWorkspace:
    """
    One user's synchronized finances.

    Usage:
        workspace = FinanceWorkspace(components, notifier=show_toast)
        await workspace.activate()
        view = workspace.dashboard()
        ...
        await workspace.close()
    """

    def __init__(self, components: AppComponents, notifier: Optional[Notifier] = None):
        self._components = components
        store = components.store
        registry = components.registry
        audit = components.audit_logger

        self.transactions = TransactionSync(TransactionRepository(store), registry, audit, notifier)
        self.categories = CategorySync(CategoryRepository(store), registry, audit, notifier)
        self.budgets = BudgetSync(BudgetRepository(store), registry, audit, notifier)
        self.goals = GoalSync(GoalRepository(store), registry, audit, notifier)
        self.documents = DocumentSync(
            DocumentRepository(store), registry, audit, notifier, components.settings.app,
        )
        self.chat = ChatSession(ChatRepository(store), components.assistant, audit)
        self.receipts = components.receipt_service

        self._warning_ratio = Decimal(str(components.settings.app.budget_warning_ratio))
        self._user_id: Optional[UUID] = None

    @property
    def user_id(self) -> Optional[UUID]:
        return self._user_id

    @property
    def collections(self) -> tuple:
        return (self.transactions, self.categories, self.budgets, self.goals, self.documents)

    async def activate(self, user_id: Optional[UUID] = None) -> Result:
        """
        Load everything for `user_id` (default: the signed-in user).

        Returns:
            Success(user_id), or the first collection Failure. Collections
            that loaded stay usable even when another one failed.
        """
        user_id = user_id or await self._components.store.current_user_id()
        if user_id is None:
            return failure("Not signed in", ErrorKind.NOT_READY)

        if self._user_id is not None and self._user_id != user_id:
            await self.close()
        self._user_id = user_id

        results = await asyncio.gather(
            *(collection.activate(user_id) for collection in self.collections),
            self.chat.load(user_id),
        )
        for result in results:
            if not result.ok:
                return result
        return Success(value=user_id)

    async def close(self) -> None:
        for collection in self.collections:
            await collection.deactivate()
        self.chat.reset()
        self._user_id = None

    async def refresh(self) -> Result:
        results = await asyncio.gather(*(c.refresh() for c in self.collections))
        for result in results:
            if not result.ok:
                return result
        return Success(value=self._user_id)

    def dashboard(self, today: Optional[date] = None) -> DashboardView:
        today = today or date.today()
        names = self.categories.name_map()
        transactions = self.transactions.records

        comparison = month_over_month(transactions, today, names)
        budget = self.budgets.current_budget(today)
        status = None
        if budget is not None:
            status = budget_status(comparison.current.expenses, budget.monthly_limit, self._warning_ratio)

        goals = self.goals.records
        return DashboardView(
            today=today,
            overall=summarize_transactions(transactions, names),
            comparison=comparison,
            budget=budget,
            budget_status=status,
            goals=[goal_progress(g, today) for g in goals],
            goals_overview=goals_overview(goals),
            recent_transactions=sorted(transactions, key=lambda t: t.date, reverse=True)[:RECENT_TRANSACTIONS],
        )

    async def scan_receipt(self, data: bytes, filename: str, mime_type: Optional[str] = None) -> Result:
        return await self.receipts.scan(data, filename, mime_type, user_id=self._user_id)

    async def add_receipt_transaction(self, scan: ReceiptScan, category_id: Optional[UUID] = None) -> Result:
        """Record a reviewed receipt as an expense."""
        candidate = self.receipts.to_transaction(scan.receipt, category_id)
        if not candidate.ok:
            return candidate
        return await self.transactions.create(candidate.value)

    async def import_transactions_csv(self, content: str) -> Result:
        """
        Import transactions from CSV text.

        Category names are matched case-insensitively to the categories of
        the same type; unknown ones import as uncategorized.

        Returns:
            Success(ImportSummary) with unreadable rows listed as failures
        """
        try:
            candidates, errors = parse_transactions_csv(content, self._category_ids())
        except CSVFormatError as e:
            return failure(str(e), ErrorKind.VALIDATION)

        if not candidates:
            return failure(errors[0] if errors else "No transactions found in the file", ErrorKind.VALIDATION)

        result = await self.transactions.import_many(candidates)
        if result.ok:
            result.value.failed.extend(errors)
        return result

    def export_transactions_csv(self) -> str:
        return export_transactions_csv(self.transactions.records, self.categories.name_map())

    def _category_ids(self) -> dict[tuple[str, str], UUID]:
        return {(c.name.strip().casefold(), c.type.value): c.id for c in self.categories.records}

    async def ask(self, question: str, today: Optional[date] = None) -> Result:
        return await self.chat.send_message(question, self.dashboard(today).snapshot())


def _build_extractor(settings: Settings) -> TextExtractor:
    try:
        return MindeeTextExtractor(settings.mindee)
    except ValidationError as e:
        logger.warning("ocr_not_configured", error=str(e))
        return PlainTextExtractor()


def _build_assistant(settings: Settings) -> FinanceAssistant:
    try:
        return FinanceAssistant(settings.gemini)
    except ValidationError as e:
        logger.warning("assistant_not_configured", error=str(e))
        return FinanceAssistant(offline=True)


async def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[RemoteStore] = None,
    extractor: Optional[TextExtractor] = None,
    assistant: Optional[FinanceAssistant] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to get_settings()
        store: Use this store instead of the one APP_STORE_BACKEND names
        extractor: OCR engine; defaults to Mindee when configured
        assistant: Defaults to Gemini when configured, else offline

    Returns:
        AppComponents
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    bucket = "receipts"
    if store is None:
        if app_settings.store_backend == "memory":
            # Offline demo: one anonymous user, nothing persisted
            store = InMemoryStore(user_id=uuid4())
        else:
            supabase_settings = settings.supabase
            store = await SupabaseStore.connect(supabase_settings)
            bucket = supabase_settings.receipts_bucket

    audit_logger = AuditLogger()
    registry = ChannelRegistry(store, audit_logger)

    receipt_service = ReceiptService(
        extractor or _build_extractor(settings),
        store=store,
        audit_logger=audit_logger,
        app_settings=app_settings,
        bucket=bucket,
    )

    logger.info("app_components_created", backend=type(store).__name__, environment=app_settings.environment)

    return AppComponents(
        settings=settings,
        store=store,
        registry=registry,
        audit_logger=audit_logger,
        receipt_service=receipt_service,
        assistant=assistant or _build_assistant(settings),
    )
