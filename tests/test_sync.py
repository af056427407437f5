"""
Tests for the synchronized collections

Test strategy:
1. Lifecycle: load, failure, recovery, deactivate
2. Mutations against InMemoryStore, including the realtime echo
3. Realtime changes made elsewhere
4. Superseded loads and updates (GatedStore)
5. Entity rules: categories, budgets, goals, documents
6. Bulk import of transactions
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_sync.models.events import ChangeEvent, ChangeType
from finance_sync.models.results import ErrorKind
from finance_sync.realtime import ChannelRegistry
from finance_sync.config.settings import AppSettings
from finance_sync.repositories import BudgetRepository, DocumentRepository, TransactionRepository
from finance_sync.sync import BudgetSync, DocumentSync, SyncState, TransactionSync

from conftest import RecordingNotifier, flush, transaction_row, wait_until


def event(event_type, new=None, old=None):
    return ChangeEvent(event_type=event_type, table="transactions", new=new or {}, old=old or {})


# =============================================================================
# LIFECYCLE
# =============================================================================

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_activate_loads_and_subscribes(self, store, registry, transactions, user_id):
        await store.insert("transactions", transaction_row(user_id, date="2024-03-01"))
        await store.insert("transactions", transaction_row(user_id, date="2024-03-05"))
        await store.insert("transactions", transaction_row(uuid4()))

        result = await transactions.activate(user_id)

        assert result.ok
        assert transactions.state == SyncState.READY
        assert [str(t.date) for t in transactions.records] == ["2024-03-05", "2024-03-01"]
        assert transactions.is_live
        assert registry.channel_count() == 1

    @pytest.mark.asyncio
    async def test_operations_before_activation_are_not_ready(self, store, transactions):
        """Nothing reaches the store without a signed-in user."""
        result = await transactions.create({"type": "expense", "amount": "5"})

        assert result.kind == ErrorKind.NOT_READY
        assert (await transactions.load()).kind == ErrorKind.NOT_READY
        assert store.rows("transactions") == []

    @pytest.mark.asyncio
    async def test_load_failure_empties_collection_and_notifies(self, flaky_store, user_id):
        notifier = RecordingNotifier()
        sync = TransactionSync(TransactionRepository(flaky_store), notifier=notifier)
        flaky_store.failing.add("select")

        result = await sync.activate(user_id)

        assert not result.ok
        assert result.kind == ErrorKind.STORE
        assert sync.state == SyncState.ERROR
        assert sync.records == []
        assert sync.error == "connection reset by peer"
        assert notifier.notices[0].title == "Failed to load transactions"

    @pytest.mark.asyncio
    async def test_refresh_recovers_from_error(self, flaky_store, user_id):
        sync = TransactionSync(TransactionRepository(flaky_store))
        flaky_store.failing.add("select")
        await sync.activate(user_id)
        await flaky_store.insert("transactions", transaction_row(user_id))

        flaky_store.failing.clear()
        result = await sync.refresh()

        assert result.ok
        assert sync.state == SyncState.READY
        assert sync.error is None
        assert len(sync.records) == 1

    @pytest.mark.asyncio
    async def test_malformed_row_fails_whole_load(self, store, transactions, user_id):
        await store.insert("transactions", transaction_row(user_id))
        await store.insert("transactions", transaction_row(user_id, amount="not money"))

        result = await transactions.activate(user_id)

        assert not result.ok
        assert transactions.records == []
        assert transactions.state == SyncState.ERROR

    @pytest.mark.asyncio
    async def test_deactivate_releases_channel(self, store, registry, transactions, user_id):
        await transactions.activate(user_id)
        await transactions.deactivate()

        assert registry.channel_count() == 0
        assert store.open_channel_count == 0
        assert transactions.records == []
        assert transactions.state == SyncState.UNINITIALIZED
        assert transactions.user_id is None

    @pytest.mark.asyncio
    async def test_open_failure_still_loads(self, flaky_store, user_id):
        """No live feed is not an error; the loaded data stays usable."""
        registry = ChannelRegistry(flaky_store)
        sync = TransactionSync(TransactionRepository(flaky_store), registry)
        flaky_store.failing.add("open")
        await flaky_store.insert("transactions", transaction_row(user_id))

        result = await sync.activate(user_id)

        assert result.ok
        assert len(sync.records) == 1
        assert not registry.is_live("transactions", user_id)
        assert not sync.is_live

    @pytest.mark.asyncio
    async def test_not_live_without_registry(self, store, user_id):
        sync = TransactionSync(TransactionRepository(store))
        await sync.activate(user_id)

        assert not sync.is_live

    @pytest.mark.asyncio
    async def test_create_pending_across_user_switch_is_dropped(self, gated_store, user_id):
        """A response for the previous user never lands in the next user's collection."""
        sync = TransactionSync(TransactionRepository(gated_store))
        await sync.activate(user_id)

        gated_store.hold = True
        pending = asyncio.ensure_future(sync.create({"type": "expense", "amount": "10"}))
        await wait_until(lambda: len(gated_store.gates) == 1)

        gated_store.hold = False
        other_user = uuid4()
        await sync.activate(other_user)
        gated_store.gates[0].set()
        result = await pending

        assert result.kind == ErrorKind.SUPERSEDED
        assert sync.user_id == other_user
        assert sync.records == []
        assert sync.error is None

    @pytest.mark.asyncio
    async def test_delete_pending_across_sign_out_is_dropped(self, gated_store, user_id):
        sync = TransactionSync(TransactionRepository(gated_store))
        await sync.activate(user_id)
        created = (await sync.create({"type": "expense", "amount": "10"})).value

        gated_store.hold = True
        pending = asyncio.ensure_future(sync.delete(created.id))
        await wait_until(lambda: len(gated_store.gates) == 1)

        await sync.deactivate()
        gated_store.gates[0].set()
        result = await pending

        assert result.kind == ErrorKind.SUPERSEDED
        assert sync.records == []
        assert sync.state == SyncState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_update_pending_across_user_switch_is_dropped(self, gated_store, user_id):
        sync = TransactionSync(TransactionRepository(gated_store))
        await sync.activate(user_id)
        created = (await sync.create({"type": "expense", "amount": "10"})).value

        gated_store.hold = True
        pending = asyncio.ensure_future(sync.update(created.id, {"description": "Late"}))
        await wait_until(lambda: len(gated_store.gates) == 1)

        gated_store.hold = False
        await sync.activate(uuid4())
        gated_store.gates[0].set()
        result = await pending

        assert result.kind == ErrorKind.SUPERSEDED
        assert sync.records == []


# =============================================================================
# MUTATIONS
# =============================================================================

class TestMutations:

    @pytest.mark.asyncio
    async def test_create_uses_store_identity(self, store, transactions, user_id):
        """The record carries the id the store assigned; the echo adds nothing."""
        await transactions.activate(user_id)

        result = await transactions.create({"type": "expense", "amount": "12.40", "description": "Lunch"})
        await flush()

        assert result.ok
        stored = store.rows("transactions")
        assert len(stored) == 1
        assert len(transactions.records) == 1
        assert str(transactions.records[0].id) == stored[0]["id"]
        assert transactions.records[0].amount == Decimal("12.40")

    @pytest.mark.asyncio
    async def test_amount_survives_reload(self, transactions, categories, user_id):
        """42.50 is still exactly 42.50 after a round trip through the store."""
        await categories.activate(user_id)
        await transactions.activate(user_id)
        groceries = (await categories.create({"name": "Groceries", "type": "expense"})).value

        await transactions.create({"type": "expense", "amount": "42.50", "category_id": groceries.id})
        result = await transactions.refresh()

        assert result.ok
        record = transactions.records[0]
        assert record.amount == Decimal("42.50")
        assert str(record.amount) == "42.50"
        assert transactions.totals(categories.name_map()).category_totals[0].category == "Groceries"

    @pytest.mark.asyncio
    async def test_validation_failure_never_reaches_store(self, store, transactions, notifier, user_id):
        await transactions.activate(user_id)

        result = await transactions.create({"type": "expense", "amount": "-5"})

        assert result.kind == ErrorKind.VALIDATION
        assert result.error.startswith("amount: ")
        assert store.rows("transactions") == []
        assert transactions.error == result.error
        assert notifier.notices[-1].title == "Failed to create transaction"

    @pytest.mark.asyncio
    async def test_store_failure_keeps_collection(self, flaky_store, user_id):
        sync = TransactionSync(TransactionRepository(flaky_store))
        await flaky_store.insert("transactions", transaction_row(user_id))
        await sync.activate(user_id)

        flaky_store.failing.add("insert")
        result = await sync.create({"type": "income", "amount": "100"})

        assert result.kind == ErrorKind.STORE
        assert sync.state == SyncState.READY
        assert len(sync.records) == 1
        assert sync.error == "connection reset by peer"

    @pytest.mark.asyncio
    async def test_next_success_clears_error(self, flaky_store, user_id):
        sync = TransactionSync(TransactionRepository(flaky_store))
        await sync.activate(user_id)
        flaky_store.failing.add("insert")
        await sync.create({"type": "income", "amount": "100"})

        flaky_store.failing.clear()
        await sync.create({"type": "income", "amount": "100"})

        assert sync.error is None

    @pytest.mark.asyncio
    async def test_update_keeps_position(self, transactions, user_id):
        await transactions.activate(user_id)
        for description in ("first", "second", "third"):
            await transactions.create({"type": "expense", "amount": "1", "description": description})
        await flush()
        target = transactions.records[1]

        result = await transactions.update(target.id, {"description": "changed"})
        await flush()

        assert result.ok
        assert [t.description for t in transactions.records] == ["first", "changed", "third"]

    @pytest.mark.asyncio
    async def test_update_of_unknown_record_appends(self, store, user_id):
        sync = TransactionSync(TransactionRepository(store))
        await sync.activate(user_id)
        row = (await store.insert("transactions", transaction_row(user_id))).data

        result = await sync.update(row["id"], {"amount": "99"})

        assert result.ok
        assert len(sync.records) == 1
        assert sync.records[0].amount == Decimal("99.00")

    @pytest.mark.asyncio
    async def test_update_with_no_changes_rejected(self, transactions, user_id):
        await transactions.activate(user_id)
        result = await transactions.update(uuid4(), {})
        assert result.error == "No changes to apply"

    @pytest.mark.asyncio
    async def test_update_of_missing_row_fails(self, transactions, user_id):
        await transactions.activate(user_id)
        result = await transactions.update(uuid4(), {"description": "x"})
        assert result.kind == ErrorKind.STORE

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, store, transactions, user_id):
        await transactions.activate(user_id)
        created = await transactions.create({"type": "expense", "amount": "3"})
        await flush()

        result = await transactions.delete(created.value.id)
        await flush()

        assert result.ok
        assert transactions.records == []
        assert store.rows("transactions") == []


# =============================================================================
# REALTIME
# =============================================================================

class TestRealtimeChanges:

    @pytest.mark.asyncio
    async def test_change_from_elsewhere_arrives(self, store, transactions, user_id):
        """A row written by another client appears through the feed."""
        await transactions.activate(user_id)

        await store.insert("transactions", transaction_row(user_id, description="From phone"))
        await flush()

        assert [t.description for t in transactions.records] == ["From phone"]

    @pytest.mark.asyncio
    async def test_insert_for_known_id_is_ignored(self, transactions, user_id):
        await transactions.activate(user_id)
        row = transaction_row(user_id)

        transactions.apply_change(event(ChangeType.INSERT, new=row))
        transactions.apply_change(event(ChangeType.INSERT, new={**row, "description": "dup"}))

        assert len(transactions.records) == 1
        assert transactions.records[0].description == "Coffee"

    @pytest.mark.asyncio
    async def test_other_users_changes_ignored(self, transactions, user_id):
        await transactions.activate(user_id)
        transactions.apply_change(event(ChangeType.INSERT, new=transaction_row(uuid4())))
        assert transactions.records == []

    @pytest.mark.asyncio
    async def test_update_event_for_absent_record_appends(self, transactions, user_id):
        await transactions.activate(user_id)
        transactions.apply_change(event(ChangeType.UPDATE, new=transaction_row(user_id)))
        assert len(transactions.records) == 1

    @pytest.mark.asyncio
    async def test_delete_miss_is_noop(self, transactions, user_id):
        await transactions.activate(user_id)
        transactions.apply_change(event(ChangeType.INSERT, new=transaction_row(user_id)))

        transactions.apply_change(event(ChangeType.DELETE, old={"id": str(uuid4())}))

        assert len(transactions.records) == 1

    @pytest.mark.asyncio
    async def test_delete_event_removes(self, transactions, user_id):
        await transactions.activate(user_id)
        row = transaction_row(user_id)
        transactions.apply_change(event(ChangeType.INSERT, new=row))

        transactions.apply_change(event(ChangeType.DELETE, old={"id": row["id"]}))

        assert transactions.records == []

    @pytest.mark.asyncio
    async def test_malformed_row_is_skipped(self, transactions, user_id):
        await transactions.activate(user_id)
        transactions.apply_change(event(ChangeType.INSERT, new={"id": "x", "user_id": str(user_id)}))
        assert transactions.records == []


# =============================================================================
# SUPERSESSION
# =============================================================================

class TestSupersession:

    @pytest.mark.asyncio
    async def test_newer_load_wins(self, gated_store, user_id):
        """An older load's response is never applied."""
        sync = TransactionSync(TransactionRepository(gated_store))
        await sync.activate(user_id)

        gated_store.hold = True
        first = asyncio.ensure_future(sync.load())
        await wait_until(lambda: len(gated_store.gates) == 1)

        gated_store.hold = False
        await gated_store.insert("transactions", transaction_row(user_id))
        gated_store.hold = True
        second = asyncio.ensure_future(sync.load())
        await wait_until(lambda: len(gated_store.gates) == 2)

        gated_store.gates[1].set()
        gated_store.gates[0].set()
        newer, older = await second, await first

        assert newer.ok
        assert older.kind == ErrorKind.SUPERSEDED
        assert len(sync.records) == 1
        assert sync.state == SyncState.READY

    @pytest.mark.asyncio
    async def test_newer_update_of_same_record_wins(self, gated_store, user_id):
        sync = TransactionSync(TransactionRepository(gated_store))
        await sync.activate(user_id)
        created = await sync.create({"type": "expense", "amount": "10"})
        record_id = created.value.id

        gated_store.hold = True
        first = asyncio.ensure_future(sync.update(record_id, {"description": "A"}))
        await wait_until(lambda: len(gated_store.gates) == 1)
        second = asyncio.ensure_future(sync.update(record_id, {"description": "B"}))
        await wait_until(lambda: len(gated_store.gates) == 2)

        gated_store.gates[1].set()
        newer, older = await second, await first

        assert newer.ok
        assert older.kind == ErrorKind.SUPERSEDED
        assert sync.get(record_id).description == "B"
        assert gated_store.rows("transactions")[0]["description"] == "B"

    @pytest.mark.asyncio
    async def test_updates_of_different_records_both_apply(self, gated_store, user_id):
        sync = TransactionSync(TransactionRepository(gated_store))
        await sync.activate(user_id)
        a = (await sync.create({"type": "expense", "amount": "1"})).value
        b = (await sync.create({"type": "expense", "amount": "2"})).value

        gated_store.hold = True
        first = asyncio.ensure_future(sync.update(a.id, {"description": "A"}))
        second = asyncio.ensure_future(sync.update(b.id, {"description": "B"}))
        await wait_until(lambda: len(gated_store.gates) == 2)
        for gate in gated_store.gates:
            gate.set()

        assert (await first).ok
        assert (await second).ok
        assert [t.description for t in sync.records] == ["A", "B"]


# =============================================================================
# ENTITY RULES
# =============================================================================

class TestCategories:

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected_locally(self, store, categories, user_id):
        await categories.activate(user_id)
        await categories.create({"name": "Pets", "type": "expense"})

        result = await categories.create({"name": " pets ", "type": "expense"})

        assert result.kind == ErrorKind.VALIDATION
        assert result.error == "A category with this name and type already exists"
        assert len(store.rows("categories")) == 1

    @pytest.mark.asyncio
    async def test_same_name_other_type_allowed(self, categories, user_id):
        await categories.activate(user_id)
        await categories.create({"name": "Gifts", "type": "expense"})
        result = await categories.create({"name": "Gifts", "type": "income"})
        assert result.ok

    @pytest.mark.asyncio
    async def test_system_category_does_not_clash(self, store, categories, user_id):
        await store.insert("categories", {"name": "Food", "type": "expense", "is_system": True, "user_id": None})
        await categories.activate(user_id)
        assert categories.records[0].is_system

        result = await categories.create({"name": "Food", "type": "expense"})
        await flush()

        assert result.ok
        assert len(categories.records) == 2
        assert set(categories.name_map().values()) == {"Food"}

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name_rejected(self, categories, user_id):
        await categories.activate(user_id)
        await categories.create({"name": "Rent", "type": "expense"})
        other = (await categories.create({"name": "Utilities", "type": "expense"})).value

        result = await categories.update(other.id, {"name": "RENT"})

        assert result.kind == ErrorKind.VALIDATION


class TestBudgets:

    @pytest.mark.asyncio
    async def test_second_budget_for_month_rejected(self, store, budgets, user_id):
        await budgets.activate(user_id)
        first = await budgets.create({"monthly_limit": "500", "month": 3, "year": 2024})

        second = await budgets.create({"monthly_limit": "700", "month": 3, "year": 2024})

        assert first.ok
        assert second.kind == ErrorKind.VALIDATION
        assert second.error == "Budget for this month already exists"
        assert len(store.rows("budgets")) == 1

    @pytest.mark.asyncio
    async def test_store_duplicate_is_translated(self, store, user_id):
        """A budget created elsewhere, not yet seen locally, is caught by the store."""
        sync = BudgetSync(BudgetRepository(store))
        await sync.activate(user_id)
        await store.insert("budgets", {"user_id": str(user_id), "monthly_limit": "100", "month": 4, "year": 2024})

        result = await sync.create({"monthly_limit": "200", "month": 4, "year": 2024})

        assert result.kind == ErrorKind.STORE
        assert result.error == "Budget for this month already exists"

    @pytest.mark.asyncio
    async def test_set_monthly_limit_pending_across_user_switch_is_dropped(self, gated_store, user_id):
        sync = BudgetSync(BudgetRepository(gated_store))
        await sync.activate(user_id)

        gated_store.hold = True
        pending = asyncio.ensure_future(sync.set_monthly_limit("500", 3, 2024))
        await wait_until(lambda: len(gated_store.gates) == 1)

        gated_store.hold = False
        await sync.activate(uuid4())
        gated_store.gates[0].set()
        result = await pending

        assert result.kind == ErrorKind.SUPERSEDED
        assert sync.records == []

    @pytest.mark.asyncio
    async def test_set_monthly_limit_upserts(self, store, budgets, user_id):
        await budgets.activate(user_id)
        await budgets.set_monthly_limit("500", 3, 2024)
        await flush()

        result = await budgets.set_monthly_limit("800", 3, 2024)
        await flush()

        assert result.ok
        assert len(store.rows("budgets")) == 1
        assert len(budgets.records) == 1
        assert budgets.for_month(3, 2024).monthly_limit == Decimal("800.00")

    @pytest.mark.asyncio
    async def test_record_spent(self, budgets, user_id):
        await budgets.activate(user_id)
        await budgets.set_monthly_limit("500", 3, 2024)

        await budgets.record_spent("25.50", 3, 2024)
        result = await budgets.record_spent("4.50", 3, 2024)

        assert result.ok
        assert budgets.for_month(3, 2024).current_spent == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_record_spent_without_budget(self, budgets, user_id):
        await budgets.activate(user_id)
        result = await budgets.record_spent("10", 1, 2030)
        assert result.error == "No budget set for this month"


class TestGoals:

    @pytest.mark.asyncio
    async def test_add_savings_completes_goal(self, goals, user_id):
        await goals.activate(user_id)
        goal = (await goals.create({"name": "Laptop", "target_amount": "100"})).value

        await goals.add_savings(goal.id, "60")
        assert not goals.get(goal.id).is_completed

        result = await goals.add_savings(goal.id, "40")

        assert result.ok
        assert goals.get(goal.id).saved_amount == Decimal("100.00")
        assert goals.get(goal.id).is_completed
        assert goals.completed() == [goals.get(goal.id)]
        assert goals.active() == []

    @pytest.mark.asyncio
    async def test_add_savings_to_missing_goal(self, goals, user_id):
        await goals.activate(user_id)
        result = await goals.add_savings(uuid4(), "10")
        assert result.error == "Goal not found"

    @pytest.mark.asyncio
    async def test_add_savings_rejects_non_positive(self, goals, user_id):
        await goals.activate(user_id)
        goal = (await goals.create({"name": "Laptop", "target_amount": "100"})).value
        result = await goals.add_savings(goal.id, "0")
        assert result.error == "Amount must be positive"


class TestDocuments:

    async def _add_row(self, store, user_id, **overrides):
        row = {
            "user_id": str(user_id),
            "name": "lease.pdf",
            "file_url": f"{user_id}/lease.pdf",
            "file_type": "application/pdf",
            "size_bytes": 1200,
            "deleted": False,
        }
        row.update(overrides)
        return (await store.insert("documents", row)).data

    @pytest.mark.asyncio
    async def test_flagged_rows_are_not_loaded(self, store, documents, user_id):
        kept = await self._add_row(store, user_id)
        await self._add_row(store, user_id, name="old.pdf", deleted=True)

        await documents.activate(user_id)

        assert [str(d.id) for d in documents.records] == [kept["id"]]

    @pytest.mark.asyncio
    async def test_delete_flags_row_and_drops_record(self, store, documents, user_id):
        row = await self._add_row(store, user_id)
        await documents.activate(user_id)

        result = await documents.delete(row["id"])
        await flush()

        assert result.ok
        assert documents.records == []
        assert store.rows("documents")[0]["deleted"] is True

    @pytest.mark.asyncio
    async def test_flagged_update_from_elsewhere_removes(self, store, documents, user_id):
        row = await self._add_row(store, user_id)
        await documents.activate(user_id)

        await store.update("documents", row["id"], {"deleted": True})
        await flush()

        assert documents.records == []

    @pytest.mark.asyncio
    async def test_upload_stores_file_and_record(self, store, documents, user_id):
        await documents.activate(user_id)

        result = await documents.upload(b"%PDF-1.4", "scans/lease.pdf", "application/pdf")
        await flush()

        assert result.ok
        document = result.value
        assert document.name == "lease.pdf"
        assert document.file_url.startswith(f"{user_id}/")
        assert store.file("documents", document.file_url) == b"%PDF-1.4"
        assert [d.id for d in documents.records] == [document.id]

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected(self, store, notifier, user_id):
        documents = DocumentSync(
            DocumentRepository(store),
            notifier=notifier,
            app_settings=AppSettings(max_document_size_mb=1),
        )
        await documents.activate(user_id)

        result = await documents.upload(b"x" * (1024 * 1024 + 1), "big.bin")

        assert result.kind == ErrorKind.VALIDATION
        assert "Maximum size is 1 MB" in result.error
        assert store.rows("documents") == []
        assert notifier.notices[-1].title == "Failed to upload document"

    @pytest.mark.asyncio
    async def test_empty_upload_rejected(self, store, documents, user_id):
        await documents.activate(user_id)
        result = await documents.upload(b"", "empty.pdf")
        assert result.error == "The uploaded file is empty"
        assert store.rows("documents") == []


# =============================================================================
# BULK IMPORT
# =============================================================================

class TestImport:

    @pytest.mark.asyncio
    async def test_import_many_keeps_good_rows(self, store, transactions, notifier, user_id):
        await transactions.activate(user_id)

        result = await transactions.import_many([
            {"type": "expense", "amount": "12.50", "date": "2024-03-01"},
            {"type": "expense", "amount": "-4", "date": "2024-03-02"},
            {"type": "income", "amount": "900", "date": "2024-03-03"},
        ])
        await flush()

        assert result.ok
        summary = result.value
        assert [t.amount for t in summary.imported] == [Decimal("12.50"), Decimal("900.00")]
        assert len(summary.failed) == 1
        assert summary.failed[0].startswith("Row 2:")
        assert len(transactions.records) == 2
        assert len(store.rows("transactions")) == 2
        assert [n.title for n in notifier.notices] == ["Some transactions were not imported"]

    @pytest.mark.asyncio
    async def test_import_nothing_rejected(self, transactions, user_id):
        await transactions.activate(user_id)
        result = await transactions.import_many([])
        assert result.kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_import_before_activation(self, transactions):
        result = await transactions.import_many([{"type": "expense", "amount": "1"}])
        assert result.kind == ErrorKind.NOT_READY
