"""
Streamlit Frontend for Finance Sync

The screens people use every day: dashboard, transactions, budget,
goals, documents, receipt scanning and the finance assistant.

DESIGN PRINCIPLES:
1. Every number on screen comes from the synchronized collections
2. Nothing from a receipt is saved until the user accepts it
3. Errors stay on the page they happened on; the rest of the app keeps working
4. Failures are announced as toasts, in plain language

The async core (store client, realtime channels) lives on ONE event loop
that runs in a background thread for the whole session. Streamlit reruns
the script on every interaction, so a per-call loop would tear down the
realtime channels each time.

The loop and the app components are shared by the process. Each browser
session gets its own workspace and notices in st.session_state.
"""

import asyncio
import threading
from collections import deque
from datetime import date
from decimal import Decimal, InvalidOperation

import streamlit as st
import structlog

from finance_sync.config import validate_all_settings
from finance_sync.models.records import (
    GoalPriority,
    GoalType,
    MessageSender,
    TransactionType,
)
from finance_sync.orchestrator import AppComponents, FinanceWorkspace, create_app_components
from finance_sync.sync import Notice
from finance_sync.views import describe_deadline, filter_transactions, format_change


logger = structlog.get_logger(__name__)


# Page configuration
st.set_page_config(
    page_title="Finance Sync",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One long-lived loop for the store client and realtime channels."""
    loop = asyncio.new_event_loop()
    threading.Thread(target=loop.run_forever, daemon=True, name="finance-sync-loop").start()
    return loop


def run_async(coro):
    """Helper to run async functions in Streamlit, on the shared loop."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


@st.cache_resource
def get_components() -> AppComponents:
    """Store client, registry and services, shared by every session (cached)."""
    return run_async(create_app_components())


def get_notices() -> deque:
    """This session's notices; raised on the loop thread, drained into toasts on each run."""
    if "notices" not in st.session_state:
        st.session_state.notices = deque(maxlen=50)
    return st.session_state.notices


def get_workspace() -> FinanceWorkspace:
    """Get or create this browser session's workspace."""
    if "workspace" not in st.session_state:
        notices = get_notices()
        workspace = FinanceWorkspace(get_components(), notifier=notices.append)
        result = run_async(workspace.activate())
        if not result.ok:
            notices.append(Notice(title="Could not load your data", message=result.error))
        st.session_state.workspace = workspace
    return st.session_state.workspace


def show_notices() -> None:
    notices = get_notices()
    while notices:
        notice: Notice = notices.popleft()
        icon = "⚠️" if notice.level == "warning" else "❌" if notice.level == "error" else "✅"
        st.toast(f"**{notice.title}**: {notice.message}", icon=icon)


def render_safely(render, *args) -> None:
    """Render one page; an exception is contained to that page."""
    try:
        render(*args)
    except Exception as e:
        logger.error("page_render_failed", page=render.__name__, error=str(e), exc_info=True)
        st.error("Something went wrong on this page. The rest of the app still works.")
        with st.expander("Details"):
            st.code(str(e))


def money(value: Decimal) -> str:
    return f"${value:,.2f}"


def report(result, success_message: str) -> bool:
    """Show a Result; returns True on success."""
    if result.ok:
        st.success(success_message)
        return True
    st.error(result.error)
    for detail in result.details[1:]:
        st.caption(detail)
    return False


def main():
    """Main application entry point."""
    workspace = get_workspace()
    show_notices()

    # Sidebar navigation
    st.sidebar.title("💰 Finance Sync")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard", "💸 Transactions", "🎯 Budget", "🏁 Goals",
            "📁 Documents", "🧾 Receipts", "💬 Assistant", "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh data"):
        run_async(workspace.refresh())
    live = all(c.is_live for c in workspace.collections)
    st.sidebar.caption("🟢 Live updates on" if live else "⚪ Live updates off")

    pages = {
        "📊 Dashboard": render_dashboard_page,
        "💸 Transactions": render_transactions_page,
        "🎯 Budget": render_budget_page,
        "🏁 Goals": render_goals_page,
        "📁 Documents": render_documents_page,
        "🧾 Receipts": render_receipts_page,
        "💬 Assistant": render_assistant_page,
    }
    if page == "⚙️ Settings":
        render_safely(render_settings_page)
    else:
        render_safely(pages[page], workspace)


def render_dashboard_page(workspace: FinanceWorkspace):
    """Render the overview page."""
    st.title("📊 Dashboard")
    view = workspace.dashboard()

    col1, col2, col3 = st.columns(3)
    col1.metric("Income this month", money(view.this_month.income),
                format_change(view.comparison.income_change))
    col2.metric("Expenses this month", money(view.this_month.expenses),
                format_change(view.comparison.expense_change), delta_color="inverse")
    col3.metric("Net balance (all time)", money(view.overall.net))

    st.markdown("---")
    st.subheader("🎯 Budget")
    if view.budget is None:
        st.info("No budget set for this month. Set one on the Budget page.")
    else:
        status = view.budget_status
        st.progress(min(float(status.percent_used) / 100, 1.0))
        if status.over_budget:
            st.error(f"Over budget by {money(-status.remaining)}")
        elif status.close_to_limit:
            st.warning(f"Close to your limit: {money(status.remaining)} left")
        else:
            st.success(f"{money(status.remaining)} left of {money(view.budget.monthly_limit)}")

    st.subheader("🧾 Spending by category")
    if view.overall.category_totals:
        st.bar_chart({t.category: float(t.amount) for t in view.overall.category_totals})
    else:
        st.caption("No expenses yet.")

    st.subheader("🏁 Goals")
    for progress in view.goals:
        st.markdown(f"**{progress.name}** ({describe_deadline(progress.days_left)})")
        st.progress(float(progress.display_percent) / 100)

    st.subheader("🕒 Recent transactions")
    for t in view.recent_transactions:
        sign = "+" if t.type == TransactionType.INCOME else "-"
        st.markdown(f"{t.date} · {t.description or 'No description'} · **{sign}{money(t.amount)}**")


def render_transactions_page(workspace: FinanceWorkspace):
    """Render the transaction list and entry form."""
    st.title("💸 Transactions")
    categories = workspace.categories.records

    with st.form("add_transaction", clear_on_submit=True):
        kind = st.selectbox("Type", list(TransactionType), format_func=lambda x: x.value.title())
        amount = st.text_input("Amount", placeholder="42.50")
        options = [None] + [c for c in categories if c.type == kind]
        category = st.selectbox(
            "Category", options, format_func=lambda c: "Uncategorized" if c is None else c.name,
        )
        description = st.text_input("Description")
        when = st.date_input("Date", value=date.today())
        if st.form_submit_button("➕ Add", type="primary"):
            result = run_async(workspace.transactions.create({
                "type": kind,
                "amount": amount,
                "category_id": category.id if category else None,
                "description": description or None,
                "date": when,
            }))
            report(result, "Transaction added")

    if workspace.transactions.error:
        st.warning(workspace.transactions.error)

    with st.expander("📥 Import / 📤 Export CSV"):
        st.download_button(
            "Download CSV",
            workspace.export_transactions_csv(),
            file_name=f"transactions_{date.today().isoformat()}.csv",
            mime="text/csv",
        )
        csv_file = st.file_uploader(
            "Import a CSV with Date, Type, Category, Amount and optional Description columns",
            type=["csv"],
            key="csv_import",
        )
        if csv_file and st.button("📥 Import"):
            content = csv_file.getvalue().decode("utf-8", errors="replace")
            result = run_async(workspace.import_transactions_csv(content))
            if result.ok:
                st.success(f"Imported {len(result.value.imported)} transactions")
                for line in result.value.failed:
                    st.caption(line)
            else:
                st.error(result.error)

    st.subheader("Filter")
    col1, col2, col3 = st.columns(3)
    kind_filter = col1.selectbox(
        "Show",
        [None, TransactionType.INCOME, TransactionType.EXPENSE],
        format_func=lambda x: "All" if x is None else x.value.title(),
        key="filter_kind",
    )
    start = col2.date_input("From", value=None, key="filter_start")
    end = col3.date_input("To", value=None, key="filter_end")

    records = workspace.transactions.records
    shown = filter_transactions(records, kind_filter, start, end)
    st.caption(f"Showing {len(shown)} of {len(records)} transactions")

    names = workspace.categories.name_map()
    for t in shown:
        col1, col2 = st.columns([5, 1])
        sign = "+" if t.type == TransactionType.INCOME else "-"
        category = names.get(str(t.category_id), "Uncategorized")
        col1.markdown(f"{t.date} · {category} · {t.description or ''} · **{sign}{money(t.amount)}**")
        if col2.button("🗑️", key=f"delete-{t.id}"):
            report(run_async(workspace.transactions.delete(t.id)), "Deleted")
            st.rerun()


def render_budget_page(workspace: FinanceWorkspace):
    """Render the monthly budget page."""
    st.title("🎯 Budget")
    view = workspace.dashboard()

    current = view.budget
    default_limit = str(current.monthly_limit) if current else ""
    limit = st.text_input("Monthly limit", value=default_limit, placeholder="1000.00")
    if st.button("💾 Save limit", type="primary"):
        report(run_async(workspace.budgets.set_monthly_limit(limit)), "Budget saved")
        st.rerun()

    if current is not None:
        status = view.budget_status
        st.metric("Spent this month", money(view.this_month.expenses), f"{status.percent_used}% used")

    st.markdown("---")
    st.subheader("Plan another month")
    with st.form("plan_budget"):
        month = st.number_input("Month", min_value=1, max_value=12, value=date.today().month)
        year = st.number_input("Year", min_value=2000, max_value=2100, value=date.today().year)
        planned = st.text_input("Limit")
        if st.form_submit_button("➕ Create budget"):
            candidate = {"monthly_limit": planned, "month": int(month), "year": int(year)}
            report(run_async(workspace.budgets.create(candidate)), "Budget created")

    for budget in workspace.budgets.records:
        st.markdown(f"**{budget.month:02d}/{budget.year}**: {money(budget.monthly_limit)}")


def render_goals_page(workspace: FinanceWorkspace):
    """Render the savings goals page."""
    st.title("🏁 Goals")
    view = workspace.dashboard()
    overview = view.goals_overview
    st.metric("Saved towards goals", money(overview.total_saved), f"{overview.overall_percent}% of target")

    with st.expander("➕ New goal"):
        with st.form("add_goal", clear_on_submit=True):
            name = st.text_input("Name")
            target = st.text_input("Target amount")
            deadline = st.date_input("Deadline", value=None)
            goal_type = st.selectbox("Type", list(GoalType), format_func=lambda x: x.value.replace("-", " ").title())
            priority = st.selectbox("Priority", list(GoalPriority), index=1, format_func=lambda x: x.value.title())
            if st.form_submit_button("Create", type="primary"):
                result = run_async(workspace.goals.create({
                    "name": name,
                    "target_amount": target,
                    "deadline": deadline,
                    "goal_type": goal_type,
                    "priority": priority,
                }))
                report(result, "Goal created")

    for progress in view.goals:
        st.markdown("---")
        status = "✅ Completed" if progress.completed else describe_deadline(progress.days_left)
        st.markdown(f"### {progress.name}")
        st.caption(f"{status} · {progress.percent}% · {money(progress.remaining)} to go")
        st.progress(float(progress.display_percent) / 100)
        col1, col2 = st.columns([3, 1])
        amount = col1.text_input("Add savings", key=f"save-{progress.goal_id}", label_visibility="collapsed")
        if col2.button("💰 Add", key=f"add-{progress.goal_id}"):
            report(run_async(workspace.goals.add_savings(progress.goal_id, amount)), "Savings added")
            st.rerun()


def render_documents_page(workspace: FinanceWorkspace):
    """Render the document library."""
    st.title("📁 Documents")
    st.markdown("Keep statements, warranties and other paperwork next to your finances.")

    uploaded = st.file_uploader("Add a document", key="document_upload")
    if uploaded and st.button("⬆️ Upload", type="primary"):
        result = run_async(workspace.documents.upload(uploaded.getvalue(), uploaded.name, uploaded.type))
        report(result, "Document uploaded")

    documents = workspace.documents.records
    if not documents:
        st.caption("No documents yet.")
        return

    for document in documents:
        col1, col2 = st.columns([5, 1])
        size = f" · {document.size_bytes / 1024:.0f} KB" if document.size_bytes else ""
        col1.markdown(f"**{document.name}** · {document.file_type or 'file'}{size}")
        if col2.button("🗑️", key=f"delete-document-{document.id}"):
            report(run_async(workspace.documents.delete(document.id)), "Document deleted")
            st.rerun()


def render_receipts_page(workspace: FinanceWorkspace):
    """Render the receipt upload and review page."""
    st.title("🧾 Scan a Receipt")
    st.markdown("Upload a receipt, check what we read, then save it as an expense.")

    if "receipt_scan" not in st.session_state:
        st.session_state.receipt_scan = None

    uploaded_file = st.file_uploader(
        "Choose a receipt",
        type=["jpg", "jpeg", "png", "webp", "pdf", "txt"],
    )

    if uploaded_file and st.button("🔍 Read receipt", type="primary"):
        with st.spinner("Reading your receipt..."):
            result = run_async(workspace.scan_receipt(
                uploaded_file.getvalue(), uploaded_file.name, uploaded_file.type,
            ))
        if result.ok:
            st.session_state.receipt_scan = result.value
        else:
            st.error(result.error)

    scan = st.session_state.receipt_scan
    if scan is None:
        return

    st.markdown("---")
    st.subheader("📋 Review")
    if scan.image_check is not None:
        st.caption(f"Photo quality: {scan.image_check.quality.value} ({scan.image_check.score:.0%})")
    for warning in scan.warnings:
        st.warning(warning)

    receipt = scan.receipt
    merchant = st.text_input("Merchant", value=receipt.merchant)
    amount = st.text_input("Amount", value=str(receipt.amount))
    when = st.date_input("Date", value=receipt.date)
    expense_categories = workspace.categories.of_type(TransactionType.EXPENSE)
    suggested = next((i for i, c in enumerate(expense_categories) if c.name == receipt.category), None)
    category = st.selectbox(
        "Category",
        [None] + expense_categories,
        index=0 if suggested is None else suggested + 1,
        format_func=lambda c: "Uncategorized" if c is None else c.name,
    )
    if receipt.items:
        with st.expander(f"{len(receipt.items)} items"):
            for item in receipt.items:
                st.markdown(f"{item.name}: {money(item.price)}")

    col1, col2 = st.columns(2)
    if col1.button("✅ Save expense", type="primary"):
        try:
            reviewed = receipt.model_copy(update={
                "merchant": merchant,
                "amount": Decimal(amount).quantize(Decimal("0.01")),
                "date": when,
            })
        except InvalidOperation:
            st.error("Please enter a valid amount")
            return
        result = run_async(workspace.add_receipt_transaction(
            scan.model_copy(update={"receipt": reviewed}),
            category.id if category else None,
        ))
        if report(result, "Expense saved"):
            st.session_state.receipt_scan = None
    if col2.button("❌ Discard"):
        st.session_state.receipt_scan = None
        st.rerun()


def render_assistant_page(workspace: FinanceWorkspace):
    """Render the assistant chat page."""
    st.title("💬 Finance Assistant")
    st.caption("Answers are based only on your own records.")

    for message in workspace.chat.messages:
        role = "user" if message.sender == MessageSender.USER else "assistant"
        with st.chat_message(role):
            st.markdown(message.message)

    question = st.chat_input("Ask about your spending, budget or goals")
    if question:
        with st.spinner("Thinking..."):
            result = run_async(workspace.ask(question))
        if not result.ok:
            st.error(result.error)
        st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Supabase (Storage & Realtime)", "supabase"),
        ("Mindee (OCR)", "mindee"),
        ("Gemini (AI)", "gemini"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "Set `APP_STORE_BACKEND=memory` to try the app without Supabase."
    )


if __name__ == "__main__":
    main()
