"""
Streamlit Frontend for Duwit

The screens a user works with every day: dashboard, wallets,
transaction history, budgets and settings.

DESIGN PRINCIPLES:
1. Every number shown is recomputed from the store on each rerun
2. Nothing is shown as saved until the backend confirmed it
3. Validation messages appear next to the form that caused them
4. Without a backend the app still opens, read-only, with a banner
"""

import asyncio
from datetime import date
from typing import Optional

import streamlit as st

from duwit.config import get_settings, validate_all_settings
from duwit.formatting import format_idr, format_percent, group_digits
from duwit.models.finance import (
    EXPENSE_CATEGORIES,
    AccountForm,
    AccountType,
    BudgetStatus,
    Category,
    MutationResult,
    SortOrder,
    TransactionForm,
    TransactionQuery,
    TransactionType,
    categories_for,
)
from duwit.store import FinanceStore, create_store


# Page configuration
st.set_page_config(
    page_title="Duwit",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
    .income { color: #28a745; }
    .expense { color: #dc3545; }
</style>
""", unsafe_allow_html=True)


STATUS_LABELS = {
    BudgetStatus.ON_TRACK: "🟢 On track",
    BudgetStatus.NEAR_LIMIT: "🟡 Near limit",
    BudgetStatus.OVER_BUDGET: "🔴 Over budget",
    BudgetStatus.NO_BUDGET: "⚪ No budget",
}

ACCOUNT_TYPE_LABELS = {
    AccountType.BANK: "🏦 Bank",
    AccountType.EWALLET: "📱 E-Wallet",
    AccountType.CASH: "💵 Cash",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_store() -> FinanceStore:
    """Create the store once per server process (cached)."""
    return create_store()


def show_result(result: MutationResult, success_message: str) -> bool:
    """Render the outcome of a write. Returns True on success."""
    if result.validation is not None:
        for issue in result.validation.issues:
            if issue.severity == "error":
                st.error(issue.message)
            else:
                st.warning(issue.message)
    if result.success:
        st.success(success_message)
        return True
    if result.skipped:
        st.warning(result.error_message or "Not saved: no storage backend")
    elif result.error_message:
        st.error(f"Couldn't save: {result.error_message}")
    return False


def main():
    """Main application entry point."""
    store = get_store()

    if "loaded_for" not in st.session_state:
        with st.spinner("Loading your data..."):
            if not run_async(store.load()) and store.is_persistent:
                st.error("Couldn't load your data. Showing what was loaded before.")
        st.session_state.loaded_for = store.user_id

    if store.backend_warning:
        st.warning(f"⚠️ {store.backend_warning}")

    st.sidebar.title("💸 Duwit")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏠 Dashboard", "👛 Wallets", "📜 History", "🎯 Budgets", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh"):
        run_async(store.load())
        st.rerun()

    if page == "🏠 Dashboard":
        render_dashboard_page(store)
    elif page == "👛 Wallets":
        render_wallets_page(store)
    elif page == "📜 History":
        render_history_page(store)
    elif page == "🎯 Budgets":
        render_budgets_page(store)
    elif page == "⚙️ Settings":
        render_settings_page(store)


def render_dashboard_page(store: FinanceStore):
    """Totals, quick entry, recent transactions and charts."""
    st.title("🏠 Dashboard")

    snapshot = store.snapshot
    col1, col2, col3 = st.columns(3)
    col1.metric("Total Balance", format_idr(snapshot.total_balance))
    col2.metric("Income", format_idr(snapshot.total_income))
    col3.metric("Expense", format_idr(snapshot.total_expense))

    st.markdown("---")
    render_transaction_form(store)

    st.markdown("---")
    left, right = st.columns(2)

    with left:
        st.markdown("### Recent Transactions")
        recent = store.recent_transactions()
        if not recent:
            st.info("No transactions yet. Add your first one above.")
        for transaction in recent:
            render_transaction_row(store, transaction, allow_delete=False)

    with right:
        st.markdown("### Spending by Category")
        shares = store.category_breakdown()
        if shares:
            st.bar_chart(
                {"Amount": {share.category.value: float(share.amount) for share in shares}},
                horizontal=True,
            )
        else:
            st.caption("No expenses recorded yet.")

        st.markdown("### Cash Flow")
        flows = store.daily_flows()
        if flows:
            st.bar_chart(
                {
                    "Income": {flow.day.isoformat(): float(flow.income) for flow in flows},
                    "Expense": {flow.day.isoformat(): float(flow.expense) for flow in flows},
                },
                stack=False,
            )
        else:
            st.caption("No transactions to chart yet.")


def render_transaction_form(store: FinanceStore):
    """Quick-entry form for a new transaction."""
    st.markdown("### Add Transaction")

    accounts = store.accounts
    if not accounts:
        st.info("Create a wallet first on the 👛 Wallets page.")
        return

    transaction_type = st.radio(
        "Type",
        options=list(TransactionType),
        format_func=lambda t: "➕ Income" if t == TransactionType.INCOME else "➖ Expense",
        index=1,
        horizontal=True,
    )

    with st.form("transaction_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount_text = st.text_input("Amount (Rp)", placeholder="e.g. 25.000")
            category = st.selectbox(
                "Category",
                options=list(categories_for(transaction_type)),
                format_func=lambda c: c.value,
            )
            description = st.text_input("Description", placeholder="Optional")
        with col2:
            account_id = st.selectbox(
                "Wallet",
                options=[a.id for a in accounts],
                format_func=lambda i: store.get_account(i).name,
            )
            occurred_on = st.date_input("Date", value=date.today())

        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        form = TransactionForm(
            amount_text=amount_text,
            type=transaction_type,
            category=category,
            description=description,
            occurred_on=occurred_on,
            account_id=account_id,
        )
        with st.spinner("Saving..."):
            result = run_async(store.submit_transaction(form))
        if show_result(result, f"Saved {format_idr(result.entity.amount) if result.success else ''}"):
            st.rerun()


def render_transaction_row(store: FinanceStore, transaction, allow_delete: bool = True):
    account = store.get_account(transaction.account_id)
    sign_class = "income" if transaction.type == TransactionType.INCOME else "expense"
    cols = st.columns([3, 2, 2, 1] if allow_delete else [3, 2, 2])
    cols[0].markdown(
        f"**{transaction.description or transaction.category.value}**  \n"
        f"{transaction.category.value} · {account.name if account else 'Unknown wallet'}"
    )
    cols[1].markdown(transaction.occurred_on.strftime("%d %b %Y"))
    cols[2].markdown(
        f'<span class="{sign_class}">{format_idr(transaction.signed_amount)}</span>',
        unsafe_allow_html=True,
    )
    if allow_delete and cols[3].button("🗑️", key=f"delete_tx_{transaction.id}"):
        result = run_async(store.delete_transaction(transaction.id))
        if show_result(result, "Transaction deleted"):
            st.rerun()


def render_wallets_page(store: FinanceStore):
    """List, create, edit and delete wallets."""
    st.title("👛 Wallets")

    snapshot = store.snapshot
    st.markdown(
        f'<div class="big-number">{format_idr(snapshot.total_balance)}</div>',
        unsafe_allow_html=True,
    )
    st.caption("Total across all wallets")

    for account in store.accounts:
        with st.expander(
            f"{ACCOUNT_TYPE_LABELS[account.type]} · {account.name} · "
            f"{format_idr(snapshot.balance_of(account.id))}"
        ):
            render_account_form(store, key=f"edit_{account.id}", account_id=account.id)

            count = len(store.transactions_for_account(account.id))
            st.caption(f"{count} transaction(s) in this wallet")
            confirm = st.checkbox(
                f"Also delete its {count} transaction(s)",
                key=f"confirm_delete_{account.id}",
            )
            if st.button("🗑️ Delete Wallet", key=f"delete_{account.id}", disabled=not confirm):
                result = run_async(store.delete_account(account.id))
                if show_result(result, f"Deleted wallet and {result.removed_count} transaction(s)"):
                    st.rerun()

    st.markdown("---")
    st.markdown("### Add Wallet")
    render_account_form(store, key="new_account")


def render_account_form(store: FinanceStore, key: str, account_id: Optional[str] = None):
    account = store.get_account(account_id) if account_id else None

    with st.form(key, clear_on_submit=account is None):
        name = st.text_input("Name", value=account.name if account else "")
        account_type = st.selectbox(
            "Type",
            options=list(AccountType),
            index=list(AccountType).index(account.type) if account else 0,
            format_func=lambda t: ACCOUNT_TYPE_LABELS[t],
        )
        balance_text = st.text_input(
            "Initial balance (Rp)",
            value=group_digits(str(int(account.initial_balance))) if account else "",
            placeholder="0",
        )
        submitted = st.form_submit_button("💾 Save" if account else "➕ Add Wallet")

    if submitted:
        form = AccountForm(name=name, type=account_type, initial_balance_text=balance_text)
        result = run_async(store.submit_account(form, account_id=account_id))
        if show_result(result, "Wallet saved"):
            st.rerun()


def render_history_page(store: FinanceStore):
    """Search, filter and sort every transaction."""
    st.title("📜 History")
    settings = get_settings().app

    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search", placeholder="Description or category")
        category = st.selectbox(
            "Category",
            options=[None] + list(Category),
            format_func=lambda c: "All Categories" if c is None else c.value,
        )
    with col2:
        account_id = st.selectbox(
            "Wallet",
            options=[None] + [a.id for a in store.accounts],
            format_func=lambda i: "All Wallets" if i is None else store.get_account(i).name,
        )
        sort = st.selectbox(
            "Sort by",
            options=list(SortOrder),
            format_func=lambda s: s.value.replace("_", " ").title(),
        )
    with col3:
        date_range = st.date_input("Date Range", value=[], help="Select date range")

    date_from = date_to = None
    if len(date_range) == 2:
        date_from, date_to = date_range

    query = TransactionQuery(
        search=search or None,
        category=category,
        account_id=account_id,
        date_from=date_from,
        date_to=date_to,
        sort=sort,
        limit=settings.history_page_size,
    )
    results = store.history(query)

    st.markdown("---")
    if not results:
        st.info("No transactions match these filters." if query.has_filters else "No transactions yet.")
    for transaction in results:
        render_transaction_row(store, transaction)


def render_budgets_page(store: FinanceStore):
    """Monthly limits per expense category with progress."""
    st.title("🎯 Budgets")

    summary = store.budget_summary()
    st.caption(summary.month.strftime("%B %Y"))

    col1, col2, col3 = st.columns(3)
    col1.metric("Allocated", format_idr(summary.total_allocated))
    col2.metric("Spent", format_idr(summary.total_spent))
    col3.metric("Used", format_percent(summary.overall_percentage))

    if summary.over_budget:
        names = ", ".join(line.category.value for line in summary.over_budget)
        st.error(f"Over budget: {names}")

    st.markdown("---")

    for line in summary.lines:
        st.markdown(f"**{line.category.value}** · {STATUS_LABELS[line.status]}")
        if line.limit > 0:
            st.progress(min(float(line.percentage) / 100, 1.0))
            st.caption(
                f"{format_idr(line.spent)} of {format_idr(line.limit)} "
                f"({format_percent(line.percentage)}) · "
                f"{format_idr(line.remaining)} left"
            )
        else:
            st.caption(f"Spent {format_idr(line.spent)} this month")

    st.markdown("---")
    st.markdown("### Set Budget")

    with st.form("budget_form", clear_on_submit=True):
        category = st.selectbox(
            "Category",
            options=list(EXPENSE_CATEGORIES),
            format_func=lambda c: c.value,
        )
        limit_text = st.text_input("Monthly limit (Rp)", placeholder="Blank or 0 removes the limit")
        submitted = st.form_submit_button("💾 Save Budget", type="primary")

    if submitted:
        result = run_async(store.submit_budget(category, limit_text))
        if show_result(result, f"Budget for {category.value} saved"):
            st.rerun()


def render_settings_page(store: FinanceStore):
    """Backend status and recent activity."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    settings = get_settings().app
    st.markdown(f"**Backend:** `{settings.storage_backend}`")

    if store.is_persistent:
        st.success("✅ Storage connected. Changes are saved.")
    else:
        st.error(f"❌ {store.backend_warning}")

    if settings.storage_backend == "sheets":
        status = validate_all_settings()
        if not status.get("google_sheets", False):
            st.caption(status.get("google_sheets_error", "Not configured"))

    st.markdown("---")
    st.markdown("### Recent Activity")
    events = store.audit.recent_events[:20]
    if not events:
        st.caption("Nothing logged yet.")
    for event in events:
        st.markdown(
            f"`{event.timestamp.strftime('%H:%M:%S')}` "
            f"**{event.event_type.value}** · {event.description}"
        )

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
