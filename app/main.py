"""
Streamlit Frontend for FinanceFlow

A single-user personal finance tracker: record income and expenses,
move money between accounts, and see where it went.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in plain language
3. Visual feedback for all operations
4. Destructive actions ask for confirmation
5. Balances always reflect the full history, whatever the filter

All ledger data lives in one LedgerState object kept in st.session_state.
It is loaded once per session and updated only after storage accepted
a write.
"""

import asyncio
from datetime import date

import streamlit as st

from financeflow.activity import create_correlation_id
from financeflow.config import get_settings, validate_all_settings
from financeflow.ledger import (
    AccountInUseError,
    LedgerError,
    LedgerState,
    TransferPartiallyFailedError,
)
from financeflow.ledger.money import format_money
from financeflow.models import (
    ALL,
    BUILTIN_CATEGORY_IDS,
    BUILTIN_PAYMENT_METHOD_IDS,
    TransactionType,
)
from financeflow.orchestrator import (
    ReferenceDataFlow,
    TransactionFlow,
    create_app_components,
    is_demo_storage,
    load_state,
)
from financeflow.services.storage import RepositoryError


# Page configuration
st.set_page_config(
    page_title="FinanceFlow",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .income { color: #28a745; font-weight: bold; }
    .expense { color: #dc3545; font-weight: bold; }
    .swatch {
        display: inline-block;
        width: 12px;
        height: 12px;
        border-radius: 3px;
        margin-right: 6px;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def get_state() -> LedgerState:
    """Load the ledger once per session."""
    if "ledger" not in st.session_state:
        _, _, storage, activity_logger = get_components()
        st.session_state.ledger = run_async(
            load_state(storage, activity_logger, demo_mode=is_demo_storage(storage))
        )
    return st.session_state.ledger


def money(value) -> str:
    return format_money(value, get_settings().app.currency_symbol)


def main():
    """Main application entry point."""
    transaction_flow, reference_flow, storage, activity_logger = get_components()

    try:
        state = get_state()
    except (LedgerError, RepositoryError) as e:
        st.markdown(f"""
        <div class="error-box">
            <h4>❌ Could not load your ledger</h4>
            <p>{e}</p>
        </div>
        """, unsafe_allow_html=True)
        st.stop()

    st.sidebar.title("💰 FinanceFlow")
    if state.demo_mode:
        st.sidebar.warning("Demo mode: data is kept in memory only")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "📋 Transactions", "🔁 Transfer", "🗂️ Manage", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Reload from storage"):
        del st.session_state["ledger"]
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(state)
    elif page == "📋 Transactions":
        render_transactions_page(transaction_flow, state)
    elif page == "🔁 Transfer":
        render_transfer_page(transaction_flow, state)
    elif page == "🗂️ Manage":
        render_manage_page(reference_flow, state)
    elif page == "⚙️ Settings":
        render_settings_page(storage, activity_logger)


def render_filter(state: LedgerState) -> None:
    """Account and type filter shared by the dashboard and transaction list."""
    account_options = [ALL] + [a.id for a in state.accounts]
    type_options = [ALL, TransactionType.INCOME.value, TransactionType.EXPENSE.value]

    current_account = state.filter.account_id
    if current_account not in account_options:
        current_account = ALL

    col1, col2 = st.columns(2)
    with col1:
        account_id = st.selectbox(
            "Account",
            options=account_options,
            index=account_options.index(current_account),
            format_func=lambda x: "All Accounts" if x == ALL else state.account_name(x),
        )
    with col2:
        type_ = st.selectbox(
            "Type",
            options=type_options,
            index=type_options.index(state.filter.type),
            format_func=lambda x: "All Types" if x == ALL else x.title(),
        )

    if (account_id, type_) != (state.filter.account_id, state.filter.type):
        state.set_filter(account_id, type_)


def render_dashboard_page(state: LedgerState):
    """Render the summary dashboard."""
    st.title("📊 Dashboard")
    render_filter(state)

    try:
        summary = state.summary()
    except LedgerError as e:
        st.error(f"Your ledger has inconsistent data: {e}")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(summary.total_income))
    col2.metric("Expenses", money(summary.total_expenses))
    col3.metric("Overall Balance", money(summary.overall_balance))

    st.markdown("---")
    st.subheader("Account Balances")
    for account in state.accounts:
        balance = summary.account_balances.get(account.id)
        if balance is None:
            continue
        css = "expense" if balance < 0 else "income"
        st.markdown(
            f"**{account.name}**: <span class='{css}'>{money(balance)}</span>",
            unsafe_allow_html=True,
        )

    if summary.overdrawn_accounts:
        names = ", ".join(state.account_name(a) for a in summary.overdrawn_accounts)
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ Overdrawn</h4>
            <p>{names}</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("---")
    st.subheader("Spending by Category")
    if not summary.category_breakdown:
        st.info("No transactions match the current filter.")
        return

    for item in summary.category_breakdown:
        category = state.category(item.category)
        color = category.color if category else "#cccccc"
        st.markdown(
            f"<span class='swatch' style='background:{color}'></span>"
            f"{state.category_name(item.category)}: {money(item.total)}",
            unsafe_allow_html=True,
        )


def render_transactions_page(transaction_flow: TransactionFlow, state: LedgerState):
    """Render the transaction list and the add form."""
    st.title("📋 Transactions")

    with st.expander("➕ Add Transaction", expanded=False):
        render_add_transaction_form(transaction_flow, state)

    st.markdown("---")
    render_filter(state)

    transactions = state.visible_transactions()
    if not transactions:
        st.info("No transactions yet. Add your first one above.")
        return

    for transaction in transactions:
        col1, col2, col3, col4 = st.columns([2, 3, 2, 1])
        sign = "+" if transaction.type == TransactionType.INCOME else "-"
        css = transaction.type.value
        with col1:
            st.markdown(transaction.date.strftime("%d %b %Y"))
        with col2:
            label = transaction.description or state.category_name(transaction.category)
            st.markdown(f"**{label}**")
            st.caption(
                f"{state.account_name(transaction.account_id)} · "
                f"{state.category_name(transaction.category)}"
                + (" · transfer" if transaction.is_transfer_leg else "")
            )
        with col3:
            st.markdown(
                f"<span class='{css}'>{sign}{money(transaction.amount)}</span>",
                unsafe_allow_html=True,
            )
        with col4:
            if st.button("🗑️", key=f"delete_{transaction.id}", help="Delete"):
                st.session_state.pending_delete = transaction.id

        if st.session_state.get("pending_delete") == transaction.id:
            warning = (
                "This is part of a transfer. Both sides will be deleted."
                if transaction.is_transfer_leg
                else "Delete this transaction?"
            )
            st.warning(warning)
            confirm, cancel = st.columns(2)
            if confirm.button("Yes, delete", key=f"confirm_{transaction.id}"):
                try:
                    run_async(transaction_flow.delete_transaction(state, transaction.id))
                    st.session_state.pending_delete = None
                    st.rerun()
                except (LedgerError, RepositoryError) as e:
                    st.error(f"Failed to delete: {e}")
            if cancel.button("Cancel", key=f"cancel_{transaction.id}"):
                st.session_state.pending_delete = None
                st.rerun()


def render_add_transaction_form(transaction_flow: TransactionFlow, state: LedgerState):
    with st.form("add_transaction", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            type_ = st.radio(
                "Type",
                options=list(TransactionType),
                format_func=lambda x: x.value.title(),
                horizontal=True,
            )
            amount = st.number_input("Amount *", min_value=0.0, step=0.01, format="%.2f")
            description = st.text_input("Description", max_chars=200)
            transaction_date = st.date_input("Date *", value=date.today())
        with col2:
            account_id = st.selectbox(
                "Account *",
                options=[a.id for a in state.accounts],
                format_func=state.account_name,
            )
            category = st.selectbox(
                "Category *",
                options=[c.id for c in state.categories],
                format_func=state.category_name,
            )
            payment_method = st.selectbox(
                "Payment Method",
                options=[""] + [p.id for p in state.payment_methods],
                format_func=lambda x: "None" if not x else state.payment_method_name(x),
            )

        if st.form_submit_button("💾 Save", type="primary"):
            try:
                run_async(
                    transaction_flow.add_transaction(
                        state,
                        amount=str(amount),
                        type_=type_,
                        category=category,
                        date=transaction_date,
                        account_id=account_id,
                        payment_method=payment_method,
                        description=description,
                        correlation_id=create_correlation_id(),
                    )
                )
                st.success("Transaction saved")
            except LedgerError as e:
                st.error(f"Please check the details: {e}")
            except RepositoryError as e:
                st.error(f"Failed to save: {e}")


def render_transfer_page(transaction_flow: TransactionFlow, state: LedgerState):
    """Render the transfer form."""
    st.title("🔁 Transfer Between Accounts")

    if len(state.accounts) < 2:
        st.info("You need at least two accounts to make a transfer. Add one under Manage.")
        return

    account_ids = [a.id for a in state.accounts]
    with st.form("transfer"):
        col1, col2 = st.columns(2)
        with col1:
            from_account = st.selectbox("From *", options=account_ids, format_func=state.account_name)
        with col2:
            to_account = st.selectbox(
                "To *", options=account_ids, index=1, format_func=state.account_name
            )
        amount = st.number_input("Amount *", min_value=0.0, step=0.01, format="%.2f")
        transfer_date = st.date_input("Date *", value=date.today())

        if st.form_submit_button("🔁 Transfer", type="primary"):
            try:
                pair = run_async(
                    transaction_flow.add_transfer(
                        state,
                        from_account_id=from_account,
                        to_account_id=to_account,
                        amount=str(amount),
                        transfer_date=transfer_date,
                        correlation_id=create_correlation_id(),
                    )
                )
                st.markdown(f"""
                <div class="success-box">
                    <h4>✅ Transfer recorded</h4>
                    <p>{money(pair.expense_leg.amount)} from
                    {state.account_name(from_account)} to {state.account_name(to_account)}</p>
                </div>
                """, unsafe_allow_html=True)
            except TransferPartiallyFailedError as e:
                if e.compensated:
                    st.error("The transfer could not be completed. Nothing was saved.")
                else:
                    st.markdown(f"""
                    <div class="error-box">
                        <h4>❌ Transfer incomplete</h4>
                        <p>Only one side was saved (transaction {e.persisted_leg_id}).
                        Please delete it from the Transactions page.</p>
                    </div>
                    """, unsafe_allow_html=True)
            except LedgerError as e:
                st.error(f"Please check the details: {e}")
            except RepositoryError as e:
                st.error(f"Failed to save: {e}")


def render_manage_page(reference_flow: ReferenceDataFlow, state: LedgerState):
    """Render account, category and payment method management."""
    st.title("🗂️ Manage")
    accounts_tab, categories_tab, methods_tab = st.tabs(
        ["Accounts", "Categories", "Payment Methods"]
    )

    with accounts_tab:
        render_accounts_tab(reference_flow, state)
    with categories_tab:
        render_categories_tab(reference_flow, state)
    with methods_tab:
        render_payment_methods_tab(reference_flow, state)


def _report(action) -> None:
    try:
        run_async(action)
    except AccountInUseError as e:
        st.error(f"{e}. Delete or move its transactions first.")
        return
    except (LedgerError, RepositoryError) as e:
        st.error(str(e))
        return
    st.rerun()


def render_accounts_tab(reference_flow: ReferenceDataFlow, state: LedgerState):
    for account in state.accounts:
        with st.expander(account.name):
            name = st.text_input("Name", value=account.name, key=f"acc_name_{account.id}")
            balance = st.number_input(
                "Initial Balance",
                value=float(account.initial_balance),
                step=0.01,
                format="%.2f",
                key=f"acc_balance_{account.id}",
            )
            col1, col2 = st.columns(2)
            if col1.button("💾 Save", key=f"acc_save_{account.id}"):
                _report(reference_flow.update_account(state, account.id, name, str(balance)))
            if not account.is_default and col2.button("🗑️ Delete", key=f"acc_del_{account.id}"):
                _report(reference_flow.delete_account(state, account.id))

    st.markdown("### New Account")
    with st.form("new_account", clear_on_submit=True):
        name = st.text_input("Name *")
        balance = st.number_input("Initial Balance", value=0.0, step=0.01, format="%.2f")
        if st.form_submit_button("➕ Add Account"):
            _report(reference_flow.add_account(state, name, str(balance)))


def render_categories_tab(reference_flow: ReferenceDataFlow, state: LedgerState):
    for category in state.categories:
        if category.id in BUILTIN_CATEGORY_IDS:
            st.markdown(
                f"<span class='swatch' style='background:{category.color}'></span>"
                f"{category.name} <em>(built-in)</em>",
                unsafe_allow_html=True,
            )
            continue
        with st.expander(category.name):
            name = st.text_input("Name", value=category.name, key=f"cat_name_{category.id}")
            color = st.color_picker("Color", value=category.color, key=f"cat_color_{category.id}")
            col1, col2 = st.columns(2)
            if col1.button("💾 Save", key=f"cat_save_{category.id}"):
                _report(reference_flow.update_category(state, category.id, name, color))
            if col2.button("🗑️ Delete", key=f"cat_del_{category.id}"):
                _report(reference_flow.delete_category(state, category.id))

    st.markdown("### New Category")
    with st.form("new_category", clear_on_submit=True):
        name = st.text_input("Name *")
        color = st.color_picker("Color", value="#cccccc")
        if st.form_submit_button("➕ Add Category"):
            _report(reference_flow.add_category(state, name, color))


def render_payment_methods_tab(reference_flow: ReferenceDataFlow, state: LedgerState):
    for method in state.payment_methods:
        if method.id in BUILTIN_PAYMENT_METHOD_IDS:
            st.markdown(f"{method.name} *(built-in)*")
            continue
        with st.expander(method.name):
            name = st.text_input("Name", value=method.name, key=f"pm_name_{method.id}")
            col1, col2 = st.columns(2)
            if col1.button("💾 Save", key=f"pm_save_{method.id}"):
                _report(reference_flow.update_payment_method(state, method.id, name))
            if col2.button("🗑️ Delete", key=f"pm_del_{method.id}"):
                _report(reference_flow.delete_payment_method(state, method.id))

    st.markdown("### New Payment Method")
    with st.form("new_payment_method", clear_on_submit=True):
        name = st.text_input("Name *")
        if st.form_submit_button("➕ Add Payment Method"):
            _report(reference_flow.add_payment_method(state, name))


def render_settings_page(storage, activity_logger):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    if status.get("google_sheets", False):
        st.success(f"✅ Google Sheets (Storage) - Connected as {storage.backend_name}")
    else:
        error = status.get("google_sheets_error", "Not configured")
        st.error(f"❌ Google Sheets (Storage) - {error}")
        st.info("Running in demo mode. Data is lost when the app restarts.")

    st.markdown("---")
    st.markdown("### Recent Activity")
    events = activity_logger.recent_events
    if not events:
        st.caption("Nothing yet in this session.")
    for event in events[:20]:
        st.markdown(
            f"`{event.timestamp.strftime('%H:%M:%S')}` "
            f"**{event.event_type.value}** {event.description}"
        )

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To connect Google Sheets, create a `.env` file with your credentials. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
