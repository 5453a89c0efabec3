"""
Streamlit Frontend for Expense Tracker

This is the user interface for recording and reviewing expenses.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every change goes through ExpenseFlow, never straight to the store
3. Clear error messages in simple language
4. Visible warning when changes could not be saved to disk

Pages:
- Dashboard: totals, this month, top categories
- Add Expense: the expense form
- Expenses: filter, edit, delete, export to CSV
- Settings: storage status, recent activity, clear all data
"""

import asyncio
from datetime import date

import streamlit as st
from pydantic import ValidationError

from expense_tracker.audit import configure_logging
from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.models.expense import (
    EXPENSE_CATEGORIES,
    Expense,
    ExpenseFilters,
    ExpenseFormData,
)
from expense_tracker.orchestrator import ExpenseFlow, create_app_components
from expense_tracker.services.storage import NotFoundError, PersistenceDegradedError


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
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
    """Create the flow and store once per server process."""
    configure_logging(get_settings().app.effective_log_level)
    return create_app_components()


def format_currency(amount: float) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{amount:,.2f}"


def show_persistence_warning(flow: ExpenseFlow) -> None:
    """Tell the user when the last change did not reach disk."""
    status = flow.persistence_status
    if not status.healthy:
        st.warning(
            "⚠️ Your latest changes are kept in this session but could not be "
            f"saved to disk: {status.last_error}"
        )


def main():
    """Main application entry point."""
    flow, _ = get_components()

    st.sidebar.title("💸 Expense Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Expense", "📋 Expenses", "⚙️ Settings"],
        index=0,
    )

    show_persistence_warning(flow)

    if page == "📊 Dashboard":
        render_dashboard_page(flow)
    elif page == "➕ Add Expense":
        render_add_page(flow)
    elif page == "📋 Expenses":
        render_expenses_page(flow)
    elif page == "⚙️ Settings":
        render_settings_page(flow)


def render_dashboard_page(flow: ExpenseFlow):
    """Render totals and the category ranking."""
    st.title("📊 Dashboard")

    summary = run_async(flow.get_summary())

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Total spent**")
        st.markdown(
            f'<div class="big-number">{format_currency(summary.total)}</div>',
            unsafe_allow_html=True,
        )
    with col2:
        st.markdown("**This month**")
        st.markdown(
            f'<div class="big-number">{format_currency(summary.monthly_total)}</div>',
            unsafe_allow_html=True,
        )

    st.markdown("---")
    st.subheader("Top categories")

    if summary.total == 0:
        st.info("No expenses yet. Use the 'Add Expense' page to record one.")
        return

    for entry in summary.top_categories:
        label = f"{entry.category.value}: {format_currency(entry.amount)} ({entry.percentage:.1f}%)"
        st.progress(min(max(entry.percentage / 100, 0.0), 1.0), text=label)

    st.markdown("---")
    st.subheader("Recent expenses")
    recent = run_async(flow.load_expenses())[:5]
    for expense in recent:
        st.write(
            f"{expense.date.isoformat()} · {expense.category.value} · "
            f"{expense.description} · **{format_currency(expense.amount)}**"
        )


def show_validation_errors(error: ValidationError) -> None:
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"])
        st.error(f"{field.title()}: {detail['msg']}")


def render_add_page(flow: ExpenseFlow):
    """Render the expense form."""
    st.title("➕ Add Expense")

    with st.form("add_expense", clear_on_submit=True):
        amount = st.text_input("Amount", placeholder="0.00")
        description = st.text_input("Description", placeholder="What was it for?")
        category = st.selectbox(
            "Category",
            options=EXPENSE_CATEGORIES,
            format_func=lambda c: c.value,
        )
        expense_date = st.date_input("Date", value=date.today())
        submitted = st.form_submit_button("💾 Save Expense", type="primary")

    if not submitted:
        return

    try:
        form = ExpenseFormData(
            amount=amount,
            description=description,
            category=category,
            date=expense_date,
        )
    except ValidationError as e:
        show_validation_errors(e)
        return

    try:
        expense = run_async(flow.add_expense(form))
    except PersistenceDegradedError as e:
        st.error(f"Expense recorded for this session only: {e}")
        return

    st.success(
        f"✅ Saved {expense.description} ({format_currency(expense.amount)})"
    )


def render_filters() -> ExpenseFilters:
    """Render filter widgets and return the resulting filters."""
    col1, col2, col3, col4 = st.columns(4)

    with col1:
        category = st.selectbox(
            "Category",
            options=[None] + EXPENSE_CATEGORIES,
            format_func=lambda c: "All Categories" if c is None else c.value,
        )
    with col2:
        date_from = st.date_input("From", value=None)
    with col3:
        date_to = st.date_input("To", value=None)
    with col4:
        search_query = st.text_input("Search", placeholder="Description or category")

    return ExpenseFilters(
        category=category,
        date_from=date_from,
        date_to=date_to,
        search_query=search_query or None,
    )


def save_edit(flow: ExpenseFlow, expense: Expense, amount, description, category, expense_date):
    """Edits go through the same checks as new expenses."""
    try:
        form = ExpenseFormData(
            amount=str(amount),
            description=description,
            category=category,
            date=expense_date,
        )
    except ValidationError as e:
        show_validation_errors(e)
        return

    try:
        run_async(flow.update_expense(expense.id, form))
        st.success("Expense updated")
        st.rerun()
    except NotFoundError:
        st.error("This expense no longer exists.")
    except PersistenceDegradedError as e:
        st.error(f"Updated for this session only: {e}")


def render_expense_row(flow: ExpenseFlow, expense: Expense):
    """One expense with inline edit and delete."""
    title = (
        f"{expense.date.isoformat()} · {expense.category.value} · "
        f"{expense.description} · {format_currency(expense.amount)}"
    )
    with st.expander(title):
        with st.form(f"edit_{expense.id}"):
            amount = st.number_input(
                "Amount",
                value=max(float(expense.amount), 0.01),
                min_value=0.01,
                step=0.01,
                format="%.2f",
            )
            description = st.text_input("Description", value=expense.description)
            category = st.selectbox(
                "Category",
                options=EXPENSE_CATEGORIES,
                index=EXPENSE_CATEGORIES.index(expense.category),
                format_func=lambda c: c.value,
            )
            expense_date = st.date_input("Date", value=expense.date)
            save = st.form_submit_button("💾 Save Changes")

        if save:
            save_edit(flow, expense, amount, description, category, expense_date)

        confirm = st.checkbox(
            "Yes, delete this expense permanently",
            key=f"confirm_delete_{expense.id}",
        )
        if st.button("🗑️ Delete", key=f"delete_{expense.id}", disabled=not confirm):
            try:
                run_async(flow.delete_expense(expense.id))
                st.success("Expense deleted")
                st.rerun()
            except NotFoundError:
                st.error("This expense no longer exists.")
            except PersistenceDegradedError as e:
                st.error(f"Deleted for this session only: {e}")


def record_download(flow: ExpenseFlow) -> None:
    """Runs only when the export button is clicked, not on every render."""
    run_async(flow.record_export())


def render_expenses_page(flow: ExpenseFlow):
    """Render the filtered expense list."""
    st.title("📋 Expenses")

    filters = render_filters()
    expenses = run_async(flow.load_expenses(filters))

    st.markdown("---")

    csv_content = run_async(flow.export_csv())
    st.download_button(
        "⬇️ Export CSV",
        data=csv_content,
        file_name=f"expenses-{date.today().isoformat()}.csv",
        mime="text/csv",
        disabled=not csv_content,
        on_click=record_download,
        args=(flow,),
    )

    if not expenses:
        if filters.is_empty:
            st.info("No expenses yet. Use the 'Add Expense' page to record one.")
        else:
            st.info("No expenses match these filters.")
        return

    st.caption(
        f"{len(expenses)} expenses · {format_currency(sum(e.amount for e in expenses))}"
    )
    for expense in expenses:
        render_expense_row(flow, expense)


def render_settings_page(flow: ExpenseFlow):
    """Render storage status and maintenance actions."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration")
    status = validate_all_settings()
    if status.get("app", False):
        st.caption(f"Environment: {get_settings().app.app_environment}")
    for key, name in [("storage", "Storage settings"), ("app", "App settings")]:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Invalid')}")

    st.markdown("### Storage")
    store = flow.store
    st.write(f"Location: {store.storage.describe()}")
    st.write(f"Slot: `{store.storage_key}`")
    if store.hydration_error:
        st.warning(
            "Saved data could not be read when the app started, so it began "
            f"with an empty list: {store.hydration_error}"
        )

    persistence = flow.persistence_status
    if persistence.healthy:
        saved = persistence.last_saved_at
        st.success(
            "✅ All changes saved"
            + (f" (last save {saved:%Y-%m-%d %H:%M:%S} UTC)" if saved else "")
        )
    else:
        st.error(f"❌ Last save failed: {persistence.last_error}")

    st.markdown("### Recent activity")
    events = run_async(flow.recent_activity(limit=20))
    if not events:
        st.caption("Nothing yet.")
    for event in events:
        st.write(f"{event.timestamp:%Y-%m-%d %H:%M:%S} · {event.description}")

    st.markdown("### Danger zone")
    confirm = st.checkbox("I understand this deletes every expense and cannot be undone")
    if st.button("🗑️ Clear All Data", disabled=not confirm):
        try:
            removed = run_async(flow.clear_all())
            st.success(f"Removed {removed} expenses")
        except PersistenceDegradedError as e:
            st.error(f"Cleared for this session only: {e}")


if __name__ == "__main__":
    main()
