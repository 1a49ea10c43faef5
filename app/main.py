"""
Streamlit Frontend for Ledgerboard

This is the dashboard small business owners interact with daily.

DESIGN PRINCIPLES:
1. Headline numbers first (sales, expenses, net income)
2. Clear empty states instead of blank charts
3. Generic, retryable error notices for failed writes
4. The dashboard always reflects the latest snapshot from storage

Authentication is handled outside this app; the signed-in user id is
taken as given.
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from ledgerboard.audit import configure_logging
from ledgerboard.config import get_settings, validate_all_settings
from ledgerboard.formatting import (
    AVAILABLE_CURRENCIES,
    format_currency,
    format_percentage,
    format_week_label,
    get_currency,
)
from ledgerboard.models.analytics import MonthSummary
from ledgerboard.models.transaction import (
    Expense,
    ExpenseCategory,
    TransactionType,
    TransactionUpdate,
)
from ledgerboard.orchestrator import (
    DashboardSession,
    TransactionFlow,
    TransactionOperationError,
    create_app_components,
)


# Page configuration
st.set_page_config(
    page_title="Ledgerboard",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)


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
    configure_logging(get_settings().app.effective_log_level)
    return create_app_components()


def main():
    """Main application entry point."""
    storage, transaction_flow, audit_logger = get_components()
    settings = get_settings().app

    st.sidebar.title("📒 Ledgerboard")
    st.sidebar.markdown("---")

    user_id = st.sidebar.text_input(
        "Signed in as",
        value=st.session_state.get("user_id", ""),
        help="User ID provided by your sign-in provider",
    ).strip()

    codes = [currency.code for currency in AVAILABLE_CURRENCIES]
    default_code = get_currency(settings.default_currency).code
    currency_code = st.sidebar.selectbox(
        "Currency",
        options=codes,
        index=codes.index(st.session_state.get("currency_code", default_code)),
        format_func=lambda code: f"{get_currency(code).symbol} - {get_currency(code).name}",
    )
    st.session_state.currency_code = currency_code
    symbol = get_currency(currency_code).symbol

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Transaction", "📜 Transaction Log", "⚙️ Settings"],
        index=0,
    )

    if not user_id:
        st.title("Welcome to Ledgerboard")
        st.info("Sign in to see your sales and expenses.")
        return
    st.session_state.user_id = user_id

    # Subscriptions live for one rerun only; opening reads the latest data
    with DashboardSession(storage, user_id) as session:
        if session.last_error is not None:
            st.warning("Could not load your latest data. Please refresh to try again.")

        try:
            if page == "📊 Dashboard":
                render_dashboard_page(session, symbol)
            elif page == "➕ Add Transaction":
                render_add_page(transaction_flow, user_id, symbol)
            elif page == "📜 Transaction Log":
                render_log_page(session, transaction_flow, symbol)
            elif page == "⚙️ Settings":
                render_settings_page(session, audit_logger)
        except Exception as e:
            run_async(audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"page": page, "user_id": user_id},
            ))
            st.error("Something went wrong. Please refresh and try again.")


def render_dashboard_page(session: DashboardSession, symbol: str):
    """Render stats, charts and the month comparison."""
    st.title("📊 Dashboard")
    dashboard = session.dashboard

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Sales", format_currency(dashboard.totals.total_sales, symbol))
    col2.metric("Total Expenses", format_currency(dashboard.totals.total_expenses, symbol))
    col3.metric("Net Income", format_currency(dashboard.totals.net_income, symbol))

    st.markdown("---")
    left, right = st.columns(2)

    with left:
        st.subheader("📈 Weekly Sales Trend")
        if dashboard.weekly_sales:
            st.line_chart(
                {
                    "week": [bucket.week_key for bucket in dashboard.weekly_sales],
                    "revenue": [float(bucket.amount) for bucket in dashboard.weekly_sales],
                },
                x="week",
                y="revenue",
            )
            with st.expander("Weekly figures"):
                st.dataframe([
                    {
                        "Week": format_week_label(bucket.week_key),
                        "Sales": format_currency(bucket.amount, symbol),
                    }
                    for bucket in dashboard.weekly_sales
                ])
        else:
            st.info("No sales data available. Add your first sale to see trends.")

    with right:
        st.subheader("🥧 Expense Breakdown")
        if dashboard.expense_categories:
            st.bar_chart(
                {
                    "category": [b.category.value for b in dashboard.expense_categories],
                    "amount": [float(b.amount) for b in dashboard.expense_categories],
                },
                x="category",
                y="amount",
            )
            st.dataframe([
                {
                    "Category": bucket.category.value,
                    "Spent": format_currency(bucket.amount, symbol),
                    "Share": format_percentage(bucket.percentage),
                }
                for bucket in dashboard.expense_categories
            ])
        else:
            st.info("No expense data available. Add your first expense to see the breakdown.")

    st.markdown("---")
    st.subheader("🗓️ Month Comparison")
    comparison = dashboard.month_comparison
    if not comparison.has_data:
        st.info("No monthly data yet. Start adding transactions to see month comparisons.")
        return

    best_col, worst_col = st.columns(2)
    with best_col:
        render_month_card("🏆 Best Month", comparison.best_month, symbol)
    with worst_col:
        render_month_card("⚠️ Needs Improvement", comparison.worst_month, symbol)


def render_month_card(title: str, month: MonthSummary, symbol: str):
    st.markdown(f"#### {title}")
    st.caption(month.label)
    st.metric("Net Income", format_currency(month.net_income, symbol))
    col1, col2 = st.columns(2)
    col1.metric("Total Sales", format_currency(month.sales_total, symbol))
    col1.caption(f"{month.sales_count} transactions")
    col2.metric("Total Expenses", format_currency(month.expenses_total, symbol))
    col2.caption(f"{month.expenses_count} transactions")
    if month.net_income < 0:
        st.error(f"Loss Amount: {format_currency(abs(month.net_income), symbol)}")
    else:
        st.success(f"Profit Margin: {format_percentage(month.profit_margin)}")


def render_add_page(transaction_flow: TransactionFlow, user_id: str, symbol: str):
    """Render the new transaction form."""
    st.title("➕ Add Transaction")

    transaction_type = st.radio(
        "Type",
        options=list(TransactionType),
        format_func=lambda t: "Sale" if t is TransactionType.SALE else "Expense",
        horizontal=True,
    )

    with st.form("add_transaction", clear_on_submit=True):
        amount = st.number_input(
            f"Amount ({symbol})",
            min_value=0.0,
            step=0.01,
            format="%.2f",
        )
        transaction_date = st.date_input("Date", value=date.today())
        category = None
        if transaction_type is TransactionType.EXPENSE:
            category = st.selectbox(
                "Category",
                options=list(ExpenseCategory),
                format_func=lambda c: c.value,
            )
        submitted = st.form_submit_button(
            "Add Sale" if transaction_type is TransactionType.SALE else "Add Expense",
            type="primary",
        )

    if not submitted:
        return

    try:
        transaction_id, result = run_async(
            transaction_flow.create(
                user_id=user_id,
                transaction_type=transaction_type,
                amount=Decimal(str(amount)),
                transaction_date=transaction_date,
                category=category,
            )
        )
    except TransactionOperationError as e:
        st.error(str(e))
        return

    summary = transaction_flow.validator.get_user_friendly_summary(result)
    if transaction_id is None:
        st.error(summary)
    elif result.warnings:
        st.warning(f"Saved. {summary}")
    else:
        st.success(f"Saved {format_currency(Decimal(str(amount)), symbol)}.")


def render_log_page(
    session: DashboardSession,
    transaction_flow: TransactionFlow,
    symbol: str,
):
    """Render the transaction log with edit and delete actions."""
    st.title("📜 Transaction Log")

    sales_tab, expenses_tab = st.tabs(["Sales", "Expenses"])
    with sales_tab:
        render_log_tab(session, transaction_flow, TransactionType.SALE, symbol)
    with expenses_tab:
        render_log_tab(session, transaction_flow, TransactionType.EXPENSE, symbol)


def render_log_tab(
    session: DashboardSession,
    transaction_flow: TransactionFlow,
    transaction_type: TransactionType,
    symbol: str,
):
    records = session.transaction_log(transaction_type)
    if not records:
        st.info(f"No {transaction_type.label}s recorded yet.")
        return

    for record in records:
        heading = f"{record.transaction_date:%d %b %Y} · {format_currency(record.amount, symbol)}"
        if isinstance(record, Expense):
            heading += f" · {record.category.value}"

        with st.expander(heading):
            key = f"{transaction_type.value}_{record.id}"
            with st.form(f"edit_{key}"):
                amount = st.number_input(
                    f"Amount ({symbol})",
                    value=float(record.amount),
                    min_value=0.0,
                    step=0.01,
                    format="%.2f",
                    key=f"amount_{key}",
                )
                transaction_date = st.date_input(
                    "Date", value=record.transaction_date, key=f"date_{key}"
                )
                category = None
                if isinstance(record, Expense):
                    categories = list(ExpenseCategory)
                    category = st.selectbox(
                        "Category",
                        options=categories,
                        index=categories.index(record.category),
                        format_func=lambda c: c.value,
                        key=f"category_{key}",
                    )
                save = st.form_submit_button("💾 Save changes")

            if save:
                new_amount = Decimal(str(amount))
                if new_amount <= 0:
                    st.error("Amount must be greater than zero")
                else:
                    update = TransactionUpdate(
                        amount=new_amount if new_amount != record.amount else None,
                        transaction_date=(
                            transaction_date
                            if transaction_date != record.transaction_date else None
                        ),
                        category=(
                            category
                            if isinstance(record, Expense) and category != record.category
                            else None
                        ),
                    )
                    try:
                        if run_async(transaction_flow.update(
                            session.user_id, transaction_type, record.id, update
                        )):
                            st.rerun()
                        else:
                            st.info("Nothing to change.")
                    except TransactionOperationError as e:
                        st.error(str(e))

            if st.button("🗑️ Delete", key=f"delete_{key}"):
                try:
                    run_async(transaction_flow.delete(
                        session.user_id, transaction_type, record.id
                    ))
                    st.rerun()
                except TransactionOperationError as e:
                    st.error(str(e))


def render_settings_page(session: DashboardSession, audit_logger):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    issues = session.coercion_issues
    if issues:
        st.markdown("### Data Quality")
        st.warning(
            f"{len(issues)} stored values could not be read and were replaced "
            "with safe defaults."
        )
        st.dataframe([issue.model_dump() for issue in issues])

    if audit_logger.storage is not None:
        st.markdown("### Recent Activity")
        events = run_async(audit_logger.storage.get_recent_events(
            limit=20, user_id=session.user_id
        ))
        if events:
            st.dataframe([
                {
                    "When": event.timestamp.strftime("%d %b %Y %H:%M"),
                    "What": event.description,
                }
                for event in events
            ])
        else:
            st.caption("No activity yet.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
