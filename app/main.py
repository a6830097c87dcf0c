"""
Streamlit Frontend for the Cash-Flow Ledger

Record transactions, consolidate a day, and look up daily balances.

DESIGN PRINCIPLES:
1. Consolidation is an explicit action, never a side effect of recording
2. Clear error messages for rejected input
3. Notification failures are shown, but never block the user
"""

import asyncio
from datetime import date, datetime, time, timedelta

import streamlit as st

from ledger.audit import create_correlation_id
from ledger.models.transaction import TransactionKind
from ledger.orchestrator import ConsolidationFlow, TransactionFlow, create_app_components
from ledger.services.storage import DailyBalanceNotFoundError, StorageError
from ledger.validation import ValidationFailedError


# Page configuration
st.set_page_config(
    page_title="Cash-Flow Ledger",
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
    return create_app_components()


def show_validation_error(error: ValidationFailedError):
    st.error("❌ Please fix the following:")
    for issue in error.issues:
        st.markdown(f"- **{issue.field}**: {issue.message}")


def main():
    """Main application entry point."""
    consolidation_flow, transaction_flow, publisher = get_components()

    # Sidebar navigation
    st.sidebar.title("📒 Cash-Flow Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Record Transaction", "🧮 Consolidate Day", "📊 Daily Balances", "📜 Transactions"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Record the day's credits and debits
        2. Consolidate the day
        3. Review the daily balance
        """
    )
    st.sidebar.caption(f"Queue directory: `{publisher.base_path}`")

    # Route to appropriate page
    if page == "➕ Record Transaction":
        render_record_page(transaction_flow)
    elif page == "🧮 Consolidate Day":
        render_consolidate_page(consolidation_flow)
    elif page == "📊 Daily Balances":
        render_balances_page(consolidation_flow)
    elif page == "📜 Transactions":
        render_transactions_page(transaction_flow)


def render_record_page(transaction_flow: TransactionFlow):
    """Render the transaction entry form."""
    st.title("➕ Record Transaction")

    with st.form("transaction_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            description = st.text_input("Description", max_chars=200)
            amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
            kind = st.radio(
                "Kind",
                options=list(TransactionKind),
                format_func=lambda k: k.value.title(),
                horizontal=True,
            )
        with col2:
            tx_date = st.date_input("Date", value=date.today())
            tx_time = st.time_input("Time", value=time(12, 0))
            category = st.text_input("Category (optional)", max_chars=100)
        notes = st.text_area("Notes (optional)", max_chars=500)

        submitted = st.form_submit_button("💾 Save Transaction")

    if submitted:
        payload = {
            "description": description,
            # number_input yields a float; the ledger takes a two-decimal string
            "amount": f"{amount:.2f}",
            "kind": kind,
            "transaction_date": datetime.combine(tx_date, tx_time),
            "category": category or None,
            "notes": notes or None,
        }
        try:
            tx = run_async(transaction_flow.create(
                payload,
                correlation_id=create_correlation_id(),
            ))
        except ValidationFailedError as e:
            show_validation_error(e)
        except StorageError as e:
            st.error(f"❌ Could not save: {e}")
        else:
            st.success(
                f"✅ Saved {tx.kind.value} of {tx.amount:,.2f} on {tx.business_date}. "
                "Consolidate the day to update its balance."
            )


def render_consolidate_page(consolidation_flow: ConsolidationFlow):
    """Render the consolidation page."""
    st.title("🧮 Consolidate Day")
    st.markdown("Recompute a day's balance from its transactions.")

    day = st.date_input("Day to consolidate", value=date.today())

    if st.button("🧮 Consolidate", type="primary"):
        try:
            result = run_async(consolidation_flow.consolidate(
                day,
                correlation_id=create_correlation_id(),
            ))
        except ValidationFailedError as e:
            show_validation_error(e)
            return
        except StorageError as e:
            st.error(f"❌ Consolidation failed: {e}")
            return

        verb = "created" if result.was_created else "updated"
        st.success(f"✅ Daily balance {verb} for {result.balance.date}")
        render_balance(result.to_response())

        if not result.notification.delivered:
            st.warning(f"⚠️ Balance saved, but the notification was not sent: {result.notification.error}")


def render_balance(response: dict):
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Opening", f"{response['opening_balance']:,.2f}")
    col2.metric("Credits", f"{response['total_credits']:,.2f}", f"{response['credit_transaction_count']} tx")
    col3.metric("Debits", f"{response['total_debits']:,.2f}", f"{response['debit_transaction_count']} tx")
    col4.metric("Closing", f"{response['closing_balance']:,.2f}")


def render_balances_page(consolidation_flow: ConsolidationFlow):
    """Render daily balance lookups."""
    st.title("📊 Daily Balances")

    tab_day, tab_range = st.tabs(["Single day", "Date range"])

    with tab_day:
        day = st.date_input("Day", value=date.today(), key="balance_day")
        try:
            balance = run_async(consolidation_flow.get_daily_balance(day))
        except DailyBalanceNotFoundError:
            st.info("📋 This day has not been consolidated yet.")
        else:
            render_balance(balance.to_response())
            st.caption(f"Last updated {balance.last_updated:%Y-%m-%d %H:%M:%S} UTC")

    with tab_range:
        col1, col2 = st.columns(2)
        start = col1.date_input("From", value=date.today() - timedelta(days=30))
        end = col2.date_input("To", value=date.today())
        try:
            balances = run_async(consolidation_flow.list_daily_balances(start, end))
        except ValidationFailedError as e:
            show_validation_error(e)
            return

        if not balances:
            st.info("📋 No consolidated days in this range.")
            return

        st.dataframe(
            [
                {
                    "Date": b.date.isoformat(),
                    "Opening": str(b.opening_balance),
                    "Credits": str(b.total_credits),
                    "Debits": str(b.total_debits),
                    "Closing": str(b.closing_balance),
                    "Transactions": b.total_transaction_count,
                }
                for b in balances
            ],
            use_container_width=True,
        )


def render_transactions_page(transaction_flow: TransactionFlow):
    """Render the filtered transaction list."""
    st.title("📜 Transactions")

    col1, col2, col3, col4 = st.columns(4)
    start = col1.date_input("From", value=date.today() - timedelta(days=7), key="tx_start")
    end = col2.date_input("To", value=date.today(), key="tx_end")
    kind = col3.selectbox(
        "Kind",
        options=[None] + list(TransactionKind),
        format_func=lambda k: "All" if k is None else k.value.title(),
    )
    category = col4.text_input("Category")
    page_number = st.number_input("Page", min_value=1, value=1, step=1)

    try:
        page = run_async(transaction_flow.list_transactions(
            start,
            end,
            kind=kind,
            category=category or None,
            page=int(page_number),
        ))
    except ValidationFailedError as e:
        show_validation_error(e)
        return

    if not page.items:
        st.info("📋 No transactions match these filters.")
        return

    st.caption(f"Page {page.page} of {page.total_pages} ({page.total_count} transactions)")
    for tx in page.items:
        sign = "+" if tx.kind == TransactionKind.CREDIT else "-"
        with st.expander(f"{tx.transaction_date:%Y-%m-%d %H:%M}  {sign}{tx.amount:,.2f}  {tx.description}"):
            st.markdown(f"**Category:** {tx.category or '-'}")
            if tx.notes:
                st.markdown(f"**Notes:** {tx.notes}")
            if st.button("🗑️ Delete", key=f"delete_{tx.id}"):
                run_async(transaction_flow.delete(tx.id))
                st.rerun()


if __name__ == "__main__":
    main()
