"""
Streamlit Frontend for Tabungan Dashboard

A household savings tracker: money set aside for the house, the child
and holidays, each entry a signed amount (positive = income,
negative = expense).

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Amounts are always shown grouped ("Rp 500.000")
3. Clear error messages in simple language
4. Nothing is saved or deleted without an explicit button press
5. Errors never wipe what is already on screen
"""

import asyncio
import datetime as dt

import plotly.graph_objects as go
import streamlit as st

from tabungan.audit import configure_logging
from tabungan.config import get_settings
from tabungan.formatting import (
    format_amount,
    format_axis_thousands,
    format_rupiah,
    format_signed_rupiah,
    group_digits,
)
from tabungan.models.transaction import (
    Category,
    TransactionForm,
    TransactionRecord,
    ViewMode,
)
from tabungan.analytics import search_records
from tabungan.orchestrator import (
    AuthFlow,
    DashboardFlow,
    DashboardState,
    TransactionFlow,
    create_app_components,
)
from tabungan.validation import TransactionValidator


st.set_page_config(
    page_title="Tabungan",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="collapsed",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .income { color: #10b981; font-weight: bold; }
    .expense { color: #ef4444; font-weight: bold; }
    .card {
        padding: 16px;
        border-radius: 10px;
        background-color: #f8fafc;
        border-left: 5px solid #64748b;
        margin-bottom: 10px;
    }
    .big-number {
        font-size: 1.8em;
        font-weight: bold;
        color: #1e293b;
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
    """
    Get or create the shared application components (cached).

    Only stateless flows live here. Sign-in state is per browser
    session, see _init_state.
    """
    app_settings = get_settings().app
    configure_logging(app_settings.log_level, app_settings.log_json)
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage, running offline: {e}")
        return create_app_components(use_storage=False)


def _init_state(auth_flow_factory):
    if "auth_flow" not in st.session_state:
        st.session_state.auth_flow = auth_flow_factory()
    defaults = {
        "page": "dashboard",
        "edit_id": None,
        "form_category": Category.HOUSING,
        "amount_text": "",
        "note_text": "",
        "form_date": dt.date.today(),
        "dashboard_state": DashboardState(),
        "flash": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def main():
    """Main application entry point."""
    transaction_flow, dashboard_flow, auth_flow_factory = get_components()
    _init_state(auth_flow_factory)
    auth_flow: AuthFlow = st.session_state.auth_flow

    if auth_flow.session is None:
        render_login_page(auth_flow)
        return

    if st.session_state.page == "form":
        render_form_page(transaction_flow)
    else:
        render_dashboard_page(transaction_flow, dashboard_flow, auth_flow)


# =============================================================================
# LOGIN
# =============================================================================

def render_login_page(auth_flow: AuthFlow):
    """Email/password sign in, with a toggle to create an account."""
    st.title("💰 Tabungan")

    sign_up = st.toggle("I don't have an account yet")
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button(
            "Sign up" if sign_up else "Sign in",
            type="primary",
        )

    if submitted:
        if not email or not password:
            st.error("Please enter your email and password")
            return
        with st.spinner("Signing in..."):
            outcome = run_async(auth_flow.sign_in(email, password, sign_up=sign_up))
        if outcome.success:
            st.rerun()
        else:
            st.error(outcome.message)


# =============================================================================
# DASHBOARD
# =============================================================================

def _current_view() -> ViewMode:
    return ViewMode.from_param(st.query_params.get("tab"))


def render_dashboard_page(
    transaction_flow: TransactionFlow,
    dashboard_flow: DashboardFlow,
    auth_flow: AuthFlow,
):
    settings = get_settings().app
    view = _current_view()
    state: DashboardState = st.session_state.dashboard_state

    header, sign_out_col = st.columns([5, 1])
    with header:
        st.title(f"Hi, {auth_flow.session.display_name} 👋")
    with sign_out_col:
        if st.button("Sign out"):
            run_async(auth_flow.sign_out())
            st.session_state.dashboard_state = DashboardState()
            st.rerun()

    if st.session_state.flash:
        st.success(st.session_state.flash)
        st.session_state.flash = None

    with st.spinner("Loading..."):
        state.accept(run_async(dashboard_flow.load(view)))

    if state.error:
        st.error(state.error)
    snapshot = state.snapshot
    if snapshot is None:
        return

    render_summary_cards(snapshot, settings.currency_symbol, settings.thousands_separator)

    st.markdown("---")
    selected = st.radio(
        "View",
        options=list(ViewMode),
        index=list(ViewMode).index(view),
        format_func=lambda mode: mode.label,
        horizontal=True,
        label_visibility="collapsed",
    )
    if selected != view:
        st.query_params["tab"] = selected.value
        st.rerun()

    if view is ViewMode.STATISTICS:
        render_statistics(snapshot, settings.currency_symbol, settings.thousands_separator)
    else:
        render_category_list(
            transaction_flow,
            view.category,
            snapshot.records if snapshot.view is view else [],
            settings.currency_symbol,
            settings.thousands_separator,
        )


def render_summary_cards(snapshot, symbol: str, separator: str):
    """Grand total plus one card per category."""
    columns = st.columns(4)
    cards = [("Total", "#64748b", snapshot.grand_total)]
    cards.extend(
        (category.label, category.color, snapshot.cards.get(category))
        for category in Category
    )
    for column, (title, color, totals) in zip(columns, cards):
        total = totals.total if totals else 0
        count = totals.count if totals else 0
        with column:
            st.markdown(f"""
            <div class="card" style="border-left-color: {color}">
                <div>{title}</div>
                <div class="big-number">{format_rupiah(total, symbol, separator)}</div>
                <div>{count} transactions</div>
            </div>
            """, unsafe_allow_html=True)


def render_category_list(
    transaction_flow: TransactionFlow,
    category: Category,
    records: list[TransactionRecord],
    symbol: str,
    separator: str,
):
    search_col, add_col = st.columns([4, 1])
    with search_col:
        query = st.text_input(
            "Search",
            placeholder="Search by amount, note or date",
            label_visibility="collapsed",
        )
    with add_col:
        if st.button("➕ Add", type="primary"):
            open_form(category)

    shown = search_records(records, query)
    if not shown:
        st.info("No transactions yet." if not query else "Nothing matches your search.")
        return

    for record in shown:
        css = "income" if record.is_income else "expense"
        info, amount_col, edit_col, delete_col = st.columns([4, 2, 1, 1])
        with info:
            st.markdown(f"**{record.note or '-'}**  \n{record.date.strftime('%d %b %Y')}")
        with amount_col:
            st.markdown(
                f'<span class="{css}">{record.kind_label}<br>'
                f'{format_rupiah(record.amount, symbol, separator)}</span>',
                unsafe_allow_html=True,
            )
        with edit_col:
            if st.button("✏️", key=f"edit-{record.id}", help="Edit"):
                open_form(category, record)
        with delete_col:
            if st.button("🗑️", key=f"delete-{record.id}", help="Delete"):
                st.session_state.confirm_delete = record.id

        if st.session_state.get("confirm_delete") == record.id:
            st.warning("Delete this transaction?")
            yes, no = st.columns(2)
            with yes:
                if st.button("Yes, delete", key=f"confirm-{record.id}"):
                    outcome = run_async(transaction_flow.delete(record.id))
                    st.session_state.confirm_delete = None
                    if outcome.success:
                        st.session_state.flash = outcome.message
                        st.rerun()
                    else:
                        st.error(outcome.message)
            with no:
                if st.button("Cancel", key=f"cancel-{record.id}"):
                    st.session_state.confirm_delete = None
                    st.rerun()


def render_statistics(snapshot, symbol: str, separator: str):
    """Pie of category shares, monthly income/expense lines, cash-flow detail."""
    pie_col, line_col = st.columns(2)

    with pie_col:
        st.subheader("Share per category")
        if snapshot.shares:
            fig = go.Figure(go.Pie(
                labels=[share.category.label for share in snapshot.shares],
                values=[share.total for share in snapshot.shares],
                marker={"colors": [share.color for share in snapshot.shares]},
                text=[f"{share.percent}%" for share in snapshot.shares],
                textinfo="label+text",
                hovertext=[
                    format_rupiah(share.total, symbol, separator)
                    for share in snapshot.shares
                ],
                hoverinfo="label+text",
            ))
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No positive balance to chart yet.")

    with line_col:
        st.subheader("Income and expense per month")
        if snapshot.months:
            months = [bucket.month for bucket in snapshot.months]
            positive = [bucket.positive for bucket in snapshot.months]
            negative = [bucket.negative for bucket in snapshot.months]
            fig = go.Figure()
            fig.add_trace(go.Scatter(
                x=months, y=positive, name="Income",
                mode="lines+markers", line={"color": "#10b981"},
            ))
            fig.add_trace(go.Scatter(
                x=months, y=negative, name="Expense",
                mode="lines+markers", line={"color": "#ef4444"},
            ))
            ticks = sorted(set(positive + negative))
            fig.update_yaxes(
                tickvals=ticks,
                ticktext=[format_axis_thousands(tick, symbol) for tick in ticks],
            )
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No transactions yet.")

    st.subheader("Details")
    flow = snapshot.cash_flow
    income_col, expense_col, net_col, count_col = st.columns(4)
    income_col.metric("Total income", format_signed_rupiah(flow.income, "+", symbol, separator))
    expense_col.metric("Total expense", format_signed_rupiah(flow.expense, "-", symbol, separator))
    net_col.metric("Net balance", format_rupiah(flow.net, symbol, separator))
    count_col.metric("Transactions", group_digits(flow.count, separator))


# =============================================================================
# ADD / EDIT FORM
# =============================================================================

def open_form(category: Category, record: TransactionRecord = None):
    """Switch to the form page, prefilled when editing."""
    separator = get_settings().app.thousands_separator
    st.session_state.form_category = category
    if record is None:
        st.session_state.edit_id = None
        st.session_state.amount_text = ""
        st.session_state.note_text = ""
        st.session_state.form_date = dt.date.today()
    else:
        st.session_state.edit_id = record.id
        st.session_state.amount_text = format_amount(str(record.amount), separator)
        st.session_state.note_text = record.note or ""
        st.session_state.form_date = record.date
    st.session_state.page = "form"
    st.rerun()


def close_form():
    st.session_state.page = "dashboard"
    st.session_state.edit_id = None
    st.rerun()


def _reformat_amount():
    st.session_state.amount_text = format_amount(
        st.session_state.amount_text,
        get_settings().app.thousands_separator,
    )


def render_form_page(transaction_flow: TransactionFlow):
    category: Category = st.session_state.form_category
    edit_id = st.session_state.edit_id

    if edit_id is not None and run_async(transaction_flow.load_for_edit(edit_id)) is None:
        st.error("This transaction no longer exists.")
        if st.button("← Back"):
            close_form()
        return

    st.title(f"{'Edit' if edit_id else 'Add'} {category.label} transaction")
    st.caption("Use a minus sign for expenses, e.g. -200.000")

    st.text_input(
        "Amount *",
        key="amount_text",
        on_change=_reformat_amount,
        placeholder="500.000",
    )
    st.text_input("Note", key="note_text")
    st.date_input("Date *", key="form_date")

    save_col, cancel_col = st.columns(2)
    with save_col:
        save = st.button("💾 Save", type="primary")
    with cancel_col:
        if st.button("Cancel"):
            close_form()

    if save:
        form = TransactionForm(
            category=category,
            amount_text=st.session_state.amount_text,
            note=st.session_state.note_text,
            date=st.session_state.form_date,
        )
        with st.spinner("Saving..."):
            outcome = run_async(transaction_flow.submit(form, edit_id=edit_id))

        if outcome.success:
            st.session_state.flash = outcome.message
            st.query_params["tab"] = ViewMode.from_param(category.value).value
            close_form()
        else:
            st.error(outcome.message)
            if outcome.validation is not None:
                summary = TransactionValidator.get_user_friendly_summary(outcome.validation)
                if summary:
                    st.caption(summary)


if __name__ == "__main__":
    main()
