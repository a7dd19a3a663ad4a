"""
Streamlit Frontend for Household Expenses

This is the interface household members use day to day: log expenses,
leave notes on the calendar, comment on both, and check how the month
is going against the budget.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. Edit/delete buttons only appear while the 5-minute window is open

Sign-in is handled elsewhere; here the acting member is simply picked in
the sidebar.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import streamlit as st

from src.calendar_entries import DAY_NAMES, MonthCursor
from src.config import get_settings
from src.errors import ExpenseTrackerError
from src.models.household import ExpenseFilter, ExpenseOrder, Member
from src.orchestrator import AppComponents, create_app_components
from src.queries import to_summary_month


# Page configuration
st.set_page_config(
    page_title="Household Expenses",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 4px;
    }
    .info-box {
        padding: 16px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .warning-box {
        padding: 16px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .day-cell {
        text-align: center;
        padding: 6px 0;
    }
    .day-outside {
        color: #bbb;
    }
    .day-today {
        font-weight: bold;
        color: #dc3545;
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
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def money(amount) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{Decimal(amount):,.2f}"


def report(action):
    """Run an action, turning our errors into friendly messages."""
    try:
        result = run_async(action)
    except ExpenseTrackerError as e:
        st.error(str(e))
        return None
    st.rerun()
    return result


def main():
    """Main application entry point."""
    components = get_components()
    run_async(components.refresh())

    st.sidebar.title("💰 Household Expenses")
    st.sidebar.markdown("---")

    members = run_async(components.members.list_members())
    actor = pick_actor(members)

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "📅 Calendar", "🧾 Expenses", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"Storage: {components.storage_mode}")

    if page == "📊 Dashboard":
        render_dashboard_page(components, actor)
    elif page == "📅 Calendar":
        render_calendar_page(components, actor)
    elif page == "🧾 Expenses":
        render_expenses_page(components, actor)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def pick_actor(members: list[Member]) -> Optional[Member]:
    if not members:
        st.sidebar.info("No members registered. Acting as a guest.")
        return None
    chosen = st.sidebar.selectbox(
        "Acting as",
        options=members,
        format_func=lambda m: f"{m.name}{' (admin)' if m.is_admin else ''}",
    )
    return chosen


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(components: AppComponents, actor: Optional[Member]):
    st.title("📊 This Month")

    if "cursor" not in st.session_state:
        st.session_state.cursor = MonthCursor.today(components.clock)
    cursor: MonthCursor = st.session_state.cursor

    summary = run_async(
        components.summaries.summary_for(to_summary_month(cursor.month_index), cursor.year)
    )
    st.subheader(cursor.title)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total spent", money(summary.total_expenses))
    col2.metric("Members", summary.total_members)
    col3.metric("Per person", money(summary.per_person_amount))
    col4.metric("Balance", money(summary.balance))

    if summary.balance < 0:
        st.markdown(
            f'<div class="warning-box">Over budget by {money(-summary.balance)}</div>',
            unsafe_allow_html=True,
        )

    breakdown = run_async(
        components.summaries.category_summary_for(summary.month, summary.year)
    )
    st.markdown("### By category")
    if not breakdown.categories:
        st.info("No expenses recorded for this month yet.")
    for row in breakdown.categories:
        line = f"**{row.category_name}**: {money(row.total)} ({row.expense_count})"
        if row.remaining is not None:
            line += f" - {money(row.remaining)} left of {money(row.allocated_amount)}"
        st.markdown(line)

    st.markdown("---")
    st.markdown("### Full amount")
    current = run_async(components.summaries.get_full_amount())
    with st.form("full_amount_form"):
        amount = st.number_input(
            "Monthly budget",
            min_value=0.0,
            value=float(current),
            step=100.0,
        )
        if st.form_submit_button("Save", disabled=actor is not None and not actor.is_admin):
            report(components.summaries.set_full_amount(Decimal(str(amount))))


# =============================================================================
# CALENDAR
# =============================================================================

def render_calendar_page(components: AppComponents, actor: Optional[Member]):
    st.title("📅 Calendar")

    if "cursor" not in st.session_state:
        st.session_state.cursor = MonthCursor.today(components.clock)
    if "selected_day" not in st.session_state:
        st.session_state.selected_day = components.clock.today()
    cursor: MonthCursor = st.session_state.cursor

    nav_prev, nav_title, nav_next = st.columns([1, 3, 1])
    if nav_prev.button("◀ Previous"):
        st.session_state.cursor = cursor.previous()
        st.rerun()
    nav_title.markdown(f"### {cursor.title}")
    if nav_next.button("Next ▶"):
        st.session_state.cursor = cursor.next()
        st.rerun()

    header = st.columns(7)
    for col, name in zip(header, DAY_NAMES):
        col.markdown(f"**{name}**")

    grid = cursor.grid()
    for week in range(6):
        cols = st.columns(7)
        for col, day in zip(cols, grid[week * 7:(week + 1) * 7]):
            count = components.calendar.count_on(day)
            label = f"{day.day}" + (f" • {count}" if count else "")
            if cursor.is_today(day, components.clock):
                label = f"[{label}]"
            if col.button(label, key=f"day-{day.isoformat()}", disabled=not cursor.contains(day)):
                st.session_state.selected_day = day
                st.rerun()

    st.markdown("---")
    render_day(components, actor, st.session_state.selected_day)


def render_day(components: AppComponents, actor: Optional[Member], day: date):
    st.markdown(f"### {day.strftime('%A, %d %B %Y')}")

    categories = run_async(components.categories.list_categories())
    with st.form(f"new-entry-{day.isoformat()}", clear_on_submit=True):
        category = st.selectbox(
            "Category",
            options=categories,
            format_func=lambda c: c.name,
        )
        text = st.text_area("Note")
        price = st.number_input("Price (optional)", min_value=0.0, value=0.0, step=10.0)
        if st.form_submit_button("Add entry"):
            report(components.calendar.create(
                day,
                category.id if category else "",
                text,
                price=Decimal(str(price)) if price else None,
                author=actor,
            ))

    views = components.calendar.day_views(day)
    if not views:
        st.info("Nothing noted on this day.")

    for view in views:
        with st.expander(f"{view.category_name}: {view.text[:40]}", expanded=True):
            st.markdown(view.text)
            if view.price is not None:
                st.caption(f"Price: {money(view.price)}")
            st.caption(f"By {view.creator.name} · {view.remaining_label}")

            if view.can_edit:
                new_text = st.text_input("Edit note", value=view.text, key=f"edit-{view.id}")
                col1, col2 = st.columns(2)
                if col1.button("Save", key=f"save-{view.id}"):
                    report(components.calendar.update(view.id, {"text": new_text}))
                if col2.button("Delete", key=f"del-{view.id}"):
                    report(components.calendar.remove(view.id))

            render_comments(components, components.calendar, actor, view.id, view.comments)


# =============================================================================
# EXPENSES
# =============================================================================

def render_expenses_page(components: AppComponents, actor: Optional[Member]):
    st.title("🧾 Expenses")

    categories = run_async(components.categories.list_categories())
    names = {c.id: c.name for c in categories}

    with st.form("new-expense", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            spent_on = st.date_input("Date", value=components.clock.today())
        with col2:
            category = st.selectbox("Category", options=categories, format_func=lambda c: c.name)
        with col3:
            amount = st.number_input("Amount", min_value=0.0, step=10.0)
        description = st.text_input("Description")
        if st.form_submit_button("Add expense"):
            report(components.ledger.create(
                spent_on,
                category.id if category else "",
                Decimal(str(amount)),
                description=description,
                added_by=actor.name if actor else "",
            ))

    st.markdown("---")
    col1, col2, col3 = st.columns(3)
    with col1:
        category_filter = st.selectbox(
            "Filter by Category",
            options=[None] + categories,
            format_func=lambda c: "All Categories" if c is None else c.name,
        )
    with col2:
        date_range = st.date_input("Date Range", value=[])
    with col3:
        order = st.selectbox(
            "Order",
            options=list(ExpenseOrder),
            format_func=lambda o: "Most recent first" if o == ExpenseOrder.RECENT_FIRST else "Oldest first",
        )

    start = date_range[0] if len(date_range) > 0 else None
    end = date_range[1] if len(date_range) > 1 else None
    try:
        criteria = ExpenseFilter(
            category_id=category_filter.id if category_filter else None,
            start_date=start,
            end_date=end,
        )
    except ValueError as e:
        st.error(str(e))
        return

    expenses = run_async(components.ledger.filter(criteria, order=order))
    if not expenses:
        st.info("No expenses match these filters.")

    for expense in expenses:
        title = (
            f"{expense.date.isoformat()} · "
            f"{names.get(expense.category_id, components.categories.unknown_label)} · "
            f"{money(expense.amount)}"
        )
        with st.expander(title):
            if expense.description:
                st.markdown(expense.description)
            st.caption(f"Added by {expense.added_by or 'unknown'}")
            if actor is None or actor.is_admin:
                if st.button("Delete expense", key=f"del-exp-{expense.id}"):
                    report(components.ledger.delete(expense.id, actor=actor))
            render_comments(
                components,
                components.ledger,
                actor,
                expense.id,
                components.ledger.comment_views(expense.id),
            )


# =============================================================================
# COMMENTS (shared by calendar entries and expenses)
# =============================================================================

def render_comments(components, owner, actor: Optional[Member], parent_id, comments):
    st.markdown("**Comments**")
    for comment in comments:
        edited = " (edited)" if comment.edited_at else ""
        st.markdown(f"- **{comment.author_name}**{edited}: {comment.text}")
        st.caption(comment.remaining_label)
        for reply in comment.replies:
            st.markdown(f"    ↳ **{reply.author_name}**: {reply.text}")

        if comment.can_edit:
            col1, col2 = st.columns(2)
            new_text = col1.text_input("Edit", value=comment.text, key=f"ce-{comment.id}")
            if col1.button("Save comment", key=f"cs-{comment.id}"):
                report(owner.edit_comment(parent_id, comment.id, new_text))
            if col2.button("Delete comment", key=f"cd-{comment.id}"):
                report(owner.delete_comment(parent_id, comment.id))

        if actor is not None and actor.is_admin:
            reply_text = st.text_input("Reply", key=f"r-{comment.id}")
            if st.button("Send reply", key=f"rs-{comment.id}"):
                report(owner.add_reply(parent_id, comment.id, actor, reply_text))

    new_comment = st.text_input("Add a comment", key=f"nc-{parent_id}")
    if st.button("Comment", key=f"ncs-{parent_id}"):
        report(owner.add_comment(parent_id, actor, new_comment))


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from src.config import validate_all_settings

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(f"Running with **{components.storage_mode}** storage.")
    st.markdown(
        f"Comments and calendar entries can be changed for "
        f"**{get_settings().app.edit_window_minutes} minutes** after they are posted."
    )

    members = run_async(components.members.list_members())
    admins = run_async(components.members.admin_count())
    st.markdown(f"Members: **{len(members)}** (admins: {admins})")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
