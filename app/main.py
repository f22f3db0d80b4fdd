"""
Streamlit Frontend for Budget Buddy

A thin surface over the dashboard aggregator and savings goal manager.

DESIGN PRINCIPLES:
1. Every number shown comes straight from a core operation
2. Destructive actions need an explicit confirmation
3. Errors are shown in plain language, never swallowed

The signed-in user is simulated by a user id typed into the sidebar.
"""

import asyncio
import threading
from datetime import datetime

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from budget_buddy.audit import AuditLogger, create_correlation_id
from budget_buddy.config import get_settings, validate_all_settings
from budget_buddy.dashboard import DashboardAggregator
from budget_buddy.models import BudgetPeriod
from budget_buddy.orchestrator import create_app_components, health_check, run_reported
from budget_buddy.savings import SavingsGoalError, SavingsGoalManager
from budget_buddy.validation import (
    ParameterValidationError,
    RequestValidator,
    format_issues,
)


# Page configuration
st.set_page_config(
    page_title="Budget Buddy",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def _event_loop() -> tuple[asyncio.AbstractEventLoop, threading.Lock]:
    # The engine's pooled connections are bound to the loop that opened them
    return asyncio.new_event_loop(), threading.Lock()


@st.cache_resource
def _error_logger() -> AuditLogger:
    # Local-only: the store may be what failed
    return AuditLogger()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop, lock = _event_loop()
    with lock:
        try:
            return loop.run_until_complete(run_reported(coro, _error_logger()))
        except SQLAlchemyError as e:
            if get_settings().app.debug_mode:
                st.exception(e)
            else:
                st.error("The budget store is unavailable right now. Please try again.")
            st.stop()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    aggregator, manager, database = create_app_components()
    run_async(database.create_all())
    return aggregator, manager, database


def show_validation_error(error: ParameterValidationError) -> None:
    st.error(format_issues(error.issues))


def main():
    """Main application entry point."""
    aggregator, manager, database = get_components()
    validator = RequestValidator()

    st.sidebar.title("💰 Budget Buddy")
    st.sidebar.markdown("---")

    user_id = st.sidebar.text_input("User ID", value="demo-user").strip()

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🎯 Savings Goals", "🗑️ Manage Data", "⚙️ Settings"],
        index=0,
    )

    if not user_id:
        st.warning("Enter a user id in the sidebar to continue.")
        return

    if page == "📊 Dashboard":
        render_dashboard_page(aggregator, validator, user_id)
    elif page == "🎯 Savings Goals":
        render_savings_page(manager, validator, user_id)
    elif page == "🗑️ Manage Data":
        render_manage_data_page(aggregator, user_id)
    elif page == "⚙️ Settings":
        render_settings_page(database)


def render_dashboard_page(
    aggregator: DashboardAggregator,
    validator: RequestValidator,
    user_id: str,
):
    """Render the dashboard overview."""
    st.title("📊 Dashboard")

    col1, col2 = st.columns(2)
    with col1:
        from_date = st.date_input("From", value=None)
    with col2:
        to_date = st.date_input("To", value=None)

    try:
        params = validator.summary({"from_date": from_date, "to_date": to_date})
    except ParameterValidationError as e:
        show_validation_error(e)
        return

    summary = run_async(aggregator.get_financial_summary(
        user_id, from_date=params.from_date, to_date=params.to_date,
    ))

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Income", f"{summary.income_total:,.2f}")
    c2.metric("Expenses", f"{summary.expense_total:,.2f}")
    c3.metric("Savings (all time)", f"{summary.savings_total:,.2f}")
    c4.metric("Remaining", f"{summary.remaining_amount:,.2f}")
    st.caption(
        f"{summary.start_date:%d %b %Y} to {summary.end_date:%d %b %Y}"
    )

    st.markdown("---")
    st.markdown("### Today")
    today = run_async(aggregator.get_today_spending(user_id))
    t1, t2, t3 = st.columns(3)
    t1.metric("Spent today", f"{today.total_spent_today:,.2f}", f"{today.transaction_count} transactions", delta_color="off")
    t2.metric("Daily budget", f"{today.daily_budget:,.2f}")
    t3.metric("Left for today", f"{today.remaining_budget:,.2f}")

    st.markdown("### Budget progress")
    period = st.radio("Period", [p.value for p in BudgetPeriod], horizontal=True, index=1)
    progress = run_async(aggregator.get_budget_progress(
        user_id, validator.budget_progress({"period": period}).period,
    ))
    st.progress(min(progress.percentage_used, 100.0) / 100)
    st.markdown(
        f"**{progress.current_spending:,.2f}** of **{progress.target_budget:,.2f}** "
        f"used ({progress.percentage_used:.1f}%), {progress.remaining_amount:,.2f} left"
    )

    st.markdown("### Recent expenses")
    limit = st.number_input("How many", min_value=1, max_value=100, value=10)
    try:
        recent_params = validator.recent_expenses({"limit": limit})
    except ParameterValidationError as e:
        show_validation_error(e)
        return

    recent = run_async(aggregator.get_recent_expenses(user_id, limit=recent_params.limit))
    if not recent.days:
        st.info("📋 No expenses recorded yet.")
    for day in recent.days:
        with st.expander(f"{day.date:%A %d %b %Y} · {day.total_amount:,.2f}"):
            for expense in day.expenses:
                label = expense.category.name if expense.category else "Uncategorized"
                icon = (expense.category.icon if expense.category else None) or "•"
                st.markdown(
                    f"{icon} **{expense.amount:,.2f}** · {label} · {expense.description or ''}"
                )


def render_savings_page(
    manager: SavingsGoalManager,
    validator: RequestValidator,
    user_id: str,
):
    """Render savings goals, analytics and history."""
    st.title("🎯 Savings Goals")

    with st.expander("➕ New goal"):
        with st.form("create_goal"):
            name = st.text_input("Name")
            target = st.number_input("Target amount", min_value=0.0, step=100.0, format="%.2f")
            initial = st.number_input("Already saved", min_value=0.0, step=100.0, format="%.2f")
            target_date = st.date_input("Target date", value=None)
            notes = st.text_area("Notes")
            if st.form_submit_button("Create goal", type="primary"):
                try:
                    dto = validator.create_goal({
                        "name": name,
                        "target_amount": f"{target:.2f}",
                        "current_amount": f"{initial:.2f}",
                        "target_date": (
                            datetime.combine(target_date, datetime.min.time())
                            if target_date else None
                        ),
                        "notes": notes,
                    })
                    goal = run_async(manager.create_goal(
                        user_id, dto, correlation_id=create_correlation_id(),
                    ))
                    st.success(f"✅ Created '{goal.name}'")
                except ParameterValidationError as e:
                    show_validation_error(e)

    status = st.selectbox("Show", ["", "active", "completed"], format_func=lambda s: s.title() or "All goals")
    goals = run_async(manager.get_goals(user_id, validator.goal_list({"status": status}).status))

    if not goals:
        st.info("📋 No savings goals yet.")

    for goal in goals:
        badge = "✅" if goal.completed else "🎯"
        with st.expander(f"{badge} {goal.name} · {goal.current_amount:,.2f} / {goal.target_amount:,.2f}"):
            st.progress(goal.progress_percentage / 100)
            if goal.days_remaining is not None:
                st.caption(f"{goal.days_remaining} days remaining")
            if goal.notes:
                st.markdown(goal.notes)

            col1, col2, col3 = st.columns(3)
            with col1:
                amount = st.number_input(
                    "Amount", min_value=0.0, step=50.0, format="%.2f", key=f"amount-{goal.id}",
                )
                if st.button("Add funds", key=f"add-{goal.id}", disabled=goal.completed):
                    _run_goal_action(lambda: manager.add_funds(
                        user_id, goal.id, validator.add_funds({"amount": f"{amount:.2f}"}),
                        correlation_id=create_correlation_id(),
                    ), "Funds added")
            with col2:
                new_name = st.text_input("Rename", value=goal.name, key=f"name-{goal.id}")
                if st.button("Save name", key=f"rename-{goal.id}"):
                    _run_goal_action(lambda: manager.update_goal(
                        user_id, goal.id, validator.update_goal({"name": new_name}),
                        correlation_id=create_correlation_id(),
                    ), "Goal updated")
            with col3:
                if st.button("Mark complete", key=f"complete-{goal.id}", disabled=goal.completed):
                    _run_goal_action(lambda: manager.complete_goal(
                        user_id, goal.id, correlation_id=create_correlation_id(),
                    ), "Goal completed")
                if st.button("Delete", key=f"delete-{goal.id}"):
                    _run_goal_action(lambda: manager.delete_goal(
                        user_id, goal.id, correlation_id=create_correlation_id(),
                    ), "Goal deleted")

    st.markdown("---")
    st.markdown("### This month")
    analytics = run_async(manager.get_savings_analytics(user_id))
    a1, a2, a3 = st.columns(3)
    a1.metric("Saved", f"{analytics.total_actual_savings:,.2f}")
    a2.metric("Planned this month", f"{analytics.dashboard_savings_total:,.2f}")
    a3.metric("Left to targets", f"{analytics.remaining_to_target:,.2f}")
    if analytics.sync_status.value != "synced":
        st.markdown(
            '<div class="warning-box">Goal balances and the dashboard disagree.</div>',
            unsafe_allow_html=True,
        )
        if st.button("🔄 Sync with dashboard"):
            result = run_async(manager.sync_goals_with_dashboard(
                user_id, correlation_id=create_correlation_id(),
            ))
            st.success(f"{result.message} ({result.synced_items_count} items)")

    st.markdown("### History")
    months = st.slider("Months", min_value=1, max_value=36, value=get_settings().app.default_history_months)
    history = run_async(manager.get_savings_history(
        user_id, months=validator.savings_history({"months": months}).months,
    ))
    st.bar_chart({m.period_name: float(m.total_saved) for m in history.history})
    summary = history.summary
    st.markdown(
        f"Total **{summary.total_across_all_months:,.2f}**, "
        f"average **{summary.average_per_month:,.2f}** per month"
    )
    if summary.highest_month.period:
        st.markdown(f"Best month: {summary.highest_month.period} ({summary.highest_month.amount:,.2f})")


def _run_goal_action(action, success_message: str) -> None:
    try:
        run_async(action())
        st.success(f"✅ {success_message}")
        st.rerun()
    except ParameterValidationError as e:
        show_validation_error(e)
    except SavingsGoalError as e:
        st.error(f"❌ {e}")


def render_manage_data_page(aggregator: DashboardAggregator, user_id: str):
    """Render the irreversible clear operations."""
    st.title("🗑️ Manage Data")
    st.markdown(
        '<div class="warning-box">These actions permanently delete data and cannot be undone.</div>',
        unsafe_allow_html=True,
    )

    actions = {
        "Transactions": aggregator.clear_transactions,
        "Bills (and their transactions)": aggregator.clear_bills,
        "Savings goals (and their plan items)": aggregator.clear_savings_goals,
        "Everything": aggregator.clear_all_user_data,
    }
    choice = st.selectbox("What to clear", list(actions))
    confirmed = st.checkbox(f"I understand that '{choice}' will be deleted permanently")

    if st.button("Delete", type="primary", disabled=not confirmed):
        result = run_async(actions[choice](user_id, correlation_id=create_correlation_id()))
        st.success(f"✅ {result.message}")
        st.json(result.cleared_data)


def render_settings_page(database):
    """Render configuration and health status."""
    st.title("⚙️ Settings")

    st.markdown("### Health")
    report = run_async(health_check(database))
    if report["status"] == "healthy":
        st.success(f"✅ {report['service']} {report['version']} - database {report['database']}")
    else:
        st.error(f"❌ {report['service']} - database {report['database']}")

    st.markdown("### Configuration")
    status = validate_all_settings()
    for key in ("database", "app"):
        if status.get(key, False):
            st.success(f"✅ {key} settings loaded")
        else:
            st.error(f"❌ {key}: {status.get(f'{key}_error', 'Not configured')}")

    st.markdown(
        "Configure the app with environment variables or a `.env` file, "
        "e.g. `BUDGET_DB_URL=sqlite+aiosqlite:///./budget_buddy.db`."
    )


if __name__ == "__main__":
    main()
