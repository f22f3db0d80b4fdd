"""
Tests for the Dashboard Aggregator

Summaries are checked against hand-computed totals; clears are checked by
counting what is left in the database afterwards.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from budget_buddy.models import (
    AuditEventType,
    Bill,
    Budget,
    BudgetPeriod,
    BudgetType,
    Category,
    CategoryAllocation,
    PlanItem,
    PlanItemType,
    SavingsGoal,
    Transaction,
    TransactionType,
)


USER = "user-1"
OTHER_USER = "user-2"


def expense(amount: str, when: datetime, user_id: str = USER, **kwargs) -> Transaction:
    return Transaction(
        user_id=user_id,
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        date=when,
        **kwargs,
    )


def income(amount: str, when: datetime, user_id: str = USER) -> Transaction:
    return Transaction(
        user_id=user_id,
        amount=Decimal(amount),
        type=TransactionType.INCOME,
        date=when,
    )


def savings_item(amount: str, period: str, user_id: str = USER, description: str = "Savings: Trip") -> PlanItem:
    return PlanItem(
        user_id=user_id,
        item_type=PlanItemType.SAVINGS,
        plan_type=period,
        description=description,
        amount=Decimal(amount),
    )


def monthly_budget(amount: str, start: datetime, end: datetime, user_id: str = USER) -> Budget:
    return Budget(
        user_id=user_id,
        amount=Decimal(amount),
        type=BudgetType.MONTHLY,
        start_date=start,
        end_date=end,
    )


class TestFinancialSummary:
    """Tests for income/expense/savings totals."""

    async def test_remaining_is_exact(self, aggregator, seed):
        """income - expense - savings equals remaining to the cent."""
        await seed(
            income("1000.10", datetime(2026, 10, 1, 9, 0)),
            expense("0.10", datetime(2026, 10, 2, 9, 0)),
            expense("0.20", datetime(2026, 10, 3, 9, 0)),
            expense("199.90", datetime(2026, 10, 4, 9, 0)),
            savings_item("100.10", "2026-10"),
            savings_item("200.20", "2026-10"),
        )

        summary = await aggregator.get_financial_summary(USER)

        assert summary.income_total == Decimal("1000.10")
        assert summary.expense_total == Decimal("200.20")
        assert summary.savings_total == Decimal("300.30")
        assert summary.remaining_amount == Decimal("499.60")
        assert (
            summary.income_total - summary.expense_total - summary.savings_total
            == summary.remaining_amount
        )

    async def test_default_window_is_current_month(self, aggregator, seed):
        """Transactions outside the current calendar month are ignored."""
        await seed(
            expense("10.00", datetime(2026, 9, 30, 23, 59)),
            expense("20.00", datetime(2026, 10, 1, 0, 0)),
            expense("30.00", datetime(2026, 10, 31, 23, 59)),
            expense("40.00", datetime(2026, 11, 1, 0, 0)),
        )

        summary = await aggregator.get_financial_summary(USER)

        assert summary.expense_total == Decimal("50.00")
        assert summary.start_date == datetime(2026, 10, 1)
        assert summary.end_date.date() == date(2026, 10, 31)

    async def test_to_date_covers_whole_day(self, aggregator, seed):
        """A plain to_date includes transactions later that day."""
        await seed(
            expense("15.00", datetime(2026, 10, 5, 0, 0)),
            expense("25.00", datetime(2026, 10, 10, 18, 30)),
            expense("99.00", datetime(2026, 10, 11, 0, 0)),
        )

        summary = await aggregator.get_financial_summary(
            USER, from_date=date(2026, 10, 5), to_date=date(2026, 10, 10)
        )

        assert summary.expense_total == Decimal("40.00")

    async def test_savings_total_is_not_window_scoped(self, aggregator, seed):
        """Savings include plan items from every period."""
        await seed(
            savings_item("50.00", "2025-01"),
            savings_item("75.00", "2026-10"),
        )

        summary = await aggregator.get_financial_summary(
            USER, from_date=date(2026, 10, 1), to_date=date(2026, 10, 2)
        )

        assert summary.savings_total == Decimal("125.00")
        assert summary.remaining_amount == Decimal("-125.00")

    async def test_other_users_are_excluded(self, aggregator, seed):
        """Only the caller's rows count."""
        await seed(
            income("500.00", datetime(2026, 10, 1), user_id=OTHER_USER),
            expense("50.00", datetime(2026, 10, 1), user_id=OTHER_USER),
            savings_item("25.00", "2026-10", user_id=OTHER_USER),
        )

        summary = await aggregator.get_financial_summary(USER)

        assert summary.income_total == Decimal("0.00")
        assert summary.expense_total == Decimal("0.00")
        assert summary.savings_total == Decimal("0.00")
        assert summary.remaining_amount == Decimal("0.00")


class TestTodaySpending:
    """Tests for today's spending against the daily budget."""

    @pytest.mark.parametrize(
        "now, days",
        [
            (datetime(2026, 2, 10, 12, 0), 28),
            (datetime(2028, 2, 10, 12, 0), 29),
            (datetime(2026, 4, 10, 12, 0), 30),
            (datetime(2026, 10, 18, 12, 0), 31),
        ],
    )
    async def test_daily_budget_uses_real_month_length(self, aggregator, seed, clock, now, days):
        """Daily budget is the monthly amount over the days in the month."""
        clock.now = now
        await seed(monthly_budget(
            "3100.00",
            datetime(now.year, now.month, 1),
            datetime(now.year, now.month, days, 23, 59, 59),
        ))

        today = await aggregator.get_today_spending(USER)

        assert today.daily_budget == Decimal("3100.00") / days

    async def test_remaining_budget(self, aggregator, seed):
        """Remaining is the daily budget minus today's expenses."""
        await seed(
            monthly_budget("3100.00", datetime(2026, 10, 1), datetime(2026, 10, 31, 23, 59)),
            expense("30.00", datetime(2026, 10, 18, 8, 0)),
            expense("20.00", datetime(2026, 10, 18, 11, 0)),
            expense("500.00", datetime(2026, 10, 17, 23, 0)),
            income("900.00", datetime(2026, 10, 18, 9, 0)),
        )

        today = await aggregator.get_today_spending(USER)

        assert today.total_spent_today == Decimal("50.00")
        assert today.transaction_count == 2
        assert today.daily_budget == Decimal("100")
        assert today.remaining_budget == Decimal("50")

    async def test_overspending_floors_at_zero(self, aggregator, seed):
        """Spending above the daily share leaves zero, never a negative."""
        await seed(
            monthly_budget("3100.00", datetime(2026, 10, 1), datetime(2026, 10, 31, 23, 59)),
            expense("150.00", datetime(2026, 10, 18, 8, 0)),
        )

        today = await aggregator.get_today_spending(USER)

        assert today.remaining_budget == Decimal("0")

    async def test_no_budget(self, aggregator, seed):
        """Without a monthly budget both daily and remaining budget are zero."""
        await seed(expense("75.00", datetime(2026, 10, 18, 8, 0)))

        today = await aggregator.get_today_spending(USER)

        assert today.total_spent_today == Decimal("75.00")
        assert today.daily_budget == Decimal("0")
        assert today.remaining_budget == Decimal("0")

    async def test_expired_budget_is_ignored(self, aggregator, seed):
        """A budget whose window does not contain now is not active."""
        await seed(monthly_budget("3000.00", datetime(2026, 9, 1), datetime(2026, 9, 30, 23, 59)))

        today = await aggregator.get_today_spending(USER)

        assert today.daily_budget == Decimal("0")


class TestBudgetProgress:
    """Tests for weekly and monthly budget progress."""

    async def test_monthly_progress(self, aggregator, seed):
        """Percentage and remaining are computed against the monthly budget."""
        await seed(
            monthly_budget("1000.00", datetime(2026, 10, 1), datetime(2026, 10, 31, 23, 59)),
            expense("100.00", datetime(2026, 10, 2)),
            expense("150.00", datetime(2026, 10, 15)),
            expense("999.00", datetime(2026, 9, 29)),
        )

        progress = await aggregator.get_budget_progress(USER, BudgetPeriod.MONTHLY)

        assert progress.current_spending == Decimal("250.00")
        assert progress.target_budget == Decimal("1000.00")
        assert progress.percentage_used == 25.0
        assert progress.remaining_amount == Decimal("750.00")
        assert progress.period == BudgetPeriod.MONTHLY

    async def test_zero_target_means_zero_percent(self, aggregator, seed):
        """Without a budget the percentage is 0 regardless of spend."""
        await seed(expense("400.00", datetime(2026, 10, 2)))

        progress = await aggregator.get_budget_progress(USER, BudgetPeriod.MONTHLY)

        assert progress.percentage_used == 0.0
        assert progress.target_budget == Decimal("0.00")
        assert progress.remaining_amount == Decimal("0.00")

    async def test_remaining_never_negative(self, aggregator, seed):
        """Overspending reports more than 100% and zero remaining."""
        await seed(
            monthly_budget("100.00", datetime(2026, 10, 1), datetime(2026, 10, 31, 23, 59)),
            expense("150.00", datetime(2026, 10, 2)),
        )

        progress = await aggregator.get_budget_progress(USER, BudgetPeriod.MONTHLY)

        assert progress.percentage_used == 150.0
        assert progress.remaining_amount == Decimal("0.00")

    async def test_week_starts_on_sunday(self, aggregator, seed):
        """The weekly window runs Sunday to Saturday."""
        await seed(
            Budget(
                user_id=USER,
                amount=Decimal("200.00"),
                type=BudgetType.WEEKLY,
                start_date=datetime(2026, 10, 18),
                end_date=datetime(2026, 10, 24, 23, 59),
            ),
            expense("80.00", datetime(2026, 10, 17, 22, 0)),  # Saturday before
            expense("50.00", datetime(2026, 10, 18, 9, 0)),
        )

        progress = await aggregator.get_budget_progress(USER, BudgetPeriod.WEEKLY)

        assert progress.start_date == datetime(2026, 10, 18)
        assert progress.start_date.weekday() == 6
        assert progress.end_date.date() == date(2026, 10, 24)
        assert progress.current_spending == Decimal("50.00")
        assert progress.percentage_used == 25.0

    async def test_weekly_ignores_monthly_budget(self, aggregator, seed):
        """Weekly progress only looks at weekly budgets."""
        await seed(
            monthly_budget("1000.00", datetime(2026, 10, 1), datetime(2026, 10, 31, 23, 59)),
            expense("50.00", datetime(2026, 10, 18, 9, 0)),
        )

        progress = await aggregator.get_budget_progress(USER, BudgetPeriod.WEEKLY)

        assert progress.target_budget == Decimal("0.00")
        assert progress.percentage_used == 0.0


class TestRecentExpenses:
    """Tests for the grouped recent expenses list."""

    async def test_grouped_by_day_newest_first(self, aggregator, seed):
        """Expenses are grouped per day with per-day totals."""
        groceries = Category(user_id=USER, name="Groceries", icon="🛒", color="#00ff00")
        await seed(groceries)
        await seed(
            expense("12.50", datetime(2026, 10, 16, 10, 0)),
            expense("20.00", datetime(2026, 10, 18, 9, 0), category_id=groceries.id, description="Market"),
            expense("7.50", datetime(2026, 10, 18, 11, 0)),
            income("1000.00", datetime(2026, 10, 18, 12, 0)),
        )

        recent = await aggregator.get_recent_expenses(USER)

        assert recent.count == 3
        assert recent.total_amount == Decimal("40.00")
        assert [d.date for d in recent.days] == [datetime(2026, 10, 18), datetime(2026, 10, 16)]

        today = recent.days[0]
        assert today.total_amount == Decimal("27.50")
        assert [e.amount for e in today.expenses] == [Decimal("7.50"), Decimal("20.00")]

        categorized = today.expenses[1]
        assert categorized.category.name == "Groceries"
        assert categorized.category.icon == "🛒"
        assert categorized.category.color == "#00ff00"
        assert categorized.description == "Market"
        assert today.expenses[0].category is None

    async def test_limit(self, aggregator, seed):
        """Only the `limit` most recent expenses are returned."""
        await seed(*[
            expense(f"{day}.00", datetime(2026, 10, day, 9, 0))
            for day in range(1, 6)
        ])

        recent = await aggregator.get_recent_expenses(USER, limit=3)

        assert recent.count == 3
        assert recent.total_amount == Decimal("12.00")
        assert [d.date.day for d in recent.days] == [5, 4, 3]

    async def test_empty(self, aggregator):
        """No expenses yields no groups and zero totals."""
        recent = await aggregator.get_recent_expenses(USER)

        assert recent.days == []
        assert recent.count == 0
        assert recent.total_amount == Decimal("0.00")


class TestClearOperations:
    """Tests for the irreversible clear operations."""

    async def test_clear_transactions(self, aggregator, seed, count_rows):
        """All of the user's transactions go, other users keep theirs."""
        await seed(
            expense("10.00", datetime(2026, 10, 1)),
            income("20.00", datetime(2026, 10, 2)),
            expense("30.00", datetime(2026, 10, 3), user_id=OTHER_USER),
        )

        result = await aggregator.clear_transactions(USER)

        assert result.cleared_count == 2
        assert result.cleared_data == {"transactions": 2}
        assert result.data_type == "transactions"
        assert await count_rows(Transaction, Transaction.user_id == USER) == 0
        assert await count_rows(Transaction, Transaction.user_id == OTHER_USER) == 1

    async def test_clear_bills_removes_linked_transactions(self, aggregator, seed, count_rows):
        """Bill-linked transactions are deleted with the bills; others stay."""
        bill = Bill(user_id=USER, name="Electricity", amount=Decimal("80.00"))
        await seed(bill)
        await seed(
            expense("80.00", datetime(2026, 10, 5), bill_id=bill.id),
            expense("15.00", datetime(2026, 10, 6)),
        )

        result = await aggregator.clear_bills(USER)

        assert result.cleared_data == {"bills": 1, "transactions": 1}
        assert result.cleared_count == 1
        assert await count_rows(Bill, Bill.user_id == USER) == 0
        assert await count_rows(Transaction, Transaction.user_id == USER) == 1

    async def test_clear_savings_goals(self, aggregator, seed, count_rows):
        """Goals and SAVINGS plan items are removed together."""
        goal = SavingsGoal(user_id=USER, name="Trip", target_amount=Decimal("500.00"), current_amount=Decimal("50.00"))
        await seed(goal)
        await seed(
            savings_item("50.00", "2026-10"),
            savings_item("10.00", "2026-09"),
            PlanItem(
                user_id=USER,
                item_type=PlanItemType.EXPENSE,
                plan_type="2026-10",
                description="Rent",
                amount=Decimal("900.00"),
            ),
        )

        result = await aggregator.clear_savings_goals(USER)

        assert result.cleared_data == {"savings_goals": 1, "plan_items": 2}
        assert await count_rows(SavingsGoal, SavingsGoal.user_id == USER) == 0
        assert await count_rows(PlanItem, PlanItem.item_type == PlanItemType.SAVINGS) == 0
        assert await count_rows(PlanItem, PlanItem.item_type == PlanItemType.EXPENSE) == 1

    async def test_clear_all_keeps_default_categories(self, aggregator, seed, count_rows):
        """Everything of the user goes except default categories."""
        default_category = Category(user_id=None, name="Food", is_default=True)
        user_default = Category(user_id=USER, name="Home", is_default=True)
        custom = Category(user_id=USER, name="Hobbies")
        budget = monthly_budget("1000.00", datetime(2026, 10, 1), datetime(2026, 10, 31, 23, 59))
        bill = Bill(user_id=USER, name="Water", amount=Decimal("20.00"))
        goal = SavingsGoal(user_id=USER, name="Car", target_amount=Decimal("5000.00"), current_amount=Decimal("0"))
        await seed(default_category, user_default, custom, budget, bill, goal)
        await seed(
            CategoryAllocation(budget_id=budget.id, category_id=custom.id, amount=Decimal("100.00")),
            expense("20.00", datetime(2026, 10, 3), bill_id=bill.id, category_id=custom.id),
            expense("5.00", datetime(2026, 10, 4), category_id=default_category.id),
            savings_item("100.00", "2026-10"),
            expense("1.00", datetime(2026, 10, 4), user_id=OTHER_USER),
        )

        result = await aggregator.clear_all_user_data(USER)

        assert result.cleared_data == {
            "transactions": 2,
            "bills": 1,
            "savings_goals": 1,
            "plan_items": 1,
            "budgets": 1,
            "category_allocations": 1,
            "user_categories": 1,
        }
        assert result.cleared_count == 8
        assert await count_rows(Transaction, Transaction.user_id == USER) == 0
        assert await count_rows(Bill, Bill.user_id == USER) == 0
        assert await count_rows(SavingsGoal, SavingsGoal.user_id == USER) == 0
        assert await count_rows(PlanItem, PlanItem.user_id == USER) == 0
        assert await count_rows(Budget, Budget.user_id == USER) == 0
        assert await count_rows(CategoryAllocation) == 0
        assert await count_rows(Category, Category.is_default.is_(True)) == 2
        assert await count_rows(Category, Category.is_default.is_(False)) == 0
        assert await count_rows(Transaction, Transaction.user_id == OTHER_USER) == 1

    async def test_clear_all_is_idempotent(self, aggregator, seed):
        """A second call finds nothing left to delete."""
        await seed(expense("10.00", datetime(2026, 10, 1)), savings_item("5.00", "2026-10"))

        await aggregator.clear_all_user_data(USER)
        second = await aggregator.clear_all_user_data(USER)

        assert second.cleared_count == 0
        assert set(second.cleared_data.values()) == {0}

    async def test_clear_is_audited(self, aggregator, audit_storage, seed):
        """Each clear leaves a DATA_CLEARED event with the counts."""
        await seed(expense("10.00", datetime(2026, 10, 1)))

        await aggregator.clear_transactions(USER)

        events = await audit_storage.get_recent_events(user_id=USER)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.DATA_CLEARED
        assert events[0].details["cleared_data"] == {"transactions": 1}
