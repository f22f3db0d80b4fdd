"""
Dashboard Aggregation Engine

DESIGN DECISION: Every figure on the dashboard is computed from the
user's own rows at request time. Nothing is cached and nothing is
estimated; an empty result set yields zero.

The clear operations are the only writes here. Each one runs in a single
transaction, deletes dependent rows before their parents, and reports how
many rows of each kind existed before the delete.
"""

from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_buddy.audit import AuditLogger
from budget_buddy.models.dashboard import (
    BudgetPeriod,
    BudgetProgress,
    CategorySummary,
    ClearResult,
    ExpenseDay,
    ExpenseItem,
    FinancialSummary,
    RecentExpenses,
    TodaySpending,
)
from budget_buddy.models.records import (
    Bill,
    Budget,
    BudgetType,
    Category,
    CategoryAllocation,
    PlanItem,
    PlanItemType,
    SavingsGoal,
    Transaction,
    TransactionType,
)
from budget_buddy.periods import (
    days_in_month,
    end_of_day,
    end_of_month,
    end_of_week,
    start_of_day,
    start_of_month,
    start_of_week,
)
from budget_buddy.services.storage import Database


ZERO = Decimal("0.00")

Clock = Callable[[], datetime]


class DashboardAggregator:
    """
    Computes read-only financial summaries and performs user-scoped clears.

    GUARANTEES:
    - Only the caller's rows are read or deleted
    - Clears are all-or-nothing
    - Default categories are never deleted
    """

    def __init__(
        self,
        database: Database,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ):
        self._db = database
        self._audit_logger = audit_logger
        self._clock = clock or datetime.now

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    async def get_financial_summary(
        self,
        user_id: str,
        from_date: Optional[Union[date, datetime]] = None,
        to_date: Optional[Union[date, datetime]] = None,
    ) -> FinancialSummary:
        """
        Income, expense and savings totals.

        The window defaults to the current calendar month. A plain date for
        to_date covers that whole day. Savings are summed over every SAVINGS
        plan item regardless of the window.
        """
        now = self._clock()
        start = self._window_start(from_date) if from_date else start_of_month(now)
        end = self._window_end(to_date) if to_date else end_of_month(now)

        async with self._db.session() as session:
            totals_stmt = (
                select(Transaction.type, func.sum(Transaction.amount))
                .where(
                    Transaction.user_id == user_id,
                    Transaction.date >= start,
                    Transaction.date <= end,
                )
                .group_by(Transaction.type)
            )
            totals = {
                tx_type: amount or ZERO
                for tx_type, amount in (await session.execute(totals_stmt)).all()
            }

            savings_total = await self._sum(
                session,
                select(func.sum(PlanItem.amount)).where(
                    PlanItem.user_id == user_id,
                    PlanItem.item_type == PlanItemType.SAVINGS,
                ),
            )

        income_total = totals.get(TransactionType.INCOME, ZERO)
        expense_total = totals.get(TransactionType.EXPENSE, ZERO)

        return FinancialSummary(
            income_total=income_total,
            expense_total=expense_total,
            savings_total=savings_total,
            remaining_amount=income_total - expense_total - savings_total,
            start_date=start,
            end_date=end,
        )

    async def get_today_spending(self, user_id: str) -> TodaySpending:
        """
        Today's expenses against the daily share of the active monthly budget.

        The daily share uses the real length of the current month. Without
        an active monthly budget both daily and remaining budget are zero.
        """
        now = self._clock()

        async with self._db.session() as session:
            spent_stmt = select(
                func.sum(Transaction.amount),
                func.count(Transaction.id),
            ).where(
                Transaction.user_id == user_id,
                Transaction.type == TransactionType.EXPENSE,
                Transaction.date >= start_of_day(now),
                Transaction.date <= end_of_day(now),
            )
            spent, count = (await session.execute(spent_stmt)).one()
            spent = spent or ZERO

            budget = await self._active_budget(session, user_id, BudgetType.MONTHLY, now)

        daily_budget = budget.amount / days_in_month(now) if budget else ZERO

        return TodaySpending(
            total_spent_today=spent,
            transaction_count=count,
            daily_budget=daily_budget,
            remaining_budget=max(ZERO, daily_budget - spent),
            date=now,
        )

    async def get_budget_progress(
        self,
        user_id: str,
        period: BudgetPeriod,
    ) -> BudgetProgress:
        """Spending in the current week (Sunday start) or month against its budget."""
        now = self._clock()

        if period == BudgetPeriod.WEEKLY:
            start, end = start_of_week(now), end_of_week(now)
            budget_type = BudgetType.WEEKLY
        else:
            start, end = start_of_month(now), end_of_month(now)
            budget_type = BudgetType.MONTHLY

        async with self._db.session() as session:
            spending = await self._sum(
                session,
                select(func.sum(Transaction.amount)).where(
                    Transaction.user_id == user_id,
                    Transaction.type == TransactionType.EXPENSE,
                    Transaction.date >= start,
                    Transaction.date <= end,
                ),
            )
            budget = await self._active_budget(session, user_id, budget_type, now)

        target = budget.amount if budget else ZERO
        percentage_used = float(spending / target * 100) if target > 0 else 0.0

        return BudgetProgress(
            current_spending=spending,
            target_budget=target,
            percentage_used=percentage_used,
            remaining_amount=max(ZERO, target - spending),
            period=period,
            start_date=start,
            end_date=end,
        )

    async def get_recent_expenses(
        self,
        user_id: str,
        limit: int = 10,
    ) -> RecentExpenses:
        """The `limit` newest expenses, grouped by calendar day, newest day first."""
        stmt = (
            select(Transaction, Category)
            .outerjoin(Category, Transaction.category_id == Category.id)
            .where(
                Transaction.user_id == user_id,
                Transaction.type == TransactionType.EXPENSE,
            )
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
            .limit(limit)
        )

        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()

        days: "OrderedDict[date, ExpenseDay]" = OrderedDict()
        total = ZERO

        for tx, category in rows:
            day_key = tx.date.date()
            if day_key not in days:
                days[day_key] = ExpenseDay(date=start_of_day(tx.date))
            group = days[day_key]
            group.expenses.append(self._expense_item(tx, category))
            group.total_amount += tx.amount
            total += tx.amount

        return RecentExpenses(
            days=sorted(days.values(), key=lambda d: d.date, reverse=True),
            total_amount=total,
            count=len(rows),
        )

    # ------------------------------------------------------------------
    # Clear operations (irreversible)
    # ------------------------------------------------------------------

    async def clear_transactions(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ClearResult:
        """Delete every transaction of the user."""
        async with self._db.transaction() as session:
            counts = {
                "transactions": await self._count(
                    session, Transaction, Transaction.user_id == user_id
                ),
            }
            await self._delete(session, Transaction, Transaction.user_id == user_id)

        return await self._cleared(
            user_id,
            data_type="transactions",
            message="All transactions cleared successfully",
            cleared_count=counts["transactions"],
            counts=counts,
            correlation_id=correlation_id,
        )

    async def clear_bills(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ClearResult:
        """Delete every bill of the user and the transactions that reference a bill."""
        bill_linked = (Transaction.user_id == user_id, Transaction.bill_id.is_not(None))

        async with self._db.transaction() as session:
            counts = {
                "bills": await self._count(session, Bill, Bill.user_id == user_id),
                "transactions": await self._count(session, Transaction, *bill_linked),
            }
            await self._delete(session, Transaction, *bill_linked)
            await self._delete(session, Bill, Bill.user_id == user_id)

        return await self._cleared(
            user_id,
            data_type="bills",
            message="All bills and related transactions cleared successfully",
            cleared_count=counts["bills"],
            counts=counts,
            correlation_id=correlation_id,
        )

    async def clear_savings_goals(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ClearResult:
        """Delete every savings goal of the user and all SAVINGS plan items."""
        savings_items = (
            PlanItem.user_id == user_id,
            PlanItem.item_type == PlanItemType.SAVINGS,
        )

        async with self._db.transaction() as session:
            counts = {
                "savings_goals": await self._count(
                    session, SavingsGoal, SavingsGoal.user_id == user_id
                ),
                "plan_items": await self._count(session, PlanItem, *savings_items),
            }
            await self._delete(session, PlanItem, *savings_items)
            await self._delete(session, SavingsGoal, SavingsGoal.user_id == user_id)

        return await self._cleared(
            user_id,
            data_type="savings_goals",
            message="All savings goals and related plan items cleared successfully",
            cleared_count=counts["savings_goals"],
            counts=counts,
            correlation_id=correlation_id,
        )

    async def clear_all_user_data(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ClearResult:
        """
        Reset all financial data of the user.

        Default categories are kept. Deletion order follows the foreign keys:
        transactions, category allocations, plan items, goals, bills,
        budgets, user-created categories.
        """
        user_budget_ids = select(Budget.id).where(Budget.user_id == user_id)
        user_category_ids = select(Category.id).where(
            Category.user_id == user_id,
            Category.is_default.is_(False),
        )
        allocations = (
            CategoryAllocation.budget_id.in_(user_budget_ids)
            | CategoryAllocation.category_id.in_(user_category_ids)
        )
        user_categories = (Category.user_id == user_id, Category.is_default.is_(False))

        async with self._db.transaction() as session:
            counts = {
                "transactions": await self._count(
                    session, Transaction, Transaction.user_id == user_id
                ),
                "bills": await self._count(session, Bill, Bill.user_id == user_id),
                "savings_goals": await self._count(
                    session, SavingsGoal, SavingsGoal.user_id == user_id
                ),
                "plan_items": await self._count(session, PlanItem, PlanItem.user_id == user_id),
                "budgets": await self._count(session, Budget, Budget.user_id == user_id),
                "category_allocations": await self._count(
                    session, CategoryAllocation, allocations
                ),
                "user_categories": await self._count(session, Category, *user_categories),
            }

            await self._delete(session, Transaction, Transaction.user_id == user_id)
            await self._delete(session, CategoryAllocation, allocations)
            await self._delete(session, PlanItem, PlanItem.user_id == user_id)
            await self._delete(session, SavingsGoal, SavingsGoal.user_id == user_id)
            await self._delete(session, Bill, Bill.user_id == user_id)
            await self._delete(session, Budget, Budget.user_id == user_id)
            await self._delete(session, Category, *user_categories)

        return await self._cleared(
            user_id,
            data_type="all_user_data",
            message="All user data cleared successfully",
            cleared_count=sum(counts.values()),
            counts=counts,
            correlation_id=correlation_id,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _cleared(
        self,
        user_id: str,
        data_type: str,
        message: str,
        cleared_count: int,
        counts: dict[str, int],
        correlation_id: Optional[UUID],
    ) -> ClearResult:
        result = ClearResult(
            message=message,
            data_type=data_type,
            cleared_count=cleared_count,
            cleared_data=counts,
            timestamp=self._clock(),
        )
        if self._audit_logger:
            await self._audit_logger.log_data_cleared(
                user_id=user_id,
                data_type=data_type,
                cleared_data=counts,
                correlation_id=correlation_id,
            )
        return result

    async def _active_budget(
        self,
        session: AsyncSession,
        user_id: str,
        budget_type: BudgetType,
        moment: datetime,
    ) -> Optional[Budget]:
        """First budget of the type whose validity window contains `moment`."""
        stmt = (
            select(Budget)
            .where(
                Budget.user_id == user_id,
                Budget.type == budget_type,
                Budget.start_date <= moment,
                Budget.end_date >= moment,
            )
            .order_by(Budget.created_at)
            .limit(1)
        )
        return await session.scalar(stmt)

    @staticmethod
    async def _sum(session: AsyncSession, stmt) -> Decimal:
        value = await session.scalar(stmt)
        return value if value is not None else ZERO

    @staticmethod
    async def _count(session: AsyncSession, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)
        return await session.scalar(stmt) or 0

    @staticmethod
    async def _delete(session: AsyncSession, model, *criteria) -> None:
        await session.execute(
            delete(model).where(*criteria).execution_options(synchronize_session=False)
        )

    @staticmethod
    def _window_start(value: Union[date, datetime]) -> datetime:
        return value if isinstance(value, datetime) else start_of_day(value)

    @staticmethod
    def _window_end(value: Union[date, datetime]) -> datetime:
        return value if isinstance(value, datetime) else end_of_day(value)

    @staticmethod
    def _expense_item(tx: Transaction, category: Optional[Category]) -> ExpenseItem:
        return ExpenseItem(
            id=tx.id,
            amount=tx.amount,
            date=tx.date,
            description=tx.description,
            category_id=tx.category_id,
            bill_id=tx.bill_id,
            category=CategorySummary.model_validate(category) if category else None,
        )
