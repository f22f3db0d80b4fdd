"""
Savings Goal Manager

Goals live in `savings_goals`; every contribution is mirrored into a
SAVINGS plan item for the month it happened in, which is what the dashboard
adds up as the user's savings total.

DESIGN DECISION: The goal row and its plan item are always written in the
same transaction. If either write fails, neither is kept.

Plan items are linked to their goal by `goal_id`. Rows without a goal_id
(written before the link existed) are still matched the old way, by the
goal name appearing in the description.
"""

import math
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import AsyncIterator, Callable, Optional, Union
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from budget_buddy.audit import AuditLogger
from budget_buddy.config import get_settings
from budget_buddy.models.records import CENT, PlanItem, PlanItemType, SavingsGoal, to_money
from budget_buddy.models.savings import (
    AddFunds,
    CreateSavingsGoal,
    GoalDeleted,
    GoalStatus,
    HighestMonth,
    PlanItemView,
    SavingsAnalytics,
    SavingsGoalView,
    SavingsHistory,
    SavingsHistoryMonth,
    SavingsHistorySummary,
    SyncResult,
    SyncStatus,
    UpdateSavingsGoal,
)
from budget_buddy.periods import period_key, period_name, shift_months
from budget_buddy.services.storage import Database


logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")

Clock = Callable[[], datetime]
GoalId = Union[UUID, str]


class SavingsGoalError(Exception):
    """Base exception for savings goal operations."""

    def __init__(self, goal_id: GoalId, message: str):
        self.goal_id = goal_id
        super().__init__(message)


class GoalNotFoundError(SavingsGoalError):
    """The referenced goal does not exist."""

    def __init__(self, goal_id: GoalId):
        super().__init__(goal_id, "Goal not found")


class GoalForbiddenError(SavingsGoalError):
    """The goal exists but the operation is not allowed."""
    pass


class GoalAccessDeniedError(GoalForbiddenError):
    """The goal belongs to another user."""

    def __init__(self, goal_id: GoalId):
        super().__init__(goal_id, "Access to resource denied")


class GoalAlreadyCompletedError(GoalForbiddenError):
    """The operation needs a goal that is not completed yet."""
    pass


class GoalConflictError(SavingsGoalError):
    """The goal was changed by another request in the meantime."""

    def __init__(self, goal_id: GoalId):
        super().__init__(
            goal_id,
            "Goal was modified by another request. Reload it and try again.",
        )


class SavingsGoalManager:
    """
    CRUD and balance mutations on savings goals, plus the dashboard mirror.

    Every mutation checks ownership first: a missing goal raises
    GoalNotFoundError, someone else's goal raises GoalAccessDeniedError.
    """

    def __init__(
        self,
        database: Database,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        sync_tolerance: Optional[Decimal] = None,
    ):
        self._db = database
        self._audit_logger = audit_logger
        self._clock = clock or datetime.now
        if sync_tolerance is None:
            sync_tolerance = get_settings().app.sync_tolerance
        self._sync_tolerance = to_money(sync_tolerance)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_goals(
        self,
        user_id: str,
        status: Optional[Union[GoalStatus, str]] = None,
    ) -> list[SavingsGoalView]:
        """All goals of the user, newest first, optionally only active or completed ones."""
        stmt = (
            select(SavingsGoal)
            .where(SavingsGoal.user_id == user_id)
            .order_by(SavingsGoal.created_at.desc())
        )
        if status is not None:
            status = GoalStatus(status)
            stmt = stmt.where(SavingsGoal.completed.is_(status == GoalStatus.COMPLETED))

        async with self._db.session() as session:
            goals = (await session.scalars(stmt)).all()

        now = self._clock()
        return [self._view(goal, now) for goal in goals]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_goal(
        self,
        user_id: str,
        dto: CreateSavingsGoal,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoalView:
        """
        Create a goal. An initial balance is mirrored into a plan item for
        the current month in the same transaction.
        """
        dto = CreateSavingsGoal.model_validate(dto)
        now = self._clock()

        async with self._db.transaction() as session:
            goal = SavingsGoal(
                user_id=user_id,
                name=dto.name,
                target_amount=to_money(dto.target_amount),
                current_amount=to_money(dto.current_amount),
                target_date=dto.target_date,
                notes=dto.notes,
                completed=False,
            )
            session.add(goal)
            await session.flush()

            if goal.current_amount > 0:
                session.add(self._plan_item(
                    goal,
                    amount=goal.current_amount,
                    notes=f"Initial savings for {goal.name}",
                    key=period_key(now),
                ))

        if self._audit_logger:
            await self._audit_logger.log_goal_created(
                user_id=user_id,
                goal_id=goal.id,
                name=goal.name,
                target_amount=str(goal.target_amount),
                initial_amount=str(goal.current_amount),
                correlation_id=correlation_id,
            )

        return self._view(goal, now)

    async def update_goal(
        self,
        user_id: str,
        goal_id: GoalId,
        dto: UpdateSavingsGoal,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoalView:
        """
        Apply the provided fields. A rename relabels the goal's plan items
        in the same transaction.
        """
        dto = UpdateSavingsGoal.model_validate(dto)
        changes = dto.model_dump(exclude_unset=True)
        changed_fields: list[str] = []
        renamed = 0

        async with self._mutation(user_id, goal_id, "update", correlation_id) as session:
            goal = await self._owned_goal(session, user_id, goal_id)
            old_name = goal.name

            for field, value in changes.items():
                if value is None and field != "notes":
                    continue
                if field == "target_amount":
                    value = to_money(value)
                if getattr(goal, field) != value:
                    setattr(goal, field, value)
                    changed_fields.append(field)

            if "name" in changed_fields:
                result = await session.execute(
                    update(PlanItem)
                    .where(self._plan_items_of(user_id, goal.id, old_name))
                    .values(
                        description=f"Savings: {goal.name}",
                        notes=f'Updated from "{old_name}" to "{goal.name}"',
                        goal_id=goal.id,
                    )
                    .execution_options(synchronize_session=False)
                )
                renamed = result.rowcount

        if self._audit_logger:
            await self._audit_logger.log_goal_updated(
                user_id=user_id,
                goal_id=goal.id,
                changed_fields=changed_fields,
                renamed_plan_items=renamed,
                correlation_id=correlation_id,
            )

        return self._view(goal, self._clock())

    async def delete_goal(
        self,
        user_id: str,
        goal_id: GoalId,
        correlation_id: Optional[UUID] = None,
    ) -> GoalDeleted:
        """Delete the goal together with its plan items."""
        async with self._mutation(user_id, goal_id, "delete", correlation_id) as session:
            goal = await self._owned_goal(session, user_id, goal_id)
            result = await session.execute(
                delete(PlanItem)
                .where(self._plan_items_of(user_id, goal.id, goal.name))
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount
            await session.delete(goal)

        if self._audit_logger:
            await self._audit_logger.log_goal_deleted(
                user_id=user_id,
                goal_id=goal.id,
                name=goal.name,
                removed_plan_items=removed,
                correlation_id=correlation_id,
            )

        return GoalDeleted(
            message="Goal deleted successfully",
            goal_id=goal.id,
            removed_plan_items=removed,
        )

    async def add_funds(
        self,
        user_id: str,
        goal_id: GoalId,
        dto: AddFunds,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoalView:
        """
        Deposit into a goal.

        Raises GoalAlreadyCompletedError for completed goals without touching
        anything. Otherwise increments the balance, recomputes `completed`,
        and adds the deposit to this month's plan item (creating it if needed).
        """
        dto = AddFunds.model_validate(dto)
        amount = to_money(dto.amount)
        now = self._clock()
        key = period_key(now)

        async with self._mutation(user_id, goal_id, "add_funds", correlation_id) as session:
            goal = await self._owned_goal(session, user_id, goal_id)
            if goal.completed:
                raise GoalAlreadyCompletedError(goal.id, "Cannot add funds to a completed goal")

            goal.current_amount = goal.current_amount + amount
            goal.completed = goal.current_amount >= goal.target_amount

            item = await session.scalar(
                select(PlanItem)
                .where(
                    self._plan_items_of(user_id, goal.id, goal.name),
                    PlanItem.plan_type == key,
                )
                .order_by(PlanItem.created_at)
                .limit(1)
            )
            if item is not None:
                item.amount = item.amount + amount
                item.notes = f"{item.notes or ''}\nAdded ${amount} on {now.date().isoformat()}"
                item.goal_id = goal.id
            else:
                session.add(self._plan_item(
                    goal,
                    amount=amount,
                    notes=f"Funds added to {goal.name}",
                    key=key,
                ))

        if self._audit_logger:
            await self._audit_logger.log_funds_added(
                user_id=user_id,
                goal_id=goal.id,
                amount=str(amount),
                new_balance=str(goal.current_amount),
                completed=goal.completed,
                period=key,
                correlation_id=correlation_id,
            )

        return self._view(goal, now)

    async def complete_goal(
        self,
        user_id: str,
        goal_id: GoalId,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoalView:
        """Mark a goal completed whether or not its target was reached."""
        async with self._mutation(user_id, goal_id, "complete", correlation_id) as session:
            goal = await self._owned_goal(session, user_id, goal_id)
            if goal.completed:
                raise GoalAlreadyCompletedError(goal.id, "Goal is already completed")
            goal.completed = True

        if self._audit_logger:
            await self._audit_logger.log_goal_completed(
                user_id=user_id,
                goal_id=goal.id,
                current_amount=str(goal.current_amount),
                target_amount=str(goal.target_amount),
                correlation_id=correlation_id,
            )

        return self._view(goal, self._clock())

    async def sync_goals_with_dashboard(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SyncResult:
        """
        Rebuild this month's SAVINGS plan items from goal balances.

        Deletes the current month's SAVINGS items and writes one item per
        goal with a positive balance, then compares the stored plan total
        with the sum of all goal balances.
        """
        now = self._clock()
        key = period_key(now)

        async with self._db.transaction() as session:
            goals = (await session.scalars(
                select(SavingsGoal)
                .where(SavingsGoal.user_id == user_id)
                .order_by(SavingsGoal.created_at)
            )).all()

            await session.execute(
                delete(PlanItem)
                .where(
                    PlanItem.user_id == user_id,
                    PlanItem.item_type == PlanItemType.SAVINGS,
                    PlanItem.plan_type == key,
                )
                .execution_options(synchronize_session=False)
            )

            synced = 0
            for goal in goals:
                if goal.current_amount > 0:
                    session.add(self._plan_item(
                        goal,
                        amount=goal.current_amount,
                        notes=f"Synced savings for {goal.name}",
                        key=key,
                    ))
                    synced += 1
            await session.flush()

            dashboard_total = await session.scalar(
                select(func.sum(PlanItem.amount)).where(
                    PlanItem.user_id == user_id,
                    PlanItem.item_type == PlanItemType.SAVINGS,
                    PlanItem.plan_type == key,
                )
            ) or ZERO

        actual_total = sum((goal.current_amount for goal in goals), ZERO)
        status = SyncStatus.SYNCED if actual_total == dashboard_total else SyncStatus.ERROR

        if status == SyncStatus.ERROR:
            logger.error(
                "savings_sync_mismatch",
                user_id=user_id,
                period=key,
                actual=str(actual_total),
                dashboard=str(dashboard_total),
            )

        if self._audit_logger:
            await self._audit_logger.log_goals_synced(
                user_id=user_id,
                period=key,
                goals_count=len(goals),
                synced_items_count=synced,
                sync_status=status.value,
                correlation_id=correlation_id,
            )

        return SyncResult(
            message="Savings goals synced with dashboard successfully",
            goals_count=len(goals),
            total_actual_savings=actual_total,
            total_dashboard_savings=dashboard_total,
            synced_items_count=synced,
            sync_status=status,
            period=key,
        )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_savings_analytics(
        self,
        user_id: str,
        period: Optional[str] = None,
    ) -> SavingsAnalytics:
        """
        Compare goal balances (all time) with the plan items of one month.

        sync_status is `synced` when the two totals differ by no more than
        the configured tolerance.
        """
        now = self._clock()
        key = period or period_key(now)

        async with self._db.session() as session:
            goals = (await session.scalars(
                select(SavingsGoal)
                .where(SavingsGoal.user_id == user_id)
                .order_by(SavingsGoal.created_at.desc())
            )).all()
            items = (await session.scalars(
                select(PlanItem)
                .where(
                    PlanItem.user_id == user_id,
                    PlanItem.item_type == PlanItemType.SAVINGS,
                    PlanItem.plan_type == key,
                )
                .order_by(PlanItem.created_at)
            )).all()

        actual = sum((goal.current_amount for goal in goals), ZERO)
        target = sum((goal.target_amount for goal in goals), ZERO)
        planned = sum((item.amount for item in items), ZERO)

        savings_progress = round(float(actual / target * 100), 2) if target > 0 else 0.0
        # With no plan, actual counts as 100% of it
        plan_vs_actual = round(float(actual / planned * 100), 2) if planned > 0 else 100.0
        in_sync = abs(actual - planned) <= self._sync_tolerance

        return SavingsAnalytics(
            period=key,
            total_actual_savings=actual,
            total_target_savings=target,
            dashboard_savings_total=planned,
            savings_progress=savings_progress,
            plan_vs_actual=plan_vs_actual,
            remaining_to_target=max(ZERO, target - actual),
            sync_status=SyncStatus.SYNCED if in_sync else SyncStatus.NEEDS_SYNC,
            goals=[self._view(goal, now) for goal in goals],
            planned_items=[PlanItemView.model_validate(item) for item in items],
        )

    async def get_savings_history(
        self,
        user_id: str,
        months: int = 6,
    ) -> SavingsHistory:
        """
        Monthly SAVINGS totals for the last `months` calendar months,
        including the current one, oldest first.
        Zero or None means six months.
        """
        months = months or 6
        now = self._clock()
        keys = [period_key(shift_months(now, -offset)) for offset in range(months)]

        async with self._db.session() as session:
            items = (await session.scalars(
                select(PlanItem)
                .where(
                    PlanItem.user_id == user_id,
                    PlanItem.item_type == PlanItemType.SAVINGS,
                    PlanItem.plan_type.in_(keys),
                )
                .order_by(PlanItem.created_at)
            )).all()

        by_period: dict[str, list[PlanItem]] = defaultdict(list)
        for item in items:
            by_period[item.plan_type].append(item)

        history = []
        for key in reversed(keys):
            month_items = by_period[key]
            history.append(SavingsHistoryMonth(
                period=key,
                period_name=period_name(key),
                total_saved=sum((item.amount for item in month_items), ZERO),
                items_count=len(month_items),
                items=[PlanItemView.model_validate(item) for item in month_items],
            ))

        total = sum((month.total_saved for month in history), ZERO)
        average = (total / months).quantize(CENT, rounding=ROUND_HALF_UP)

        # Ties go to the most recent month
        highest = None
        for month in reversed(history):
            if month.total_saved > (highest.total_saved if highest else ZERO):
                highest = month

        return SavingsHistory(
            summary=SavingsHistorySummary(
                total_months=months,
                total_across_all_months=total,
                average_per_month=average,
                highest_month=HighestMonth(
                    period=highest.period_name if highest else None,
                    amount=highest.total_saved if highest else ZERO,
                ),
            ),
            history=history,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _mutation(
        self,
        user_id: str,
        goal_id: GoalId,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> AsyncIterator[AsyncSession]:
        """
        Transaction for a single-goal mutation.

        Rejections are audited after the rollback; a version clash at flush
        becomes GoalConflictError.
        """
        try:
            async with self._db.transaction() as session:
                yield session
        except StaleDataError as e:
            logger.warning("savings_goal_conflict", goal_id=str(goal_id), operation=operation)
            raise GoalConflictError(goal_id) from e
        except GoalForbiddenError as e:
            await self._audit_rejection(user_id, e, operation, correlation_id)
            raise

    async def _audit_rejection(
        self,
        user_id: str,
        error: GoalForbiddenError,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if not self._audit_logger:
            return
        goal_id = self._parse_goal_id(error.goal_id)
        if isinstance(error, GoalAccessDeniedError):
            await self._audit_logger.log_access_denied(
                user_id=user_id,
                goal_id=goal_id,
                operation=operation,
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_operation_rejected(
                user_id=user_id,
                goal_id=goal_id,
                operation=operation,
                reason=str(error),
                correlation_id=correlation_id,
            )

    async def _owned_goal(
        self,
        session: AsyncSession,
        user_id: str,
        goal_id: GoalId,
    ) -> SavingsGoal:
        parsed = self._parse_goal_id(goal_id)
        goal = await session.get(SavingsGoal, parsed) if parsed else None
        if goal is None:
            raise GoalNotFoundError(goal_id)
        if goal.user_id != user_id:
            raise GoalAccessDeniedError(goal.id)
        return goal

    @staticmethod
    def _parse_goal_id(goal_id: GoalId) -> Optional[UUID]:
        if isinstance(goal_id, UUID):
            return goal_id
        try:
            return UUID(str(goal_id))
        except ValueError:
            return None

    @staticmethod
    def _plan_items_of(user_id: str, goal_id: UUID, goal_name: str):
        """SAVINGS plan items belonging to a goal: linked by id, or unlinked and named after it."""
        return and_(
            PlanItem.user_id == user_id,
            PlanItem.item_type == PlanItemType.SAVINGS,
            or_(
                PlanItem.goal_id == goal_id,
                and_(
                    PlanItem.goal_id.is_(None),
                    PlanItem.description.contains(goal_name, autoescape=True),
                ),
            ),
        )

    @staticmethod
    def _plan_item(goal: SavingsGoal, amount: Decimal, notes: str, key: str) -> PlanItem:
        return PlanItem(
            user_id=goal.user_id,
            item_type=PlanItemType.SAVINGS,
            plan_type=key,
            description=f"Savings: {goal.name}",
            amount=amount,
            notes=notes,
            goal_id=goal.id,
        )

    @staticmethod
    def _view(goal: SavingsGoal, now: datetime) -> SavingsGoalView:
        if goal.target_amount > 0:
            progress = min(100.0, float(goal.current_amount / goal.target_amount * 100))
        else:
            progress = 0.0

        days_remaining = None
        if goal.target_date is not None:
            days_remaining = max(0, math.ceil((goal.target_date - now) / timedelta(days=1)))

        return SavingsGoalView(
            id=goal.id,
            user_id=goal.user_id,
            name=goal.name,
            target_amount=goal.target_amount,
            current_amount=goal.current_amount,
            target_date=goal.target_date,
            notes=goal.notes,
            completed=goal.completed,
            created_at=goal.created_at,
            updated_at=goal.updated_at,
            progress_percentage=progress,
            days_remaining=days_remaining,
        )
