"""
Savings Goal Models

Input DTOs (validated before they reach the manager) and the annotated
records the savings goal manager returns.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GoalStatus(str, Enum):
    """Filter for listing goals."""
    ACTIVE = "active"
    COMPLETED = "completed"


class SyncStatus(str, Enum):
    """
    Agreement between goal balances and their plan-item mirror.

    SYNCED / ERROR are reported by the repair operation,
    SYNCED / NEEDS_SYNC by analytics.
    """
    SYNCED = "synced"
    NEEDS_SYNC = "needs_sync"
    ERROR = "error"


# =============================================================================
# INPUT DTOs
# =============================================================================

def _local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes become naive local time; stored datetimes carry no zone."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class CreateSavingsGoal(BaseModel):
    """Fields for a new savings goal."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Goal name"
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount to reach"
    )
    current_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Amount already saved when the goal is created"
    )
    target_date: Optional[datetime] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    @field_validator('target_date')
    @classmethod
    def target_date_as_local(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_naive(v)


class UpdateSavingsGoal(BaseModel):
    """
    Partial update. Only fields that were explicitly provided are applied.

    name, target_amount and target_date are ignored when given as None;
    notes may be cleared by sending None.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=200
    )
    target_amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        decimal_places=2
    )
    target_date: Optional[datetime] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    @field_validator('target_date')
    @classmethod
    def target_date_as_local(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _local_naive(v)


class AddFunds(BaseModel):
    """A deposit towards a goal."""

    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount to add"
    )


# =============================================================================
# RESULT RECORDS
# =============================================================================

class SavingsGoalView(BaseModel):
    """A goal plus its computed progress fields."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    target_date: Optional[datetime] = None
    notes: Optional[str] = None
    completed: bool
    created_at: datetime
    updated_at: datetime

    progress_percentage: float = Field(ge=0, le=100)
    days_remaining: Optional[int] = Field(default=None, ge=0)


class PlanItemView(BaseModel):
    """A SAVINGS plan item."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    description: str
    amount: Decimal
    notes: Optional[str] = None
    plan_type: str
    goal_id: Optional[UUID] = None
    created_at: datetime


class GoalDeleted(BaseModel):
    message: str
    goal_id: UUID
    removed_plan_items: int = Field(ge=0)


class SyncResult(BaseModel):
    """Outcome of rebuilding the current month's plan items from goal balances."""

    message: str
    goals_count: int = Field(ge=0)
    total_actual_savings: Decimal
    total_dashboard_savings: Decimal
    synced_items_count: int = Field(ge=0)
    sync_status: SyncStatus
    period: str


class SavingsAnalytics(BaseModel):
    """Actual goal balances compared with the plan for a period."""

    period: str
    total_actual_savings: Decimal
    total_target_savings: Decimal
    dashboard_savings_total: Decimal
    savings_progress: float
    plan_vs_actual: float
    remaining_to_target: Decimal
    sync_status: SyncStatus
    goals: list[SavingsGoalView] = Field(default_factory=list)
    planned_items: list[PlanItemView] = Field(default_factory=list)


class SavingsHistoryMonth(BaseModel):
    period: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="YYYY-MM period key"
    )
    period_name: str
    total_saved: Decimal
    items_count: int = Field(ge=0)
    items: list[PlanItemView] = Field(default_factory=list)


class HighestMonth(BaseModel):
    period: Optional[str] = Field(
        default=None,
        description="Display name of the best month, None when nothing was saved"
    )
    amount: Decimal = Decimal("0.00")


class SavingsHistorySummary(BaseModel):
    total_months: int = Field(ge=1)
    total_across_all_months: Decimal
    average_per_month: Decimal
    highest_month: HighestMonth


class SavingsHistory(BaseModel):
    """Monthly savings totals, oldest month first."""

    summary: SavingsHistorySummary
    history: list[SavingsHistoryMonth] = Field(default_factory=list)
