"""
Dashboard Result Models

Plain aggregate records returned by the dashboard aggregator. The caller
serializes them however its transport needs (model_dump / model_dump_json).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BudgetPeriod(str, Enum):
    """Period a budget progress report covers."""
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class FinancialSummary(BaseModel):
    """
    Income, expense and savings totals for a window.

    NOTE: savings_total is NOT window-scoped. It is the sum of every SAVINGS
    plan item the user has, across all periods.
    """

    income_total: Decimal
    expense_total: Decimal
    savings_total: Decimal
    remaining_amount: Decimal = Field(
        ...,
        description="income_total - expense_total - savings_total"
    )
    start_date: datetime
    end_date: datetime


class TodaySpending(BaseModel):
    """Today's expenses against the daily share of the monthly budget."""

    total_spent_today: Decimal
    transaction_count: int = Field(ge=0)
    daily_budget: Decimal = Field(
        ...,
        description="Active monthly budget divided by the number of days in the current month"
    )
    remaining_budget: Decimal = Field(ge=0)
    date: datetime


class BudgetProgress(BaseModel):
    """Spending against the active budget for a week or a month."""

    current_spending: Decimal
    target_budget: Decimal
    percentage_used: float = Field(ge=0)
    remaining_amount: Decimal = Field(ge=0)
    period: BudgetPeriod
    start_date: datetime
    end_date: datetime


class CategorySummary(BaseModel):
    """Category display fields attached to an expense."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None


class ExpenseItem(BaseModel):
    """A single expense transaction as shown on the dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    amount: Decimal
    date: datetime
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    bill_id: Optional[UUID] = None
    category: Optional[CategorySummary] = None


class ExpenseDay(BaseModel):
    """Expenses of one calendar day with the day's running total."""

    date: datetime = Field(
        ...,
        description="Start of the day the expenses belong to"
    )
    expenses: list[ExpenseItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")


class RecentExpenses(BaseModel):
    """Most recent expenses grouped by day, newest day first."""

    days: list[ExpenseDay] = Field(default_factory=list)
    total_amount: Decimal
    count: int = Field(ge=0)


class ClearResult(BaseModel):
    """
    Confirmation of an irreversible clear operation.

    cleared_data holds the pre-deletion count per entity type.
    """

    message: str
    data_type: str
    cleared_count: int = Field(ge=0)
    cleared_data: dict[str, int] = Field(default_factory=dict)
    timestamp: datetime
