"""
Request Parameter Models

The transport hands the core raw strings (query parameters, form fields).
These models describe what each operation accepts once parsed. Parsing and
error reporting live in budget_buddy.validation.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from budget_buddy.models.dashboard import BudgetPeriod
from budget_buddy.models.savings import GoalStatus


PERIOD_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class _Params(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class SummaryParams(_Params):
    """Optional window for the financial summary (ISO dates)."""

    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @model_validator(mode='after')
    def validate_window(self) -> 'SummaryParams':
        if self.from_date and self.to_date and self.to_date < self.from_date:
            raise ValueError("to_date cannot be before from_date")
        return self


class BudgetProgressParams(_Params):
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    @field_validator('period', mode='before')
    @classmethod
    def normalise_period(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class RecentExpensesParams(_Params):
    limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of most recent expenses"
    )


class GoalListParams(_Params):
    status: Optional[GoalStatus] = None

    @field_validator('status', mode='before')
    @classmethod
    def normalise_status(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v


class SavingsAnalyticsParams(_Params):
    period: Optional[str] = Field(
        default=None,
        pattern=PERIOD_KEY_PATTERN,
        description="YYYY-MM period key, current month when omitted"
    )


class SavingsHistoryParams(_Params):
    months: int = Field(
        default=6,
        ge=1,
        le=36,
        description="How many calendar months, including the current one"
    )
