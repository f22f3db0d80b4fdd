"""
Request Parameter Validation

A transport (query string, form, UI widgets) hands the core a mapping of raw
values. RequestValidator turns it into the typed parameter models, or raises
ParameterValidationError carrying one ValidationIssue per problem.

Two stages, mirroring how issues are reported:

STAGE 1 - SCHEMA: types, formats, ranges (pydantic does the work).
STAGE 2 - SEMANTIC: checks that need configuration, e.g. the configured
    ceiling for the recent-expenses limit.

Validation never silently fixes values; anything out of range is reported.
"""

from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from budget_buddy.config import get_settings
from budget_buddy.models.params import (
    BudgetProgressParams,
    GoalListParams,
    RecentExpensesParams,
    SavingsAnalyticsParams,
    SavingsHistoryParams,
    SummaryParams,
    ValidationIssue,
)
from budget_buddy.models.savings import AddFunds, CreateSavingsGoal, UpdateSavingsGoal


P = TypeVar("P", bound=BaseModel)


class ParameterValidationError(ValueError):
    """Malformed request input."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
        super().__init__(f"Invalid parameters: {summary}")


def _issues_from(error: ValidationError) -> list[ValidationIssue]:
    issues = []
    for item in error.errors():
        field = ".".join(str(part) for part in item.get("loc", ())) or "request"
        issues.append(ValidationIssue(
            field=field,
            issue_type=item.get("type", "invalid"),
            message=item.get("msg", "Invalid value"),
        ))
    return issues


def _without_blanks(raw: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Drop keys whose value is None or an empty string (an absent query parameter)."""
    if not raw:
        return {}
    return {
        key: value
        for key, value in raw.items()
        if value is not None and not (isinstance(value, str) and not value.strip())
    }


class RequestValidator:
    """Parses raw request mappings into parameter models and DTOs."""

    def __init__(self):
        self._settings = get_settings().app

    def _parse(self, model: Type[P], raw: Optional[Mapping[str, Any]]) -> P:
        try:
            return model.model_validate(_without_blanks(raw))
        except ValidationError as e:
            raise ParameterValidationError(_issues_from(e)) from e

    # -- Dashboard ------------------------------------------------------

    def summary(self, raw: Optional[Mapping[str, Any]] = None) -> SummaryParams:
        return self._parse(SummaryParams, raw)

    def budget_progress(self, raw: Optional[Mapping[str, Any]] = None) -> BudgetProgressParams:
        return self._parse(BudgetProgressParams, raw)

    def recent_expenses(self, raw: Optional[Mapping[str, Any]] = None) -> RecentExpensesParams:
        """
        Parse the recent-expenses limit.

        Missing limit falls back to the configured default; a limit above the
        configured maximum is rejected.
        """
        values = _without_blanks(raw)
        values.setdefault("limit", self._settings.default_recent_expenses_limit)
        params = self._parse(RecentExpensesParams, values)

        if params.limit > self._settings.max_recent_expenses_limit:
            raise ParameterValidationError([ValidationIssue(
                field="limit",
                issue_type="out_of_range",
                message=(
                    f"limit must be at most "
                    f"{self._settings.max_recent_expenses_limit}"
                ),
            )])
        return params

    # -- Savings --------------------------------------------------------

    def goal_list(self, raw: Optional[Mapping[str, Any]] = None) -> GoalListParams:
        return self._parse(GoalListParams, raw)

    def savings_analytics(self, raw: Optional[Mapping[str, Any]] = None) -> SavingsAnalyticsParams:
        return self._parse(SavingsAnalyticsParams, raw)

    def savings_history(self, raw: Optional[Mapping[str, Any]] = None) -> SavingsHistoryParams:
        values = _without_blanks(raw)
        values.setdefault("months", self._settings.default_history_months)
        return self._parse(SavingsHistoryParams, values)

    def create_goal(self, raw: Mapping[str, Any]) -> CreateSavingsGoal:
        return self._parse(CreateSavingsGoal, raw)

    def update_goal(self, raw: Mapping[str, Any]) -> UpdateSavingsGoal:
        """
        Partial update body. Explicit None values are kept so `notes` can be
        cleared; only the other fields treat None as "not provided".
        """
        try:
            return UpdateSavingsGoal.model_validate(dict(raw))
        except ValidationError as e:
            raise ParameterValidationError(_issues_from(e)) from e

    def add_funds(self, raw: Mapping[str, Any]) -> AddFunds:
        return self._parse(AddFunds, raw)


def format_issues(issues: list[ValidationIssue]) -> str:
    """
    One line per issue, for showing to a user.
    """
    if not issues:
        return "✅ All parameters are valid."
    lines = ["❌ Some values need attention:"]
    for issue in issues:
        lines.append(f"  • {issue.field}: {issue.message}")
    return "\n".join(lines)
