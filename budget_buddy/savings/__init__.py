"""
Savings Package

Savings goals and their mirror in the monthly plan.
"""

from budget_buddy.savings.manager import (
    GoalAccessDeniedError,
    GoalAlreadyCompletedError,
    GoalConflictError,
    GoalForbiddenError,
    GoalNotFoundError,
    SavingsGoalError,
    SavingsGoalManager,
)

__all__ = [
    "SavingsGoalManager",
    # Exceptions
    "SavingsGoalError",
    "GoalNotFoundError",
    "GoalForbiddenError",
    "GoalAccessDeniedError",
    "GoalAlreadyCompletedError",
    "GoalConflictError",
]
