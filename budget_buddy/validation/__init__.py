"""
Validation Package

Turns raw request values into typed parameters and reports what is wrong.
"""

from budget_buddy.validation.validator import (
    ParameterValidationError,
    RequestValidator,
    format_issues,
)

__all__ = [
    "RequestValidator",
    "ParameterValidationError",
    "format_issues",
]
