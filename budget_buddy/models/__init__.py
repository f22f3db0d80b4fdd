"""
Data Models Package

Pydantic models for everything crossing the core's boundary (parameters,
DTOs, aggregate results, audit events) and the SQLAlchemy records they are
computed from.
"""

from budget_buddy.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
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
from budget_buddy.models.params import (
    BudgetProgressParams,
    GoalListParams,
    RecentExpensesParams,
    SavingsAnalyticsParams,
    SavingsHistoryParams,
    SummaryParams,
    ValidationIssue,
)
from budget_buddy.models.records import (
    AuditRecord,
    Base,
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

__all__ = [
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Dashboard models
    "BudgetPeriod",
    "BudgetProgress",
    "CategorySummary",
    "ClearResult",
    "ExpenseDay",
    "ExpenseItem",
    "FinancialSummary",
    "RecentExpenses",
    "TodaySpending",
    # Parameter models
    "BudgetProgressParams",
    "GoalListParams",
    "RecentExpensesParams",
    "SavingsAnalyticsParams",
    "SavingsHistoryParams",
    "SummaryParams",
    "ValidationIssue",
    # Records
    "AuditRecord",
    "Base",
    "Bill",
    "Budget",
    "BudgetType",
    "Category",
    "CategoryAllocation",
    "PlanItem",
    "PlanItemType",
    "SavingsGoal",
    "Transaction",
    "TransactionType",
    # Savings models
    "AddFunds",
    "CreateSavingsGoal",
    "GoalDeleted",
    "GoalStatus",
    "HighestMonth",
    "PlanItemView",
    "SavingsAnalytics",
    "SavingsGoalView",
    "SavingsHistory",
    "SavingsHistoryMonth",
    "SavingsHistorySummary",
    "SyncResult",
    "SyncStatus",
    "UpdateSavingsGoal",
]
