"""
Relational Records for Budget Buddy

SQLAlchemy ORM tables for everything the dashboard and savings components
read or write. Every row is owned by a user identifier; the identity itself
is supplied by the caller and is not modelled here.

DESIGN DECISION: Money is stored as an integer number of minor units (cents)
and surfaced as Decimal. Sums computed by the database are exact, so totals
can be compared for equality without float drift.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


CENT = Decimal("0.01")


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class BudgetType(str, Enum):
    """Budget validity granularity."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class PlanItemType(str, Enum):
    """
    Plan item discriminator.

    Only SAVINGS rows are produced by this backend; the others exist in the
    shared ledger and are left alone except by clear-all.
    """
    SAVINGS = "SAVINGS"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


def _enum_column(enum_cls: type[Enum]) -> SqlEnum:
    return SqlEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


def _now() -> datetime:
    return datetime.now()


# =============================================================================
# COLUMN TYPES
# =============================================================================

class Money(TypeDecorator):
    """Decimal amount persisted as integer cents."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        cents = (Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(cents)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(int(value)) / 100).quantize(CENT)


def to_money(value) -> Decimal:
    """Normalise any numeric input to a two-place Decimal."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# TABLES
# =============================================================================

class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_now, onupdate=_now, nullable=False
    )


class Category(TimestampMixin, Base):
    """Transaction category. Default categories survive every clear operation."""

    __tablename__ = "categories"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(50))
    color: Mapped[Optional[str]] = mapped_column(String(20))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Bill(TimestampMixin, Base):
    __tablename__ = "bills"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime)


class Transaction(TimestampMixin, Base):
    """An income or expense movement."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_type_date", "user_id", "type", "date"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    type: Mapped[TransactionType] = mapped_column(_enum_column(TransactionType), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[Optional[UUID]] = mapped_column(ForeignKey("categories.id"))
    bill_id: Mapped[Optional[UUID]] = mapped_column(ForeignKey("bills.id"))


class Budget(TimestampMixin, Base):
    """
    Spending budget for a validity window.

    Lookups take the first budget whose window contains "now"; uniqueness
    per type is assumed, not enforced.
    """

    __tablename__ = "budgets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    type: Mapped[BudgetType] = mapped_column(_enum_column(BudgetType), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class CategoryAllocation(TimestampMixin, Base):
    __tablename__ = "category_allocations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    budget_id: Mapped[UUID] = mapped_column(ForeignKey("budgets.id"), nullable=False)
    category_id: Mapped[UUID] = mapped_column(ForeignKey("categories.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)


class SavingsGoal(TimestampMixin, Base):
    """
    A savings target.

    `version` is an optimistic concurrency token: two transactions that read
    the same version cannot both write, the second fails at flush.
    """

    __tablename__ = "savings_goals"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    target_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class PlanItem(TimestampMixin, Base):
    """
    Monthly ledger row. SAVINGS rows mirror goal contributions so that they
    show up in the dashboard savings total.
    """

    __tablename__ = "plan_items"
    __table_args__ = (
        Index("ix_plan_items_user_type_period", "user_id", "item_type", "plan_type"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_type: Mapped[PlanItemType] = mapped_column(_enum_column(PlanItemType), nullable=False)
    plan_type: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    goal_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("savings_goals.id", ondelete="SET NULL"), index=True
    )


class AuditRecord(Base):
    """Persisted audit event. Append-only."""

    __tablename__ = "audit_events"

    event_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50))
    entity_id: Mapped[Optional[UUID]] = mapped_column(Uuid)
    correlation_id: Mapped[Optional[UUID]] = mapped_column(Uuid, index=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    is_user_action: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
