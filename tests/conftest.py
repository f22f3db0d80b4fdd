"""
Shared fixtures.

Every test gets its own SQLite file database and a clock frozen at
Sunday 18 October 2026, 12:00 (local time).
"""

from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from budget_buddy.audit import AuditLogger
from budget_buddy.dashboard import DashboardAggregator
from budget_buddy.savings import SavingsGoalManager
from budget_buddy.services.storage import Database, SqlAuditStorage


NOW = datetime(2026, 10, 18, 12, 0)


class FixedClock:
    """A clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(
        url=f"sqlite+aiosqlite:///{tmp_path / 'budget.db'}",
        echo=False,
        enforce_foreign_keys=True,
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def audit_storage(database):
    return SqlAuditStorage(database)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def aggregator(database, audit_logger, clock):
    return DashboardAggregator(database, audit_logger=audit_logger, clock=clock)


@pytest.fixture
def manager(database, audit_logger, clock):
    return SavingsGoalManager(
        database,
        audit_logger=audit_logger,
        clock=clock,
        sync_tolerance=Decimal("0.00"),
    )


@pytest.fixture
def seed(database):
    """Insert ORM rows in one transaction and hand them back."""

    async def _seed(*rows):
        async with database.transaction() as session:
            session.add_all(rows)
        return rows

    return _seed


@pytest.fixture
def count_rows(database):
    """Count rows of a model matching the given criteria."""

    async def _count(model, *criteria) -> int:
        async with database.session() as session:
            stmt = select(func.count()).select_from(model).where(*criteria)
            return await session.scalar(stmt)

    return _count


@pytest.fixture
def fetch_all(database):
    """Load all rows of a model matching the given criteria."""

    async def _fetch(model, *criteria):
        async with database.session() as session:
            return (await session.scalars(select(model).where(*criteria))).all()

    return _fetch
