"""Tests for application wiring, the health check and failure reporting."""

import pytest
from sqlalchemy.exc import OperationalError

from budget_buddy.audit import create_correlation_id
from budget_buddy.config import get_settings
from budget_buddy.models import AuditEventType
from budget_buddy.dashboard import DashboardAggregator
from budget_buddy.orchestrator import create_app_components, health_check, run_reported
from budget_buddy.savings import SavingsGoalManager
from budget_buddy.services.storage import Database


class TestCreateAppComponents:
    """Tests for the component factory."""

    async def test_components_share_one_database(self, tmp_path):
        """Aggregator and manager work on the same store."""
        aggregator, manager, database = create_app_components(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
            persist_audit=False,
        )
        try:
            await database.create_all()
            assert isinstance(aggregator, DashboardAggregator)
            assert isinstance(manager, SavingsGoalManager)

            await manager.create_goal("user-1", {"name": "Trip", "target_amount": "500.00", "current_amount": "20.00"})
            summary = await aggregator.get_financial_summary("user-1")
            assert str(summary.savings_total) == "20.00"
        finally:
            await database.dispose()


class TestHealthCheck:
    """Tests for the health check."""

    async def test_healthy(self, database):
        """A reachable store reports healthy."""
        report = await health_check(database)

        assert report["status"] == "healthy"
        assert report["database"] == "connected"
        assert report["service"] == get_settings().app.service_name
        assert report["version"] == get_settings().app.service_version
        assert "timestamp" in report

    async def test_unhealthy(self, tmp_path):
        """An unreachable store reports unhealthy instead of raising."""
        database = Database(
            url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nowhere.db'}",
            echo=False,
            enforce_foreign_keys=False,
        )
        try:
            report = await health_check(database)
        finally:
            await database.dispose()

        assert report["status"] == "unhealthy"
        assert report["database"] == "disconnected"


class TestRunReported:
    """Tests for storage failure reporting."""

    async def test_result_passes_through(self, audit_logger, audit_storage):
        """A successful operation returns its value and logs nothing."""
        async def operation():
            return 42

        assert await run_reported(operation(), audit_logger) == 42
        assert await audit_storage.get_recent_events() == []

    async def test_storage_failure_is_recorded_and_reraised(self, audit_logger, audit_storage):
        """A database error leaves a SYSTEM_ERROR event and still propagates."""
        correlation_id = create_correlation_id()

        async def operation():
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        with pytest.raises(OperationalError):
            await run_reported(operation(), audit_logger, correlation_id=correlation_id)

        [event] = await audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.description == "System error: OperationalError"
        assert "disk I/O error" in event.error_message
        assert event.correlation_id == correlation_id

    async def test_domain_errors_are_not_recorded(self, audit_logger, audit_storage):
        """Non-storage errors propagate without a SYSTEM_ERROR event."""
        async def operation():
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await run_reported(operation(), audit_logger)

        assert await audit_storage.get_recent_events() == []
