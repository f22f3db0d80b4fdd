"""Tests for the audit logger and its SQL storage."""

from uuid import uuid4

import pytest

from budget_buddy.audit import AuditLogger, create_correlation_id
from budget_buddy.models import AuditEventBuilder, AuditEventType
from budget_buddy.services.storage import AuditStorageInterface, StorageError


class BrokenStorage(AuditStorageInterface):
    """Storage whose writes always fail."""

    async def append_event(self, event):
        raise StorageError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100, user_id=None):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    async def test_local_only(self):
        """Without storage the event is only logged and reported as written."""
        logger = AuditLogger()
        event = AuditEventBuilder.system_error("TestError", "boom")

        assert await logger.log(event) is True

    async def test_storage_failure_is_swallowed(self):
        """A failing store never breaks the caller."""
        logger = AuditLogger(BrokenStorage())
        event = AuditEventBuilder.data_cleared("user-1", "transactions", {"transactions": 1})

        assert await logger.log(event) is False

    async def test_events_share_correlation_id(self, audit_logger, audit_storage):
        """Events logged with one correlation id are retrieved together, oldest first."""
        correlation_id = create_correlation_id()
        goal_id = uuid4()

        await audit_logger.log_goal_created(
            "user-1", goal_id, "Laptop", "1000.00", "0.00", correlation_id=correlation_id,
        )
        await audit_logger.log_funds_added(
            "user-1", goal_id, "10.00", "10.00", False, "2026-10", correlation_id=correlation_id,
        )
        await audit_logger.log_goal_deleted("user-1", goal_id, "Laptop", 1)

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.GOAL_CREATED,
            AuditEventType.FUNDS_ADDED,
        ]
        assert events[1].details["completed"] is False

    async def test_recent_events_filtered_by_user(self, audit_logger, audit_storage):
        """Recent events can be narrowed to one user, newest first."""
        await audit_logger.log_data_cleared("user-1", "bills", {"bills": 0, "transactions": 0})
        await audit_logger.log_data_cleared("user-2", "bills", {"bills": 1, "transactions": 0})
        await audit_logger.log_goals_synced("user-1", "2026-10", 2, 1, "synced")

        events = await audit_storage.get_recent_events(user_id="user-1")

        assert [e.event_type for e in events] == [
            AuditEventType.GOALS_SYNCED,
            AuditEventType.DATA_CLEARED,
        ]

    async def test_recent_events_limit(self, audit_logger, audit_storage):
        """The limit caps the number of events returned."""
        for _ in range(3):
            await audit_logger.log_error("TestError", "boom")

        assert len(await audit_storage.get_recent_events(limit=2)) == 2

    async def test_read_failure_raises_storage_error(self, database, audit_storage):
        """Read errors surface as StorageError."""
        await database.dispose()
        async with database.engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE audit_events")

        with pytest.raises(StorageError):
            await audit_storage.get_recent_events()
