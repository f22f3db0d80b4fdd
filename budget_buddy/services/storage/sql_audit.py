"""
SQL Audit Storage

Persists audit events to the `audit_events` table of the application
database. Each append runs in its own short transaction, after the
operation being audited has already committed.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from budget_buddy.models.audit import AuditEvent, AuditEventType, AuditSeverity
from budget_buddy.models.records import AuditRecord
from budget_buddy.services.storage.database import Database
from budget_buddy.services.storage.interface import AuditStorageInterface, StorageError


class SqlAuditStorage(AuditStorageInterface):
    """Audit storage backed by the application database."""

    def __init__(self, database: Database):
        self._db = database

    def _record_to_event(self, record: AuditRecord) -> AuditEvent:
        return AuditEvent(
            event_id=record.event_id,
            timestamp=record.timestamp,
            event_type=AuditEventType(record.event_type),
            severity=AuditSeverity(record.severity),
            user_id=record.user_id,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            correlation_id=record.correlation_id,
            description=record.description,
            details=record.details or {},
            error_message=record.error_message,
            is_user_action=record.is_user_action,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        async with self._db.transaction() as session:
            session.add(AuditRecord(**event.to_record()))
        return True

    async def _fetch(self, stmt) -> list[AuditEvent]:
        try:
            async with self._db.session() as session:
                records = (await session.scalars(stmt)).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get audit events: {e}") from e
        return [self._record_to_event(r) for r in records]

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID, oldest first."""
        stmt = (
            select(AuditRecord)
            .where(AuditRecord.correlation_id == correlation_id)
            .order_by(AuditRecord.timestamp)
        )
        return await self._fetch(stmt)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity, oldest first."""
        stmt = (
            select(AuditRecord)
            .where(
                AuditRecord.entity_type == entity_type,
                AuditRecord.entity_id == entity_id,
            )
            .order_by(AuditRecord.timestamp)
        )
        return await self._fetch(stmt)

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        stmt = select(AuditRecord)
        if user_id is not None:
            stmt = stmt.where(AuditRecord.user_id == user_id)
        stmt = stmt.order_by(AuditRecord.timestamp.desc()).limit(limit)
        return await self._fetch(stmt)
