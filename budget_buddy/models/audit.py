"""
Audit Models for Budget Buddy

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of destructive operations (clears, deletes)
2. Debugging information when goal balances drift from the dashboard
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Clear operations do not touch the audit table.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""

    # Dashboard housekeeping
    DATA_CLEARED = "data_cleared"

    # Savings goals
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_COMPLETED = "goal_completed"
    FUNDS_ADDED = "funds_added"
    GOALS_SYNCED = "goals_synced"

    # Rejections
    ACCESS_DENIED = "access_denied"
    OPERATION_REJECTED = "operation_rejected"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the data the event is about"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'savings_goal', 'user_data')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_record(self) -> dict:
        """
        Convert to column values for the audit_events table.

        details must be JSON-serializable, so Decimals and datetimes are
        stringified.
        """
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": self.correlation_id,
            "description": self.description,
            "details": {k: _jsonable(v) for k, v in self.details.items()},
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.data_cleared(user_id, "bills", counts)
        event = AuditEventBuilder.funds_added(user_id, goal_id, amount, ...)
    """

    @staticmethod
    def data_cleared(
        user_id: str,
        data_type: str,
        cleared_data: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="user_data",
            correlation_id=correlation_id,
            description=f"Cleared {data_type}",
            details={
                "data_type": data_type,
                "cleared_data": cleared_data,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_created(
        user_id: str,
        goal_id: UUID,
        name: str,
        target_amount: str,
        initial_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Savings goal created: {name}",
            details={
                "name": name,
                "target_amount": target_amount,
                "initial_amount": initial_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_updated(
        user_id: str,
        goal_id: UUID,
        changed_fields: list[str],
        renamed_plan_items: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_UPDATED,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Savings goal updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
                "renamed_plan_items": renamed_plan_items,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_deleted(
        user_id: str,
        goal_id: UUID,
        name: str,
        removed_plan_items: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DELETED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Savings goal deleted: {name}",
            details={
                "name": name,
                "removed_plan_items": removed_plan_items,
            },
            is_user_action=True,
        )

    @staticmethod
    def funds_added(
        user_id: str,
        goal_id: UUID,
        amount: str,
        new_balance: str,
        completed: bool,
        period: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FUNDS_ADDED,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Added {amount} to savings goal",
            details={
                "amount": amount,
                "new_balance": new_balance,
                "completed": completed,
                "period": period,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_completed(
        user_id: str,
        goal_id: UUID,
        current_amount: str,
        target_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_COMPLETED,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Savings goal marked as completed",
            details={
                "current_amount": current_amount,
                "target_amount": target_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def goals_synced(
        user_id: str,
        period: str,
        goals_count: int,
        synced_items_count: int,
        sync_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOALS_SYNCED,
            severity=AuditSeverity.INFO if sync_status == "synced" else AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="plan_items",
            correlation_id=correlation_id,
            description=f"Savings plan items rebuilt for {period}",
            details={
                "period": period,
                "goals_count": goals_count,
                "synced_items_count": synced_items_count,
                "sync_status": sync_status,
            },
            is_user_action=True,
        )

    @staticmethod
    def access_denied(
        user_id: str,
        goal_id: UUID,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCESS_DENIED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Access denied to savings goal during {operation}",
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def operation_rejected(
        user_id: str,
        goal_id: UUID,
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {reason}",
            details={"operation": operation, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
