"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. A record of every irreversible clear and delete
2. Debugging capability when goals and the dashboard disagree
3. User can see history of their interactions

The audit logger:
- Is async so it composes with the async services
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_buddy.models.audit import AuditEvent, AuditEventBuilder
from budget_buddy.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("budget_buddy.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_data_cleared(
        self,
        user_id: str,
        data_type: str,
        cleared_data: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a clear operation."""
        event = AuditEventBuilder.data_cleared(
            user_id=user_id,
            data_type=data_type,
            cleared_data=cleared_data,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_created(
        self,
        user_id: str,
        goal_id: UUID,
        name: str,
        target_amount: str,
        initial_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_created(
            user_id=user_id,
            goal_id=goal_id,
            name=name,
            target_amount=target_amount,
            initial_amount=initial_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_updated(
        self,
        user_id: str,
        goal_id: UUID,
        changed_fields: list[str],
        renamed_plan_items: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_updated(
            user_id=user_id,
            goal_id=goal_id,
            changed_fields=changed_fields,
            renamed_plan_items=renamed_plan_items,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_deleted(
        self,
        user_id: str,
        goal_id: UUID,
        name: str,
        removed_plan_items: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_deleted(
            user_id=user_id,
            goal_id=goal_id,
            name=name,
            removed_plan_items=removed_plan_items,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_funds_added(
        self,
        user_id: str,
        goal_id: UUID,
        amount: str,
        new_balance: str,
        completed: bool,
        period: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.funds_added(
            user_id=user_id,
            goal_id=goal_id,
            amount=amount,
            new_balance=new_balance,
            completed=completed,
            period=period,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_completed(
        self,
        user_id: str,
        goal_id: UUID,
        current_amount: str,
        target_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_completed(
            user_id=user_id,
            goal_id=goal_id,
            current_amount=current_amount,
            target_amount=target_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goals_synced(
        self,
        user_id: str,
        period: str,
        goals_count: int,
        synced_items_count: int,
        sync_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goals_synced(
            user_id=user_id,
            period=period,
            goals_count=goals_count,
            synced_items_count=synced_items_count,
            sync_status=sync_status,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_access_denied(
        self,
        user_id: str,
        goal_id: UUID,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an attempt to touch another user's goal."""
        event = AuditEventBuilder.access_denied(
            user_id=user_id,
            goal_id=goal_id,
            operation=operation,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_operation_rejected(
        self,
        user_id: str,
        goal_id: UUID,
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.operation_rejected(
            user_id=user_id,
            goal_id=goal_id,
            operation=operation,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a clear request) and
    pass it through all subsequent operations.
    """
    return uuid4()
