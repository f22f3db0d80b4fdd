"""
Main Orchestrator for Budget Buddy

This module ties the components together:
1. Database handle (schema, sessions, transactions)
2. Audit logger (structured log + optional persisted trail)
3. Dashboard aggregator and savings goal manager on top of both

It also answers the health check and reports storage failures. A transport
(the Streamlit app, an HTTP layer) only ever talks to what
`create_app_components` hands back.
"""

from datetime import datetime
from typing import Any, Awaitable, Optional, TypeVar
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from budget_buddy.audit import AuditLogger
from budget_buddy.config import Settings, get_settings
from budget_buddy.dashboard import DashboardAggregator
from budget_buddy.savings import SavingsGoalManager
from budget_buddy.services.storage import Database, SqlAuditStorage


logger = structlog.get_logger(__name__)

T = TypeVar("T")


def create_app_components(
    database_url: Optional[str] = None,
    persist_audit: Optional[bool] = None,
    clock=None,
) -> tuple[DashboardAggregator, SavingsGoalManager, Database]:
    """
    Factory function to create all application components.

    Args:
        database_url: Overrides the configured database URL.
        persist_audit: Whether audit events are written to the database.
                       Defaults to the `persist_audit_events` setting.
        clock: Callable returning "now"; defaults to datetime.now.

    Returns:
        (dashboard_aggregator, savings_goal_manager, database)

    The caller is expected to `await database.create_all()` once before use.
    """
    settings = get_settings()
    if persist_audit is None:
        persist_audit = settings.app.persist_audit_events

    database = Database(url=database_url)

    if persist_audit:
        audit_logger = AuditLogger(SqlAuditStorage(database))
    else:
        audit_logger = AuditLogger()  # Local-only logging

    aggregator = DashboardAggregator(
        database,
        audit_logger=audit_logger,
        clock=clock,
    )
    manager = SavingsGoalManager(
        database,
        audit_logger=audit_logger,
        clock=clock,
        sync_tolerance=settings.app.sync_tolerance,
    )

    logger.info(
        "app_components_created",
        environment=settings.app.app_environment,
        persist_audit=persist_audit,
    )
    return aggregator, manager, database


async def health_check(
    database: Database,
    settings: Optional[Settings] = None,
) -> dict[str, Any]:
    """
    Liveness report: service identity plus whether the store answers.
    """
    settings = settings or get_settings()
    connected = await database.ping()

    return {
        "status": "healthy" if connected else "unhealthy",
        "database": "connected" if connected else "disconnected",
        "timestamp": datetime.now().isoformat(),
        "service": settings.app.service_name,
        "version": settings.app.service_version,
    }


async def run_reported(
    operation: Awaitable[T],
    audit_logger: AuditLogger,
    correlation_id: Optional[UUID] = None,
) -> T:
    """
    Await `operation`; a storage failure is recorded as SYSTEM_ERROR and re-raised.

    Domain errors (validation, ownership, conflicts) pass through untouched;
    they are audited where they are raised.
    """
    try:
        return await operation
    except SQLAlchemyError as e:
        await audit_logger.log_error(
            error_type=type(e).__name__,
            error_message=str(e),
            correlation_id=correlation_id,
        )
        raise
