"""Services package."""

from budget_buddy.services.storage import (
    AuditStorageInterface,
    Database,
    SqlAuditStorage,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "Database",
    "SqlAuditStorage",
    "StorageError",
]
