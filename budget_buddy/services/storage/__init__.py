"""
Storage Services Package

Provides the transactional database handle and audit persistence.
SQLAlchemy (async) is the backend; audit storage is behind an interface.
"""

from budget_buddy.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from budget_buddy.services.storage.database import Database
from budget_buddy.services.storage.sql_audit import SqlAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "StorageError",
    # SQL implementation
    "Database",
    "SqlAuditStorage",
]
