"""
Relational Store Access

Thin wrapper around a SQLAlchemy async engine. It hands out sessions and
one-shot transactions; everything inside `transaction()` commits together
or rolls back together.

TRADEOFFS:
- No retry or backoff: store errors surface to the caller unchanged
- Schema is created with metadata.create_all (migrations are out of scope)
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from budget_buddy.config import get_settings
from budget_buddy.models.records import Base


logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Transactional data-access handle.

    Usage:
        db = Database()
        await db.create_all()
        async with db.transaction() as session:
            session.add(...)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        echo: Optional[bool] = None,
        enforce_foreign_keys: Optional[bool] = None,
    ):
        if url is None or echo is None or enforce_foreign_keys is None:
            settings = get_settings().database
            url = url or settings.url
            echo = settings.echo if echo is None else echo
            if enforce_foreign_keys is None:
                enforce_foreign_keys = settings.enforce_foreign_keys

        self._url = url
        self._engine: AsyncEngine = create_async_engine(url, echo=echo)

        if enforce_foreign_keys and self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._sessions = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def session(self) -> AsyncSession:
        """A fresh session. The caller owns its lifecycle."""
        return self._sessions()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Session inside a single transaction.

        Commits when the block exits normally, rolls back on any exception
        and re-raises it.
        """
        async with self._sessions() as session:
            async with session.begin():
                yield session

    async def create_all(self) -> None:
        """Create any missing tables."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_schema_ready", dialect=self._engine.dialect.name)

    async def ping(self) -> bool:
        """Check the store answers a trivial query."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("database_ping_failed", error=str(e))
            return False

    async def dispose(self) -> None:
        await self._engine.dispose()
