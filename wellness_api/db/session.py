import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from ..config import get_settings
from ..errors import StorageFailure
from . import models  # noqa: F401  registers the tables on Base.metadata
from .base import Base
from .locks import KeyedLocks
from .validation import check_document

logger = logging.getLogger(__name__)


class ValidatingSession(Session):
    """Session that checks new and changed records against their document schema on flush."""


@event.listens_for(ValidatingSession, "before_flush")
def _check_pending_records(session: Session, flush_context: Any, instances: Any) -> None:
    for record in (*session.new, *session.dirty):
        if isinstance(record, Base) and hasattr(record, "to_document"):
            check_document(record.__tablename__, record.to_document())


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_async_engine(database_url: str) -> AsyncEngine:
    if database_url.startswith("postgresql://"):
        # Enforce async driver
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite"):
        # one connection per session; the file is the only shared state
        engine = create_async_engine(database_url, echo=False, poolclass=NullPool)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_async_engine(database_url, echo=False, pool_pre_ping=True)


def is_unique_violation(error: IntegrityError) -> bool:
    return "unique" in str(error.orig).lower()


class Database:
    """Async engine, session factory and per-key locks for one database."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.engine = _build_async_engine(url)
        self.sessions = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            class_=AsyncSession,
            sync_session_class=ValidatingSession,
        )
        self.locks = KeyedLocks()
        self._schema_ready = False

    async def create_all(self) -> None:
        """Create missing tables (dev and tests; migrations own production schemas)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True

    async def dispose(self) -> None:
        await self.engine.dispose()

    def lock(self, key: str) -> AsyncContextManager[None]:
        return self.locks.hold(key)

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        """One transaction: committed when the block exits, rolled back when it raises."""
        async with self.sessions() as session:
            try:
                if not self._schema_ready:
                    await self.create_all()
                yield session
                await session.commit()
            except SQLAlchemyError as error:
                await session.rollback()
                logger.error("Rolled back transaction: %s", error)
                raise StorageFailure("Database operation failed") from error
            except Exception:
                await session.rollback()
                raise


database = Database(get_settings().DATABASE_URL)


def get_database() -> Database:
    return database
