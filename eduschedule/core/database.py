# eduschedule/core/database.py
"""Database connection and session management using SQLAlchemy."""
from typing import AsyncGenerator, Any, Dict
from uuid import UUID
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import logging

from .config import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": (settings.environment == 'development' and settings.log_level.upper() == 'DEBUG'),
    }
    if database_url.startswith("postgresql"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            connect_args={
                "command_timeout": 60,
                "server_settings": {
                    "application_name": "eduschedule_api",
                    "idle_in_transaction_session_timeout": "60s",
                    "lock_timeout": "30s",
                },
            },
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for API requests with proper error handling"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise


def bind_tenant(session: AsyncSession, tenant_id: UUID) -> AsyncSession:
    """Scope a session to one tenant for PostgreSQL row-level security.

    ``app.current_tenant_id`` is set with a bound parameter at the start of
    every transaction the session opens, and is transaction-local so it never
    leaks to the next checkout of the pooled connection. Services still filter
    on ``tenant_id`` explicitly; this is the storage-side guard.
    """
    bind = session.bind
    if bind is None or bind.dialect.name != "postgresql":
        return session

    def _set_tenant(sync_session, transaction, connection):
        connection.execute(
            text("SELECT set_config('app.current_tenant_id', :tenant_id, true)"),
            {"tenant_id": str(tenant_id)},
        )

    event.listen(session.sync_session, "after_begin", _set_tenant)
    return session


async def health_check_db() -> bool:
    """Fast health check"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def close_db_connections():
    """Properly close all database connections"""
    await engine.dispose()
    logger.info("Database connections closed")
