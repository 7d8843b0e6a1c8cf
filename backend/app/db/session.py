"""
Database engine, session factory and declarative base.

The engine targets PostgreSQL through asyncpg by default; tests swap in an
in-memory SQLite engine and override ``get_db``.
"""

import logging
from sqlalchemy import MetaData
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError
from backend.app.core.config import settings
from backend.app.core.exceptions import ConcurrentUpdateError, PersistenceError

logger = logging.getLogger("reception.db")

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Stable constraint names so cascades and uniqueness violations are readable in logs
Base = declarative_base(
    metadata=MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s",
        }
    )
)


async def create_tables(bind=None) -> None:
    """Create every table registered on ``Base`` (idempotent)."""
    # Registers the mapped classes on Base.metadata
    from backend.app.models import audit_log, truck, user, warehouse  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def commit_or_rollback(db: AsyncSession, resource: str, resource_id=None) -> None:
    """
    Commit the session as one all-or-nothing write.

    Raises:
        ConcurrentUpdateError: a versioned row changed since it was read
        PersistenceError: any other database failure
    """
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("Stale write on %s %s", resource, resource_id)
        raise ConcurrentUpdateError(resource, resource_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Write failed on %s %s: %s", resource, resource_id, exc)
        raise PersistenceError(f"{resource} could not be saved")


async def flush_or_rollback(db: AsyncSession, resource: str) -> None:
    """Flush pending rows so the store assigns ids, without committing."""
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Write failed on %s: %s", resource, exc)
        raise PersistenceError(f"{resource} could not be saved")


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
