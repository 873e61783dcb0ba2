import logging
from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from fastapi import HTTPException

from sprintboard.core import tracing as logger
from sprintboard.core.config import settings
from sprintboard.exceptions.store import SprintboardError

# Configure logging for SQLAlchemy (ORM logs only)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options per backend; SQLite connections are opened per checkout"""
    if database_url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {
            "server_settings": {"application_name": "sprintboard_api"},
            "command_timeout": 5,
        },
    }


def build_engine(database_url: str):
    """Create the async engine, enabling foreign keys on SQLite so cascades apply"""
    new_engine = create_async_engine(database_url, echo=False, **_engine_options(database_url))

    if database_url.startswith("sqlite"):
        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


# SQLAlchemy Engine
engine = build_engine(settings.DATABASE_URL)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False
)

# Declarative base class
Base = declarative_base()


async def init_db():
    """Create any missing tables."""
    # Models register themselves on Base.metadata when imported
    import sprintboard.db.models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e), type=type(e).__name__)
        raise


async def get_db():
    """Async session dependency with trace-aware error logging."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            if isinstance(e, (HTTPException, SprintboardError)):
                logger.debug(
                    "Request ended with a handled error",
                    error=e.detail or str(e),
                    type=type(e).__name__
                )
            else:
                logger.error(
                    "Database session error",
                    error=str(e),
                    type=type(e).__name__
                )
            await session.rollback()
            raise
