# migrations/env.py

import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

# Project root, one level up from migrations/
import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from sprintboard.core.config import settings
from sprintboard.db.database import Base
from sprintboard.db.models import User, Sprint, Task, Deployment  # noqa: F401

from asyncio import run as asyncio_run


# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    """alembic.ini wins when it sets a URL; otherwise use the service settings"""
    return config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL


def run_migrations_offline():
    """Run migrations in 'offline' mode, emitting SQL without a connection."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=settings.is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode against the async engine."""
    connectable = create_async_engine(_database_url(), poolclass=pool.NullPool)

    async def run_async_migrations():
        async with connectable.begin() as conn:
            await conn.run_sync(
                lambda sync_conn: context.configure(
                    connection=sync_conn,
                    target_metadata=target_metadata,
                    # SQLite cannot ALTER most constraints in place
                    render_as_batch=sync_conn.dialect.name == "sqlite",
                )
            )
            await conn.run_sync(lambda sync_conn: context.run_migrations())
        await connectable.dispose()

    asyncio_run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
