"""Alembic environment for the users/competencies schema.

Learn: The database URL comes from Settings (DEVNORTH_DATABASE_URL), the
same place the app reads it, so alembic.ini holds no credentials.
Online runs open a throwaway async engine with NullPool; offline runs
(`alembic upgrade head --sql`) only render SQL.

compare_type is on so autogenerate also reports column type changes,
not just added or dropped columns.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from devnorth.config import get_settings
from devnorth.db.models import Base

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

DATABASE_URL = get_settings().database_url
MIGRATION_OPTIONS = {"target_metadata": Base.metadata, "compare_type": True}


def _run_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def _run_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_on_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _run_offline()
else:
    asyncio.run(_run_online())
