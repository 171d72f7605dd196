"""Alembic environment: migrates the database named by DATABASE_URL."""
from logging.config import fileConfig
from sqlalchemy.engine import Connection
from alembic import context
import asyncio
import logging

from app.core.config import get_settings
from app.core.database import Base, create_engine_from_settings, mask_db_url
import app.models  # noqa: F401  (registers the tables on Base.metadata)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")
settings = get_settings()

# batch mode lets ALTER TABLE work on SQLite
MIGRATION_OPTIONS = {"target_metadata": Base.metadata, "render_as_batch": True}


def run_migrations_offline() -> None:
    """Emit the SQL to stdout instead of connecting."""
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Migrate through the same engine configuration the service uses."""
    engine = create_engine_from_settings(settings)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


logger.info(f"Running migrations against: {mask_db_url(settings.database_url)}")

if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
