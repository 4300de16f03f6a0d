"""
Migration environment for the venuebook schema: facilities, venues,
amenities, bookings and their payment and status-history ledgers.

The URL always comes from Settings.DATABASE_URL_SYNC, never alembic.ini, so
migrations and the running service target the same database.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from venuebook.db.base import Base
from venuebook import models  # noqa: F401 - registers every table on Base.metadata
from venuebook.core.config import get_settings

config = context.config
settings = get_settings()

# Migrations run on the sync driver; the app itself uses the async URL
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the venuebook DDL as SQL for review (`alembic upgrade --sql`)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply pending venuebook revisions over a throwaway sync connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
