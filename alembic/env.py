"""Alembic environment for the OCR document tables.

Connection resolution is shared with the workers through
DatabaseConfig.get_migration_url(), so DATABASE_URL, Cloud Run AlloyDB and
local DB_* settings all migrate the same database the pollers read.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from ocr_service.db import DatabaseConfig

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    """Emit the family-table DDL as SQL without connecting."""
    context.configure(
        url=DatabaseConfig.get_migration_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = DatabaseConfig.get_migration_url()
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
