"""Alembic environment configuration"""

from alembic import context
from sqlmodel import SQLModel

from shopsync.core.config import get_settings
from shopsync.core.database import build_engine
import shopsync.models  # noqa: F401  registers table metadata

# this is the Alembic Config object
config = context.config

target_metadata = SQLModel.metadata


def get_url():
    """Database URL: alembic.ini override, else application settings"""
    return config.get_main_option("sqlalchemy.url") or get_settings().DATABASE_URL


def run_migrations_offline():
    """Run migrations in 'offline' mode"""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode"""
    connectable = build_engine(get_url())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
