"""
alembic/env.py — Migrations for the `players` table.

The target database is whatever infinity_backend.settings resolves
DATABASE_URL to, so `alembic upgrade head` migrates the same store the
server talks to.
"""

from logging.config import fileConfig

from alembic import context

from infinity_backend.database import Base, engine
from infinity_backend.models import Player  # noqa: F401  (registers the table on Base)
from infinity_backend.settings import DATABASE_URL

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# alembic.ini carries no URL of its own
config.set_main_option("sqlalchemy.url", DATABASE_URL)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Renders the migration SQL without connecting (`alembic upgrade head --sql`)."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Applies migrations over the app's own engine (SQLite pragmas included)."""
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
