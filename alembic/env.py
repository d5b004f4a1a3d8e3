"""
env.py — Alembic environment for the connections digest schema

Online migrations run on the package's own engine, so the SQLite
foreign-key pragma and the Postgres UTC session setting apply to them too.
SQLite databases migrate in batch mode (table copy) because SQLite cannot
ALTER most column definitions in place.

Called by: alembic CLI
Depends on: connections_digest.database (engine), connections_digest.models
"""

from logging.config import fileConfig

from alembic import context

from connections_digest.config import settings
from connections_digest.database import engine
from connections_digest.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
_batch = settings.database_url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit SQL for settings.database_url without connecting."""
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=_batch,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=_batch,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
