"""Migration runner for the user and web_session tables.

The database URL always comes from DATABASE_URL (see app/config.py), so
alembic.ini carries no connection string of its own.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config, pool

from alembic import context

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import get_settings  # noqa: E402
from app.database import Base  # noqa: E402
from app.models.user import User  # noqa: E402,F401
from app.models.web_session import WebSession  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

database_url = get_settings().DATABASE_URL
config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))

# SQLite cannot ALTER constraints in place; batch mode rebuilds the table instead
batch_mode = database_url.startswith("sqlite")


def migrate_offline() -> None:
    context.configure(
        url=database_url,
        target_metadata=Base.metadata,
        literal_binds=True,
        render_as_batch=batch_mode,
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=Base.metadata, render_as_batch=batch_mode)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
