"""Alembic environment for the oil shop admin schema.

Only the model metadata is imported; the runtime engine module is not, so
migrations never open the async pool. The URL comes from, in order:

1. DB_URL / DATABASE_URL (TEST_DB_URL when TESTING=true)
2. ``sqlalchemy.url`` in alembic.ini
3. DB_USER / DB_PASSWORD / DB_HOST / DB_PORT / DB_NAME

Async driver URLs are rewritten to psycopg (v3) for Alembic's sync engine.
"""
import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Make the oilshop_admin package importable when alembic runs from backend/
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from oilshop_admin.models.database import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    override = os.getenv("DB_URL") or os.getenv("DATABASE_URL")
    if os.getenv("TESTING", "false").lower() == "true" and os.getenv("TEST_DB_URL"):
        override = os.getenv("TEST_DB_URL")
    url = override or config.get_main_option("sqlalchemy.url")
    if not url or url == "%(DB_URL)s":
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        name = os.getenv("DB_NAME", "oilshop_admin")
        url = f"postgresql+psycopg://{user}:{password}@{host}:{port}/{name}"
    if url.startswith("postgresql+asyncpg://"):
        url = url.replace("postgresql+asyncpg://", "postgresql+psycopg://", 1)
    if url.startswith("sqlite+aiosqlite://"):
        url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    return url


config.set_main_option("sqlalchemy.url", _database_url())


def run_migrations_offline():
    """Emit SQL without a live connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
