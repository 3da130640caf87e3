"""Apply Alembic migrations before the API starts.

Usage:
    python run_migrations.py

Run from the container entrypoint ahead of uvicorn. A database whose tables
were created directly from the models (no ``alembic_version``) is stamped at
the initial revision first so ``upgrade`` does not try to recreate them.
"""
from alembic.config import Config
from alembic import command
from sqlalchemy import create_engine, inspect
import os

BASE_DIR = os.path.dirname(__file__)
ALEMBIC_INI = os.path.join(BASE_DIR, 'alembic.ini')
BASELINE_REVISION = '20241001_0001'
SENTINEL_TABLES = {'users', 'shops', 'orders', 'bank_accounts'}


def _sync_url(url: str) -> str:
    if url.startswith('postgresql+asyncpg://'):
        return url.replace('postgresql+asyncpg://', 'postgresql+psycopg://', 1)
    if url.startswith('sqlite+aiosqlite://'):
        return url.replace('sqlite+aiosqlite://', 'sqlite://', 1)
    return url


def run():
    cfg = Config(ALEMBIC_INI)
    cfg.set_main_option('script_location', os.path.join(BASE_DIR, 'alembic'))
    override = os.getenv('DB_URL') or os.getenv('DATABASE_URL')
    if override:
        cfg.set_main_option('sqlalchemy.url', override)

    url = cfg.get_main_option('sqlalchemy.url')
    if url:
        try:
            engine = create_engine(_sync_url(url))
            existing_tables = set(inspect(engine).get_table_names())
            engine.dispose()
            if 'alembic_version' not in existing_tables and existing_tables & SENTINEL_TABLES:
                print(f"[migrations] Tables exist without alembic_version; stamping {BASELINE_REVISION}.")
                command.stamp(cfg, BASELINE_REVISION)
        except Exception as e:  # noqa: BLE001
            print(f"[migrations] Warning: baseline detection failed: {e}")

    command.upgrade(cfg, 'head')


if __name__ == '__main__':
    run()
