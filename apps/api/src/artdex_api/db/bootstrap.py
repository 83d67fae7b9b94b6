from __future__ import annotations

import logging
from pathlib import Path

import asyncpg
from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def _quote_identifier(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def admin_database_url(database_url: str) -> tuple[str, str | None]:
    """Split an application URL into a maintenance-database URL and the target name.

    The target is ``None`` for non-Postgres URLs and for the maintenance database
    itself; there is nothing to create in either case.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        return database_url, None
    target = url.database or "artdex"
    if target == "postgres":
        return database_url, None
    admin_url = url.set(database="postgres", drivername="postgresql").render_as_string(
        hide_password=False
    )
    return admin_url, target


async def ensure_database(database_url: str) -> bool:
    """Create the artdex database if it is missing. Returns whether it was created."""
    admin_url, target = admin_database_url(database_url)
    if target is None:
        return False

    conn = await asyncpg.connect(admin_url)
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", target)
        if exists:
            return False
        await conn.execute(f"CREATE DATABASE {_quote_identifier(target)}")
    finally:
        await conn.close()
    logger.info("artdex_database_created", extra={"database": target})
    return True


def alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def upgrade_schema(revision: str = "head") -> None:
    """Apply the artist migrations; must run outside an event loop."""
    command.upgrade(alembic_config(), revision)
    logger.info("artdex_schema_upgraded", extra={"revision": revision})
