"""
Schema management: ORM tables plus ordered raw SQL migrations.

SQL files under `migrations/` carry Postgres-only features (CHECK
constraints, row-level security) and are applied once each, tracked in the
`schema_migrations` table.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from sqlalchemy import Column, Float, MetaData, String, Table, inspect, select
from sqlalchemy.engine import Connection, Engine

from pinnlo.db import Base

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

_metadata = MetaData()
schema_migrations = Table(
    "schema_migrations",
    _metadata,
    Column("name", String, primary_key=True),
    Column("applied_at", Float, nullable=False),
)


def migration_files(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    return sorted(directory.glob("*.sql"))


def applied_migrations(conn: Connection) -> set[str]:
    if not inspect(conn).has_table(schema_migrations.name):
        return set()
    return set(conn.execute(select(schema_migrations.c.name)).scalars())


def apply_migrations(
    engine: Engine, directory: Path = MIGRATIONS_DIR, *, dry_run: bool = False
) -> list[str]:
    """
    Create missing tables and apply pending SQL files in name order.

    Returns the names of the SQL migrations applied (or, with dry_run, the
    ones that would be).
    """
    if not dry_run:
        Base.metadata.create_all(engine)
        _metadata.create_all(engine)

    if engine.dialect.name != "postgresql":
        logger.info("Skipping SQL migrations on %s", engine.dialect.name)
        return []

    with engine.begin() as conn:
        done = applied_migrations(conn)
        pending = [path for path in migration_files(directory) if path.name not in done]
        for path in pending:
            if dry_run:
                logger.info("Would apply %s", path.name)
                continue
            logger.info("Applying %s", path.name)
            conn.exec_driver_sql(path.read_text(encoding="utf-8"))
            conn.execute(
                schema_migrations.insert().values(name=path.name, applied_at=time.time())
            )
    return [path.name for path in pending]
