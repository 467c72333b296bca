"""
Create the PINNLO tables and apply pending SQL migrations.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import create_engine

from pinnlo.config import get_settings
from pinnlo.migrate import MIGRATIONS_DIR, apply_migrations

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply PINNLO database migrations")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--migrations-dir",
        type=Path,
        default=MIGRATIONS_DIR,
        help="Directory holding the *.sql migrations",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List pending migrations without applying them",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    database_url = args.database_url or settings.database_url
    if not database_url:
        logger.error("DATABASE_URL is not set; pass --database-url")
        return 1

    engine = create_engine(database_url, future=True)
    names = apply_migrations(engine, args.migrations_dir, dry_run=args.dry_run)
    verb = "Pending" if args.dry_run else "Applied"
    logger.info("%s %d migrations: %s", verb, len(names), ", ".join(names) or "none")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
