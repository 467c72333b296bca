"""
Print a user's strategies with their card counts per card type.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pinnlo.config import get_settings
from pinnlo.db import DbClient, PostgresDbClient

logger = logging.getLogger(__name__)


def summarise(db: DbClient, user_id: str) -> list[dict]:
    rows = []
    for strategy in db.list_strategies(user_id):
        counts = Counter(card.card_type for card in db.list_cards(strategy.id))
        rows.append(
            {
                "id": strategy.id,
                "title": strategy.title,
                "status": strategy.status,
                "cards": sum(counts.values()),
                "by_type": dict(sorted(counts.items())),
            }
        )
    return rows


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect a user's strategies")
    parser.add_argument("--user-id", required=True, help="Auth provider user id")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    database_url = args.database_url or settings.database_url
    if not database_url:
        logger.error("DATABASE_URL is not set; pass --database-url")
        return 1

    rows = summarise(PostgresDbClient(database_url), args.user_id)
    if not rows:
        print(f"No strategies found for user {args.user_id}")
        return 0
    for row in rows:
        print(f"[{row['id']}] {row['title']} ({row['status']}): {row['cards']} cards")
        for card_type, count in row["by_type"].items():
            print(f"    {card_type}: {count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
