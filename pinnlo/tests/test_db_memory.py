import time
import unittest

from pinnlo.db import (
    CreatorSessionRecord,
    ExecutiveSummaryRecord,
    InMemoryDbClient,
    StrategyRecord,
)


class InMemoryDbClientTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_active_session_is_newest_unexpired(self):
        now = time.time()
        older = CreatorSessionRecord(user_id="u1", strategy_id=1)
        older.created_at = now - 100
        newest_expired = CreatorSessionRecord(user_id="u1", strategy_id=1)
        newest_expired.expires_at = now - 1
        newer = CreatorSessionRecord(user_id="u1", strategy_id=1)
        newer.created_at = now - 10
        for session in (older, newer, newest_expired):
            self.db.create_session(session)

        self.assertEqual(self.db.get_active_session("u1", 1, now).id, newer.id)
        self.assertIsNone(self.db.get_active_session("u1", 2, now))

    def test_executive_summary_upsert_and_cascade(self):
        strategy = self.db.create_strategy(StrategyRecord(user_id="u1", title="Plan"))
        first = self.db.upsert_executive_summary(
            ExecutiveSummaryRecord(
                strategy_id=strategy.id, blueprint_id="vision", user_id="u1",
                summary_data={"themes": ["A"]},
            )
        )
        second = self.db.upsert_executive_summary(
            ExecutiveSummaryRecord(
                strategy_id=strategy.id, blueprint_id="vision", user_id="u1",
                summary_data={"themes": ["B"]},
            )
        )
        self.assertEqual(second.id, first.id)
        self.assertEqual(
            self.db.get_executive_summary(strategy.id, "vision", "u1").summary_data,
            {"themes": ["B"]},
        )

        self.db.delete_strategy(strategy.id, "u1")
        self.assertIsNone(self.db.get_executive_summary(strategy.id, "vision", "u1"))


if __name__ == "__main__":
    unittest.main()
