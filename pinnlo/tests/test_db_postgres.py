import time
import unittest

from pinnlo.db import (
    AutomationExecutionRecord,
    AutomationRuleRecord,
    CardRecord,
    CreatorHistoryRecord,
    CreatorSessionRecord,
    ExecutiveSummaryRecord,
    IntelligenceCardRecord,
    IntelligenceGroupRecord,
    PostgresDbClient,
    StrategyRecord,
    SystemPromptRecord,
    UserRecord,
)
from shared.types import ExecutionStatus


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def intelligence_card(self, title: str, user_id: str = "u1") -> IntelligenceCardRecord:
        return IntelligenceCardRecord(
            user_id=user_id,
            category="market",
            title=title,
            summary=f"{title} summary",
            intelligence_content="content",
        )

    def test_upsert_user_keeps_created_at(self):
        created = self.db.upsert_user(UserRecord(id="u1", email="a@example.com"))
        updated = self.db.upsert_user(UserRecord(id="u1", first_name="Ada"))
        self.assertEqual(updated.first_name, "Ada")
        self.assertEqual(updated.created_at, created.created_at)

    def test_strategy_ids_are_assigned(self):
        first = self.db.create_strategy(StrategyRecord(user_id="u1", title="One"))
        second = self.db.create_strategy(StrategyRecord(user_id="u1", title="Two"))
        self.assertIsInstance(first.id, int)
        self.assertNotEqual(first.id, second.id)
        self.assertIsNone(self.db.get_strategy(first.id, "someone-else"))

    def test_update_ignores_immutable_fields(self):
        strategy = self.db.create_strategy(StrategyRecord(user_id="u1"))
        updated = self.db.update_strategy(
            strategy.id, "u1", {"title": "New", "user_id": "u2", "unknown": 1}
        )
        self.assertEqual(updated.title, "New")
        self.assertEqual(updated.user_id, "u1")

    def test_card_metadata_roundtrip_and_cascade(self):
        strategy = self.db.create_strategy(StrategyRecord(user_id="u1"))
        card = self.db.create_cards(
            [
                CardRecord(
                    strategy_id=strategy.id,
                    user_id="u1",
                    card_type="vision",
                    title="North star",
                    metadata={"source": "ai"},
                    card_data={"visionType": "Company"},
                )
            ]
        )[0]
        fetched = self.db.get_card(card.id, "u1")
        self.assertEqual(fetched.metadata, {"source": "ai"})
        self.assertEqual(fetched.card_data, {"visionType": "Company"})

        self.db.update_card(card.id, "u1", {"metadata": {"source": "human"}})
        self.assertEqual(self.db.get_card(card.id, "u1").metadata, {"source": "human"})

        self.assertTrue(self.db.delete_strategy(strategy.id, "u1"))
        self.assertIsNone(self.db.get_card(card.id, "u1"))

    def test_intelligence_search_is_case_insensitive(self):
        self.db.create_intelligence_cards(
            [self.intelligence_card("Rates Rising"), self.intelligence_card("Other")]
        )
        found = self.db.list_intelligence_cards("u1", search="rates")
        self.assertEqual([c.title for c in found], ["Rates Rising"])
        self.assertEqual(self.db.list_intelligence_cards("u2"), [])

    def test_group_membership_counts(self):
        group = self.db.create_group(IntelligenceGroupRecord(user_id="u1", name="G"))
        cards = self.db.create_intelligence_cards(
            [self.intelligence_card("A"), self.intelligence_card("B")]
        )
        ids = [c.id for c in cards]

        self.assertEqual(self.db.add_group_cards(group.id, ids, added_by="u1"), 2)
        self.assertEqual(self.db.add_group_cards(group.id, ids, added_by="u1"), 0)
        members = self.db.list_group_members(group.id)
        self.assertEqual([m.position for m in members], [1, 2])
        self.assertEqual(self.db.get_group(group.id, "u1").card_count, 2)

        self.assertEqual(self.db.remove_group_cards(group.id, [ids[0]]), 1)
        self.assertEqual(self.db.get_group(group.id, "u1").card_count, 1)

        self.db.delete_intelligence_card(ids[1], "u1")
        self.assertEqual(self.db.list_group_members(group.id), [])
        self.assertEqual(self.db.get_group(group.id, "u1").card_count, 0)

    def test_due_rules_and_executions(self):
        now = time.time()
        due = self.db.create_rule(
            AutomationRuleRecord(
                user_id="u1", name="Due", automation_enabled=True, next_run_at=now - 1
            )
        )
        self.db.create_rule(
            AutomationRuleRecord(
                user_id="u1", name="Disabled", automation_enabled=False, next_run_at=now - 1
            )
        )
        self.assertEqual([r.id for r in self.db.list_due_rules(now)], [due.id])

        execution = self.db.create_execution(
            AutomationExecutionRecord(rule_id=due.id, user_id="u1")
        )
        self.assertEqual(execution.status, ExecutionStatus.QUEUED)
        self.db.update_execution(
            execution.id, {"status": ExecutionStatus.COMPLETED.value, "cards_created": 3}
        )
        fetched = self.db.get_execution(execution.id)
        self.assertEqual(fetched.status, "completed")
        self.assertEqual(fetched.cards_created, 3)
        self.assertEqual(
            [e.id for e in self.db.list_executions("u1", rule_id=due.id)], [execution.id]
        )

    def test_system_prompt_update(self):
        prompt = self.db.save_system_prompt(SystemPromptRecord(agent_type="card-creator"))
        updated = self.db.update_system_prompt(prompt.id, {"system_prompt": "Be brief"})
        self.assertEqual(updated.system_prompt, "Be brief")
        self.assertIsNone(self.db.update_system_prompt("missing", {"system_prompt": "x"}))

    def test_active_session_ignores_expired(self):
        expired = CreatorSessionRecord(user_id="u1", strategy_id=1)
        expired.expires_at = time.time() - 10
        self.db.create_session(expired)
        self.assertIsNone(self.db.get_active_session("u1", 1, time.time()))

        active = self.db.create_session(CreatorSessionRecord(user_id="u1", strategy_id=1))
        found = self.db.get_active_session("u1", 1, time.time())
        self.assertEqual(found.id, active.id)
        self.assertEqual(found.generation_options, {"count": 3, "style": "comprehensive"})

    def test_active_session_is_newest(self):
        older = CreatorSessionRecord(user_id="u1", strategy_id=1)
        older.created_at = time.time() - 100
        newer = CreatorSessionRecord(user_id="u1", strategy_id=1)
        self.db.create_session(newer)
        self.db.create_session(older)
        self.assertEqual(self.db.get_active_session("u1", 1, time.time()).id, newer.id)

    def test_executive_summary_upsert(self):
        first = self.db.upsert_executive_summary(
            ExecutiveSummaryRecord(
                strategy_id=1, blueprint_id="vision", user_id="u1",
                summary_data={"themes": ["A"]}, cards_count=1,
            )
        )
        second = self.db.upsert_executive_summary(
            ExecutiveSummaryRecord(
                strategy_id=1, blueprint_id="vision", user_id="u1",
                summary_data={"themes": ["B"]}, cards_count=3,
            )
        )
        self.assertEqual(second.id, first.id)
        stored = self.db.get_executive_summary(1, "vision", "u1")
        self.assertEqual(stored.summary_data, {"themes": ["B"]})
        self.assertEqual(stored.cards_count, 3)
        self.assertIsNone(self.db.get_executive_summary(1, "vision", "u2"))

    def test_history(self):
        self.db.add_history(
            CreatorHistoryRecord(
                user_id="u1", strategy_id=1, action_type="session_start"
            )
        )
        self.db.add_history(
            CreatorHistoryRecord(
                user_id="u1",
                strategy_id=2,
                action_type="cards_committed",
                action_data={"cardsCommitted": 2},
            )
        )
        entries = self.db.list_history("u1", strategy_id=2)
        self.assertEqual([e.action_type for e in entries], ["cards_committed"])
        self.assertEqual(entries[0].action_data, {"cardsCommitted": 2})


if __name__ == "__main__":
    unittest.main()
