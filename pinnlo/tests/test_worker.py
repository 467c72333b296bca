import json
import unittest
from unittest.mock import MagicMock

from models.base import Completion, LLMProviderError
from pinnlo.db import (
    AutomationExecutionRecord,
    AutomationRuleRecord,
    InMemoryDbClient,
    IntelligenceGroupRecord,
)
from pinnlo.mcp_client import LocalMcpClient
from pinnlo.queue import InMemoryJobQueue
from pinnlo.worker import drain, process_next, recover_interrupted
from shared.types import ExecutionStatus, TriggerType


class WorkerTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.queue = InMemoryJobQueue()
        self.mcp = LocalMcpClient()
        self.llm = MagicMock()
        self.group = self.db.create_group(
            IntelligenceGroupRecord(user_id="user-a", name="Inbox")
        )
        self.rule = self.db.create_rule(
            AutomationRuleRecord(
                user_id="user-a",
                name="Morning scan",
                intelligence_categories=["competitor"],
                target_groups=[self.group.id, "deleted-group"],
                max_cards_per_run=2,
            )
        )

    def queue_execution(self, trigger_type=TriggerType.MANUAL.value):
        execution = self.db.create_execution(
            AutomationExecutionRecord(
                rule_id=self.rule.id, user_id="user-a", trigger_type=trigger_type
            )
        )
        self.queue.enqueue(execution.id)
        return execution

    def run_once(self) -> bool:
        return process_next(
            db=self.db, queue=self.queue, mcp=self.mcp, llm=self.llm, block=False
        )

    def test_process_once_creates_cards(self):
        self.llm.complete.return_value = Completion(
            text=json.dumps(
                {
                    "cards": [
                        {
                            "title": "Rival cuts prices",
                            "summary": "Price war",
                            "category": "nonsense",
                            "credibility_score": 15,
                            "tags": ["pricing"],
                        },
                        {"summary": "no title, skipped"},
                        {
                            "title": "New entrant",
                            "category": "market",
                            "keyFindings": ["Seed round closed"],
                            "relevanceScore": 0,
                        },
                        {"title": "Over the limit"},
                    ]
                }
            ),
            model="fake",
            usage={"total_tokens": 321},
        )
        execution = self.queue_execution()

        self.assertTrue(self.run_once())

        updated = self.db.get_execution(execution.id)
        self.assertEqual(updated.status, ExecutionStatus.COMPLETED)
        self.assertEqual(updated.cards_created, 2)
        self.assertEqual(updated.tokens_used, 321)
        self.assertIsNotNone(updated.completed_at)
        self.assertIsNotNone(updated.processing_time_ms)

        cards = {c.title: c for c in self.db.list_intelligence_cards("user-a")}
        self.assertEqual(set(cards), {"Rival cuts prices", "New entrant"})
        rival = cards["Rival cuts prices"]
        self.assertEqual(rival.category, "competitor")
        self.assertEqual(rival.credibility_score, 10)
        self.assertEqual(rival.tags, ["pricing", "automation", "manual"])
        self.assertEqual(rival.source_reference, "Automation rule: Morning scan")
        self.assertEqual(cards["New entrant"].category, "market")
        self.assertEqual(cards["New entrant"].key_findings, ["Seed round closed"])
        self.assertEqual(cards["New entrant"].relevance_score, 1)

        self.assertEqual(self.db.get_group(self.group.id, "user-a").card_count, 2)
        self.assertIsNotNone(self.db.get_rule(self.rule.id).last_run_at)

        system_prompt, user_prompt = self.llm.complete.call_args.args
        self.assertIn("exactly 2", user_prompt)
        self.assertTrue(self.llm.complete.call_args.kwargs["json_mode"])

    def test_process_once_records_failure(self):
        self.llm.complete.side_effect = LLMProviderError("OpenAI API key not configured")
        execution = self.queue_execution()

        self.assertTrue(self.run_once())

        updated = self.db.get_execution(execution.id)
        self.assertEqual(updated.status, ExecutionStatus.FAILED)
        self.assertEqual(updated.error_message, "OpenAI API key not configured")
        self.assertEqual(self.db.list_intelligence_cards("user-a"), [])

    def test_missing_rule_fails_execution(self):
        execution = self.queue_execution()
        self.db.delete_rule(self.rule.id, "user-a")

        self.assertTrue(self.run_once())

        updated = self.db.get_execution(execution.id)
        self.assertEqual(updated.status, ExecutionStatus.FAILED)
        self.assertEqual(updated.error_message, "Automation rule not found")
        self.llm.complete.assert_not_called()

    def test_skips_execution_not_queued(self):
        execution = self.queue_execution()
        self.db.update_execution(execution.id, {"status": ExecutionStatus.COMPLETED.value})
        self.assertTrue(self.run_once())
        self.llm.complete.assert_not_called()
        self.assertEqual(self.queue.in_flight, [])

    def test_unknown_execution_id(self):
        self.queue.enqueue("missing")
        self.assertTrue(self.run_once())
        self.assertEqual(self.queue.in_flight, [])
        self.assertFalse(self.run_once())

    def test_stale_id_does_not_stop_drain(self):
        self.llm.complete.return_value = Completion(
            text=json.dumps({"cards": [{"title": "Signal"}]}), model="fake", usage={}
        )
        self.queue.enqueue("missing")
        execution = self.queue_execution()

        handled = drain(db=self.db, queue=self.queue, mcp=self.mcp, llm=self.llm)

        self.assertEqual(handled, 2)
        updated = self.db.get_execution(execution.id)
        self.assertEqual(updated.status, ExecutionStatus.COMPLETED)
        self.assertEqual(updated.cards_created, 1)

    def test_recover_requeues_interrupted_execution(self):
        execution = self.queue_execution()
        self.assertEqual(self.queue.dequeue(block=False), execution.id)
        self.db.update_execution(execution.id, {"status": ExecutionStatus.RUNNING.value})

        self.assertEqual(recover_interrupted(self.db, self.queue), [execution.id])
        self.assertEqual(self.db.get_execution(execution.id).status, ExecutionStatus.QUEUED)
        self.assertEqual(self.queue.items, [execution.id])

    def test_process_once_no_jobs(self):
        self.assertFalse(self.run_once())


if __name__ == "__main__":
    unittest.main()
