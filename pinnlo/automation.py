"""
Automation rules: scheduling and running intelligence-generation executions.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from models import api_config
from models.base import LLMProvider
from pinnlo.db import AutomationExecutionRecord, AutomationRuleRecord, DbClient
from pinnlo.insights import add_to_groups, build_intelligence_cards
from pinnlo.mcp_client import McpClient, tool_prompts
from pinnlo.queue import JobQueue
from shared.card_parsing import extract_cards, parse_json_content
from shared.types import ExecutionStatus, IntelligenceCategory, ScheduleFrequency, TriggerType

logger = logging.getLogger(__name__)

HOUR = 60 * 60
DAY = 24 * HOUR

FREQUENCY_INTERVALS = {
    ScheduleFrequency.HOURLY: HOUR,
    ScheduleFrequency.DAILY: DAY,
    ScheduleFrequency.WEEKLY: 7 * DAY,
}


class AutomationError(Exception):
    pass


def calculate_next_run(frequency: Optional[str], now: Optional[float] = None) -> float:
    """Next run time for a schedule; unknown frequencies run daily."""
    now = time.time() if now is None else now
    return now + FREQUENCY_INTERVALS.get(frequency, DAY)


def queue_execution(
    db: DbClient,
    queue: JobQueue,
    rule: AutomationRuleRecord,
    trigger_type: str,
) -> AutomationExecutionRecord:
    execution = db.create_execution(
        AutomationExecutionRecord(
            rule_id=rule.id,
            user_id=rule.user_id,
            trigger_type=trigger_type,
        )
    )
    queue.enqueue(execution.id)
    logger.info(
        "Queued %s execution %s for rule %s", trigger_type, execution.id, rule.id
    )
    return execution


def enqueue_due_rules(
    db: DbClient, queue: JobQueue, now: Optional[float] = None
) -> dict:
    """Queue every enabled rule that is due and push its next run forward."""
    now = time.time() if now is None else now
    rules = db.list_due_rules(now)
    queued = []
    for rule in rules:
        execution = queue_execution(db, queue, rule, TriggerType.SCHEDULED.value)
        db.update_rule(
            rule.id, {"next_run_at": calculate_next_run(rule.schedule_frequency, now)}
        )
        queued.append(execution.id)
    logger.info("Cron run: %d due automation rules", len(rules))
    return {
        "processedAutomationRules": len(rules),
        "queued": queued,
        "timestamp": datetime.fromtimestamp(now, timezone.utc).isoformat(),
    }


def run_execution(
    execution: AutomationExecutionRecord,
    db: DbClient,
    mcp: McpClient,
    llm: LLMProvider,
) -> AutomationExecutionRecord:
    """
    Run one queued execution end to end.

    Never raises: any failure is recorded on the execution as `failed`.
    """
    start_time = time.time()
    db.update_execution(
        execution.id, {"status": ExecutionStatus.RUNNING.value, "started_at": start_time}
    )

    def _elapsed_ms() -> int:
        return int((time.time() - start_time) * 1000)

    try:
        rule = db.get_rule(execution.rule_id, execution.user_id)
        if rule is None:
            raise AutomationError("Automation rule not found")

        result = mcp.call_tool(
            "generate_automation_intelligence",
            {
                "userId": rule.user_id,
                "ruleId": rule.id,
                "categories": rule.intelligence_categories,
                "maxCards": rule.max_cards_per_run,
                "targetGroups": rule.target_groups,
                "optimizationLevel": rule.optimization_level,
                "triggerType": execution.trigger_type,
            },
        )
        system_prompt, user_prompt = tool_prompts(result)
        completion = llm.complete(
            system_prompt,
            user_prompt,
            max_tokens=api_config.GENERATION_MAX_OUTPUT_TOKENS,
            json_mode=True,
        )
        raw_cards = extract_cards(parse_json_content(completion.text))

        records = build_intelligence_cards(
            raw_cards,
            rule.user_id,
            f"Automation rule: {rule.name}",
            fallback_category=(
                rule.intelligence_categories[0]
                if rule.intelligence_categories
                else IntelligenceCategory.MARKET.value
            ),
            extra_tags=["automation", execution.trigger_type],
        )
        created = db.create_intelligence_cards(records[: rule.max_cards_per_run])
        add_to_groups(db, rule.user_id, rule.target_groups, [card.id for card in created])

        finished = time.time()
        db.update_rule(rule.id, {"last_run_at": finished})
        logger.info(
            "Execution %s created %d cards (%d tokens)",
            execution.id,
            len(created),
            completion.total_tokens,
        )
        return db.update_execution(
            execution.id,
            {
                "status": ExecutionStatus.COMPLETED.value,
                "cards_created": len(created),
                "tokens_used": completion.total_tokens,
                "completed_at": finished,
                "processing_time_ms": _elapsed_ms(),
            },
        )
    except Exception as exc:
        logger.exception("Execution %s failed: %s", execution.id, exc)
        return db.update_execution(
            execution.id,
            {
                "status": ExecutionStatus.FAILED.value,
                "error_message": str(exc),
                "completed_at": time.time(),
                "processing_time_ms": _elapsed_ms(),
            },
        )
