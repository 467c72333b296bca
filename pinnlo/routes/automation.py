"""
Automation rule, execution and cron routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pinnlo.auth import AuthUser
from pinnlo.automation import calculate_next_run, enqueue_due_rules, queue_execution
from pinnlo.db import AutomationRuleRecord, DbClient
from pinnlo.dependencies import (
    get_current_user,
    get_db_client,
    get_queue_client,
    require_cron_secret,
)
from pinnlo.queue import JobQueue
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.schemas import RuleCreate, RuleUpdate
from shared.types import TriggerType

router = APIRouter(tags=["automation"])


@router.get("/automation/rules")
def list_rules(
    automation_enabled: Optional[bool] = Query(default=None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    rules = db.list_rules(user.id, automation_only=bool(automation_enabled))
    return ok([r.as_dict() for r in rules])


@router.post("/automation/rules", status_code=201)
def create_rule(
    payload: RuleCreate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    fields = payload.model_dump(mode="json")
    if fields["automation_enabled"] and fields["next_run_at"] is None:
        fields["next_run_at"] = calculate_next_run(fields["schedule_frequency"])
    rule = db.create_rule(
        AutomationRuleRecord(user_id=user.id, created_by_user_id=user.id, **fields)
    )
    return ok(rule.as_dict())


@router.patch("/automation/rules/{rule_id}")
def update_rule(
    rule_id: str,
    payload: RuleUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = {
        k: v for k, v in payload.changes().items() if v is not None or k == "next_run_at"
    }
    if not updates:
        raise bad_request("No fields to update")
    rule = db.get_rule(rule_id, user.id)
    if rule is None:
        raise not_found("Automation rule")

    enabled = updates.get("automation_enabled", rule.automation_enabled)
    next_run_at = updates.get("next_run_at", rule.next_run_at)
    if enabled and next_run_at is None:
        updates["next_run_at"] = calculate_next_run(
            updates.get("schedule_frequency", rule.schedule_frequency)
        )
    rule = db.update_rule(rule_id, updates, user.id)
    return ok(rule.as_dict())


@router.delete("/automation/rules/{rule_id}")
def delete_rule(
    rule_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_rule(rule_id, user.id):
        raise not_found("Automation rule")
    return ok()


@router.post("/automation/rules/{rule_id}/run", status_code=202)
def run_rule(
    rule_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    rule = db.get_rule(rule_id, user.id)
    if rule is None:
        raise not_found("Automation rule")
    execution = queue_execution(db, queue, rule, TriggerType.MANUAL.value)
    return ok(execution.as_dict())


@router.get("/automation/executions")
def list_executions(
    rule_id: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    executions = db.list_executions(user.id, rule_id=rule_id, limit=limit)
    return ok([e.as_dict() for e in executions])


@router.api_route(
    "/cron/daily-intelligence",
    methods=["GET", "POST"],
    dependencies=[Depends(require_cron_secret)],
)
def daily_intelligence(
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    return ok(**enqueue_due_rules(db, queue))
