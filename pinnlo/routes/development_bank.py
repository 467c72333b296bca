"""
Development bank: technical requirements documents (TRDs) and the task
lists committed from them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from models.base import LLMProvider
from pinnlo.auth import AuthUser
from pinnlo.db import CardRecord, DbClient
from pinnlo.dependencies import (
    get_current_user,
    get_db_client,
    get_mcp_client,
    get_openai_provider,
)
from pinnlo.mcp_client import McpClient, tool_config, tool_prompts
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.routes.generation import GENERATION_ERRORS, generation_failed
from pinnlo.routes.strategies import owned_strategy
from pinnlo.schemas import CommitTrdRequest, TechnicalRequirementRequest
from shared.card_parsing import CardParseError, parse_json_content
from shared.types import normalise_priority

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/development-bank", tags=["development-bank"])

MAX_STRATEGY_CONTEXT_CARDS = 10
DEFAULT_TASK_EFFORT = 3
HOURS_PER_EFFORT_POINT = 8


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _complete(mcp: McpClient, llm: LLMProvider, tool: str, arguments: dict, **kwargs):
    """Call a prompt tool and run its prompts with the settings it recommends."""
    result = mcp.call_tool(tool, arguments)
    system_prompt, user_prompt = tool_prompts(result)
    config = tool_config(result)
    options = {
        key: config[key] for key in ("temperature", "max_tokens") if key in config
    }
    return llm.complete(system_prompt, user_prompt, **options, **kwargs)


@router.post("/generate-technical-requirement")
def generate_technical_requirement(
    payload: TechnicalRequirementRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    if payload.strategy_id is None or not payload.features:
        raise bad_request("Missing required fields: strategyId, features")
    strategy = owned_strategy(db, payload.strategy_id, user.id)
    cards = db.list_cards(strategy.id)[:MAX_STRATEGY_CONTEXT_CARDS]
    features = [f.model_dump(mode="json") for f in payload.features]
    names = [f["name"] for f in features]

    try:
        completion = _complete(
            mcp,
            llm,
            "generate_technical_requirement",
            {
                "features": features,
                "strategyContext": {
                    "title": strategy.title,
                    "description": strategy.description,
                    "cards": [
                        {"title": c.title, "description": c.description, "card_type": c.card_type}
                        for c in cards
                    ],
                },
                "options": payload.options,
            },
        )
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e

    logger.info("Generated TRD for %d features in strategy %s", len(names), strategy.id)
    return ok(
        requirement={
            "name": "Technical Requirements for " + ", ".join(names),
            "description": completion.text,
            "features": names,
            "generatedWith": completion.model,
            "timestamp": _now(),
        },
        metadata={
            "strategyId": strategy.id,
            "featureCount": len(names),
            "usage": completion.usage,
        },
    )


def _task_list_card(
    generated: dict, trd: CardRecord, user_id: str, committed_at: str
) -> CardRecord:
    meta = generated["taskListMetadata"]
    categories = generated.get("categories")
    categories = categories if isinstance(categories, list) else []
    return CardRecord(
        strategy_id=trd.strategy_id,
        user_id=user_id,
        card_type="task-list",
        title=str(meta.get("name") or f"Task List: {trd.title}"),
        description=f"Comprehensive implementation plan generated from TRD: {trd.title}",
        priority=normalise_priority(meta.get("priority")),
        card_data={
            "metadata": {
                "status": meta.get("status") or "Not Started",
                "priority": meta.get("priority") or "Medium",
                "estimatedEffort": meta.get("estimatedEffort"),
                "progress": {
                    "totalTasks": len(generated["tasks"]),
                    "completedTasks": 0,
                    "percentage": 0,
                },
            },
            "categories": categories,
            "trdSource": {
                "trdId": trd.id,
                "trdTitle": trd.title,
                "committedAt": committed_at,
                "committedBy": user_id,
            },
            "generationSettings": {
                "includedSections": [
                    c.get("id") for c in categories if isinstance(c, dict)
                ],
                "generatedAt": committed_at,
                "generatedBy": user_id,
            },
        },
    )


def _task_card(
    task: dict, task_list_id: str, trd: CardRecord, user_id: str
) -> CardRecord:
    effort = task.get("effort") or DEFAULT_TASK_EFFORT
    description = task.get("description")
    objective = description.get("objective") if isinstance(description, dict) else description
    category = task.get("category")
    priority = task.get("priority") or "Medium"
    return CardRecord(
        strategy_id=trd.strategy_id,
        user_id=user_id,
        card_type="task",
        title=str(task.get("title") or task.get("taskId") or "Untitled task"),
        description=str(objective or task.get("title") or ""),
        priority=normalise_priority(priority),
        card_data={
            "task_list_id": task_list_id,
            "category": category,
            "taskId": task.get("taskId"),
            "description": description,
            "acceptanceCriteria": task.get("acceptanceCriteria") or [],
            "dependencies": task.get("dependencies") or {"blocks": [], "blockedBy": []},
            "technicalImplementation": task.get("technicalImplementation")
            or {"filesToCreate": []},
            "definitionOfDone": task.get("definitionOfDone") or [],
            "trdSource": {"trdId": trd.id, "trdTitle": trd.title, "section": category},
            "metadata": {
                "status": task.get("status") or "Not Started",
                "priority": priority,
                "effort": effort,
                "estimatedHours": (
                    effort * HOURS_PER_EFFORT_POINT
                    if isinstance(effort, (int, float))
                    else None
                ),
                "tags": [t for t in (category, priority) if t],
            },
        },
    )


def _parse_task_list(text: str) -> dict[str, Any]:
    generated = parse_json_content(text)
    if not isinstance(generated, dict):
        raise CardParseError("Task list response must be a JSON object")
    if not isinstance(generated.get("taskListMetadata"), dict):
        raise CardParseError("Task list response is missing taskListMetadata")
    tasks = generated.get("tasks")
    if not isinstance(tasks, list):
        raise CardParseError("Task list response is missing tasks")
    generated["tasks"] = [t for t in tasks if isinstance(t, dict)]
    return generated


@router.post("/commit-trd-to-task-list")
def commit_trd_to_task_list(
    payload: CommitTrdRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    if not payload.trd_id:
        raise bad_request("trdId is required")
    trd = db.get_card(payload.trd_id, user.id)
    if trd is None:
        raise not_found("TRD")
    if trd.card_type != "trd":
        raise bad_request("Card is not a technical requirements document")

    try:
        completion = _complete(
            mcp,
            llm,
            "commit_trd_to_task_list",
            {
                "trdId": trd.id,
                "trdTitle": trd.title,
                "trdContent": trd.card_data,
                "strategyId": trd.strategy_id,
            },
            json_mode=True,
        )
        generated = _parse_task_list(completion.text)
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e

    committed_at = _now()
    task_list = db.create_cards([_task_list_card(generated, trd, user.id, committed_at)])[0]
    tasks = db.create_cards(
        [_task_card(t, task_list.id, trd, user.id) for t in generated["tasks"]]
    )
    total_effort = generated["taskListMetadata"].get("estimatedEffort")
    roadmap = trd.card_data.get("implementationRoadmap")
    db.update_card(
        trd.id,
        user.id,
        {
            "card_data": {
                **trd.card_data,
                "implementationRoadmap": {
                    **(roadmap if isinstance(roadmap, dict) else {}),
                    "committedToTasks": True,
                    "committedAt": committed_at,
                    "taskListId": task_list.id,
                    "taskIds": [t.id for t in tasks],
                    "totalTasks": len(tasks),
                    "totalEffort": total_effort,
                },
            }
        },
    )

    logger.info("Committed TRD %s to %d tasks", trd.id, len(tasks))
    return ok(
        taskList=task_list.as_dict(),
        tasks=[t.as_dict() for t in tasks],
        metadata={
            "totalTasks": len(tasks),
            "totalEffort": total_effort,
            "categories": len(task_list.card_data["categories"]),
            "trdId": trd.id,
            "trdTitle": trd.title,
        },
    )
