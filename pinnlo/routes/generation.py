"""
AI card generation and executive summary routes.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from models import api_config
from models.base import LLMProvider, LLMProviderError
from pinnlo.auth import AuthUser
from pinnlo.db import DbClient, ExecutiveSummaryRecord, timestamp
from pinnlo.dependencies import (
    get_anthropic_provider,
    get_current_user,
    get_db_client,
    get_mcp_client,
    get_openai_provider,
)
from pinnlo.mcp_client import McpClient, McpError, tool_prompts
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.routes.strategies import owned_strategy
from pinnlo.schemas import ClaudeGenerateRequest, ExecutiveSummaryRequest, GenerateRequest
from shared.card_parsing import (
    CardParseError,
    extract_cards,
    parse_json_content,
    requested_card_count,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])

GENERATION_ERRORS = (LLMProviderError, CardParseError, McpError)


def _prompts(payload: GenerateRequest) -> tuple[str, str]:
    if not payload.system_prompt or not payload.user_prompt:
        raise bad_request("Missing prompts")
    return payload.system_prompt, payload.user_prompt


def _summary_key(blueprint_type: Optional[str]) -> str:
    # Summaries across all blueprints are stored under "all".
    return blueprint_type or "all"


def generation_failed(exc: Exception) -> HTTPException:
    logger.error("Generation failed: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))


@router.post("/card-creator/generate")
def generate_cards(
    payload: GenerateRequest,
    user: AuthUser = Depends(get_current_user),
    llm: LLMProvider = Depends(get_openai_provider),
):
    system_prompt, user_prompt = _prompts(payload)
    try:
        completion = llm.complete(
            system_prompt,
            user_prompt,
            max_tokens=api_config.GENERATION_MAX_OUTPUT_TOKENS,
            json_mode=True,
        )
        cards = extract_cards(parse_json_content(completion.text))
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e
    logger.info("Generated %d cards for user %s", len(cards), user.id)
    return ok(cards=cards, usage=completion.usage)


@router.post("/card-creator/generate-claude")
def generate_cards_claude(
    payload: ClaudeGenerateRequest,
    user: AuthUser = Depends(get_current_user),
    llm: LLMProvider = Depends(get_anthropic_provider),
):
    system_prompt, user_prompt = _prompts(payload)
    max_tokens = (
        api_config.PREVIEW_MAX_OUTPUT_TOKENS
        if payload.is_preview
        else api_config.GENERATION_MAX_OUTPUT_TOKENS
    )
    try:
        completion = llm.complete(system_prompt, user_prompt, max_tokens=max_tokens)
        if payload.is_preview:
            return ok(preview=completion.text, text=completion.text, usage=completion.usage)
        cards = extract_cards(parse_json_content(completion.text))
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e
    return ok(
        cards=cards,
        usage=completion.usage,
        debug={
            "requestedCount": requested_card_count(user_prompt),
            "actualCount": len(cards),
        },
    )


@router.post("/executive-summary")
def executive_summary(
    payload: ExecutiveSummaryRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    owned_strategy(db, payload.strategy_id, user.id)
    cards = db.list_cards(payload.strategy_id, payload.blueprint_type)
    if not cards:
        raise not_found("Cards")

    try:
        result = mcp.call_tool(
            "generate_executive_summary",
            {
                "cards": [
                    {
                        "title": c.title,
                        "description": c.description,
                        "card_type": c.card_type,
                    }
                    for c in cards
                ],
                "blueprint_type": payload.blueprint_type,
            },
        )
        system_prompt, user_prompt = tool_prompts(result)
        completion = llm.complete(
            system_prompt,
            user_prompt,
            max_tokens=api_config.GENERATION_MAX_OUTPUT_TOKENS,
            json_mode=True,
        )
        summary = parse_json_content(completion.text)
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e
    if not isinstance(summary, dict):
        summary = {"summary": str(summary)}
    summary_data = {
        "themes": summary.get("themes") or [],
        "implications": summary.get("implications") or [],
        "summary": summary.get("summary") or "",
    }

    saved = False
    if payload.regenerate and summary_data["themes"]:
        db.upsert_executive_summary(
            ExecutiveSummaryRecord(
                strategy_id=payload.strategy_id,
                blueprint_id=_summary_key(payload.blueprint_type),
                user_id=user.id,
                summary_data=summary_data,
                cards_count=len(cards),
                generated_at=timestamp(),
            )
        )
        saved = True
        logger.info("Stored executive summary for strategy %s", payload.strategy_id)

    return ok(
        **summary_data,
        cardCount=len(cards),
        saved=saved,
        usage=completion.usage,
    )


@router.get("/executive-summary")
def get_executive_summary(
    strategy_id: Optional[int] = Query(default=None, alias="strategyId"),
    blueprint_type: Optional[str] = Query(default=None, alias="blueprintType"),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if strategy_id is None:
        raise bad_request("strategyId is required")
    owned_strategy(db, strategy_id, user.id)
    stored = db.get_executive_summary(strategy_id, _summary_key(blueprint_type), user.id)
    if stored is None:
        raise not_found("Executive summary")
    return ok(stored.as_dict())
