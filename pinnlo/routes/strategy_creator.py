"""
Strategy creator wizard: sessions, context summaries, card generation and
committing cards.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from models import api_config
from models.base import LLMProvider
from pinnlo.auth import AuthUser
from pinnlo.db import CardRecord, CreatorHistoryRecord, CreatorSessionRecord, DbClient, timestamp
from pinnlo.dependencies import (
    get_current_user,
    get_db_client,
    get_mcp_client,
    get_openai_provider,
)
from pinnlo.mcp_client import McpClient, tool_prompts
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.routes.generation import GENERATION_ERRORS, generation_failed
from pinnlo.routes.strategies import owned_strategy
from pinnlo.schemas import (
    CommitRequest,
    ContextSummaryRequest,
    GenerateCardsRequest,
    SessionUpdateRequest,
)
from shared.blueprints import BLUEPRINTS
from shared.card_parsing import (
    extract_cards,
    normalise_confidence,
    parse_json_content,
    transform_generated_cards,
)
from shared.json_utils import camel_to_snake
from shared.types import is_valid_card_type, normalise_priority

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/strategy-creator", tags=["strategy-creator"])

SESSION_FIELDS = {
    "current_step",
    "completed_steps",
    "selected_blueprint_cards",
    "selected_intelligence_cards",
    "context_summary",
    "target_blueprint",
    "generation_options",
    "generated_cards",
}


def _log(
    db: DbClient,
    user_id: str,
    strategy_id: int,
    action_type: str,
    session_id: Optional[str] = None,
    **action_data,
) -> None:
    db.add_history(
        CreatorHistoryRecord(
            user_id=user_id,
            strategy_id=strategy_id,
            session_id=session_id,
            action_type=action_type,
            action_data=action_data,
        )
    )


@router.get("/session")
def get_or_create_session(
    strategy_id: Optional[int] = Query(default=None, alias="strategyId"),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if strategy_id is None:
        raise bad_request("strategyId is required")
    owned_strategy(db, strategy_id, user.id)

    session = db.get_active_session(user.id, strategy_id, timestamp())
    if session is None:
        session = db.create_session(
            CreatorSessionRecord(user_id=user.id, strategy_id=strategy_id)
        )
        _log(db, user.id, strategy_id, "session_start", session.id)
        logger.info("Started creator session %s for strategy %s", session.id, strategy_id)
    return ok(session.as_dict())


@router.put("/session")
def update_session(
    payload: SessionUpdateRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not payload.session_id:
        raise bad_request("sessionId is required")
    allowed = {
        camel_to_snake(k): v
        for k, v in payload.updates.items()
        if camel_to_snake(k) in SESSION_FIELDS
    }
    if not allowed:
        raise bad_request("No valid fields to update")
    session = db.update_session(payload.session_id, user.id, allowed)
    if session is None:
        raise not_found("Session")
    return ok(session.as_dict())


@router.post("/generate-cards")
def generate_strategy_cards(
    payload: GenerateCardsRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    if not payload.context_summary or not payload.target_blueprint:
        raise bad_request("contextSummary and targetBlueprint are required")
    blueprint = BLUEPRINTS.get(payload.target_blueprint)
    if blueprint is None:
        raise bad_request(f"Unknown blueprint: {payload.target_blueprint}")
    if not is_valid_card_type(blueprint.id):
        raise bad_request(f"Blueprint {blueprint.id} cannot be committed as a card")
    if payload.strategy_id is not None:
        owned_strategy(db, payload.strategy_id, user.id)

    try:
        result = mcp.call_tool(
            "generate_strategy_cards",
            {
                "contextSummary": payload.context_summary,
                "targetBlueprint": blueprint.id,
                "generationOptions": payload.generation_options,
                "existingCards": payload.existing_cards,
            },
        )
        system_prompt, user_prompt = tool_prompts(result)
        completion = llm.complete(
            system_prompt,
            user_prompt,
            max_tokens=api_config.STRATEGY_CARDS_MAX_OUTPUT_TOKENS,
            json_mode=True,
        )
        raw_cards = extract_cards(parse_json_content(completion.text))
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e

    cards = transform_generated_cards(raw_cards, blueprint.id, payload.strategy_id)
    return ok(
        cards=cards,
        metadata={
            "blueprint": blueprint.id,
            "blueprintName": blueprint.name,
            "count": len(cards),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "usage": completion.usage,
        },
    )


def _card_record(card: dict, strategy_id: int, user_id: str) -> CardRecord:
    card_type = card.get("cardType") or card.get("card_type")
    if not is_valid_card_type(card_type):
        raise bad_request(f"Invalid card type: {card_type}")
    title = (card.get("title") or "").strip()
    if not title:
        raise bad_request("Title is required")
    confidence = normalise_confidence(card.get("confidence"))
    tags = card.get("tags")
    relationships = card.get("relationships")
    fields = card.get("blueprintFields")
    metadata = card.get("metadata")
    return CardRecord(
        strategy_id=strategy_id,
        user_id=user_id,
        card_type=card_type,
        title=title,
        description=str(card.get("description") or ""),
        priority=normalise_priority(card.get("priority")),
        confidence_level=str(confidence.get("level") or "medium").capitalize(),
        confidence_rationale=str(confidence.get("rationale") or "AI-generated"),
        tags=list(tags) if isinstance(tags, list) else [],
        relationships=list(relationships) if isinstance(relationships, list) else [],
        card_data=dict(fields) if isinstance(fields, dict) else {},
        metadata={
            **(metadata if isinstance(metadata, dict) else {}),
            "committedAt": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.post("/commit")
def commit_cards(
    payload: CommitRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not payload.session_id or payload.selected_cards is None:
        raise bad_request("Session ID and selected cards array required")
    session = db.get_session(payload.session_id, user.id)
    if session is None:
        raise not_found("Session")

    records = [_card_record(c, session.strategy_id, user.id) for c in payload.selected_cards]
    inserted = db.create_cards(records)
    _log(
        db,
        user.id,
        session.strategy_id,
        "cards_committed",
        session.id,
        cardsCommitted=len(inserted),
        cardIds=[c.id for c in inserted],
        cardTypes=sorted({c.card_type for c in inserted}),
    )
    db.delete_session(session.id, user.id)
    logger.info("Committed %d cards to strategy %s", len(inserted), session.strategy_id)
    return ok(cards=[c.as_dict() for c in inserted], count=len(inserted))


def _summarise_context(
    mcp: McpClient, llm: LLMProvider, payload: ContextSummaryRequest
) -> str:
    result = mcp.call_tool(
        "generate_context_summary",
        {
            "strategyName": payload.strategy_name,
            "blueprintCards": payload.blueprint_cards,
            "intelligenceCards": payload.intelligence_cards,
            "intelligenceGroups": payload.intelligence_groups,
        },
    )
    system_prompt, user_prompt = tool_prompts(result)
    completion = llm.complete(
        system_prompt,
        user_prompt,
        max_tokens=api_config.CONTEXT_SUMMARY_MAX_OUTPUT_TOKENS,
    )
    return completion.text.strip()


def _fallback_summary(payload: ContextSummaryRequest) -> str:
    lines = [f"# Context Summary for {payload.strategy_name or 'Strategy'}", ""]
    if payload.blueprint_cards:
        lines.append(f"## Strategy Cards ({len(payload.blueprint_cards)})")
        lines.extend(f"- {c.get('title') or 'Untitled'}" for c in payload.blueprint_cards)
        lines.append("")
    if payload.intelligence_cards:
        lines.append(f"## Intelligence ({len(payload.intelligence_cards)})")
        lines.extend(
            f"- {c.get('title') or 'Untitled'}" for c in payload.intelligence_cards
        )
        lines.append("")
    if payload.intelligence_groups:
        lines.append(f"## Intelligence Groups ({len(payload.intelligence_groups)})")
        lines.extend(
            f"- {g.get('name') or g.get('id') or 'Unnamed'}"
            for g in payload.intelligence_groups
        )
    return "\n".join(lines).strip()


@router.post("/context")
def generate_session_context(
    payload: ContextSummaryRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    if not payload.session_id:
        raise bad_request("Session ID required")
    session = db.get_session(payload.session_id, user.id)
    if session is None:
        raise not_found("Session")
    if payload.strategy_name is None:
        payload.strategy_name = owned_strategy(db, session.strategy_id, user.id).title

    try:
        summary = _summarise_context(mcp, llm, payload)
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e

    db.update_session(session.id, user.id, {"context_summary": summary})
    _log(
        db,
        user.id,
        session.strategy_id,
        "context_generated",
        session.id,
        blueprintCardsCount=len(payload.blueprint_cards),
        intelligenceCardsCount=len(payload.intelligence_cards),
        intelligenceGroupsCount=len(payload.intelligence_groups),
        summaryLength=len(summary),
    )
    return ok(
        contextSummary=summary,
        metadata={
            "blueprintCardsUsed": len(payload.blueprint_cards),
            "intelligenceCardsUsed": len(payload.intelligence_cards),
            "intelligenceGroupsUsed": len(payload.intelligence_groups),
            "wordCount": len(summary.split()),
        },
    )


@router.post("/generate-summary")
def generate_summary(
    payload: ContextSummaryRequest,
    user: AuthUser = Depends(get_current_user),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    if not (
        payload.blueprint_cards or payload.intelligence_cards or payload.intelligence_groups
    ):
        raise bad_request("Select at least one card or group to summarise")
    try:
        summary = _summarise_context(mcp, llm, payload)
        source = "mcp"
    except GENERATION_ERRORS as e:
        logger.warning("Context summary generation failed, using fallback: %s", e)
        summary = _fallback_summary(payload)
        source = "fallback"
    return ok(
        summary=summary,
        metadata={
            "blueprintCardCount": len(payload.blueprint_cards),
            "intelligenceCardCount": len(payload.intelligence_cards),
            "intelligenceGroupCount": len(payload.intelligence_groups),
            "strategyName": payload.strategy_name,
            "source": source,
        },
    )
