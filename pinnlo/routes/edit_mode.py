"""
Edit mode: regenerating an existing card's blueprint fields, streamed as
server-sent events.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from models import api_config
from models.base import LLMProvider
from pinnlo.auth import AuthUser
from pinnlo.db import DbClient
from pinnlo.dependencies import (
    get_current_user,
    get_db_client,
    get_mcp_client,
    get_openai_provider,
)
from pinnlo.mcp_client import McpClient, tool_prompts
from pinnlo.responses import bad_request, not_found
from pinnlo.routes.generation import GENERATION_ERRORS
from pinnlo.routes.strategies import owned_strategy
from pinnlo.schemas import EditModeRequest
from shared.blueprints import BLUEPRINTS
from shared.card_parsing import CardParseError, parse_json_content

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai/edit-mode", tags=["edit-mode"])

MAX_CONTEXT_CARDS = 10
# A generated value replaces existing content only when it is this much longer.
REPLACE_RATIO = 1.5

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _progress(stage: str, progress: int, message: str) -> str:
    return _event(
        {"type": "progress", "stage": stage, "progress": progress, "message": message}
    )


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, dict)):
        return not value
    return not str(value).strip()


def merge_fields(existing: dict, generated: dict) -> dict:
    """
    Combine generated field values with what the card already holds.

    Empty fields take the generated value. Filled fields keep their content
    unless the generated value is substantially longer.
    """
    merged = dict(existing)
    for key, value in generated.items():
        if _is_empty(value):
            continue
        current = existing.get(key)
        if _is_empty(current) or len(str(value)) > REPLACE_RATIO * len(str(current)):
            merged[key] = value
    return merged


@router.post("/generate")
def generate_edit_mode_content(
    payload: EditModeRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    if not payload.card_id or not payload.blueprint_type or not payload.card_title:
        raise bad_request("Missing required fields")
    card = db.get_card(payload.card_id, user.id)
    if card is None:
        raise not_found("Card")
    blueprint = BLUEPRINTS.get(payload.blueprint_type)
    if blueprint is None:
        raise bad_request(f"Unknown blueprint: {payload.blueprint_type}")

    strategy_id = payload.strategy_id or card.strategy_id
    owned_strategy(db, strategy_id, user.id)
    existing = payload.existing_fields or dict(card.card_data)

    def stream() -> Iterator[str]:
        yield _progress("context_gathering", 10, "Gathering strategy context")
        context_cards = [
            {"title": c.title, "description": c.description, "card_type": c.card_type}
            for c in db.list_cards(strategy_id)
            if c.id != card.id
        ][:MAX_CONTEXT_CARDS]

        yield _progress("configuring", 30, "Preparing prompts")
        try:
            result = mcp.call_tool(
                "generate_edit_mode_content",
                {
                    "cardId": card.id,
                    "blueprintType": blueprint.id,
                    "cardTitle": payload.card_title,
                    "existingFields": existing,
                    "contextCards": context_cards,
                },
            )
            system_prompt, user_prompt = tool_prompts(result)

            yield _progress("generating", 50, "Generating content")
            completion = llm.complete(
                system_prompt,
                user_prompt,
                max_tokens=api_config.GENERATION_MAX_OUTPUT_TOKENS,
                json_mode=True,
            )
            generated = parse_json_content(completion.text)
            if not isinstance(generated, dict):
                raise CardParseError("Model did not return an object of fields")
        except GENERATION_ERRORS as e:
            logger.error("Edit mode generation failed for card %s: %s", card.id, e)
            yield _event({"type": "error", "error": str(e)})
            return

        yield _progress("optimizing", 90, "Merging with existing content")
        yield _event(
            {
                "type": "complete",
                "success": True,
                "fields": merge_fields(existing, generated),
                "metadata": {
                    "tokensUsed": completion.total_tokens,
                    "contextCardsUsed": len(context_cards),
                },
            }
        )
        logger.info("Generated edit mode content for card %s", card.id)

    return StreamingResponse(stream(), media_type="text/event-stream", headers=SSE_HEADERS)
