"""
Turning pasted text and web pages into intelligence cards.
"""

from __future__ import annotations

import logging

import requests
from fastapi import APIRouter, Depends

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
from pinnlo.insights import add_to_groups, build_intelligence_cards
from pinnlo.mcp_client import McpClient, tool_payload, tool_prompts
from pinnlo.responses import bad_request, ok
from pinnlo.routes.generation import GENERATION_ERRORS, generation_failed
from pinnlo.schemas import TextProcessingRequest, UrlProcessingRequest
from shared.card_parsing import extract_cards, parse_json_content
from shared.fetch_utils import fetch_page, is_valid_url
from shared.types import IntelligenceCategory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/intelligence-processing", tags=["intelligence-processing"])

MAX_TEXT_LENGTH = 50000
SUPPORTED_TEXT_TYPES = [
    "interview",
    "article",
    "report",
    "news",
    "research",
    "email",
    "document",
    "general",
]
INTERVIEW_MIN_CARDS = 10
URL_DEFAULT_SCORE = 7


def _generate(
    mcp: McpClient, llm: LLMProvider, tool: str, arguments: dict
) -> tuple[list, dict, dict]:
    """Run a prompt tool and the model. Returns (raw cards, tool payload, usage)."""
    try:
        result = mcp.call_tool(tool, arguments)
        system_prompt, user_prompt = tool_prompts(result)
        completion = llm.complete(
            system_prompt,
            user_prompt,
            max_tokens=api_config.GENERATION_MAX_OUTPUT_TOKENS,
            json_mode=True,
        )
        raw_cards = extract_cards(parse_json_content(completion.text))
    except GENERATION_ERRORS as e:
        raise generation_failed(e) from e
    return raw_cards, tool_payload(result), completion.usage


@router.get("/text")
def text_processing_info():
    return ok(
        service="Text Processing",
        supportedTypes=SUPPORTED_TEXT_TYPES,
        interviewProcessing={"minimumCards": INTERVIEW_MIN_CARDS},
        maxTextLength=MAX_TEXT_LENGTH,
    )


@router.post("/text")
def process_text(
    payload: TextProcessingRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    text = (payload.text or "").strip()
    if not text:
        raise bad_request("Text content is required")
    if len(text) > MAX_TEXT_LENGTH:
        raise bad_request(f"Text must be at most {MAX_TEXT_LENGTH} characters")

    raw_cards, info, usage = _generate(
        mcp,
        llm,
        "process_intelligence_text",
        {"text": text, "context": payload.context, "type": payload.type},
    )
    interview = bool(info.get("isInterview"))
    text_type = payload.type or "general"
    source = "Interview Transcript" if interview else "Text Processing"
    source_reference = f"{source} - {payload.type or 'General'}"
    if payload.context:
        source_reference += f" ({payload.context})"

    records = build_intelligence_cards(
        raw_cards,
        user.id,
        source_reference,
        category=payload.target_category.value if payload.target_category else None,
        default_tags=(
            ["interview", "transcript", text_type]
            if interview
            else ["text-processing", text_type]
        ),
        default_credibility=8 if interview else 7,
        default_relevance=8,
    )
    if not records:
        raise bad_request("No intelligence cards could be extracted from the text")
    created = db.create_intelligence_cards(records)
    groups = add_to_groups(db, user.id, payload.target_groups, [c.id for c in created])

    logger.info(
        "Created %d intelligence cards from %s for user %s",
        len(created),
        "interview" if interview else "text",
        user.id,
    )
    return ok(
        cards=[c.as_dict() for c in created],
        count=len(created),
        isInterview=interview,
        groupsUpdated=groups,
        usage=usage,
        message=(
            f"Successfully created {len(created)} intelligence cards from "
            f"{'interview transcript' if interview else 'text'}"
        ),
    )


@router.post("/url")
def process_url(
    payload: UrlProcessingRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    mcp: McpClient = Depends(get_mcp_client),
    llm: LLMProvider = Depends(get_openai_provider),
):
    url = (payload.url or "").strip()
    if not url:
        raise bad_request("URL is required")
    if not is_valid_url(url):
        raise bad_request("Invalid URL format")

    try:
        page = fetch_page(url)
    except requests.RequestException as e:
        logger.warning("Failed to fetch %s: %s", url, e)
        raise bad_request(f"Failed to fetch URL content: {e}") from e

    category = payload.target_category.value if payload.target_category else None
    raw_cards, _, usage = _generate(
        mcp,
        llm,
        "analyze_url",
        {
            "url": url,
            "title": page.title,
            "description": page.description,
            "content": page.content,
            "context": payload.context,
            "targetCategory": category,
        },
    )
    records = build_intelligence_cards(
        raw_cards,
        user.id,
        url,
        category=category,
        fallback_category=IntelligenceCategory.MARKET.value,
        default_tags=["url-analysis"],
        default_credibility=URL_DEFAULT_SCORE,
        default_relevance=URL_DEFAULT_SCORE,
        title_from_summary=True,
    )
    if not records:
        raise bad_request("No intelligence cards could be extracted from the page")
    created = db.create_intelligence_cards(records)
    groups = add_to_groups(db, user.id, payload.target_groups, [c.id for c in created])

    logger.info("Created %d intelligence cards from %s", len(created), url)
    return ok(
        cards=[c.as_dict() for c in created],
        count=len(created),
        url=url,
        title=page.title,
        description=page.description,
        contentLength=len(page.content),
        groupsUpdated=groups,
        usage=usage,
    )
