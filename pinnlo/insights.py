"""
Turning model output into stored intelligence cards.

Automation runs, text processing and URL analysis all receive loosely shaped
card objects from a model. These helpers normalise them into
`IntelligenceCardRecord`s and file the stored cards into groups.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from pinnlo.db import DbClient, IntelligenceCardRecord
from shared.json_utils import convert_keys
from shared.types import IntelligenceCategory

logger = logging.getLogger(__name__)

_TITLE_FROM_SUMMARY_CHARS = 100


def clamp_score(value: Any) -> Optional[int]:
    try:
        score = int(value)
    except (TypeError, ValueError):
        return None
    return min(max(score, 1), 10)


def as_string_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, list):
        return "; ".join(str(v) for v in value)
    return str(value)


def build_intelligence_card(
    raw: Any,
    user_id: str,
    source_reference: str,
    *,
    category: Optional[str] = None,
    fallback_category: str = IntelligenceCategory.MARKET.value,
    default_tags: Sequence[str] = (),
    extra_tags: Sequence[str] = (),
    default_credibility: Optional[int] = None,
    default_relevance: Optional[int] = None,
    title_from_summary: bool = False,
) -> Optional[IntelligenceCardRecord]:
    """
    Build a card record from one generated object, or None if it has no title.

    With `title_from_summary` an untitled object borrows the start of its
    summary instead of being dropped.

    `category` forces the category; otherwise the object's own category is
    used when valid, else `fallback_category`. Keys may arrive in camelCase.
    """
    if not isinstance(raw, dict):
        return None
    raw = convert_keys(raw, "camel_to_snake")
    summary = raw.get("summary") or raw.get("description")
    title = raw.get("title")
    if not title and title_from_summary and summary:
        title = str(summary)[:_TITLE_FROM_SUMMARY_CHARS]
    if not title:
        return None

    if category is None:
        category = raw.get("category")
        if not isinstance(category, str) or category not in set(IntelligenceCategory):
            category = fallback_category
    summary = summary or title
    tags = as_string_list(raw.get("tags")) or list(default_tags)
    credibility = clamp_score(raw.get("credibility_score", raw.get("confidence")))
    relevance = clamp_score(raw.get("relevance_score", raw.get("relevance")))
    return IntelligenceCardRecord(
        user_id=user_id,
        category=category,
        title=str(title),
        summary=str(summary),
        intelligence_content=str(
            raw.get("intelligence_content") or raw.get("content") or summary
        ),
        key_findings=as_string_list(raw.get("key_findings") or raw.get("key_insights")),
        source_reference=source_reference,
        credibility_score=credibility if credibility is not None else default_credibility,
        relevance_score=relevance if relevance is not None else default_relevance,
        strategic_implications=_optional_text(raw.get("strategic_implications")),
        recommended_actions=_optional_text(raw.get("recommended_actions")),
        tags=tags + list(extra_tags),
    )


def build_intelligence_cards(
    raw_cards: Iterable[Any], user_id: str, source_reference: str, **options
) -> List[IntelligenceCardRecord]:
    cards = []
    for raw in raw_cards:
        card = build_intelligence_card(raw, user_id, source_reference, **options)
        if card is not None:
            cards.append(card)
    return cards


def add_to_groups(
    db: DbClient, user_id: str, group_ids: Iterable[str], card_ids: List[str]
) -> List[str]:
    """Add cards to each of the user's groups that exists. Returns the groups used."""
    used = []
    if not card_ids:
        return used
    for group_id in group_ids:
        if db.get_group(group_id, user_id) is None:
            logger.warning("Skipping missing group %s for user %s", group_id, user_id)
            continue
        db.add_group_cards(group_id, card_ids, added_by=user_id)
        used.append(group_id)
    return used
