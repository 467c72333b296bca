# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from shared.blueprints import BLUEPRINTS

logger = logging.getLogger(__name__)

CARD_KEY_HINTS = ("card", "proposition")
_REQUESTED_COUNT = re.compile(r"exactly (\d+)")
DEFAULT_RATIONALE = "AI-generated based on provided context"


class CardParseError(ValueError):
    pass


def parse_json_content(content: str) -> Any:
    """Parse model output as JSON, tolerating markdown code fences."""
    text = (content or "").strip()
    if "```" in text:
        starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
        end = max(text.rfind("}"), text.rfind("]")) + 1
        if starts and end > min(starts):
            text = text[min(starts):end]
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CardParseError(f"Invalid JSON response from model: {e}") from e


def extract_cards(parsed: Any) -> List[Any]:
    """
    Pull the list of generated cards out of a parsed model response.

    Models answer with a bare array, an object with a `cards` array, an
    object whose card array lives under some other card-like key, or a
    single card object. The last case is wrapped in a one-element list.
    """
    if isinstance(parsed, list):
        return parsed
    if not isinstance(parsed, dict):
        return [parsed]
    if isinstance(parsed.get("cards"), list):
        return parsed["cards"]

    candidate_keys = [
        key for key in parsed
        if any(hint in key.lower() for hint in CARD_KEY_HINTS)
    ]
    for key in candidate_keys:
        if isinstance(parsed[key], list):
            logger.info("Found cards array under key %r (%d cards)", key, len(parsed[key]))
            return parsed[key]

    logger.info("Response is a single object, wrapping in list")
    return [parsed]


def requested_card_count(user_prompt: str) -> Optional[str]:
    match = _REQUESTED_COUNT.search(user_prompt or "")
    return match.group(1) if match else None


def normalise_confidence(value: Any) -> dict:
    """Coerce a model's confidence into a {level, rationale} dict.

    Models sometimes answer with a bare level such as "high" instead of an
    object; that string becomes the level.
    """
    if isinstance(value, str) and value.strip():
        return {"level": value.strip().lower(), "rationale": DEFAULT_RATIONALE}
    if isinstance(value, dict) and value:
        return value
    return {"level": "medium", "rationale": DEFAULT_RATIONALE}


def _list_or_empty(value: Any) -> list:
    return value if isinstance(value, list) else []


def _dict_or_empty(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def transform_generated_cards(
    cards: List[dict],
    blueprint_id: str,
    strategy_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[dict]:
    """Shape raw generated cards into preview cards for the strategy creator."""
    blueprint = BLUEPRINTS.get(blueprint_id)
    if blueprint is None:
        return []

    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    transformed = []
    for index, card in enumerate(cards):
        if not isinstance(card, dict):
            continue
        transformed.append(
            {
                "id": f"{blueprint.prefix}-{millis}-{index}",
                "title": card.get("title"),
                "description": card.get("description"),
                "cardType": blueprint_id,
                "priority": str(card.get("priority") or "medium"),
                "keyPoints": _list_or_empty(card.get("keyPoints")),
                "blueprintFields": _dict_or_empty(card.get("blueprintFields")),
                "tags": _list_or_empty(card.get("tags")),
                "relationships": _list_or_empty(card.get("relationships")),
                "implementation": _dict_or_empty(card.get("implementation")),
                "confidence": normalise_confidence(card.get("confidence")),
                "generatedAt": now.isoformat(),
                "strategyId": strategy_id,
            }
        )
    return transformed
