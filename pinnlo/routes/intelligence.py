"""
Intelligence card and intelligence group routes.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pinnlo.auth import AuthUser
from pinnlo.db import DbClient, IntelligenceCardRecord, IntelligenceGroupRecord
from pinnlo.dependencies import get_current_user, get_db_client
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.schemas import (
    GroupCardsRequest,
    GroupCreate,
    GroupUpdate,
    IntelligenceCardCreate,
    IntelligenceCardUpdate,
)
from shared.types import DEFAULT_GROUP_COLOR

logger = logging.getLogger(__name__)

router = APIRouter(tags=["intelligence"])

_NULLABLE_CARD_FIELDS = {
    "source_reference",
    "credibility_score",
    "relevance_score",
    "strategic_implications",
    "recommended_actions",
}


def _owned_group(db: DbClient, group_id: str, user_id: str) -> IntelligenceGroupRecord:
    group = db.get_group(group_id, user_id)
    if group is None:
        raise not_found("Group")
    return group


def _trimmed_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _card_ids(payload: GroupCardsRequest) -> list[str]:
    if not payload.card_ids:
        raise bad_request("cardIds must be a non-empty array")
    return payload.card_ids


@router.get("/intelligence-cards")
def list_intelligence_cards(
    category: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cards = db.list_intelligence_cards(
        user.id,
        category=category,
        status=status,
        search=search,
        limit=limit,
        offset=offset,
    )
    return ok([c.as_dict() for c in cards])


@router.post("/intelligence-cards", status_code=201)
def create_intelligence_card(
    payload: IntelligenceCardCreate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    card = db.create_intelligence_cards(
        [IntelligenceCardRecord(user_id=user.id, **payload.model_dump(mode="json"))]
    )[0]
    return ok(card.as_dict())


@router.patch("/intelligence-cards/{card_id}")
def update_intelligence_card(
    card_id: str,
    payload: IntelligenceCardUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = {
        k: v
        for k, v in payload.changes().items()
        if v is not None or k in _NULLABLE_CARD_FIELDS
    }
    if not updates:
        raise bad_request("No fields to update")
    card = db.update_intelligence_card(card_id, user.id, updates)
    if card is None:
        raise not_found("Intelligence card")
    return ok(card.as_dict())


@router.delete("/intelligence-cards/{card_id}")
def delete_intelligence_card(
    card_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_intelligence_card(card_id, user.id):
        raise not_found("Intelligence card")
    return ok()


@router.get("/intelligence-groups")
def list_groups(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ok([g.as_dict() for g in db.list_groups(user.id, limit, offset)])


@router.post("/intelligence-groups", status_code=201)
def create_group(
    payload: GroupCreate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    name = (payload.name or "").strip()
    if not name:
        raise bad_request("Group name is required")
    group = db.create_group(
        IntelligenceGroupRecord(
            user_id=user.id,
            name=name,
            description=_trimmed_or_none(payload.description),
            color=payload.color or DEFAULT_GROUP_COLOR,
        )
    )
    logger.info("Created intelligence group %s for user %s", group.id, user.id)
    return ok(group.as_dict())


@router.get("/intelligence-groups/{group_id}")
def get_group(
    group_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    group = _owned_group(db, group_id, user.id)
    members = db.list_group_members(group_id)
    return ok({**group.as_dict(), "intelligence_group_cards": [m.as_dict() for m in members]})


@router.patch("/intelligence-groups/{group_id}")
def update_group(
    group_id: str,
    payload: GroupUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = payload.changes()
    if not updates:
        raise bad_request("No fields to update")
    if "name" in updates:
        updates["name"] = (updates["name"] or "").strip()
        if not updates["name"]:
            raise bad_request("Group name is required")
    if "description" in updates:
        updates["description"] = _trimmed_or_none(updates["description"])
    if "color" in updates and not updates["color"]:
        updates["color"] = DEFAULT_GROUP_COLOR
    group = db.update_group(group_id, user.id, updates)
    if group is None:
        raise not_found("Group")
    return ok(group.as_dict())


@router.delete("/intelligence-groups/{group_id}")
def delete_group(
    group_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_group(group_id, user.id):
        raise not_found("Group")
    return ok()


@router.get("/intelligence-groups/{group_id}/cards")
def list_group_cards(
    group_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _owned_group(db, group_id, user.id)
    items = []
    for member in db.list_group_members(group_id):
        card = db.get_intelligence_card(member.intelligence_card_id, user.id)
        if card is None:
            continue
        items.append({**member.as_dict(), "intelligence_card": card.as_dict()})
    return ok(items)


@router.post("/intelligence-groups/{group_id}/cards")
def add_group_cards(
    group_id: str,
    payload: GroupCardsRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _owned_group(db, group_id, user.id)
    owned = [
        card_id
        for card_id in dict.fromkeys(_card_ids(payload))
        if db.get_intelligence_card(card_id, user.id) is not None
    ]
    added = db.add_group_cards(group_id, owned, added_by=user.id)
    return ok({"added": added})


@router.delete("/intelligence-groups/{group_id}/cards")
def remove_group_cards(
    group_id: str,
    payload: GroupCardsRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _owned_group(db, group_id, user.id)
    removed = db.remove_group_cards(group_id, _card_ids(payload))
    return ok({"removed": removed})
