"""
Strategy card and template card routes.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pinnlo.auth import AuthUser
from pinnlo.db import CardRecord, DbClient, TemplateCardRecord, new_id, timestamp
from pinnlo.dependencies import get_current_user, get_db_client
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.routes.strategies import owned_strategy
from pinnlo.schemas import CardCreate, CardUpdate, TemplateCardCreate, TemplateCardUpdate
from shared.types import is_valid_card_type

router = APIRouter(tags=["cards"])


def _check_card_type(card_type: Optional[str]) -> None:
    if not is_valid_card_type(card_type):
        raise bad_request(f"Invalid card type: {card_type}")


@router.get("/strategies/{strategy_id}/cards")
def list_cards(
    strategy_id: int,
    card_type: Optional[str] = Query(default=None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    owned_strategy(db, strategy_id, user.id)
    return ok([c.as_dict() for c in db.list_cards(strategy_id, card_type)])


@router.post("/cards", status_code=201)
def create_card(
    payload: CardCreate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    owned_strategy(db, payload.strategy_id, user.id)
    _check_card_type(payload.card_type)
    title = (payload.title or "").strip()
    if not title:
        raise bad_request("Title is required")

    fields = payload.model_dump(mode="json", exclude=set(payload.model_extra or {}))
    fields["title"] = title
    fields["card_data"] = {**fields["card_data"], **(payload.model_extra or {})}
    card = db.create_cards([CardRecord(user_id=user.id, **fields)])[0]
    return ok(card.as_dict())


@router.get("/cards/{card_id}")
def get_card(
    card_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    card = db.get_card(card_id, user.id)
    if card is None:
        raise not_found("Card")
    return ok(card.as_dict())


@router.patch("/cards/{card_id}")
def update_card(
    card_id: str,
    payload: CardUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = {k: v for k, v in payload.changes().items() if v is not None}
    if not updates:
        raise bad_request("No fields to update")
    if "card_type" in updates:
        _check_card_type(updates["card_type"])
    if "title" in updates:
        updates["title"] = updates["title"].strip()
        if not updates["title"]:
            raise bad_request("Title is required")
    card = db.update_card(card_id, user.id, updates)
    if card is None:
        raise not_found("Card")
    return ok(card.as_dict())


@router.delete("/cards/{card_id}")
def delete_card(
    card_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_card(card_id, user.id):
        raise not_found("Card")
    return ok()


@router.post("/cards/{card_id}/duplicate", status_code=201)
def duplicate_card(
    card_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    card = db.get_card(card_id, user.id)
    if card is None:
        raise not_found("Card")
    now = timestamp()
    copy = replace(
        card,
        id=new_id(),
        title=f"{card.title} (Copy)",
        tags=list(card.tags),
        relationships=list(card.relationships),
        card_data=dict(card.card_data),
        metadata=dict(card.metadata),
        created_at=now,
        updated_at=now,
    )
    return ok(db.create_cards([copy])[0].as_dict())


@router.get("/template-cards")
def list_template_cards(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ok([c.as_dict() for c in db.list_template_cards(user.id)])


@router.post("/template-cards", status_code=201)
def create_template_card(
    payload: TemplateCardCreate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    card = db.create_template_card(
        TemplateCardRecord(user_id=user.id, **payload.model_dump(mode="json"))
    )
    return ok(card.as_dict())


@router.patch("/template-cards/{card_id}")
def update_template_card(
    card_id: str,
    payload: TemplateCardUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = {k: v for k, v in payload.changes().items() if v is not None}
    if not updates:
        raise bad_request("No fields to update")
    card = db.update_template_card(card_id, user.id, updates)
    if card is None:
        raise not_found("Template card")
    return ok(card.as_dict())


@router.delete("/template-cards/{card_id}")
def delete_template_card(
    card_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_template_card(card_id, user.id):
        raise not_found("Template card")
    return ok()
