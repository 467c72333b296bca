"""
Strategy CRUD routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from pinnlo.auth import AuthUser
from pinnlo.db import DbClient, StrategyRecord
from pinnlo.dependencies import get_current_user, get_db_client
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.schemas import CreateStrategyRequest, StrategyData

logger = logging.getLogger(__name__)

router = APIRouter(tags=["strategies"])


def owned_strategy(db: DbClient, strategy_id: int, user_id: str) -> StrategyRecord:
    strategy = db.get_strategy(strategy_id, user_id)
    if strategy is None:
        raise not_found("Strategy")
    return strategy


def _set_fields(data: StrategyData) -> dict:
    return {k: v for k, v in data.changes().items() if v is not None}


@router.get("/strategies")
def list_strategies(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ok([s.as_dict() for s in db.list_strategies(user.id)])


@router.post("/strategies", status_code=201)
def create_strategy(
    payload: CreateStrategyRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    strategy = db.create_strategy(
        StrategyRecord(user_id=user.id, **_set_fields(payload.strategy_data))
    )
    logger.info("Created strategy %s for user %s", strategy.id, user.id)
    return ok(strategy.as_dict())


@router.get("/strategies/{strategy_id}")
def get_strategy(
    strategy_id: int,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ok(owned_strategy(db, strategy_id, user.id).as_dict())


@router.patch("/strategies/{strategy_id}")
def update_strategy(
    strategy_id: int,
    payload: StrategyData,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = _set_fields(payload)
    if not updates:
        raise bad_request("No fields to update")
    strategy = db.update_strategy(strategy_id, user.id, updates)
    if strategy is None:
        raise not_found("Strategy")
    return ok(strategy.as_dict())


@router.delete("/strategies/{strategy_id}")
def delete_strategy(
    strategy_id: int,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_strategy(strategy_id, user.id):
        raise not_found("Strategy")
    return ok()
