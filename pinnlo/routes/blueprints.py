"""
Read-only blueprint registry routes.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pinnlo.auth import AuthUser
from pinnlo.dependencies import get_current_user
from pinnlo.responses import not_found, ok
from shared.blueprints import Blueprint, get_blueprint, list_blueprints

router = APIRouter(tags=["blueprints"])


def _blueprint_dict(blueprint: Blueprint) -> dict:
    data = asdict(blueprint)
    data["prefix"] = blueprint.prefix
    return data


@router.get("/blueprints")
def get_blueprints(
    category: Optional[str] = Query(default=None),
    user: AuthUser = Depends(get_current_user),
):
    return ok([_blueprint_dict(b) for b in list_blueprints(category)])


@router.get("/blueprints/{blueprint_id}")
def get_blueprint_by_id(
    blueprint_id: str,
    user: AuthUser = Depends(get_current_user),
):
    try:
        blueprint = get_blueprint(blueprint_id)
    except KeyError:
        raise not_found("Blueprint")
    return ok(_blueprint_dict(blueprint))
