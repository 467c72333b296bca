"""
User profile routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from pinnlo.auth import AuthUser
from pinnlo.db import DbClient, UserRecord
from pinnlo.dependencies import get_current_user, get_db_client
from pinnlo.responses import ok
from pinnlo.schemas import UpsertUserRequest

router = APIRouter(tags=["users"])


@router.get("/users/me")
def get_me(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    record = db.get_user(user.id)
    if record is None:
        meta = user.user_metadata
        record = db.upsert_user(
            UserRecord(
                id=user.id,
                email=user.email,
                first_name=meta.get("first_name") or "",
                last_name=meta.get("last_name") or "",
                profile_image_url=meta.get("avatar_url") or "",
            )
        )
    return ok(record.as_dict())


@router.post("/users")
def upsert_user(
    payload: UpsertUserRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if payload.user_data.id != user.id:
        raise HTTPException(status_code=403, detail="Cannot modify another user's profile")
    record = db.upsert_user(UserRecord(**payload.user_data.model_dump()))
    return ok(record.as_dict())
