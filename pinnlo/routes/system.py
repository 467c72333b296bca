"""
System prompt administration and the MCP tool proxy.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pinnlo.auth import AuthUser
from pinnlo.db import DbClient
from pinnlo.dependencies import get_current_user, get_db_client, get_mcp_client
from pinnlo.mcp_client import McpClient, McpError, tool_text
from pinnlo.responses import bad_request, not_found, ok
from pinnlo.schemas import McpInvokeRequest, SystemPromptUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/system-prompts")
def list_system_prompts(
    agent_type: Optional[str] = Query(default=None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ok([p.as_dict() for p in db.list_system_prompts(agent_type)])


@router.put("/system-prompts/{prompt_id}")
def update_system_prompt(
    prompt_id: str,
    payload: SystemPromptUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updates = {k: v for k, v in payload.changes().items() if v is not None}
    if not updates:
        raise bad_request("At least one prompt field is required")
    prompt = db.update_system_prompt(prompt_id, updates)
    if prompt is None:
        raise not_found("System prompt")
    logger.info("User %s updated system prompt %s", user.id, prompt_id)
    return ok(prompt.as_dict())


@router.post("/mcp/invoke")
def invoke_tool(
    payload: McpInvokeRequest,
    user: AuthUser = Depends(get_current_user),
    mcp: McpClient = Depends(get_mcp_client),
):
    arguments = dict(payload.arguments)
    if payload.tool == "generate_automation_intelligence":
        arguments["userId"] = user.id

    try:
        result = mcp.call_tool(payload.tool, arguments)
    except McpError as e:
        logger.error("MCP tool %s failed: %s", payload.tool, e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    text = tool_text(result)
    if text is not None:
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return {**parsed, "success": parsed.get("success", True)}
    return ok(result=result)
