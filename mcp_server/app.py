"""
HTTP entry point for the MCP tool server.

Serves JSON-RPC 2.0 `tools/list` and `tools/call` on POST /invoke.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mcp_server import tools
from pinnlo.config import get_settings

logger = logging.getLogger(__name__)

METHOD_NOT_FOUND = -32601
INVALID_REQUEST = -32600

_bearer = HTTPBearer(auto_error=False)


def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> None:
    expected = get_settings().mcp_server_token
    if not expected:
        return
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), expected.encode()
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _error(request_id: Any, code: int, message: str) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="PINNLO MCP Server", version="0.1.0")

    @app.get("/health")
    def health():
        return {"status": "ok", "tools": len(tools.TOOLS)}

    @app.post("/invoke", dependencies=[Depends(require_token)])
    def invoke(body: dict):
        request_id = body.get("id")
        method = body.get("method")
        params = body.get("params") or {}
        if (
            body.get("jsonrpc") != "2.0"
            or not isinstance(method, str)
            or not isinstance(params, dict)
        ):
            return _error(request_id, INVALID_REQUEST, "Invalid JSON-RPC request")

        if method == "tools/list":
            return {"jsonrpc": "2.0", "id": request_id, "result": {"tools": tools.list_tools()}}
        if method != "tools/call":
            return _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        name = params.get("name")
        logger.info("tools/call %s", name)
        try:
            result = tools.call_tool(name, params.get("arguments"))
        except tools.ToolError as e:
            return _error(request_id, e.code, str(e))
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    return app


app = create_app()
