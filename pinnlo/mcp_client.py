"""
Client for the MCP tool server (JSON-RPC 2.0 over HTTP, or in process).
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Optional, Protocol

import requests

from mcp_server import tools

logger = logging.getLogger(__name__)


class McpError(Exception):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class McpClient(Protocol):
    def call_tool(self, name: str, arguments: dict) -> dict:
        ...

    def list_tools(self) -> list[dict]:
        ...


class HttpMcpClient:
    """Talks to a remote MCP server through its `/invoke` endpoint."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def call_tool(self, name: str, arguments: dict) -> dict:
        return self._rpc("tools/call", {"name": name, "arguments": arguments})

    def list_tools(self) -> list[dict]:
        return self._rpc("tools/list", {}).get("tools", [])

    def _rpc(self, method: str, params: dict) -> dict:
        body = {
            "jsonrpc": "2.0",
            "id": uuid.uuid4().hex,
            "method": method,
            "params": params,
        }
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.session.post(
                f"{self.url}/invoke", json=body, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("MCP request %s failed: %s", method, e)
            raise McpError(f"MCP server request failed: {e}") from e

        if not isinstance(payload, dict):
            logger.error("MCP request %s returned %s", method, type(payload).__name__)
            raise McpError("MCP server returned an invalid response")
        error = payload.get("error")
        if error:
            raise McpError(error.get("message") or "MCP error", code=error.get("code"))
        return payload.get("result") or {}


class LocalMcpClient:
    """Runs the tool handlers in process."""

    def call_tool(self, name: str, arguments: dict) -> dict:
        try:
            return tools.call_tool(name, arguments)
        except tools.ToolError as e:
            raise McpError(str(e), code=e.code) from e

    def list_tools(self) -> list[dict]:
        return tools.list_tools()


def tool_text(result: dict) -> Optional[str]:
    """Return the first text content item of a tool result."""
    for item in result.get("content") or []:
        if isinstance(item, dict) and item.get("type") == "text":
            return item.get("text")
    return None


def tool_payload(result: dict) -> Any:
    text = tool_text(result)
    if text is None:
        raise McpError("MCP tool returned no text content")
    try:
        return json.loads(text)
    except ValueError as e:
        raise McpError(f"MCP tool returned invalid JSON: {e}") from e


def tool_prompts(result: dict) -> tuple[str, str]:
    """Extract the (system, user) prompt pair a prompt-building tool returns."""
    payload = tool_payload(result)
    if not isinstance(payload, dict) or not payload.get("success"):
        message = payload.get("error") if isinstance(payload, dict) else None
        raise McpError(message or "MCP tool did not return prompts")
    prompts = payload.get("prompts") or {}
    system, user = prompts.get("system"), prompts.get("user")
    if not system or not user:
        raise McpError("MCP tool did not return prompts")
    return system, user


def tool_config(result: dict) -> dict:
    """Model settings a tool recommends alongside its prompts, if any."""
    payload = tool_payload(result)
    config = payload.get("config") if isinstance(payload, dict) else None
    return config if isinstance(config, dict) else {}
