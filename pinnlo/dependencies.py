"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from models.anthropic_provider import AnthropicProvider
from models.base import LLMProvider
from models.openai_provider import OpenAIProvider
from pinnlo.auth import AuthUser, AuthVerifier, InMemoryAuthVerifier, SupabaseAuthVerifier
from pinnlo.config import get_settings
from pinnlo.db import DbClient, InMemoryDbClient, PostgresDbClient
from pinnlo.mcp_client import HttpMcpClient, LocalMcpClient, McpClient
from pinnlo.queue import InMemoryJobQueue, JobQueue, RedisJobQueue

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_auth_verifier: AuthVerifier | None = None
_queue_client: JobQueue | None = None
_openai_provider: LLMProvider | None = None
_anthropic_provider: LLMProvider | None = None
_mcp_client: McpClient | None = None

_bearer = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_auth_verifier() -> AuthVerifier:
    global _auth_verifier
    if _auth_verifier:
        return _auth_verifier

    settings = get_settings()
    key = settings.supabase_anon_key or settings.supabase_service_role_key
    if settings.use_in_memory_backends or not settings.supabase_url or not key:
        _auth_verifier = InMemoryAuthVerifier.from_config(settings.dev_auth_tokens)
    else:
        _auth_verifier = SupabaseAuthVerifier(settings.supabase_url, key)
    return _auth_verifier


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching executions to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_openai_provider() -> LLMProvider:
    global _openai_provider
    if _openai_provider:
        return _openai_provider
    settings = get_settings()
    _openai_provider = OpenAIProvider(
        api_key=settings.openai_api_key, model=settings.openai_model
    )
    return _openai_provider


def get_anthropic_provider() -> LLMProvider:
    global _anthropic_provider
    if _anthropic_provider:
        return _anthropic_provider
    settings = get_settings()
    _anthropic_provider = AnthropicProvider(
        api_key=settings.anthropic_api_key, model=settings.anthropic_model
    )
    return _anthropic_provider


def get_mcp_client() -> McpClient:
    global _mcp_client
    if _mcp_client:
        return _mcp_client
    settings = get_settings()
    if settings.mcp_server_url:
        _mcp_client = HttpMcpClient(
            settings.mcp_server_url,
            token=settings.mcp_server_token,
            timeout=settings.mcp_timeout_seconds,
        )
    else:
        _mcp_client = LocalMcpClient()
    return _mcp_client


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    verifier: AuthVerifier = Depends(get_auth_verifier),
) -> AuthUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = verifier.verify(credentials.credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> None:
    secret = get_settings().cron_secret
    if not secret:
        logger.error("Cron endpoint called but CRON_SECRET is not configured")
        raise HTTPException(status_code=401, detail="Unauthorized")
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), secret.encode()
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")
