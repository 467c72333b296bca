"""
Configuration and settings for the PINNLO backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from models import api_config


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and MCP server."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (hosted Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Hosted auth provider
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # LLM providers
    openai_api_key: Optional[str] = Field(default=None)
    anthropic_api_key: Optional[str] = Field(default=None)
    openai_model: str = Field(default=api_config.DEFAULT_OPENAI_MODEL)
    anthropic_model: str = Field(default=api_config.DEFAULT_ANTHROPIC_MODEL)

    # MCP tool server
    mcp_server_url: Optional[str] = Field(default=None)
    mcp_server_token: Optional[str] = Field(default=None)
    mcp_timeout_seconds: float = Field(default=60.0)

    # Scheduled automation
    cron_secret: Optional[str] = Field(default=None)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="pinnlo:automation")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    # Comma separated "token:user_id[:email]" entries for the in-memory verifier.
    dev_auth_tokens: str = Field(default="")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
