"""
Bearer-token verification against the hosted auth provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from supabase import Client, create_client

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: str = ""
    user_metadata: dict = field(default_factory=dict)


class AuthVerifier(Protocol):
    """Resolves a bearer token to a user, or None when it is not accepted."""

    def verify(self, token: str) -> Optional[AuthUser]:
        ...


class InMemoryAuthVerifier:
    """Static token table for development and tests."""

    def __init__(self, tokens: Optional[Dict[str, AuthUser]] = None):
        self.tokens: Dict[str, AuthUser] = dict(tokens or {})

    @classmethod
    def from_config(cls, raw: str) -> "InMemoryAuthVerifier":
        """Parse `token:user_id[:email]` entries separated by commas."""
        tokens = {}
        for entry in (raw or "").split(","):
            parts = [p.strip() for p in entry.split(":")]
            if len(parts) < 2 or not parts[0] or not parts[1]:
                continue
            email = parts[2] if len(parts) > 2 else ""
            tokens[parts[0]] = AuthUser(id=parts[1], email=email)
        return cls(tokens)

    def add_token(self, token: str, user: AuthUser) -> None:
        self.tokens[token] = user

    def verify(self, token: str) -> Optional[AuthUser]:
        return self.tokens.get(token)


class SupabaseAuthVerifier:
    """Validates access tokens with Supabase Auth (signature, expiry, revocation)."""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        if not url or not key:
            raise ValueError("Supabase URL and key are required for SupabaseAuthVerifier")
        self.client = client or create_client(url, key)

    def verify(self, token: str) -> Optional[AuthUser]:
        try:
            response = self.client.auth.get_user(token)
        except Exception as e:
            logger.warning("Token verification failed: %s", type(e).__name__)
            return None
        user = response.user if response else None
        if not user:
            return None
        return AuthUser(
            id=str(user.id),
            email=user.email or "",
            user_metadata=dict(user.user_metadata or {}),
        )
