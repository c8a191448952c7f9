from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


def supabase_disabled() -> bool:
    return os.getenv("SUPABASE_DISABLED", "0") == "1"


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


class SupabaseAuthAdapter:
    """Validates Supabase access tokens for the API.

    When SUPABASE_DISABLED=1 (or no credentials are configured) any non-empty
    token maps to a stable fake user derived from the token.
    """

    def __init__(self) -> None:
        self._client = get_supabase_client()

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self._client is None:
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:10]
            return UserInfo(id=f"fake-{digest}", email=None)
        try:  # pragma: no cover - network path
            res = self._client.auth.get_user(token)
            user = res.user if res else None
        except Exception as exc:  # pragma: no cover - network path
            logger.info("Supabase rejected access token: %s", exc)
            raise ValueError(f"Invalid access token: {exc}") from exc
        if not user:
            raise ValueError("Invalid access token")
        return UserInfo(id=user.id, email=user.email)


@lru_cache(maxsize=1)
def _create_client(url: str, key: str) -> Client:
    logger.info("Connecting to Supabase at %s", url)
    return create_client(url, key)


def get_supabase_client() -> Client | None:
    """Shared Supabase client, or None when Supabase is disabled or unconfigured."""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if supabase_disabled() or not url or not key:
        return None
    return _create_client(url, key)
