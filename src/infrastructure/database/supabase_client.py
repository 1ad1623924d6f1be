from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

from src.config import Settings

try:
    from supabase import Client, create_client
except Exception:  # pragma: no cover - env without supabase installed
    Client = Any  # type: ignore
    create_client = None  # type: ignore


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


class SupabaseAuthAdapter:
    """Small wrapper to validate Supabase access tokens.

    Without a client (SUPABASE_DISABLED=1 or no credentials) every token maps to a
    deterministic fake user.
    """

    def __init__(self, client: Client | None) -> None:
        self._client = client

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self._client is None:
            digest = hashlib.sha1(token.encode("utf-8")).hexdigest()[:10]
            return UserInfo(id=f"fake-{digest}", email=None)
        # Real validation via Supabase Auth API
        try:
            res = self._client.auth.get_user(token)  # type: ignore[attr-defined]
            user = res.user  # type: ignore[assignment]
            if not user:
                raise ValueError("Invalid access token")
            return UserInfo(id=user.id, email=user.email)  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover - network path
            raise ValueError(f"Invalid access token: {exc}") from exc


def create_supabase_client(settings: Settings) -> Client | None:
    """Build a client for this application instance; None when running offline."""
    if settings.offline or create_client is None:
        return None
    return create_client(settings.supabase_url, settings.supabase_key)
