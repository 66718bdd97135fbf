"""Session guard: resolves the caller's identity through the auth provider.

A token comes from the ``Authorization: Bearer`` header when present,
otherwise from the session cookie. Every lookup goes to the provider; nothing
is cached between calls.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from fastapi import Depends, Request

from studyhub.config import get_settings
from studyhub.errors import ForbiddenError, StorageError, UnauthorizedError
from studyhub.services.http_client import get_shared_client

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class Identity:
    """An authenticated caller as reported by the auth provider."""

    id: str
    email: str = ""
    full_name: str | None = None
    avatar_url: str | None = None


class AuthProvider(Protocol):
    async def get_user(self, token: str) -> Identity | None: ...


def identity_from_payload(data: dict[str, Any]) -> Identity:
    """Build an Identity from a Supabase ``/auth/v1/user`` response body."""
    metadata = data.get("user_metadata") or {}
    return Identity(
        id=str(data["id"]),
        email=data.get("email") or "",
        full_name=metadata.get("full_name") or metadata.get("name"),
        avatar_url=metadata.get("avatar_url"),
    )


class SupabaseAuthProvider:
    """Validates access tokens against the Supabase Auth REST API."""

    def __init__(
        self, base_url: str, api_key: str, client: httpx.AsyncClient | None = None
    ) -> None:
        self._user_url = f"{base_url.rstrip('/')}/auth/v1/user"
        self._api_key = api_key
        self._client = client

    async def get_user(self, token: str) -> Identity | None:
        """Return the token's identity, or None if the provider rejects it."""
        client = self._client or get_shared_client()
        try:
            resp = await client.get(
                self._user_url,
                headers={"apikey": self._api_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error("Auth provider request failed: %s", e)
            raise StorageError("Auth provider unavailable") from e

        if resp.status_code in (400, 401, 403, 404):
            return None
        if resp.status_code != 200:
            logger.warning("Auth provider returned %d", resp.status_code)
            raise StorageError("Auth provider unavailable")

        try:
            return identity_from_payload(resp.json())
        except (ValueError, KeyError) as e:
            logger.error("Malformed auth provider response: %s", e)
            raise StorageError("Auth provider returned an invalid user") from e


class DisabledAuthProvider:
    """Used when no provider is configured outside production: nobody signs in."""

    async def get_user(self, token: str) -> Identity | None:
        logger.warning("Auth provider not configured, treating caller as anonymous")
        return None


_provider: AuthProvider | None = None


def get_auth_provider() -> AuthProvider:
    """Return the process-wide auth provider (lazy singleton)."""
    global _provider
    if _provider is None:
        settings = get_settings()
        if settings.auth_configured:
            _provider = SupabaseAuthProvider(
                settings.supabase_url, settings.supabase_anon_key
            )
        else:
            _provider = DisabledAuthProvider()
    return _provider


def extract_token(request: Request, cookie_name: str) -> str | None:
    """Bearer token from the Authorization header, else the session cookie."""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX) :].strip()
        return token or None
    return request.cookies.get(cookie_name) or None


class SessionContext:
    """Per-request view of who is calling.

    Handlers receive this through ``Depends(get_session_context)``; tests swap
    the provider with ``app.dependency_overrides[get_auth_provider]``.
    """

    def __init__(self, token: str | None, provider: AuthProvider) -> None:
        self._token = token
        self._provider = provider

    @property
    def has_credentials(self) -> bool:
        return self._token is not None

    async def current_user(self) -> Identity | None:
        """Validate the request's token with the provider; None if anonymous."""
        if not self._token:
            return None
        return await self._provider.get_user(self._token)

    async def optional_user(self) -> Identity | None:
        """Caller for read-only routes.

        Skips the provider when no token was sent, and falls back to anonymous
        when the provider is unreachable.
        """
        if not self.has_credentials:
            return None
        try:
            return await self.current_user()
        except StorageError as e:
            logger.warning("Auth provider unavailable, serving anonymously: %s", e)
            return None

    async def require_user(self) -> Identity:
        user = await self.current_user()
        if user is None:
            raise UnauthorizedError("Unauthorized - no valid session")
        return user

    @staticmethod
    def require_ownership(resource_author_id: str, caller_id: str) -> None:
        if resource_author_id != caller_id:
            raise ForbiddenError("Forbidden: you can only modify your own posts")


def get_session_context(
    request: Request, provider: AuthProvider = Depends(get_auth_provider)
) -> SessionContext:
    token = extract_token(request, get_settings().auth_cookie_name)
    return SessionContext(token, provider)
