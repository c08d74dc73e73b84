"""Bearer-token verification against an external identity provider."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when a request cannot be authenticated.

    ``status_code`` is 401 when no token was supplied and 403 when the
    token was rejected.
    """

    def __init__(self, message: str, status_code: int = 403) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthUser(BaseModel):
    """The identity provider's view of the caller."""

    id: str
    email: str | None = None
    metadata: dict = Field(default_factory=dict)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class IdentityProvider(ABC):
    """Resolves an access token to a user."""

    @abstractmethod
    async def get_user(self, token: str) -> AuthUser:
        """Verify ``token``.

        Raises:
            AuthError: If the token is invalid or the provider rejects it.
        """
        ...

    async def close(self) -> None:
        """Release any network resources."""


class SupabaseIdentityProvider(IdentityProvider):
    """Verifies tokens with Supabase's ``/auth/v1/user`` endpoint."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def get_user(self, token: str) -> AuthUser:
        client = self._get_client()
        try:
            resp = await client.get(
                "/auth/v1/user",
                headers={"apikey": self._anon_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error("Identity provider request failed: %s", e)
            raise AuthError(f"Identity provider unavailable: {e}") from e

        if resp.status_code != 200:
            logger.info("Token rejected by identity provider (HTTP %d)", resp.status_code)
            raise AuthError("Invalid token")

        data = resp.json()
        if not data.get("id"):
            raise AuthError("No user found")
        return AuthUser(id=data["id"], email=data.get("email"), metadata=data.get("user_metadata") or {})

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
