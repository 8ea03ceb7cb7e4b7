"""Identity verification: maps a bearer token to a user via the hosted auth API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from promptdir_cloud.errors import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedUser:
    user_id: str
    email: str | None = None


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> VerifiedUser: ...


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an ``Authorization`` header value.

    Raises ``Unauthenticated`` when the header is missing or carries no token.
    """
    if not authorization or not authorization.strip():
        raise Unauthenticated()
    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token[len("bearer "):].strip()
    if not token:
        raise Unauthenticated()
    return token


class HostedAuthVerifier:
    """Verifies access tokens against the ``/auth/v1/user`` endpoint."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self._transport = transport

    async def verify(self, token: str) -> VerifiedUser:
        headers = {"Authorization": f"Bearer {token}"}
        if self.service_key:
            headers["apikey"] = self.service_key

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError:
            logger.exception("Auth provider unreachable at %s", self.base_url)
            raise Unauthenticated("Invalid authentication")

        if not resp.is_success:
            logger.warning(
                "Auth error (status=%d body=%s)", resp.status_code, resp.text[:200]
            )
            raise Unauthenticated("Invalid authentication")

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Auth provider returned a non-JSON body")
            raise Unauthenticated("Invalid authentication")

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise Unauthenticated("Invalid authentication")
        return VerifiedUser(user_id=str(user_id), email=data.get("email"))
