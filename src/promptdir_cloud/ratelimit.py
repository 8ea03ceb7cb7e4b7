"""Per-client rate limiting for public endpoints, backed by slowapi.

Counters live in slowapi's in-memory storage and reset when the process
restarts; this throttles casual abuse and is not a quota.
"""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request

from promptdir_cloud.config import settings
from promptdir_cloud.errors import RateLimited

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First ``x-forwarded-for`` hop, then ``x-real-ip``, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def newsletter_rate_limit() -> str:
    """e.g. ``"3/3600 seconds"``; read per request so settings changes apply."""
    return f"{settings.newsletter_rate_limit}/{settings.newsletter_rate_window_seconds} seconds"


limiter = Limiter(key_func=client_ip, storage_uri="memory://")


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info("Rate limited: %s on %s", client_ip(request), request.url.path)
    error = RateLimited()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())
