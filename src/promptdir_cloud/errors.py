"""Caller-facing error taxonomy.

Every failure the HTTP layer reports is a ``ServiceError`` subclass. The
``message`` is the only text that reaches the caller; internal details go to
the log.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors rendered as ``{"error": message}``."""

    status_code: int = 500
    default_message: str = "Generation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Please sign in to use the AI generator"


class InvalidRequest(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class QuotaExceeded(ServiceError):
    """The caller has used every free generation for the current UTC day."""

    status_code = 429
    default_message = "Daily limit reached"

    def __init__(self, limit: int) -> None:
        super().__init__()
        self.limit = limit
        self.detail = f"You've used all {limit} free generations today. Come back tomorrow!"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "message": self.detail, "remaining": 0}


class UpstreamBusy(ServiceError):
    status_code = 429
    default_message = "AI service is busy. Please try again in a moment."


class UpstreamUnavailable(ServiceError):
    status_code = 503
    default_message = "AI service temporarily unavailable. Please try again later."


class GenerationFailed(ServiceError):
    status_code = 500
    default_message = "Generation failed"


class RateLimited(ServiceError):
    status_code = 429
    default_message = "Too many requests. Please try again later."


class UsageTrackingFailed(ServiceError):
    """Ledger write failure. Logged by the caller, never sent to the client."""

    status_code = 500
    default_message = "Usage tracking failed"
