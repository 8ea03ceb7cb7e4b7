"""Request / response schemas for the generator and newsletter endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

REQUIRED_GENERATION_FIELDS = ("tool", "promptType", "description")


class GenerationRequest(BaseModel):
    """Caller-supplied generation parameters.

    Every field is optional at the parser level so that a missing field is
    reported as a 400 naming the field rather than a generic validation error.
    """

    model_config = ConfigDict(extra="ignore")

    tool: str | None = None
    language: str | None = None
    framework: str | None = None
    promptType: str | None = None
    description: str | None = None

    def missing_fields(self) -> list[str]:
        """Names of required fields that are absent or blank, in canonical order."""
        missing: list[str] = []
        for name in REQUIRED_GENERATION_FIELDS:
            value = getattr(self, name)
            if value is None or not value.strip():
                missing.append(name)
        return missing


class GenerationResult(BaseModel):
    content: str
    remaining: int
    message: str


class UsageStatus(BaseModel):
    used: int
    remaining: int
    limit: int
    resets_at: datetime


class SubscribeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Any = None


class MessageResponse(BaseModel):
    message: str
