"""Upstream chat-completion client with status-code translation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from promptdir_cloud.errors import GenerationFailed, UpstreamBusy, UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    content: str
    total_tokens: int = 0


class CompletionService(Protocol):
    async def complete(self, messages: list[dict[str, str]]) -> Completion: ...


def parse_completion(data: Any) -> Completion:
    """Pull the first choice's text and the token count out of a response body."""
    content = None
    total_tokens = 0
    if isinstance(data, dict):
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        usage = data.get("usage") or {}
        if isinstance(usage, dict):
            total_tokens = int(usage.get("total_tokens") or 0)

    if not content:
        raise GenerationFailed("No content generated")
    return Completion(content=content, total_tokens=total_tokens)


class CompletionClient:
    """POSTs ``{model, messages}`` to ``{base_url}/chat/completions``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        if not self.api_key:
            logger.error("Upstream API key is not configured")
            raise GenerationFailed("AI service not configured")

        payload = {"model": self.model, "messages": messages}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions", json=payload, headers=headers
                )
        except httpx.HTTPError:
            logger.exception("Upstream request to %s failed", self.base_url)
            raise GenerationFailed("AI generation failed")

        if not resp.is_success:
            logger.error(
                "AI gateway error (status=%d body=%s)", resp.status_code, resp.text[:200]
            )
            if resp.status_code == 429:
                raise UpstreamBusy()
            if resp.status_code == 402:
                raise UpstreamUnavailable()
            raise GenerationFailed("AI generation failed")

        try:
            data = resp.json()
        except ValueError:
            logger.error("AI gateway returned a non-JSON body")
            raise GenerationFailed("AI generation failed")

        return parse_completion(data)
