"""The quota-enforcing prompt generator.

``GenerationService.generate`` runs one request end to end:

1. verify the bearer token (before any ledger read)
2. validate the required fields and resolve the prompt type
3. take a slot from today's quota (00:00:00Z boundary)
4. call the upstream completion service, releasing the slot on failure
5. append a usage row; a ledger failure is logged, never surfaced
6. report how many generations remain today
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from promptdir_cloud.errors import InvalidRequest, UsageTrackingFailed
from promptdir_cloud.identity import IdentityVerifier, VerifiedUser, extract_bearer_token
from promptdir_cloud.models.generation_usage import GenerationUsage
from promptdir_cloud.prompts import PromptTemplate, PromptType, build_messages, resolve_prompt_type
from promptdir_cloud.quota import QuotaGate, UsageLedger, next_reset
from promptdir_cloud.schemas import GenerationRequest, GenerationResult, UsageStatus
from promptdir_cloud.upstream import CompletionService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def success_message(remaining: int) -> str:
    if remaining > 0:
        plural = "s" if remaining != 1 else ""
        return f"Generated successfully! {remaining} generation{plural} remaining today."
    return "Generated successfully! This was your last free generation for today."


class GenerationService:
    """Orchestrates auth, quota, prompt construction and the upstream call.

    All collaborators and limits are injected so tests can run the service
    with fakes and arbitrary limits.
    """

    def __init__(
        self,
        verifier: IdentityVerifier,
        gate: QuotaGate,
        ledger: UsageLedger,
        upstream: CompletionService,
        templates: dict[PromptType, PromptTemplate],
        strict_prompt_type: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.verifier = verifier
        self.gate = gate
        self.ledger = ledger
        self.upstream = upstream
        self.templates = templates
        self.strict_prompt_type = strict_prompt_type
        self.clock = clock

    @property
    def daily_limit(self) -> int:
        return self.gate.daily_limit

    async def authenticate(self, authorization: str | None) -> VerifiedUser:
        token = extract_bearer_token(authorization)
        return await self.verifier.verify(token)

    async def generate(
        self,
        request: GenerationRequest,
        authorization: str | None,
    ) -> GenerationResult:
        user = await self.authenticate(authorization)
        return await self.generate_for_user(user, request)

    async def generate_for_user(
        self,
        user: VerifiedUser,
        request: GenerationRequest,
    ) -> GenerationResult:
        missing = request.missing_fields()
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

        prompt_type = resolve_prompt_type(request.promptType or "", self.strict_prompt_type)

        now = self.clock()
        current_usage = await self.gate.reserve(user.user_id, now)

        logger.info(
            "Generating %s for %s (%s/%s) - User: %s",
            prompt_type.value,
            request.tool,
            request.language,
            request.framework,
            user.user_id,
        )

        messages = build_messages(request, self.templates[prompt_type])
        try:
            completion = await self.upstream.complete(messages)
        except Exception:
            await self._release_quietly(user.user_id, now)
            raise

        try:
            await self.ledger.record(
                GenerationUsage(
                    user_id=user.user_id,
                    generated_at=self.clock(),
                    tool=request.tool,
                    language=request.language,
                    framework=request.framework,
                    prompt_type=request.promptType,
                    tokens_used=completion.total_tokens,
                )
            )
        except UsageTrackingFailed:
            logger.exception("Usage tracking error for user %s", user.user_id)

        remaining = max(self.daily_limit - current_usage - 1, 0)
        return GenerationResult(
            content=completion.content,
            remaining=remaining,
            message=success_message(remaining),
        )

    async def _release_quietly(self, user_id: str, now: datetime) -> None:
        """Return a reserved slot; a failure here must not mask the upstream error."""
        try:
            await self.gate.release(user_id, now)
        except SQLAlchemyError:
            logger.exception("Failed to release quota slot for user %s", user_id)

    async def usage_status(self, authorization: str | None) -> UsageStatus:
        """Today's usage for the caller, as shown next to the generator form."""
        user = await self.authenticate(authorization)
        return await self.usage_for_user(user)

    async def usage_for_user(self, user: VerifiedUser) -> UsageStatus:
        now = self.clock()
        used = await self.gate.current_usage(user.user_id, now)
        return UsageStatus(
            used=used,
            remaining=max(self.daily_limit - used, 0),
            limit=self.daily_limit,
            resets_at=next_reset(now),
        )
