"""Shared FastAPI dependencies: service lookup and caller authentication."""

from __future__ import annotations

from fastapi import Depends, Header, Request
from pydantic import ValidationError

from promptdir_cloud.errors import InvalidRequest
from promptdir_cloud.generation import GenerationService
from promptdir_cloud.identity import VerifiedUser
from promptdir_cloud.schemas import GenerationRequest


def get_generation_service(request: Request) -> GenerationService:
    """The ``GenerationService`` built by ``create_app``."""
    return request.app.state.generation_service


async def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    service: GenerationService = Depends(get_generation_service),
) -> VerifiedUser:
    """Verify the ``Authorization: Bearer <token>`` header."""
    return await service.authenticate(authorization)


async def read_generation_request(
    request: Request,
    user: VerifiedUser = Depends(get_current_user),
) -> GenerationRequest:
    """Parse the generator body, only once the caller is authenticated.

    FastAPI decodes declared body parameters before resolving dependencies,
    so the body is read here instead; an unauthenticated call with a
    malformed body is still answered with 401.
    """
    try:
        return GenerationRequest.model_validate_json(await request.body())
    except ValidationError as exc:
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        raise InvalidRequest(f"Invalid request body: {detail}") from exc
