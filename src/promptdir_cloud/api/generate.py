"""AI prompt generator endpoints: POST /v1/generate-prompt."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from promptdir_cloud.api.deps import (
    get_current_user,
    get_generation_service,
    read_generation_request,
)
from promptdir_cloud.generation import GenerationService
from promptdir_cloud.identity import VerifiedUser
from promptdir_cloud.schemas import GenerationRequest, GenerationResult, UsageStatus

router = APIRouter(prefix="/v1/generate-prompt", tags=["generator"])


@router.post(
    "",
    response_model=GenerationResult,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": GenerationRequest.model_json_schema()}},
        }
    },
)
async def generate_prompt(
    payload: GenerationRequest = Depends(read_generation_request),
    user: VerifiedUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
) -> GenerationResult:
    return await service.generate_for_user(user, payload)


@router.get("/usage", response_model=UsageStatus)
async def generation_usage(
    user: VerifiedUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
) -> UsageStatus:
    return await service.usage_for_user(user)
