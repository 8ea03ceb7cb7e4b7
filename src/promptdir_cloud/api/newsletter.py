"""Newsletter signup endpoint: POST /v1/newsletter-subscribe."""

import logging
import re

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptdir_cloud.database import get_db
from promptdir_cloud.errors import InvalidRequest, ServiceError
from promptdir_cloud.models.newsletter_subscriber import NewsletterSubscriber
from promptdir_cloud.ratelimit import client_ip, limiter, newsletter_rate_limit
from promptdir_cloud.schemas import MessageResponse, SubscribeRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/newsletter-subscribe", tags=["newsletter"])

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 255


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email)) and len(email) <= MAX_EMAIL_LENGTH


@router.post("", response_model=MessageResponse)
@limiter.limit(newsletter_rate_limit)
async def subscribe(
    payload: SubscribeRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    ip = client_ip(request)
    if not payload.email or not isinstance(payload.email, str):
        raise InvalidRequest("Email is required")

    email = payload.email.strip().lower()
    if not is_valid_email(email):
        raise InvalidRequest("Invalid email address")

    try:
        result = await db.execute(
            select(NewsletterSubscriber).where(NewsletterSubscriber.email == email)
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            if existing.is_active:
                return MessageResponse(message="You are already subscribed!")
            existing.is_active = True
            await db.flush()
            return MessageResponse(
                message="Welcome back! Your subscription has been reactivated."
            )

        db.add(NewsletterSubscriber(email=email))
        await db.flush()
    except SQLAlchemyError:
        logger.exception("Newsletter insert error for %s", email)
        raise ServiceError("Failed to subscribe. Please try again.")

    logger.info("New subscriber: %s from IP: %s", email, ip)
    return MessageResponse(message="Successfully subscribed to the newsletter!")
