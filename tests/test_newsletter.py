"""Tests for the newsletter signup endpoint POST /v1/newsletter-subscribe."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from promptdir_cloud.api.newsletter import is_valid_email
from promptdir_cloud.models.newsletter_subscriber import NewsletterSubscriber

URL = "/v1/newsletter-subscribe"


async def _subscribe(client: AsyncClient, email, ip: str = "203.0.113.7"):
    return await client.post(URL, json={"email": email}, headers={"x-forwarded-for": ip})


@pytest.mark.asyncio
async def test_new_subscriber(client: AsyncClient, session_factory):
    resp = await _subscribe(client, "  Reader@Example.COM ")

    assert resp.status_code == 200, resp.text
    assert resp.json() == {"message": "Successfully subscribed to the newsletter!"}

    async with session_factory() as session:
        rows = (await session.execute(select(NewsletterSubscriber))).scalars().all()
    assert [r.email for r in rows] == ["reader@example.com"]
    assert rows[0].is_active is True


@pytest.mark.asyncio
async def test_already_subscribed(client: AsyncClient):
    await _subscribe(client, "reader@example.com")
    resp = await _subscribe(client, "READER@example.com")

    assert resp.status_code == 200
    assert resp.json() == {"message": "You are already subscribed!"}


@pytest.mark.asyncio
async def test_inactive_subscriber_is_reactivated(client: AsyncClient, session_factory):
    async with session_factory() as session:
        async with session.begin():
            session.add(NewsletterSubscriber(email="gone@example.com", is_active=False))

    resp = await _subscribe(client, "gone@example.com")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Welcome back! Your subscription has been reactivated."}

    async with session_factory() as session:
        row = (
            await session.execute(
                select(NewsletterSubscriber).where(NewsletterSubscriber.email == "gone@example.com")
            )
        ).scalar_one()
    assert row.is_active is True


@pytest.mark.asyncio
@pytest.mark.parametrize("email", [None, "", 42])
async def test_email_required(client: AsyncClient, email):
    resp = await _subscribe(client, email)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email is required"}


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["not-an-email", "a@b", "two words@example.com"])
async def test_invalid_email(client: AsyncClient, email: str):
    resp = await _subscribe(client, email)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid email address"}


@pytest.mark.asyncio
async def test_rate_limited_per_ip(client: AsyncClient):
    for i in range(3):
        resp = await _subscribe(client, f"user{i}@example.com", ip="198.51.100.1")
        assert resp.status_code == 200

    resp = await _subscribe(client, "user9@example.com", ip="198.51.100.1, 10.0.0.1")
    assert resp.status_code == 429
    assert resp.json() == {"error": "Too many requests. Please try again later."}

    # A different client is unaffected
    resp = await _subscribe(client, "user9@example.com", ip="198.51.100.2")
    assert resp.status_code == 200


def test_email_length_limit() -> None:
    local = "a" * 250
    assert is_valid_email("a@example.com")
    assert not is_valid_email(f"{local}@example.com")
