"""Shared test fixtures for Prompt Directory Cloud tests.

Uses SQLite + aiosqlite for a fast, self-contained test database and fake
identity / upstream collaborators injected through ``create_app``.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Point the module-level engine at SQLite before anything imports it
os.environ.setdefault("PD_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PD_ENVIRONMENT", "staging")

from promptdir_cloud.config import Settings
from promptdir_cloud.errors import Unauthenticated
from promptdir_cloud.generation import GenerationService
from promptdir_cloud.identity import VerifiedUser
from promptdir_cloud.main import build_generation_service, create_app
from promptdir_cloud.models.base import Base
from promptdir_cloud.ratelimit import limiter
from promptdir_cloud.upstream import Completion

# Import all models so Base.metadata has them
import promptdir_cloud.models  # noqa: F401


# ---------------------------------------------------------------------------
# Test database engine (SQLite in-memory via aiosqlite)
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

VALID_TOKEN = "token-alice"
OTHER_TOKEN = "token-bob"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeVerifier:
    """Maps known tokens to users; anything else is rejected."""

    def __init__(self, users: dict[str, str]) -> None:
        self.users = users
        self.calls: list[str] = []

    async def verify(self, token: str) -> VerifiedUser:
        self.calls.append(token)
        if token not in self.users:
            raise Unauthenticated("Invalid authentication")
        return VerifiedUser(user_id=self.users[token])


class FakeUpstream:
    """Returns a canned completion, or raises ``error`` when set."""

    def __init__(self, content: str = "# generated rules", total_tokens: int = 42) -> None:
        self.content = content
        self.total_tokens = total_tokens
        self.error: Exception | None = None
        self.calls: list[list[dict[str, str]]] = []

    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return Completion(content=self.content, total_tokens=self.total_tokens)


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database with all tables; yields its session factory."""
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    await test_engine.dispose()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        environment="staging",
        daily_generation_limit=3,
        newsletter_rate_limit=3,
    )


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier({VALID_TOKEN: "user-alice", OTHER_TOKEN: "user-bob"})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def service(
    session_factory,
    test_settings: Settings,
    verifier: FakeVerifier,
    upstream: FakeUpstream,
    clock: MutableClock,
) -> GenerationService:
    return build_generation_service(
        test_settings, session_factory, verifier=verifier, upstream=upstream, clock=clock
    )


@pytest_asyncio.fixture
async def app(
    session_factory,
    test_settings: Settings,
    verifier: FakeVerifier,
    upstream: FakeUpstream,
    clock: MutableClock,
):
    """The FastAPI app wired to the test database and fakes."""
    from promptdir_cloud.database import get_db

    application = create_app(
        test_settings,
        session_factory=session_factory,
        verifier=verifier,
        upstream=upstream,
        clock=clock,
    )

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = _override_get_db
    limiter.reset()
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncClient:
    """An httpx AsyncClient wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def auth(token: str = VALID_TOKEN) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
