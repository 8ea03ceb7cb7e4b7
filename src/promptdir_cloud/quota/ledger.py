"""Usage ledger: append-only record of successful generations."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptdir_cloud.errors import UsageTrackingFailed
from promptdir_cloud.models.generation_usage import GenerationUsage

logger = logging.getLogger(__name__)


class UsageLedger:
    """Reads and appends ``generation_usage`` rows.

    Rows are never updated or deleted here; retention is handled elsewhere.
    Each call runs in its own short transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def count_since(self, user_id: str, since: datetime) -> int:
        """Number of generations by *user_id* with ``generated_at >= since``."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(GenerationUsage)
                .where(
                    GenerationUsage.user_id == user_id,
                    GenerationUsage.generated_at >= since,
                )
            )
            return int(result.scalar_one())

    async def record(self, record: GenerationUsage) -> None:
        """Append one usage row.

        Raises ``UsageTrackingFailed`` if the write does not commit.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(record)
        except SQLAlchemyError as exc:
            raise UsageTrackingFailed() from exc

    async def history(self, user_id: str, limit: int = 20) -> list[GenerationUsage]:
        """Most recent rows for *user_id*, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(GenerationUsage)
                .where(GenerationUsage.user_id == user_id)
                .order_by(GenerationUsage.generated_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
