"""Atomic per-user daily quota gate.

The day's usage lives in ``daily_usage_counters`` keyed by ``(user_id, day)``.
A slot is taken with a single conditional ``UPDATE ... WHERE used < limit``,
so concurrent requests cannot push a user past the limit. A counter row that
does not exist yet is seeded from the ledger's count since 00:00:00Z.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptdir_cloud.errors import QuotaExceeded
from promptdir_cloud.models.usage_counter import DailyUsageCounter
from promptdir_cloud.quota.ledger import UsageLedger

logger = logging.getLogger(__name__)

# Seed-then-update races resolve after one retry.
_RESERVE_ATTEMPTS = 2


def utc_day(now: datetime) -> date:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).date()


def utc_day_start(now: datetime) -> datetime:
    """00:00:00Z of the UTC calendar day containing *now*."""
    return datetime.combine(utc_day(now), time.min, tzinfo=timezone.utc)


def next_reset(now: datetime) -> datetime:
    return utc_day_start(now) + timedelta(days=1)


class QuotaGate:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: UsageLedger,
        daily_limit: int,
    ) -> None:
        if daily_limit < 0:
            raise ValueError("daily_limit must be >= 0")
        self._session_factory = session_factory
        self._ledger = ledger
        self.daily_limit = daily_limit

    async def _counter_value(self, user_id: str, day: date) -> int | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DailyUsageCounter.used).where(
                    DailyUsageCounter.user_id == user_id,
                    DailyUsageCounter.day == day,
                )
            )
            return result.scalar_one_or_none()

    async def current_usage(self, user_id: str, now: datetime) -> int:
        """Generations already used by *user_id* in the UTC day of *now*."""
        used = await self._counter_value(user_id, utc_day(now))
        if used is not None:
            return used
        return await self._ledger.count_since(user_id, utc_day_start(now))

    async def _try_increment(self, user_id: str, day: date) -> int | None:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(DailyUsageCounter)
                    .where(
                        DailyUsageCounter.user_id == user_id,
                        DailyUsageCounter.day == day,
                        DailyUsageCounter.used < self.daily_limit,
                    )
                    .values(used=DailyUsageCounter.used + 1)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    return None
                used = await session.execute(
                    select(DailyUsageCounter.used).where(
                        DailyUsageCounter.user_id == user_id,
                        DailyUsageCounter.day == day,
                    )
                )
                return used.scalar_one()

    async def _seed(self, user_id: str, now: datetime) -> None:
        seeded = await self._ledger.count_since(user_id, utc_day_start(now))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(
                        DailyUsageCounter(user_id=user_id, day=utc_day(now), used=seeded)
                    )
        except IntegrityError:
            # Another request created today's row first.
            logger.debug("Counter row for %s already seeded", user_id)

    async def reserve(self, user_id: str, now: datetime) -> int:
        """Take one generation slot for *user_id*.

        Returns the usage count before this generation. Raises
        ``QuotaExceeded`` when the day's limit is already reached.
        """
        day = utc_day(now)
        for _ in range(_RESERVE_ATTEMPTS):
            used = await self._try_increment(user_id, day)
            if used is not None:
                return used - 1
            if await self._counter_value(user_id, day) is not None:
                break
            await self._seed(user_id, now)

        logger.info("Daily limit of %d reached for user %s", self.daily_limit, user_id)
        raise QuotaExceeded(self.daily_limit)

    async def release(self, user_id: str, now: datetime) -> None:
        """Return a slot taken by ``reserve`` for a generation that failed."""
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(DailyUsageCounter)
                    .where(
                        DailyUsageCounter.user_id == user_id,
                        DailyUsageCounter.day == utc_day(now),
                        DailyUsageCounter.used > 0,
                    )
                    .values(used=DailyUsageCounter.used - 1)
                    .execution_options(synchronize_session=False)
                )
