"""Daily usage counter: one row per user per UTC day, the quota gate."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from promptdir_cloud.models.base import Base


class DailyUsageCounter(Base):
    __tablename__ = "daily_usage_counters"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
