"""Generation usage model: append-only ledger of successful generations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from promptdir_cloud.models.base import Base, UUIDPrimaryKeyMixin, utcnow


class GenerationUsage(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "generation_usage"
    __table_args__ = (
        Index("ix_generation_usage_user_generated", "user_id", "generated_at"),
    )

    user_id: Mapped[str] = mapped_column(String, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    tool: Mapped[str] = mapped_column(String, nullable=False)
    language: Mapped[str | None] = mapped_column(String, nullable=True)
    framework: Mapped[str | None] = mapped_column(String, nullable=True)
    prompt_type: Mapped[str] = mapped_column(String, nullable=False)
    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
