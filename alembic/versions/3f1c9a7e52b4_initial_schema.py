"""initial schema

Revision ID: 3f1c9a7e52b4
Revises:
Create Date: 2026-10-12 09:14:05.412886

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e52b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- generation_usage ---
    op.create_table(
        "generation_usage",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("tool", sa.String(), nullable=False),
        sa.Column("language", sa.String(), nullable=True),
        sa.Column("framework", sa.String(), nullable=True),
        sa.Column("prompt_type", sa.String(), nullable=False),
        sa.Column("tokens_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ix_generation_usage_user_generated", "generation_usage", ["user_id", "generated_at"]
    )

    # --- daily_usage_counters ---
    op.create_table(
        "daily_usage_counters",
        sa.Column("user_id", sa.String(), primary_key=True),
        sa.Column("day", sa.Date(), primary_key=True),
        sa.Column("used", sa.Integer(), nullable=False, server_default="0"),
    )

    # --- newsletter_subscribers ---
    op.create_table(
        "newsletter_subscribers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )


def downgrade() -> None:
    op.drop_table("newsletter_subscribers")
    op.drop_table("daily_usage_counters")
    op.drop_index("ix_generation_usage_user_generated", table_name="generation_usage")
    op.drop_table("generation_usage")
