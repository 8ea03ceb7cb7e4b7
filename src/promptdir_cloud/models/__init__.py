"""SQLAlchemy ORM models for Prompt Directory Cloud."""

from promptdir_cloud.models.base import Base
from promptdir_cloud.models.generation_usage import GenerationUsage
from promptdir_cloud.models.newsletter_subscriber import NewsletterSubscriber
from promptdir_cloud.models.usage_counter import DailyUsageCounter

__all__ = [
    "Base",
    "DailyUsageCounter",
    "GenerationUsage",
    "NewsletterSubscriber",
]
