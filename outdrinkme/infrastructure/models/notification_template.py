"""SQLAlchemy model for notification wording templates."""

from sqlalchemy import Column, DateTime, Integer, String, Text

from outdrinkme.infrastructure.database import Base
from outdrinkme.utils import now_in_app_naive_datetime


class NotificationTemplateModel(Base):
    """Title/body templates keyed by notification type."""

    __tablename__ = "notification_templates"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, unique=True, index=True)
    title_template = Column(String(255), nullable=False)
    body_template = Column(Text, nullable=False)
    default_priority = Column(String(10), nullable=False, default="medium")
    ttl_hours = Column(Integer, nullable=False, default=168)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationTemplateModel"]
