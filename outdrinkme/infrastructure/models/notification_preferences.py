"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Time

from outdrinkme.infrastructure.database import Base
from outdrinkme.utils import now_in_app_naive_datetime


class NotificationPreferencesModel(Base):
    """Database representation of a user's notification settings."""

    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    push_enabled = Column(Boolean, nullable=False, default=True)
    email_enabled = Column(Boolean, nullable=False, default=True)
    in_app_enabled = Column(Boolean, nullable=False, default=True)
    enabled_types = Column(JSON, nullable=False, default=dict)
    quiet_hours_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_start = Column(Time, nullable=True)
    quiet_hours_end = Column(Time, nullable=True)
    quiet_hours_timezone = Column(String(64), nullable=False, default="UTC")
    max_notifications_per_hour = Column(Integer, nullable=False, default=10)
    max_notifications_per_day = Column(Integer, nullable=False, default=50)
    device_tokens = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationPreferencesModel"]
