"""SQLAlchemy model for hourly notification counters."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint

from outdrinkme.infrastructure.database import Base


class NotificationRateLimitModel(Base):
    """One row per user and hour bucket."""

    __tablename__ = "notification_rate_limits"
    __table_args__ = (
        UniqueConstraint("user_id", "window_start", name="uq_rate_limit_user_window"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    window_start = Column(DateTime(), nullable=False)
    window_end = Column(DateTime(), nullable=False)
    notification_count = Column(Integer, nullable=False, default=0)


__all__ = ["NotificationRateLimitModel"]
