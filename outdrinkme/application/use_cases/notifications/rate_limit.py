"""Hourly notification quota per user."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from outdrinkme.infrastructure.repositories import (
    NotificationPreferencesRepository,
    RateLimitRepository,
)
from outdrinkme.utils import now_in_app_timezone, truncate_to_hour

logger = logging.getLogger(__name__)


def current_window_start(now: datetime | None = None) -> datetime:
    return truncate_to_hour(now or now_in_app_timezone())


def check_rate_limit(session: Session, user_id: int, *, now: datetime | None = None) -> bool:
    """Return ``True`` while the user is below the hourly ceiling.

    Fails open: missing or unreadable preferences allow the notification.
    """

    try:
        preferences = NotificationPreferencesRepository(session).get(user_id)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Could not load preferences for user %s, allowing: %s", user_id, exc)
        return True
    if preferences is None:
        return True

    count = RateLimitRepository(session).get_count(user_id, current_window_start(now))
    return count < preferences.max_notifications_per_hour


def increment_rate_limit(session: Session, user_id: int, *, now: datetime | None = None) -> None:
    """Count one more notification in the current hour; errors are only logged."""

    try:
        RateLimitRepository(session).increment(user_id, current_window_start(now))
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Failed to increment rate limit for user %s: %s", user_id, exc)
