"""Use case for creating a notification and handing it to the dispatcher."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Mapping, Protocol

from sqlalchemy.orm import Session

from outdrinkme.domain.entities import (
    Notification,
    NotificationPreferences,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from outdrinkme.domain.exceptions import RateLimitExceededError, UserNotFoundError
from outdrinkme.infrastructure.notifications import get_notification_dispatcher
from outdrinkme.infrastructure.repositories import NotificationRepository, UserRepository
from outdrinkme.utils import ensure_app_timezone, now_in_app_timezone

from .preferences import get_or_create_preferences
from .rate_limit import check_rate_limit, increment_rate_limit
from .templates import get_template

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def dispatch(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> bool: ...


def create_notification(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType | str,
    priority: NotificationPriority | str | None = None,
    data: Mapping[str, Any] | None = None,
    actor_id: int | None = None,
    scheduled_for: datetime | None = None,
    action_url: str | None = None,
    dispatcher: NotificationSink | None = None,
) -> Notification | None:
    """Create a notification for ``user_id``.

    Returns ``None`` when the user switched this notification type off.
    Raises ``TemplateNotFoundError``, ``UserNotFoundError`` or
    ``RateLimitExceededError`` before anything is written. Notifications
    without ``scheduled_for`` are queued for immediate delivery; scheduled
    ones are picked up by the dispatcher's promotion loop.
    """

    template = get_template(session, notification_type)
    notification_type = template.type
    payload = dict(data or {})
    payload["user_id"] = user_id

    title, body = template.render(payload)
    resolved_priority = NotificationPriority(priority) if priority else template.default_priority

    now = now_in_app_timezone()
    expires_at = now + timedelta(hours=template.ttl_hours) if template.ttl_hours > 0 else None

    if UserRepository(session).get(user_id) is None:
        raise UserNotFoundError(user_id)

    if not check_rate_limit(session, user_id, now=now):
        raise RateLimitExceededError(user_id)

    preferences = get_or_create_preferences(session, user_id)
    if not preferences.is_type_enabled(notification_type):
        logger.info(
            "Notification type %s disabled for user %s", notification_type.value, user_id
        )
        return None

    notification = NotificationRepository(session).create(
        Notification(
            id=None,
            user_id=user_id,
            type=notification_type,
            priority=resolved_priority,
            status=NotificationStatus.PENDING,
            title=title,
            body=body,
            data=payload,
            actor_id=actor_id,
            scheduled_for=ensure_app_timezone(scheduled_for),
            retry_count=0,
            action_url=action_url,
            created_at=now,
            expires_at=expires_at,
        )
    )

    increment_rate_limit(session, user_id, now=now)

    if notification.scheduled_for is None:
        sink = dispatcher or get_notification_dispatcher()
        if sink is None:
            logger.warning(
                "No notification dispatcher configured; notification %s left pending",
                notification.id,
            )
        else:
            sink.dispatch(notification, preferences)

    return notification
