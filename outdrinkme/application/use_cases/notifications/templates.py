"""Use cases for resolving and seeding notification templates."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from outdrinkme.domain.entities import (
    NotificationPriority,
    NotificationTemplate,
    NotificationType,
)
from outdrinkme.domain.exceptions import TemplateNotFoundError
from outdrinkme.infrastructure.repositories import NotificationTemplateRepository


def _template(
    notification_type: NotificationType,
    title: str,
    body: str,
    priority: NotificationPriority,
    ttl_hours: int,
) -> NotificationTemplate:
    return NotificationTemplate(
        id=None,
        type=notification_type,
        title_template=title,
        body_template=body,
        default_priority=priority,
        ttl_hours=ttl_hours,
    )


DEFAULT_TEMPLATES: tuple[NotificationTemplate, ...] = (
    _template(
        NotificationType.STREAK_MILESTONE,
        "🔥 {{days}} day streak!",
        "You've logged {{days}} days in a row. Keep it going!",
        NotificationPriority.MEDIUM,
        72,
    ),
    _template(
        NotificationType.STREAK_AT_RISK,
        "Your streak is at risk",
        "Log today to keep your {{days}} day streak alive.",
        NotificationPriority.HIGH,
        24,
    ),
    _template(
        NotificationType.FRIEND_OVERTOOK_YOU,
        "{{username}} just passed you",
        "{{username}} overtook you on the leaderboard. Time to catch up!",
        NotificationPriority.MEDIUM,
        48,
    ),
    _template(
        NotificationType.FRIEND_REQUEST,
        "New friend request",
        "{{username}} wants to be your friend.",
        NotificationPriority.MEDIUM,
        168,
    ),
    _template(
        NotificationType.FRIEND_REQUEST_ACCEPTED,
        "Friend request accepted",
        "{{username}} accepted your friend request.",
        NotificationPriority.LOW,
        168,
    ),
    _template(
        NotificationType.CHALLENGE_INVITE,
        "Challenge from {{username}}",
        "{{username}} invited you to '{{challenge_name}}'.",
        NotificationPriority.HIGH,
        72,
    ),
    _template(
        NotificationType.ACHIEVEMENT_UNLOCKED,
        "Achievement unlocked",
        "You earned '{{achievement_name}}'.",
        NotificationPriority.MEDIUM,
        168,
    ),
    _template(
        NotificationType.FRIEND_POSTED_MIX,
        "{{username}} posted to the mix",
        "See what {{username}} just shared.",
        NotificationPriority.MEDIUM,
        48,
    ),
    _template(
        NotificationType.FRIEND_POSTED_QUEST,
        "New side quest from {{username}}",
        "{{username}} posted '{{quest_title}}' for {{reward}} gems.",
        NotificationPriority.MEDIUM,
        72,
    ),
    _template(
        NotificationType.FRIEND_POSTED_STORY,
        "{{username}} posted a story",
        "Tap to see {{username}}'s latest story.",
        NotificationPriority.LOW,
        24,
    ),
    _template(
        NotificationType.WEEKLY_RECAP,
        "Your week in review",
        "You logged {{days}} days this week.",
        NotificationPriority.LOW,
        168,
    ),
)


def get_template(
    session: Session, notification_type: NotificationType | str
) -> NotificationTemplate:
    """Return the template for ``notification_type`` or raise ``TemplateNotFoundError``."""

    template = NotificationTemplateRepository(session).get_by_type(notification_type)
    if template is None:
        raise TemplateNotFoundError(str(getattr(notification_type, "value", notification_type)))
    return template


def seed_templates(
    session: Session, templates: Iterable[NotificationTemplate] = DEFAULT_TEMPLATES
) -> Sequence[NotificationTemplate]:
    """Insert or refresh ``templates``; existing rows are overwritten."""

    repository = NotificationTemplateRepository(session)
    return [repository.upsert(template) for template in templates]
