"""Tests for the notification creation path."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from outdrinkme.application.use_cases.notifications import (
    create_notification,
    get_or_create_preferences,
    increment_rate_limit,
    seed_templates,
    update_preferences,
)
from outdrinkme.domain.entities import (
    NotificationPriority,
    NotificationStatus,
    NotificationTemplate,
    NotificationType,
)
from outdrinkme.domain.exceptions import (
    RateLimitExceededError,
    TemplateNotFoundError,
    UserNotFoundError,
)
from outdrinkme.infrastructure.notifications import set_notification_dispatcher
from outdrinkme.infrastructure.repositories import (
    NotificationPreferencesRepository,
    NotificationRepository,
    RateLimitRepository,
)
from outdrinkme.utils import now_in_app_timezone


def test_creates_pending_notification_and_dispatches(session, user, templates, recording_dispatcher) -> None:
    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.STREAK_MILESTONE,
        data={"days": 7},
        dispatcher=recording_dispatcher,
    )

    assert notification is not None
    assert notification.id
    assert notification.status == NotificationStatus.PENDING
    assert notification.title == "🔥 7 day streak!"
    assert notification.body == "You've logged 7 days in a row. Keep it going!"
    assert notification.priority == NotificationPriority.MEDIUM
    assert notification.data == {"days": 7, "user_id": user.id}
    assert notification.retry_count == 0

    assert len(recording_dispatcher.calls) == 1
    dispatched, preferences = recording_dispatcher.calls[0]
    assert dispatched.id == notification.id
    assert preferences.user_id == user.id

    stored = NotificationRepository(session).get(notification.id)
    assert stored is not None and stored.status == NotificationStatus.PENDING


def test_explicit_priority_overrides_template(session, user, templates, recording_dispatcher) -> None:
    notification = create_notification(
        session,
        user_id=user.id,
        notification_type="friend_request",
        priority="urgent",
        data={"username": "bob"},
        dispatcher=recording_dispatcher,
    )

    assert notification.priority == NotificationPriority.URGENT
    assert notification.title == "New friend request"


def test_expiry_follows_template_ttl(session, user, templates, recording_dispatcher) -> None:
    before = now_in_app_timezone()
    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.STREAK_MILESTONE,
        data={"days": 3},
        dispatcher=recording_dispatcher,
    )

    assert notification.expires_at is not None
    assert before + timedelta(hours=71) < notification.expires_at <= now_in_app_timezone() + timedelta(hours=72)


def test_non_positive_ttl_means_no_expiry(session, user, recording_dispatcher) -> None:
    seed_templates(
        session,
        [
            NotificationTemplate(
                id=None,
                type=NotificationType.WEEKLY_RECAP,
                title_template="Recap",
                body_template="Body",
                ttl_hours=0,
            )
        ],
    )

    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.WEEKLY_RECAP,
        dispatcher=recording_dispatcher,
    )

    assert notification.expires_at is None


def test_missing_template_writes_nothing(session, user, recording_dispatcher) -> None:
    with pytest.raises(TemplateNotFoundError):
        create_notification(
            session,
            user_id=user.id,
            notification_type=NotificationType.STREAK_AT_RISK,
            dispatcher=recording_dispatcher,
        )

    assert NotificationRepository(session).count_for_user(user.id) == 0
    assert recording_dispatcher.calls == []


def test_unregistered_type_name_is_a_missing_template(session, user, templates, recording_dispatcher) -> None:
    with pytest.raises(TemplateNotFoundError) as exc_info:
        create_notification(
            session,
            user_id=user.id,
            notification_type="friend_poked_you",
            dispatcher=recording_dispatcher,
        )

    assert "friend_poked_you" in str(exc_info.value)
    assert NotificationRepository(session).count_for_user(user.id) == 0
    assert recording_dispatcher.calls == []


def test_type_given_as_string_is_accepted(session, user, templates, recording_dispatcher) -> None:
    notification = create_notification(
        session,
        user_id=user.id,
        notification_type="streak_milestone",
        data={"days": 3},
        dispatcher=recording_dispatcher,
    )

    assert notification.type == NotificationType.STREAK_MILESTONE



def test_unknown_user_is_rejected(session, templates, recording_dispatcher) -> None:
    with pytest.raises(UserNotFoundError):
        create_notification(
            session,
            user_id=4242,
            notification_type=NotificationType.STREAK_MILESTONE,
            data={"days": 1},
            dispatcher=recording_dispatcher,
        )

    assert NotificationPreferencesRepository(session).get(4242) is None


def test_rate_limited_user_is_rejected(session, user, templates, recording_dispatcher) -> None:
    get_or_create_preferences(session, user.id)
    update_preferences(session, user.id, {"max_notifications_per_hour": 2})
    for _ in range(2):
        increment_rate_limit(session, user.id)

    with pytest.raises(RateLimitExceededError):
        create_notification(
            session,
            user_id=user.id,
            notification_type=NotificationType.STREAK_MILESTONE,
            data={"days": 1},
            dispatcher=recording_dispatcher,
        )

    assert NotificationRepository(session).count_for_user(user.id) == 0


def test_hourly_ceiling_counts_created_notifications(session, user, templates, recording_dispatcher) -> None:
    get_or_create_preferences(session, user.id)
    update_preferences(session, user.id, {"max_notifications_per_hour": 2})

    for _ in range(2):
        create_notification(
            session,
            user_id=user.id,
            notification_type=NotificationType.STREAK_MILESTONE,
            data={"days": 1},
            dispatcher=recording_dispatcher,
        )

    with pytest.raises(RateLimitExceededError):
        create_notification(
            session,
            user_id=user.id,
            notification_type=NotificationType.STREAK_MILESTONE,
            data={"days": 1},
            dispatcher=recording_dispatcher,
        )


def test_disabled_type_is_skipped_silently(session, user, templates, recording_dispatcher) -> None:
    get_or_create_preferences(session, user.id)
    update_preferences(session, user.id, {"enabled_types": {"weekly_recap": False}})

    result = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.WEEKLY_RECAP,
        data={"days": 5},
        dispatcher=recording_dispatcher,
    )

    assert result is None
    assert NotificationRepository(session).count_for_user(user.id) == 0
    assert recording_dispatcher.calls == []


def test_first_notification_creates_default_preferences(session, user, templates, recording_dispatcher) -> None:
    assert NotificationPreferencesRepository(session).get(user.id) is None

    create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.ACHIEVEMENT_UNLOCKED,
        data={"achievement_name": "Early bird"},
        dispatcher=recording_dispatcher,
    )

    preferences = NotificationPreferencesRepository(session).get(user.id)
    assert preferences is not None
    assert preferences.max_notifications_per_hour == 10


def test_scheduled_notification_is_not_dispatched(session, user, templates, recording_dispatcher) -> None:
    later = now_in_app_timezone() + timedelta(hours=2)

    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.STREAK_AT_RISK,
        data={"days": 4},
        scheduled_for=later,
        dispatcher=recording_dispatcher,
    )

    assert notification.status == NotificationStatus.PENDING
    assert notification.scheduled_for == later
    assert recording_dispatcher.calls == []


def test_falls_back_to_the_installed_dispatcher(session, user, templates, recording_dispatcher) -> None:
    set_notification_dispatcher(recording_dispatcher)

    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.STREAK_MILESTONE,
        data={"days": 2},
    )

    assert [call[0].id for call in recording_dispatcher.calls] == [notification.id]


def test_without_dispatcher_notification_stays_pending(session, user, templates) -> None:
    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.STREAK_MILESTONE,
        data={"days": 2},
    )

    assert NotificationRepository(session).get(notification.id).status == NotificationStatus.PENDING


def test_caller_data_is_not_mutated(session, user, templates, recording_dispatcher) -> None:
    data = {"username": "bob"}

    create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.FRIEND_REQUEST,
        data=data,
        dispatcher=recording_dispatcher,
    )

    assert data == {"username": "bob"}


def test_counter_failure_still_delivers(session, user, templates, recording_dispatcher, monkeypatch) -> None:
    def broken_increment(self, user_id, window_start):
        raise OperationalError("UPDATE notification_rate_limits", {}, Exception("database is locked"))

    monkeypatch.setattr(RateLimitRepository, "increment", broken_increment)

    notification = create_notification(
        session,
        user_id=user.id,
        notification_type=NotificationType.STREAK_MILESTONE,
        data={"days": 4},
        dispatcher=recording_dispatcher,
    )

    stored = NotificationRepository(session).get(notification.id)
    assert stored is not None and stored.status == NotificationStatus.PENDING
    assert [call[0].id for call in recording_dispatcher.calls] == [notification.id]
