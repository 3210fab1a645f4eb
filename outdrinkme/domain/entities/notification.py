"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Kinds of notifications the app can emit."""

    STREAK_MILESTONE = "streak_milestone"
    STREAK_AT_RISK = "streak_at_risk"
    FRIEND_OVERTOOK_YOU = "friend_overtook_you"
    FRIEND_REQUEST = "friend_request"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    CHALLENGE_INVITE = "challenge_invite"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    FRIEND_POSTED_MIX = "friend_posted_mix"
    FRIEND_POSTED_QUEST = "friend_posted_quest"
    FRIEND_POSTED_STORY = "friend_posted_story"
    WEEKLY_RECAP = "weekly_recap"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    READ = "read"


RETRYABLE_PRIORITIES = frozenset({NotificationPriority.HIGH, NotificationPriority.URGENT})


@dataclass
class Notification:
    """Message addressed to a single user and tracked through its lifecycle."""

    id: str | None
    user_id: int
    type: NotificationType
    priority: NotificationPriority
    status: NotificationStatus
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    actor_id: int | None = None
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    read_at: datetime | None = None
    failed_at: datetime | None = None
    failure_reason: str | None = None
    retry_count: int = 0
    action_url: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def is_retryable(self, max_retries: int) -> bool:
        """Return ``True`` when a failed delivery should be attempted again."""

        return self.priority in RETRYABLE_PRIORITIES and self.retry_count < max_retries


@dataclass
class NotificationPage:
    """A page of notifications together with the user's counters."""

    notifications: list[Notification]
    unread_count: int
    total_count: int
    page: int
    page_size: int


__all__ = [
    "Notification",
    "NotificationPage",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "RETRYABLE_PRIORITIES",
]
