"""Errors raised by the notification use cases."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification related failures."""


class TemplateNotFoundError(NotificationError):
    def __init__(self, notification_type: str) -> None:
        super().__init__(f"No template registered for notification type '{notification_type}'")
        self.notification_type = notification_type


class RateLimitExceededError(NotificationError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"Rate limit exceeded for user {user_id}")
        self.user_id = user_id


class UserNotFoundError(NotificationError):
    def __init__(self, user_id: object) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class PreferencesNotFoundError(NotificationError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"Notification preferences for user {user_id} not found")
        self.user_id = user_id


class NotificationNotFoundError(NotificationError):
    """Raised when a notification does not exist or does not belong to the user."""


class DeliveryFailedError(NotificationError):
    """Raised by delivery providers; recorded on the notification, never surfaced."""


class QueueFullError(NotificationError):
    """The dispatch queue stayed full for the whole enqueue timeout."""


__all__ = [
    "DeliveryFailedError",
    "NotificationError",
    "NotificationNotFoundError",
    "PreferencesNotFoundError",
    "QueueFullError",
    "RateLimitExceededError",
    "TemplateNotFoundError",
    "UserNotFoundError",
]
