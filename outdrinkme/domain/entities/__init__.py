"""Domain entities exposed by the application."""

from .notification import (
    RETRYABLE_PRIORITIES,
    Notification,
    NotificationPage,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from .notification_preferences import (
    DEFAULT_MAX_NOTIFICATIONS_PER_DAY,
    DEFAULT_MAX_NOTIFICATIONS_PER_HOUR,
    DEVICE_PLATFORMS,
    DeviceToken,
    NotificationPreferences,
)
from .notification_template import NotificationTemplate, render_template
from .rate_limit import RateLimitWindow
from .user import User

__all__ = [
    "DEFAULT_MAX_NOTIFICATIONS_PER_DAY",
    "DEFAULT_MAX_NOTIFICATIONS_PER_HOUR",
    "DEVICE_PLATFORMS",
    "DeviceToken",
    "Notification",
    "NotificationPage",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationTemplate",
    "NotificationType",
    "RETRYABLE_PRIORITIES",
    "RateLimitWindow",
    "User",
    "render_template",
]
