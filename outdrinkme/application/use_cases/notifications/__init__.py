"""Public helpers for creating and managing user notifications."""

from .create_notification import NotificationSink, create_notification
from .inbox import (
    delete_notification,
    get_unread_count,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
)
from .preferences import (
    get_or_create_preferences,
    get_preferences,
    register_device,
    update_preferences,
)
from .rate_limit import check_rate_limit, current_window_start, increment_rate_limit
from .templates import DEFAULT_TEMPLATES, get_template, seed_templates
from .triggers import (
    notify_friends_posted_mix,
    notify_friends_posted_quest,
    notify_friends_posted_story,
)

__all__ = [
    "NotificationSink",
    "create_notification",
    "list_notifications",
    "get_unread_count",
    "mark_as_read",
    "mark_all_as_read",
    "delete_notification",
    "get_preferences",
    "get_or_create_preferences",
    "update_preferences",
    "register_device",
    "check_rate_limit",
    "current_window_start",
    "increment_rate_limit",
    "DEFAULT_TEMPLATES",
    "get_template",
    "seed_templates",
    "notify_friends_posted_mix",
    "notify_friends_posted_quest",
    "notify_friends_posted_story",
]
