"""Domain entities describing per-user notification settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any

DEVICE_PLATFORMS = ("ios", "android", "web")
DEFAULT_MAX_NOTIFICATIONS_PER_HOUR = 10
DEFAULT_MAX_NOTIFICATIONS_PER_DAY = 50


@dataclass
class DeviceToken:
    """Push token registered by one of the user's devices."""

    token: str
    platform: str
    added_at: datetime | None = None
    last_used_at: datetime | None = None


@dataclass
class NotificationPreferences:
    """Channel toggles, type overrides, quiet hours and ceilings for a user."""

    id: int | None
    user_id: int
    push_enabled: bool = True
    email_enabled: bool = True
    in_app_enabled: bool = True
    enabled_types: dict[str, bool] = field(default_factory=dict)
    quiet_hours_enabled: bool = False
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    quiet_hours_timezone: str = "UTC"
    max_notifications_per_hour: int = DEFAULT_MAX_NOTIFICATIONS_PER_HOUR
    max_notifications_per_day: int = DEFAULT_MAX_NOTIFICATIONS_PER_DAY
    device_tokens: list[DeviceToken] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_type_enabled(self, notification_type: Any) -> bool:
        """Types are enabled unless the user explicitly switched them off."""

        key = getattr(notification_type, "value", notification_type)
        return self.enabled_types.get(str(key), True)

    def find_device(self, token: str) -> DeviceToken | None:
        for device in self.device_tokens:
            if device.token == token:
                return device
        return None


__all__ = [
    "DEFAULT_MAX_NOTIFICATIONS_PER_DAY",
    "DEFAULT_MAX_NOTIFICATIONS_PER_HOUR",
    "DEVICE_PLATFORMS",
    "DeviceToken",
    "NotificationPreferences",
]
