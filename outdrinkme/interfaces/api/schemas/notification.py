"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime, time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from outdrinkme.domain.entities import (
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: str
    user_id: int
    type: NotificationType
    priority: NotificationPriority
    status: NotificationStatus
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    actor_id: int | None = None
    action_url: str | None = None
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    read_at: datetime | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: list[NotificationRead]
    unread_count: int
    total_count: int
    page: int
    page_size: int

    model_config = ConfigDict(from_attributes=True)


class UnreadCountResponse(BaseModel):
    unread_count: int


class MessageResponse(BaseModel):
    message: str


class MarkAllReadResponse(MessageResponse):
    updated: int


class DeviceTokenRead(BaseModel):
    token: str
    platform: str
    added_at: datetime | None = None
    last_used_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationPreferencesRead(BaseModel):
    user_id: int
    push_enabled: bool
    email_enabled: bool
    in_app_enabled: bool
    enabled_types: dict[str, bool] = Field(default_factory=dict)
    quiet_hours_enabled: bool
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    quiet_hours_timezone: str
    max_notifications_per_hour: int
    max_notifications_per_day: int
    device_tokens: list[DeviceTokenRead] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("quiet_hours_start", "quiet_hours_end")
    def _serialize_time_of_day(self, value: time | None) -> str | None:
        return value.strftime("%H:%M") if value is not None else None


class NotificationPreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    push_enabled: bool | None = None
    email_enabled: bool | None = None
    in_app_enabled: bool | None = None
    enabled_types: dict[NotificationType, bool] | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = Field(default=None, description="HH:MM")
    quiet_hours_end: str | None = Field(default=None, description="HH:MM")
    quiet_hours_timezone: str | None = Field(default=None, max_length=64)
    max_notifications_per_hour: int | None = Field(default=None, ge=1)
    max_notifications_per_day: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict[str, Any]:
        values = self.model_dump(exclude_none=True)
        if "enabled_types" in values:
            values["enabled_types"] = {
                key.value: enabled for key, enabled in self.enabled_types.items()
            }
        return values


class RegisterDeviceRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=4096)
    platform: Literal["ios", "android", "web"]


__all__ = [
    "DeviceTokenRead",
    "MarkAllReadResponse",
    "MessageResponse",
    "NotificationListResponse",
    "NotificationPreferencesRead",
    "NotificationPreferencesUpdate",
    "NotificationRead",
    "RegisterDeviceRequest",
    "UnreadCountResponse",
]
