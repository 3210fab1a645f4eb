"""Use cases for reading and editing notification preferences."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session

from outdrinkme.domain.entities import DEVICE_PLATFORMS, DeviceToken, NotificationPreferences
from outdrinkme.domain.exceptions import PreferencesNotFoundError
from outdrinkme.infrastructure.repositories import NotificationPreferencesRepository
from outdrinkme.utils import now_in_app_timezone, parse_time_of_day, resolve_timezone

_BOOLEAN_FIELDS = (
    "push_enabled",
    "email_enabled",
    "in_app_enabled",
    "quiet_hours_enabled",
)
_CEILING_FIELDS = ("max_notifications_per_hour", "max_notifications_per_day")
_TIME_FIELDS = ("quiet_hours_start", "quiet_hours_end")


def get_preferences(session: Session, user_id: int) -> NotificationPreferences:
    preferences = NotificationPreferencesRepository(session).get(user_id)
    if preferences is None:
        raise PreferencesNotFoundError(user_id)
    return preferences


def get_or_create_preferences(session: Session, user_id: int) -> NotificationPreferences:
    """Return the user's preferences, creating the defaults on first use."""

    repository = NotificationPreferencesRepository(session)
    preferences = repository.get(user_id)
    if preferences is None:
        preferences = repository.create_default(user_id)
    return preferences


def update_preferences(
    session: Session, user_id: int, changes: Mapping[str, Any]
) -> NotificationPreferences:
    """Apply the provided fields to the user's preferences.

    Keys absent from ``changes`` (or set to ``None``) keep their value.
    ``enabled_types`` entries are merged into the existing overrides.
    """

    repository = NotificationPreferencesRepository(session)
    preferences = repository.get(user_id)
    if preferences is None:
        raise PreferencesNotFoundError(user_id)

    updates: dict[str, Any] = {}
    for name in _BOOLEAN_FIELDS:
        if changes.get(name) is not None:
            updates[name] = bool(changes[name])
    for name in _CEILING_FIELDS:
        if changes.get(name) is not None:
            value = int(changes[name])
            if value < 1:
                raise ValueError(f"{name} must be greater than zero")
            updates[name] = value
    for name in _TIME_FIELDS:
        if changes.get(name) is not None:
            updates[name] = parse_time_of_day(str(changes[name]))
    if changes.get("quiet_hours_timezone") is not None:
        tz_name = str(changes["quiet_hours_timezone"]).strip()
        resolve_timezone(tz_name, strict=True)
        updates["quiet_hours_timezone"] = tz_name
    if changes.get("enabled_types") is not None:
        merged = dict(preferences.enabled_types)
        merged.update({str(key): bool(value) for key, value in changes["enabled_types"].items()})
        updates["enabled_types"] = merged

    if not updates:
        return preferences
    return repository.update(replace(preferences, **updates))


def register_device(
    session: Session, user_id: int, *, token: str, platform: str
) -> NotificationPreferences:
    """Attach a push token to the user.

    Registering a token that is already known only refreshes its
    ``last_used_at``.
    """

    token = token.strip()
    if not token:
        raise ValueError("Device token must not be empty")
    platform = platform.strip().lower()
    if platform not in DEVICE_PLATFORMS:
        raise ValueError(f"Unsupported platform '{platform}'")

    preferences = get_or_create_preferences(session, user_id)
    now = now_in_app_timezone()
    devices = list(preferences.device_tokens)
    existing = preferences.find_device(token)
    if existing is not None:
        devices = [
            replace(device, last_used_at=now) if device.token == token else device
            for device in devices
        ]
    else:
        devices.append(DeviceToken(token=token, platform=platform, added_at=now, last_used_at=now))

    return NotificationPreferencesRepository(session).update(
        replace(preferences, device_tokens=devices)
    )
