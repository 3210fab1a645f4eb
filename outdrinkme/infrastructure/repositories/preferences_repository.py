"""Persistence layer for notification preferences."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from outdrinkme.domain.entities import DeviceToken, NotificationPreferences
from outdrinkme.infrastructure.models import NotificationPreferencesModel
from outdrinkme.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationPreferencesRepository:
    """Load and store :class:`NotificationPreferences` rows keyed by user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> NotificationPreferences | None:
        model = self._get_model(user_id)
        return self._to_entity(model) if model else None

    def create_default(self, user_id: int) -> NotificationPreferences:
        """Insert default preferences for ``user_id`` and return them.

        When another request created the row first, the existing row wins.
        """

        model = NotificationPreferencesModel(
            user_id=user_id,
            enabled_types={},
            device_tokens=[],
            created_at=ensure_app_naive_datetime(now_in_app_timezone()),
        )
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self._get_model(user_id)
            if existing is None:
                raise
            return self._to_entity(existing)
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, preferences: NotificationPreferences) -> NotificationPreferences:
        model = self._get_model(preferences.user_id)
        if model is None:
            msg = f"Notification preferences for user {preferences.user_id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, preferences)
        model.updated_at = ensure_app_naive_datetime(now_in_app_timezone())
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def _get_model(self, user_id: int) -> NotificationPreferencesModel | None:
        return (
            self.session.query(NotificationPreferencesModel)
            .filter(NotificationPreferencesModel.user_id == user_id)
            .one_or_none()
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationPreferencesModel, preferences: NotificationPreferences
    ) -> None:
        model.push_enabled = preferences.push_enabled
        model.email_enabled = preferences.email_enabled
        model.in_app_enabled = preferences.in_app_enabled
        # JSON columns only detect reassignment, never in-place mutation.
        model.enabled_types = dict(preferences.enabled_types)
        model.quiet_hours_enabled = preferences.quiet_hours_enabled
        model.quiet_hours_start = preferences.quiet_hours_start
        model.quiet_hours_end = preferences.quiet_hours_end
        model.quiet_hours_timezone = preferences.quiet_hours_timezone
        model.max_notifications_per_hour = preferences.max_notifications_per_hour
        model.max_notifications_per_day = preferences.max_notifications_per_day
        model.device_tokens = [_serialize_device(device) for device in preferences.device_tokens]

    @staticmethod
    def _to_entity(model: NotificationPreferencesModel) -> NotificationPreferences:
        return NotificationPreferences(
            id=model.id,
            user_id=model.user_id,
            push_enabled=bool(model.push_enabled),
            email_enabled=bool(model.email_enabled),
            in_app_enabled=bool(model.in_app_enabled),
            enabled_types={str(key): bool(value) for key, value in (model.enabled_types or {}).items()},
            quiet_hours_enabled=bool(model.quiet_hours_enabled),
            quiet_hours_start=model.quiet_hours_start,
            quiet_hours_end=model.quiet_hours_end,
            quiet_hours_timezone=model.quiet_hours_timezone or "UTC",
            max_notifications_per_hour=model.max_notifications_per_hour,
            max_notifications_per_day=model.max_notifications_per_day,
            device_tokens=[_deserialize_device(item) for item in (model.device_tokens or [])],
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


def _serialize_device(device: DeviceToken) -> dict[str, Any]:
    return {
        "token": device.token,
        "platform": device.platform,
        "added_at": _isoformat(device.added_at),
        "last_used_at": _isoformat(device.last_used_at),
    }


def _deserialize_device(payload: dict[str, Any]) -> DeviceToken:
    return DeviceToken(
        token=str(payload.get("token", "")),
        platform=str(payload.get("platform") or "android"),
        added_at=_parse_datetime(payload.get("added_at")),
        last_used_at=_parse_datetime(payload.get("last_used_at")),
    )


def _isoformat(value: datetime | None) -> str | None:
    localized = ensure_app_timezone(value)
    return localized.isoformat() if localized else None


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return ensure_app_timezone(datetime.fromisoformat(str(value)))
    except ValueError:
        return None


__all__ = ["NotificationPreferencesRepository"]
