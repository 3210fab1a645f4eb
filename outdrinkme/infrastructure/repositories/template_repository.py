"""Persistence layer for notification templates."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from outdrinkme.domain.entities import (
    NotificationPriority,
    NotificationTemplate,
    NotificationType,
)
from outdrinkme.infrastructure.models import NotificationTemplateModel
from outdrinkme.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)

_KNOWN_TYPES = frozenset(notification_type.value for notification_type in NotificationType)


class NotificationTemplateRepository:
    """Read templates by type and upsert them when seeding."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_type(self, notification_type: NotificationType | str) -> NotificationTemplate | None:
        """Return the template for ``notification_type``; unknown type names have none."""

        key = str(getattr(notification_type, "value", notification_type))
        if key not in _KNOWN_TYPES:
            return None
        model = (
            self.session.query(NotificationTemplateModel)
            .filter(NotificationTemplateModel.type == key)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def list(self) -> Sequence[NotificationTemplate]:
        query = self.session.query(NotificationTemplateModel).order_by(
            NotificationTemplateModel.type.asc()
        )
        templates: list[NotificationTemplate] = []
        for model in query.all():
            if model.type not in _KNOWN_TYPES:
                logger.warning("Ignoring template row with unknown type %s", model.type)
                continue
            templates.append(self._to_entity(model))
        return templates

    def upsert(self, template: NotificationTemplate) -> NotificationTemplate:
        key = NotificationType(template.type).value
        model = (
            self.session.query(NotificationTemplateModel)
            .filter(NotificationTemplateModel.type == key)
            .one_or_none()
        )
        now = ensure_app_naive_datetime(now_in_app_timezone())
        if model is None:
            model = NotificationTemplateModel(type=key, created_at=now)
        else:
            model.updated_at = now
        model.title_template = template.title_template
        model.body_template = template.body_template
        model.default_priority = NotificationPriority(template.default_priority).value
        model.ttl_hours = template.ttl_hours
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: NotificationTemplateModel) -> NotificationTemplate:
        return NotificationTemplate(
            id=model.id,
            type=NotificationType(model.type),
            title_template=model.title_template,
            body_template=model.body_template,
            default_priority=NotificationPriority(model.default_priority),
            ttl_hours=model.ttl_hours,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationTemplateRepository"]
