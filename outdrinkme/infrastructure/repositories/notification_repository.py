"""Persistence helpers for notification entities."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from outdrinkme.domain.entities import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from outdrinkme.infrastructure.models import NotificationModel
from outdrinkme.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Provide CRUD and lifecycle operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: str) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        *,
        offset: int = 0,
        limit: int | None = 20,
        unread_only: bool = False,
    ) -> Sequence[Notification]:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if unread_only:
            query = query.filter(NotificationModel.read_at.is_(None))
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_for_user(self, user_id: int, *, unread_only: bool = False) -> int:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if unread_only:
            query = query.filter(NotificationModel.read_at.is_(None))
        return query.count()

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel(id=notification.id or str(uuid.uuid4()))
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_read(
        self, notification_id: str, *, user_id: int, read_at: datetime | None = None
    ) -> bool:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
                NotificationModel.read_at.is_(None),
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.READ.value,
                    NotificationModel.read_at: self._naive(read_at),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def mark_all_read(self, user_id: int, *, read_at: datetime | None = None) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.read_at.is_(None),
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.READ.value,
                    NotificationModel.read_at: self._naive(read_at),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def delete(self, notification_id: str, *, user_id: int) -> bool:
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted > 0

    def mark_sent(self, notification_id: str, *, sent_at: datetime | None = None) -> bool:
        """Flip a pending notification to ``sent``; rows in any other state are left alone."""

        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.status == NotificationStatus.PENDING.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.SENT.value,
                    NotificationModel.sent_at: self._naive(sent_at),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def mark_failed(
        self,
        notification_id: str,
        *,
        reason: str,
        failed_at: datetime | None = None,
    ) -> Notification | None:
        """Record a failed delivery and return the updated notification.

        ``retry_count`` is incremented in SQL. Returns ``None`` when the row
        is gone or no longer pending.
        """

        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.status == NotificationStatus.PENDING.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.FAILED.value,
                    NotificationModel.failed_at: self._naive(failed_at),
                    NotificationModel.failure_reason: reason,
                    NotificationModel.retry_count: NotificationModel.retry_count + 1,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        if not updated:
            return None
        return self.get(notification_id)

    def schedule_retry(self, notification_id: str, *, scheduled_for: datetime) -> bool:
        """Re-arm a failed notification so the promotion loop delivers it again."""

        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.status == NotificationStatus.FAILED.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.PENDING.value,
                    NotificationModel.scheduled_for: ensure_app_naive_datetime(scheduled_for),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def list_due_scheduled(
        self, *, now: datetime | None = None, limit: int = 100
    ) -> Sequence[Notification]:
        moment = self._naive(now)
        query = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.status == NotificationStatus.PENDING.value,
                NotificationModel.scheduled_for.is_not(None),
                NotificationModel.scheduled_for <= moment,
                or_(
                    NotificationModel.expires_at.is_(None),
                    NotificationModel.expires_at > moment,
                ),
            )
            .order_by(NotificationModel.scheduled_for.asc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def delete_expired(self, *, now: datetime | None = None) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.expires_at < self._naive(now),
                NotificationModel.status.in_(
                    [NotificationStatus.SENT.value, NotificationStatus.READ.value]
                ),
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def delete_read_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.status == NotificationStatus.READ.value,
                NotificationModel.read_at < ensure_app_naive_datetime(cutoff),
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    @staticmethod
    def _naive(value: datetime | None) -> datetime:
        return ensure_app_naive_datetime(value or now_in_app_timezone())

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )
        model.user_id = notification.user_id
        model.type = NotificationType(notification.type).value
        model.priority = NotificationPriority(notification.priority).value
        model.status = NotificationStatus(notification.status).value
        model.title = notification.title
        model.body = notification.body
        model.data = dict(notification.data or {})
        model.actor_id = notification.actor_id
        model.scheduled_for = ensure_app_naive_datetime(notification.scheduled_for)
        model.sent_at = ensure_app_naive_datetime(notification.sent_at)
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        model.failed_at = ensure_app_naive_datetime(notification.failed_at)
        model.failure_reason = notification.failure_reason
        model.retry_count = notification.retry_count or 0
        model.action_url = notification.action_url
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            status=NotificationStatus(model.status),
            title=model.title,
            body=model.body,
            data=model.data or {},
            actor_id=model.actor_id,
            scheduled_for=ensure_app_timezone(model.scheduled_for),
            sent_at=ensure_app_timezone(model.sent_at),
            read_at=ensure_app_timezone(model.read_at),
            failed_at=ensure_app_timezone(model.failed_at),
            failure_reason=model.failure_reason,
            retry_count=model.retry_count or 0,
            action_url=model.action_url,
            created_at=ensure_app_timezone(model.created_at),
            expires_at=ensure_app_timezone(model.expires_at),
        )


__all__ = ["NotificationRepository"]
