"""Persistence layer for hourly notification counters."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from outdrinkme.domain.entities import RateLimitWindow
from outdrinkme.infrastructure.models import NotificationRateLimitModel
from outdrinkme.utils import ensure_app_naive_datetime, ensure_app_timezone

WINDOW_LENGTH = timedelta(hours=1)


class RateLimitRepository:
    """Read and increment per-user hour buckets."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_window(self, user_id: int, window_start: datetime) -> RateLimitWindow | None:
        model = self._get_model(user_id, window_start)
        return self._to_entity(model) if model else None

    def get_count(self, user_id: int, window_start: datetime) -> int:
        model = self._get_model(user_id, window_start)
        return model.notification_count if model else 0

    def increment(self, user_id: int, window_start: datetime) -> None:
        """Add one to the bucket, inserting it at ``1`` when it does not exist yet.

        The increment is an SQL expression so concurrent writers never lose
        updates. A concurrent insert of the same bucket falls back to the
        increment path.
        """

        if self._increment_existing(user_id, window_start):
            return

        start = ensure_app_naive_datetime(window_start)
        self.session.add(
            NotificationRateLimitModel(
                user_id=user_id,
                window_start=start,
                window_end=start + WINDOW_LENGTH,
                notification_count=1,
            )
        )
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            if not self._increment_existing(user_id, window_start):
                raise

    def _increment_existing(self, user_id: int, window_start: datetime) -> bool:
        updated = (
            self.session.query(NotificationRateLimitModel)
            .filter(
                NotificationRateLimitModel.user_id == user_id,
                NotificationRateLimitModel.window_start
                == ensure_app_naive_datetime(window_start),
            )
            .update(
                {
                    NotificationRateLimitModel.notification_count: NotificationRateLimitModel.notification_count
                    + 1
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def _get_model(
        self, user_id: int, window_start: datetime
    ) -> NotificationRateLimitModel | None:
        return (
            self.session.query(NotificationRateLimitModel)
            .filter(
                NotificationRateLimitModel.user_id == user_id,
                NotificationRateLimitModel.window_start
                == ensure_app_naive_datetime(window_start),
            )
            .one_or_none()
        )

    @staticmethod
    def _to_entity(model: NotificationRateLimitModel) -> RateLimitWindow:
        return RateLimitWindow(
            user_id=model.user_id,
            window_start=ensure_app_timezone(model.window_start),
            window_end=ensure_app_timezone(model.window_end),
            notification_count=model.notification_count,
        )


__all__ = ["RateLimitRepository", "WINDOW_LENGTH"]
