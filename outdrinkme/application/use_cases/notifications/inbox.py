"""Use cases backing a user's notification inbox."""

from __future__ import annotations

from sqlalchemy.orm import Session

from outdrinkme.domain.entities import NotificationPage
from outdrinkme.domain.exceptions import NotificationNotFoundError
from outdrinkme.infrastructure.repositories import NotificationRepository
from outdrinkme.utils import now_in_app_timezone

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def list_notifications(
    session: Session,
    user_id: int,
    *,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    unread_only: bool = False,
) -> NotificationPage:
    """Return one page of the user's notifications, newest first.

    Out of range paging values are coerced instead of rejected: pages below
    one become the first page and sizes outside ``1..100`` fall back to 20.
    """

    if page < 1:
        page = 1
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE

    repository = NotificationRepository(session)
    notifications = repository.list_for_user(
        user_id,
        offset=(page - 1) * page_size,
        limit=page_size,
        unread_only=unread_only,
    )
    return NotificationPage(
        notifications=list(notifications),
        unread_count=repository.count_for_user(user_id, unread_only=True),
        total_count=repository.count_for_user(user_id),
        page=page,
        page_size=page_size,
    )


def get_unread_count(session: Session, user_id: int) -> int:
    return NotificationRepository(session).count_for_user(user_id, unread_only=True)


def mark_as_read(session: Session, notification_id: str, user_id: int) -> None:
    repository = NotificationRepository(session)
    if not repository.mark_read(notification_id, user_id=user_id, read_at=now_in_app_timezone()):
        raise NotificationNotFoundError("Notification not found or already read")


def mark_all_as_read(session: Session, user_id: int) -> int:
    """Mark every unread notification of the user as read; return how many."""

    return NotificationRepository(session).mark_all_read(user_id, read_at=now_in_app_timezone())


def delete_notification(session: Session, notification_id: str, user_id: int) -> None:
    if not NotificationRepository(session).delete(notification_id, user_id=user_id):
        raise NotificationNotFoundError("Notification not found")
