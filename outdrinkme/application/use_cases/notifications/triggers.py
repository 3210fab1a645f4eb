"""Fan out activity of one user to everyone in their friend list."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from outdrinkme.domain.entities import NotificationPriority, NotificationType
from outdrinkme.domain.exceptions import NotificationError
from outdrinkme.infrastructure.repositories import UserRepository

from .create_notification import NotificationSink, create_notification

logger = logging.getLogger(__name__)

QUEST_ACTION_URL = "outdrinkme://quests/{quest_id}"


def _notify_friends(
    session: Session,
    *,
    actor_id: int,
    notification_type: NotificationType,
    data: dict[str, Any],
    action_url: str | None = None,
    dispatcher: NotificationSink | None = None,
) -> int:
    friend_ids = UserRepository(session).list_friend_ids(actor_id)
    logger.debug(
        "Sending %s from user %s to %s friend(s)",
        notification_type.value,
        actor_id,
        len(friend_ids),
    )

    created = 0
    for friend_id in friend_ids:
        try:
            notification = create_notification(
                session,
                user_id=friend_id,
                notification_type=notification_type,
                priority=NotificationPriority.HIGH,
                data=data,
                actor_id=actor_id,
                action_url=action_url,
                dispatcher=dispatcher,
            )
        except NotificationError as exc:
            logger.warning(
                "Failed to create %s notification for friend %s: %s",
                notification_type.value,
                friend_id,
                exc,
            )
            continue
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning(
                "Database error creating %s notification for friend %s: %s",
                notification_type.value,
                friend_id,
                exc,
            )
            continue
        if notification is not None:
            created += 1
    return created


def notify_friends_posted_mix(
    session: Session,
    *,
    actor_id: int,
    username: str,
    image_url: str,
    post_id: str | None = None,
    dispatcher: NotificationSink | None = None,
) -> int:
    """Tell the actor's friends about a new image in the mix feed.

    Returns the number of notifications created.
    """

    data: dict[str, Any] = {"username": username, "image_url": image_url}
    if post_id is not None:
        data["post_id"] = post_id
    return _notify_friends(
        session,
        actor_id=actor_id,
        notification_type=NotificationType.FRIEND_POSTED_MIX,
        data=data,
        dispatcher=dispatcher,
    )


def notify_friends_posted_quest(
    session: Session,
    *,
    actor_id: int,
    username: str,
    quest_id: str,
    quest_title: str,
    reward: int,
    dispatcher: NotificationSink | None = None,
) -> int:
    return _notify_friends(
        session,
        actor_id=actor_id,
        notification_type=NotificationType.FRIEND_POSTED_QUEST,
        data={"username": username, "quest_title": quest_title, "reward": reward},
        action_url=QUEST_ACTION_URL.format(quest_id=quest_id),
        dispatcher=dispatcher,
    )


def notify_friends_posted_story(
    session: Session,
    *,
    actor_id: int,
    username: str,
    video_url: str,
    story_id: str,
    dispatcher: NotificationSink | None = None,
) -> int:
    return _notify_friends(
        session,
        actor_id=actor_id,
        notification_type=NotificationType.FRIEND_POSTED_STORY,
        data={"username": username, "video_url": video_url, "story_id": story_id},
        dispatcher=dispatcher,
    )
