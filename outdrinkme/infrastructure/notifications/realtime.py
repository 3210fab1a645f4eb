"""Deliver sent notifications to connected in-app clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from outdrinkme.domain.entities import Notification

from .inbox_sockets import InboxSocketRegistry, inbox_sockets

logger = logging.getLogger(__name__)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    def _iso(value):
        return value.isoformat() if value else None

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "priority": notification.priority.value,
        "status": notification.status.value,
        "title": notification.title,
        "body": notification.body,
        "data": notification.data or {},
        "actor_id": notification.actor_id,
        "action_url": notification.action_url,
        "created_at": _iso(notification.created_at),
        "sent_at": _iso(notification.sent_at),
        "read_at": _iso(notification.read_at),
    }


class RealtimeNotificationPublisher:
    """Hand notifications from worker threads to the websocket event loop.

    The loop is bound by the application lifespan. Without a bound loop
    publishing is a no-op.
    """

    def __init__(self, sockets: InboxSocketRegistry) -> None:
        self._sockets = sockets
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        self._loop = loop

    def publish(self, notification: Notification) -> bool:
        """Schedule delivery of ``notification``; return ``False`` when skipped."""

        loop = self._loop
        if loop is None or loop.is_closed() or not self._sockets.has_open_inbox(notification.user_id):
            return False

        message = {"type": "notification", "data": serialize_notification(notification)}
        try:
            asyncio.run_coroutine_threadsafe(
                self._sockets.push(notification.user_id, message), loop
            )
        except RuntimeError as exc:
            logger.debug("Realtime loop unavailable: %s", exc)
            return False
        return True


realtime_publisher = RealtimeNotificationPublisher(inbox_sockets)


__all__ = [
    "RealtimeNotificationPublisher",
    "realtime_publisher",
    "serialize_notification",
]
