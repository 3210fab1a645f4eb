"""Open in-app inbox sockets, grouped by the user they belong to.

A user may keep the inbox open on several devices at once; every sent
notification is pushed to all of them. Sockets that fail on push are
assumed gone and forgotten.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class InboxSocketRegistry:
    def __init__(self) -> None:
        self._sockets: defaultdict[int, set[WebSocket]] = defaultdict(set)

    async def attach(self, user_id: int, websocket: WebSocket) -> None:
        """Accept the handshake and start routing ``user_id``'s notifications to it."""

        await websocket.accept()
        self._sockets[user_id].add(websocket)
        logger.debug("Inbox socket attached for user %s (%s open)", user_id, len(self._sockets[user_id]))

    def detach(self, user_id: int, websocket: WebSocket) -> None:
        sockets = self._sockets.get(user_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._sockets[user_id]

    def has_open_inbox(self, user_id: int) -> bool:
        return bool(self._sockets.get(user_id))

    async def push(self, user_id: int, message: dict[str, Any]) -> int:
        """Send ``message`` to each open inbox of ``user_id``; return how many got it."""

        delivered = 0
        for websocket in list(self._sockets.get(user_id, ())):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.debug("Forgetting inbox socket of user %s: %s", user_id, exc)
                self.detach(user_id, websocket)
                continue
            delivered += 1
        return delivered


inbox_sockets = InboxSocketRegistry()


__all__ = ["InboxSocketRegistry", "inbox_sockets"]
