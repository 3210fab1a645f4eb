"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from outdrinkme.application.use_cases.notifications import (
    create_notification as create_notification_uc,
    delete_notification as delete_notification_uc,
    get_or_create_preferences as get_or_create_preferences_uc,
    get_unread_count as get_unread_count_uc,
    list_notifications as list_notifications_uc,
    mark_all_as_read as mark_all_as_read_uc,
    mark_as_read as mark_as_read_uc,
    register_device as register_device_uc,
    update_preferences as update_preferences_uc,
)
from outdrinkme.domain.entities import NotificationPriority, NotificationType, User
from outdrinkme.domain.exceptions import (
    NotificationError,
    NotificationNotFoundError,
    PreferencesNotFoundError,
    RateLimitExceededError,
    TemplateNotFoundError,
    UserNotFoundError,
)
from outdrinkme.infrastructure.database import SessionLocal, get_db
from outdrinkme.infrastructure.notifications import inbox_sockets, serialize_notification
from outdrinkme.infrastructure.repositories import NotificationRepository
from outdrinkme.interfaces.api.dependencies import get_current_active_user, resolve_current_user
from outdrinkme.interfaces.api.schemas import (
    MarkAllReadResponse,
    MessageResponse,
    NotificationListResponse,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    NotificationRead,
    RegisterDeviceRequest,
    UnreadCountResponse,
)
from outdrinkme.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

_ERROR_STATUS: dict[type[NotificationError], int] = {
    TemplateNotFoundError: status.HTTP_404_NOT_FOUND,
    RateLimitExceededError: status.HTTP_429_TOO_MANY_REQUESTS,
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    PreferencesNotFoundError: status.HTTP_404_NOT_FOUND,
    NotificationNotFoundError: status.HTTP_404_NOT_FOUND,
}


def _to_http_error(exc: NotificationError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=str(exc))


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    page: int = 1,
    page_size: int = 20,
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationListResponse:
    """Return a page of the authenticated user's notifications."""

    result = list_notifications_uc(
        db,
        current_user.id,
        page=page,
        page_size=page_size,
        unread_only=unread_only,
    )
    return NotificationListResponse.model_validate(result)


@router.get("/unread-count", response_model=UnreadCountResponse)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=get_unread_count_uc(db, current_user.id))


@router.put("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MarkAllReadResponse:
    updated = mark_all_as_read_uc(db, current_user.id)
    return MarkAllReadResponse(message="All notifications marked as read", updated=updated)


@router.get("/preferences", response_model=NotificationPreferencesRead)
def read_preferences(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationPreferencesRead:
    preferences = get_or_create_preferences_uc(db, current_user.id)
    return NotificationPreferencesRead.model_validate(preferences)


@router.put("/preferences", response_model=NotificationPreferencesRead)
def update_preferences(
    payload: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationPreferencesRead:
    """Apply a partial update to the user's notification preferences."""

    get_or_create_preferences_uc(db, current_user.id)
    try:
        preferences = update_preferences_uc(db, current_user.id, payload.changes())
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return NotificationPreferencesRead.model_validate(preferences)


@router.post("/register-device", response_model=MessageResponse)
def register_device(
    payload: RegisterDeviceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    try:
        register_device_uc(db, current_user.id, token=payload.token, platform=payload.platform)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Device registered successfully")


@router.post("/test", response_model=NotificationRead | None)
def send_test_notification(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationRead | None:
    """Create a streak milestone notification addressed to the caller."""

    try:
        notification = create_notification_uc(
            db,
            user_id=current_user.id,
            notification_type=NotificationType.STREAK_MILESTONE,
            priority=NotificationPriority.HIGH,
            data={"days": "7"},
        )
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    if notification is None:
        return None
    return NotificationRead.model_validate(notification)


@router.put("/{notification_id}/read", response_model=MessageResponse)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    try:
        mark_as_read_uc(db, notification_id, current_user.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return MessageResponse(message="Notification marked as read")


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    try:
        delete_notification_uc(db, notification_id, current_user.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return MessageResponse(message="Notification deleted")


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Stream notifications to the authenticated user as they are sent.

    The bearer token travels in the ``token`` query parameter. Unread
    notifications are pushed once on connect; clients may ``ping`` and
    ``ack`` a list of ids to mark them read.
    """

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
        unread = NotificationRepository(session).list_for_user(
            user.id, limit=None, unread_only=True
        )
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    await inbox_sockets.attach(user.id, websocket)
    try:
        if unread:
            await websocket.send_json(
                {"type": "init", "data": [serialize_notification(n) for n in unread]}
            )
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    _acknowledge(user.id, [str(value) for value in ids])
    except WebSocketDisconnect:
        logger.debug("Notification websocket closed for user %s", user.id)
    finally:
        inbox_sockets.detach(user.id, websocket)


def _acknowledge(user_id: int, notification_ids: list[str]) -> None:
    session = SessionLocal()
    try:
        repository = NotificationRepository(session)
        read_at = now_in_app_timezone()
        for notification_id in notification_ids:
            repository.mark_read(notification_id, user_id=user_id, read_at=read_at)
    finally:
        session.close()
