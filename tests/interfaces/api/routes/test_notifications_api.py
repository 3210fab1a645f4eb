"""Integration tests for the notification API endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from outdrinkme.domain.entities import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from outdrinkme.infrastructure.repositories import NotificationRepository
from outdrinkme.utils import now_in_app_timezone

from conftest import issue_token


@pytest.fixture()
def client():
    """Return a test client bound to a clean application instance."""

    from main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(user):
    token = issue_token(user.external_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def stored(session, user):
    base = now_in_app_timezone()

    def _store(title: str, offset: int, **overrides) -> Notification:
        values = dict(
            id=None,
            user_id=user.id,
            type=NotificationType.FRIEND_REQUEST_ACCEPTED,
            priority=NotificationPriority.MEDIUM,
            status=NotificationStatus.SENT,
            title=title,
            body="body",
            created_at=base + timedelta(seconds=offset),
        )
        values.update(overrides)
        return NotificationRepository(session).create(Notification(**values))

    return _store


def test_requests_without_token_are_rejected(client) -> None:
    assert client.get("/notifications/").status_code == 401


def test_unknown_subject_is_rejected(client, user) -> None:
    token = issue_token("ext-nobody")

    response = client.get("/notifications/", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_token_is_rejected(client, user) -> None:
    token = issue_token(user.external_id, expires_in=timedelta(minutes=-5))

    response = client.get("/notifications/", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_inactive_user_is_rejected(client, make_user) -> None:
    inactive = make_user("sleepy", is_active=False)
    token = issue_token(inactive.external_id)

    response = client.get("/notifications/unread-count", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 400


def test_list_notifications(client, auth_headers, stored) -> None:
    stored("older", 1)
    stored("newer", 2)

    response = client.get("/notifications/", params={"page_size": 1}, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert [n["title"] for n in body["notifications"]] == ["newer"]
    assert body["total_count"] == 2
    assert body["unread_count"] == 2
    assert body["page"] == 1
    assert body["page_size"] == 1
    assert body["notifications"][0]["type"] == "friend_request_accepted"


def test_read_flow(client, auth_headers, stored) -> None:
    first = stored("first", 1)
    stored("second", 2)

    response = client.put(f"/notifications/{first.id}/read", headers=auth_headers)
    assert response.status_code == 200
    assert client.get("/notifications/unread-count", headers=auth_headers).json() == {"unread_count": 1}

    again = client.put(f"/notifications/{first.id}/read", headers=auth_headers)
    assert again.status_code == 404
    assert again.json()["detail"] == "Notification not found or already read"

    response = client.put("/notifications/read-all", headers=auth_headers)
    assert response.json()["updated"] == 1
    assert client.get("/notifications/unread-count", headers=auth_headers).json() == {"unread_count": 0}


def test_delete_notification(client, auth_headers, stored) -> None:
    notification = stored("doomed", 1)

    assert client.delete(f"/notifications/{notification.id}", headers=auth_headers).status_code == 200
    assert client.delete(f"/notifications/{notification.id}", headers=auth_headers).status_code == 404


def test_preferences_round_trip(client, auth_headers) -> None:
    response = client.get("/notifications/preferences", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["max_notifications_per_hour"] == 10

    response = client.put(
        "/notifications/preferences",
        json={
            "quiet_hours_enabled": True,
            "quiet_hours_start": "23:00",
            "quiet_hours_end": "06:30",
            "enabled_types": {"weekly_recap": False},
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["quiet_hours_start"] == "23:00"
    assert body["quiet_hours_end"] == "06:30"
    assert body["enabled_types"] == {"weekly_recap": False}
    assert body["push_enabled"] is True


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"quiet_hours_start": "24:00"}, 400),
        ({"quiet_hours_timezone": "Nowhere/Atlantis"}, 400),
        ({"max_notifications_per_hour": 0}, 422),
        ({"enabled_types": {"not_a_type": True}}, 422),
        ({"unexpected": True}, 422),
    ],
)
def test_invalid_preferences_are_rejected(client, auth_headers, payload, status_code) -> None:
    response = client.put("/notifications/preferences", json=payload, headers=auth_headers)

    assert response.status_code == status_code


def test_register_device(client, auth_headers) -> None:
    payload = {"token": "fcm-token", "platform": "android"}

    assert client.post("/notifications/register-device", json=payload, headers=auth_headers).status_code == 200
    assert client.post("/notifications/register-device", json=payload, headers=auth_headers).status_code == 200

    devices = client.get("/notifications/preferences", headers=auth_headers).json()["device_tokens"]
    assert [(d["token"], d["platform"]) for d in devices] == [("fcm-token", "android")]

    invalid = client.post(
        "/notifications/register-device",
        json={"token": "x", "platform": "blackberry"},
        headers=auth_headers,
    )
    assert invalid.status_code == 422


def test_test_notification(client, auth_headers, templates) -> None:
    response = client.post("/notifications/test", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "streak_milestone"
    assert body["priority"] == "high"
    assert body["title"] == "🔥 7 day streak!"
    assert body["status"] == "pending"


def test_test_notification_without_templates(client, auth_headers) -> None:
    assert client.post("/notifications/test", headers=auth_headers).status_code == 404


def test_test_notification_rate_limited(client, auth_headers, templates) -> None:
    client.put("/notifications/preferences", json={"max_notifications_per_hour": 1}, headers=auth_headers)

    assert client.post("/notifications/test", headers=auth_headers).status_code == 200
    assert client.post("/notifications/test", headers=auth_headers).status_code == 429


def test_websocket_requires_token(client) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/notifications/ws") as websocket:
            websocket.receive_json()


def test_websocket_sends_unread_and_handles_ack(client, user, auth_headers, stored) -> None:
    unread = stored("hello", 1)
    token = issue_token(user.external_id)

    with client.websocket_connect(f"/notifications/ws?token={token}") as websocket:
        init = websocket.receive_json()
        assert init["type"] == "init"
        assert [n["id"] for n in init["data"]] == [unread.id]

        websocket.send_json({"type": "ack", "ids": [unread.id]})
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

    assert client.get("/notifications/unread-count", headers=auth_headers).json() == {"unread_count": 0}
