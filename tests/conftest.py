"""Shared fixtures: a throwaway SQLite database and in-memory delivery fakes."""

from __future__ import annotations

import os
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from jose import jwt

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DISPATCHER_ENABLED"] = "false"
os.environ["APP_TIMEZONE"] = "UTC"
for _name in (
    "FIREBASE_CREDENTIALS_FILE",
    "FIREBASE_CREDENTIALS_BASE64",
    "SENDGRID_API_KEY",
    "SENDGRID_SENDER",
):
    os.environ.pop(_name, None)

from outdrinkme.application.use_cases.notifications import seed_templates  # noqa: E402
from outdrinkme.config import get_settings  # noqa: E402
from outdrinkme.domain.entities import User  # noqa: E402
from outdrinkme.infrastructure import database  # noqa: E402
from outdrinkme.infrastructure.notifications import set_notification_dispatcher  # noqa: E402
from outdrinkme.infrastructure.repositories import UserRepository  # noqa: E402
from outdrinkme.infrastructure.security import ALGORITHM  # noqa: E402


def issue_token(subject: str, *, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Sign a bearer token the way the identity provider does."""

    claims = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(claims, get_settings().secret_key, algorithm=ALGORITHM)


class RecordingDispatcher:
    """Stand-in for the dispatcher that only remembers what it was handed."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.calls = []

    def dispatch(self, notification, preferences) -> bool:
        self.calls.append((notification, preferences))
        return self.accept


class FakePushProvider:
    """Push provider recording each send; can fail or stall on demand."""

    def __init__(self, *, error: Exception | None = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.sent = []
        self.delivered = threading.Event()

    def send_push(self, tokens, title, body, data) -> None:
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append(
            {"tokens": [device.token for device in tokens], "title": title, "body": body, "data": dict(data)}
        )
        self.delivered.set()


class FakeEmailProvider:
    def __init__(self) -> None:
        self.sent = []

    def send_email(self, to: str, subject: str, body: str) -> bool:
        self.sent.append((to, subject, body))
        return True


@pytest.fixture(autouse=True)
def setup_database():
    """Prepare a fresh schema for every test."""

    from outdrinkme.infrastructure import models  # noqa: F401

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.initialize_database()
    set_notification_dispatcher(None)
    yield
    set_notification_dispatcher(None)
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


@pytest.fixture(scope="session", autouse=True)
def remove_database_file():
    yield
    database.engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture()
def session_factory():
    return database.SessionLocal


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def templates(session):
    return seed_templates(session)


@pytest.fixture()
def make_user(session):
    counter = {"value": 0}

    def _make_user(username: str | None = None, *, is_active: bool = True, email: str | None = None) -> User:
        counter["value"] += 1
        name = username or f"user{counter['value']}"
        return UserRepository(session).create(
            User(
                id=None,
                external_id=f"ext-{name}",
                username=name,
                email=email if email is not None else f"{name}@example.com",
                is_active=is_active,
            )
        )

    return _make_user


@pytest.fixture()
def user(make_user):
    return make_user("alice")


@pytest.fixture()
def recording_dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def push_provider():
    return FakePushProvider()


@pytest.fixture()
def email_provider():
    return FakeEmailProvider()
