"""
Pytest configuration and shared fixtures.

Everything runs against an in-memory SQLite database; the production
lifespan (create_all on the real engine, Firebase) is disabled.
"""
import datetime as dt
import os
from contextlib import asynccontextmanager

# must be set before healthclub is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("FIREBASE_KEY_PATH", "/nonexistent/firebase-key.json")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import healthclub.models  # noqa: E402,F401
from healthclub.db.database import Base, enable_sqlite_savepoints, get_db  # noqa: E402
from healthclub.main import app  # noqa: E402
from healthclub.models.app_user import AppUser, UserStatus  # noqa: E402
from healthclub.models.scheduled_notification import (  # noqa: E402
    NotificationStatus,
    ScheduledNotification,
    ScheduledType,
)
from healthclub.services.api_keys import generate_api_key  # noqa: E402
from healthclub.services.fcm_push import PushResult  # noqa: E402

CRON_SECRET = os.environ["CRON_SECRET"]


@asynccontextmanager
async def _test_lifespan(app):
    yield


app.router.lifespan_context = _test_lifespan

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakePushSender:
    """Stands in for send_push_notification; records every call."""

    def __init__(self, success=True, error="Requested entity was not found.", raises=None):
        self.success = success
        self.error = error
        self.raises = raises
        self.calls = []

    def __call__(self, db, token, title, body, data=None, **kwargs):
        self.calls.append(
            {"token": token, "title": title, "body": body, "data": data or {}, **kwargs}
        )
        if self.raises is not None:
            raise self.raises
        if self.success:
            return PushResult(success=True, message_id=f"projects/test/messages/{len(self.calls)}")
        return PushResult(success=False, error=self.error, error_code="messaging/unknown")


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def api_key(db_session):
    _, plain = generate_api_key(db_session, "android-app")
    db_session.commit()
    return plain


@pytest.fixture
def api_headers(api_key):
    return {"X-API-Key": api_key}


@pytest.fixture
def cron_headers():
    return {"x-cron-secret": CRON_SECRET}


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(email=None, fcm_token="fcm-token-abcdefghijklmnop", status=UserStatus.active, wp_user_id=None):
        counter["n"] += 1
        n = counter["n"]
        user = AppUser(
            wp_user_id=wp_user_id or f"wp-{n}",
            email=email or f"member{n}@example.com",
            fcm_token=fcm_token,
            status=status.value,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_reminder(db_session):
    def _make(
        user,
        scheduled_date,
        status=NotificationStatus.pending,
        scheduled_type=ScheduledType.on_date,
        created_at=None,
        medication_name="MedA",
    ):
        row = ScheduledNotification(
            app_user_id=user.id,
            medication_name=medication_name,
            scheduled_date=scheduled_date,
            scheduled_type=scheduled_type.value,
            title="Medication Due Today",
            body=f"Your {medication_name} dose is due today.",
            status=status.value,
        )
        if created_at is not None:
            row.created_at = created_at
        db_session.add(row)
        db_session.commit()
        return row

    return _make


@pytest.fixture
def today():
    return dt.date(2026, 2, 8)
