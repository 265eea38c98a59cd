from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import planwise.models  # noqa: F401  registers the tables on Base.metadata
from planwise.api import deps
from planwise.core.config import settings
from planwise.db.base import Base
from planwise.main import create_app
from planwise.models import Goal, NotificationSettings, Project, Task
from planwise.reminders.dispatcher import SendResult, TwilioError

CRON_SECRET = "test-cron-secret"
JWT_SECRET = "test-jwt-secret"


class FakeGateway:
    """Records every message instead of calling Twilio."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def send(self, channel, to, body):
        if to in self.fail_for:
            raise TwilioError("Twilio rejected the message", 400)
        self.sent.append({"channel": channel, "to": to, "body": body})
        return SendResult(message_sid=f"SM{len(self.sent)}")


def make_user_token(user_id, secret=JWT_SECRET, audience="authenticated"):
    payload = {
        "sub": user_id,
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def add_settings(db):
    def _add(user_id, phone="+491711234567", **overrides):
        values = {
            "user_id": user_id,
            "whatsapp_reminders_enabled": True,
            "whatsapp_phone_number": phone,
            "whatsapp_task_start_reminder_enabled": True,
            "whatsapp_weekly_review_enabled": True,
            "whatsapp_weekly_review_time": "22:00",
            "week_starts_on_monday": True,
            "timezone": "Europe/Berlin",
        }
        values.update(overrides)
        row = NotificationSettings(**values)
        db.add(row)
        db.commit()
        return row
    return _add


@pytest.fixture
def add_task(db):
    def _add(task_id, user_id, title, due_date=None, **overrides):
        values = {
            "id": task_id,
            "user_id": user_id,
            "title": title,
            "status": "todo",
            "priority": "medium",
            "due_date": due_date,
            "created_at": datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        task = Task(**values)
        db.add(task)
        db.commit()
        return task
    return _add


@pytest.fixture
def add_project(db):
    def _add(project_id, user_id, title):
        project = Project(id=project_id, user_id=user_id, title=title)
        db.add(project)
        db.commit()
        return project
    return _add


@pytest.fixture
def add_goal(db):
    def _add(goal_id, user_id, title, progress=0, weekly_plan=None):
        goal = Goal(id=goal_id, user_id=user_id, title=title, progress=progress, weekly_plan=weekly_plan)
        db.add(goal)
        db.commit()
        return goal
    return _add


@pytest.fixture
def client(db, gateway, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(settings, "REMINDER_API_SECRET", None)
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setattr(settings, "SUPABASE_JWT_AUDIENCE", "authenticated")

    app = create_app()
    app.dependency_overrides[deps.get_db] = lambda: db
    app.dependency_overrides[deps.get_messaging_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
