"""Pytest bootstrap: settings for an isolated run, in-memory database and factories."""

from datetime import datetime, timezone
from pathlib import Path
import os
import sys

# Ensure project root is on sys.path so `import mentorbook` works
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["EMAIL_NOTIFICATIONS_ENABLED"] = "false"
os.environ["EMAIL_SEND_IN_BACKGROUND"] = "false"
os.environ.pop("DAILY_API_KEY", None)
os.environ.pop("CRON_SECRET", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mentorbook import models
from mentorbook.database import Base
from mentorbook.models.connection import ConnectionStatus
from mentorbook.services import notification_service

# Monday 2 March 2026, 08:00 UTC
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outbound email instead of talking to SMTP."""
    outbox = []

    def fake_send_email(*, to_email, subject, body_text, body_html=None):
        outbox.append({"to": to_email, "subject": subject, "body": body_text, "html": body_html})
        return True

    monkeypatch.setattr(notification_service, "is_email_enabled", lambda: True)
    monkeypatch.setattr(notification_service, "send_email", fake_send_email)
    return outbox


# ======================
# FACTORIES
# ======================

def make_user(db, name="Student One", email="student@example.com", tier="free"):
    user = models.User(
        name=name,
        email=email,
        password_hash="hash",
        role="student",
        subscription_tier=tier,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_mentor(db, name="Mentor One", email="mentor@example.com", verified=True, available=True):
    user = make_user(db, name=name, email=email)
    mentor = models.Mentor(user_id=user.id, is_verified=verified, is_available=available)
    db.add(mentor)
    db.commit()
    db.refresh(mentor)
    return mentor


def connect(db, mentor, student, status=ConnectionStatus.ACCEPTED.value):
    connection = models.Connection(mentor_id=mentor.id, student_id=student.id, status=status)
    db.add(connection)
    db.commit()
    db.refresh(connection)
    return connection


def add_template(db, mentor, day_of_week, start_time, end_time, tz="UTC", is_active=True):
    template = models.AvailabilitySlotTemplate(
        mentor_id=mentor.id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        timezone=tz,
        is_active=is_active,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


def add_session(db, mentor, student, scheduled_at, duration=60, status="scheduled", created_at=None):
    session = models.Session(
        mentor_id=mentor.id,
        student_id=student.id,
        scheduled_at=scheduled_at,
        duration_minutes=duration,
        status=status,
        created_at=created_at or NOW,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session
