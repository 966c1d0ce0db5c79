from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import NOW, add_session, connect, make_mentor, make_user
from mentorbook import models
from mentorbook.crud import session as session_crud
from mentorbook.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    QuotaError,
    ValidationError,
)
from mentorbook.models.connection import ConnectionStatus
from mentorbook.services import notification_service, session_scheduler
from mentorbook.utils.video import VideoProviderError

START = datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc)


class FakeVideoClient:
    def __init__(self, fail_rooms=False, fail_tokens=False):
        self.fail_rooms = fail_rooms
        self.fail_tokens = fail_tokens
        self.rooms = {}
        self.tokens = []

    def ensure_room(self, name, *, expiry, max_participants=2):
        if self.fail_rooms:
            raise VideoProviderError("Daily API server error", status_code=503)
        self.rooms[name] = expiry
        return f"https://mentorbook.daily.co/{name}"

    def create_meeting_token(self, *, room_name, user_name, is_owner, expiry):
        if self.fail_tokens:
            raise VideoProviderError("Daily API error 400", status_code=400)
        self.tokens.append(
            {"room_name": room_name, "user_name": user_name, "is_owner": is_owner, "expiry": expiry}
        )
        return f"token-{len(self.tokens)}"


@pytest.fixture
def video(monkeypatch):
    client = FakeVideoClient()
    monkeypatch.setattr(session_scheduler, "get_video_client", lambda: client)
    return client


@pytest.fixture
def pair(db):
    mentor = make_mentor(db)
    student = make_user(db)
    connect(db, mentor, student)
    return mentor, student


def _scheduled_count(db, mentor):
    return db.query(models.Session).filter(
        models.Session.mentor_id == mentor.id,
        models.Session.status == "scheduled",
    ).count()


# ======================
# BOOKING
# ======================

def test_booking_creates_session_room_and_emails(db, pair, video, sent_emails):
    mentor, student = pair

    booked = session_scheduler.book_session(db, student, mentor.id, START, 60, "Career chat", now=NOW)

    assert booked["status"] == "scheduled"
    assert booked["duration_minutes"] == 60
    assert booked["meeting_url"] == f"https://mentorbook.daily.co/mentor-session-{booked['id']}"
    assert video.rooms[f"mentor-session-{booked['id']}"] == int((START + timedelta(hours=24)).timestamp())
    assert sorted(email["to"] for email in sent_emails) == ["mentor@example.com", "student@example.com"]
    assert all("Scheduled" in email["subject"] for email in sent_emails)


def test_booking_without_connection_is_forbidden(db):
    mentor = make_mentor(db)
    student = make_user(db)
    connect(db, mentor, student, status=ConnectionStatus.PENDING.value)

    with pytest.raises(AuthorizationError) as exc:
        session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)

    assert exc.value.code == "connection_required"
    assert _scheduled_count(db, mentor) == 0


def test_booking_unknown_mentor(db):
    student = make_user(db)
    with pytest.raises(NotFoundError):
        session_scheduler.book_session(db, student, 999, START, 60, now=NOW)


def test_mentor_cannot_book_themselves(db):
    mentor = make_mentor(db)
    with pytest.raises(ValidationError):
        session_scheduler.book_session(db, mentor.user, mentor.id, START, 60, now=NOW)


def test_guardrail_rejection_creates_no_row(db, pair):
    mentor, student = pair
    with pytest.raises(ValidationError) as exc:
        session_scheduler.book_session(db, student, mentor.id, START, 10, now=NOW)

    assert exc.value.code == "duration_below_minimum"
    assert _scheduled_count(db, mentor) == 0


def test_free_tier_fifth_booking_is_rejected(db, pair):
    mentor, student = pair
    other_mentor = make_mentor(db, name="Mentor Two", email="mentor2@example.com")
    for day in range(4):
        add_session(
            db,
            other_mentor,
            student,
            START + timedelta(days=day + 1),
            created_at=NOW - timedelta(hours=1),
        )

    with pytest.raises(QuotaError) as exc:
        session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)

    assert exc.value.code == "monthly_quota_exceeded"
    assert exc.value.headers()["Retry-After"]
    assert db.query(models.Session).filter(models.Session.student_id == student.id).count() == 4


def test_cooldown_counts_cancelled_sessions_with_the_same_mentor(db, pair):
    mentor, student = pair
    add_session(
        db,
        mentor,
        student,
        START + timedelta(days=2),
        status="cancelled",
        created_at=NOW - timedelta(hours=2),
    )

    with pytest.raises(QuotaError) as exc:
        session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)

    assert exc.value.code == "cooldown_active"
    assert exc.value.retry_after_seconds == 22 * 3600


def test_overlapping_booking_is_a_conflict(db, pair):
    """Bookings made one after the other; the racing case is covered below."""
    mentor, first_student = pair
    second_student = make_user(db, name="Student Two", email="student2@example.com")
    connect(db, mentor, second_student)

    session_scheduler.book_session(db, first_student, mentor.id, START, 60, now=NOW)
    with pytest.raises(ConflictError) as exc:
        session_scheduler.book_session(db, second_student, mentor.id, START + timedelta(minutes=30), 60, now=NOW)

    assert exc.value.code == "slot_conflict"
    assert _scheduled_count(db, mentor) == 1


def test_racing_booking_rejected_by_overlap_constraint_is_a_conflict(db, pair, monkeypatch):
    """
    Second request read its overlap snapshot before the first one committed,
    so only the database exclusion constraint stops the insert.
    """
    mentor, first_student = pair
    second_student = make_user(db, name="Student Two", email="student2@example.com")
    connect(db, mentor, second_student)
    session_scheduler.book_session(db, first_student, mentor.id, START, 60, now=NOW)

    real_create = session_crud.create_session

    def create_violating_constraint(db, **kwargs):
        real_create(db, **kwargs)
        raise IntegrityError(
            "INSERT INTO mentorship_sessions",
            {},
            Exception('conflicting key value violates exclusion constraint "ex_mentorship_sessions_no_overlap"'),
        )

    monkeypatch.setattr(session_crud, "get_mentor_sessions_starting_between", lambda *args, **kwargs: [])
    monkeypatch.setattr(session_crud, "create_session", create_violating_constraint)

    with pytest.raises(ConflictError) as exc:
        session_scheduler.book_session(db, second_student, mentor.id, START + timedelta(minutes=30), 60, now=NOW)

    assert exc.value.code == "slot_conflict"
    assert _scheduled_count(db, mentor) == 1


def test_back_to_back_bookings_are_allowed(db, pair):
    mentor, first_student = pair
    second_student = make_user(db, name="Student Two", email="student2@example.com")
    connect(db, mentor, second_student)

    session_scheduler.book_session(db, first_student, mentor.id, START, 60, now=NOW)
    session_scheduler.book_session(db, second_student, mentor.id, START + timedelta(hours=1), 30, now=NOW)

    assert _scheduled_count(db, mentor) == 2


def test_cancelled_session_frees_the_slot(db, pair):
    mentor, student = pair
    other = make_user(db, name="Student Two", email="student2@example.com")
    add_session(db, mentor, other, START, status="cancelled")

    booked = session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)
    assert booked["status"] == "scheduled"


def test_video_failure_does_not_fail_booking(db, pair, monkeypatch):
    mentor, student = pair
    monkeypatch.setattr(session_scheduler, "get_video_client", lambda: FakeVideoClient(fail_rooms=True))

    booked = session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)

    assert booked["meeting_url"] is None
    assert _scheduled_count(db, mentor) == 1


def test_booking_without_video_configured(db, pair):
    mentor, student = pair
    booked = session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)
    assert booked["meeting_url"] is None


def test_email_failure_does_not_fail_booking(db, pair, monkeypatch):
    mentor, student = pair

    def broken_send_email(**kwargs):
        raise RuntimeError("smtp exploded")

    monkeypatch.setattr(notification_service, "is_email_enabled", lambda: True)
    monkeypatch.setattr(notification_service, "send_email", broken_send_email)

    booked = session_scheduler.book_session(db, student, mentor.id, START, 60, now=NOW)
    assert booked["status"] == "scheduled"


# ======================
# UPDATE
# ======================

def test_mentor_completes_session(db, pair, sent_emails):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    updated = session_scheduler.update_session(
        db, mentor.user, session.id, {"status": "completed", "notes": "Covered resumes"}, now=NOW
    )

    assert updated["status"] == "completed"
    assert updated["notes"] == "Covered resumes"
    assert updated["version"] == 2
    db.refresh(mentor)
    assert mentor.session_count == 1
    assert [email["to"] for email in sent_emails] == ["student@example.com"]
    assert "How was your session" in sent_emails[0]["subject"]


def test_student_can_only_cancel(db, pair, sent_emails):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    with pytest.raises(AuthorizationError):
        session_scheduler.update_session(db, student, session.id, {"status": "completed"}, now=NOW)
    db.rollback()

    updated = session_scheduler.update_session(db, student, session.id, {"status": "cancelled"}, now=NOW)

    assert updated["status"] == "cancelled"
    assert [email["to"] for email in sent_emails] == ["mentor@example.com"]


def test_terminal_status_cannot_change(db, pair):
    mentor, student = pair
    session = add_session(db, mentor, student, START, status="cancelled")

    with pytest.raises(ValidationError) as exc:
        session_scheduler.update_session(db, mentor.user, session.id, {"status": "scheduled"}, now=NOW)
    assert exc.value.code == "invalid_status_transition"


def test_unknown_status_is_rejected(db, pair):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    with pytest.raises(ValidationError) as exc:
        session_scheduler.update_session(db, mentor.user, session.id, {"status": "postponed"}, now=NOW)
    assert exc.value.code == "invalid_status"


def test_stale_version_is_a_conflict(db, pair):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    with pytest.raises(ConflictError) as exc:
        session_scheduler.update_session(
            db, mentor.user, session.id, {"status": "completed"}, expected_version=7, now=NOW
        )
    assert exc.value.code == "stale_session"
    assert exc.value.details["current_version"] == 1


def test_student_rates_completed_session(db, pair):
    mentor, student = pair
    first = add_session(db, mentor, student, START, status="completed")
    second = add_session(db, mentor, student, START + timedelta(days=1), status="completed")

    session_scheduler.update_session(db, student, first.id, {"rating": 5}, now=NOW)
    updated = session_scheduler.update_session(db, student, second.id, {"rating": 4}, now=NOW)

    assert updated["rating"] == 4
    db.refresh(mentor)
    assert float(mentor.average_rating) == 4.5


def test_rating_rules(db, pair):
    mentor, student = pair
    scheduled = add_session(db, mentor, student, START)
    completed = add_session(db, mentor, student, START + timedelta(days=1), status="completed")

    with pytest.raises(ValidationError) as exc:
        session_scheduler.update_session(db, student, scheduled.id, {"rating": 5}, now=NOW)
    assert exc.value.code == "session_not_completed"

    with pytest.raises(ValidationError) as exc:
        session_scheduler.update_session(db, student, completed.id, {"rating": 6}, now=NOW)
    assert exc.value.code == "invalid_rating"

    with pytest.raises(AuthorizationError):
        session_scheduler.update_session(db, mentor.user, completed.id, {"rating": 5}, now=NOW)


def test_field_ownership(db, pair):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    with pytest.raises(AuthorizationError):
        session_scheduler.update_session(db, student, session.id, {"mentor_feedback": "Great"}, now=NOW)
    with pytest.raises(AuthorizationError):
        session_scheduler.update_session(db, mentor.user, session.id, {"student_notes": "Mine"}, now=NOW)
    db.rollback()

    updated = session_scheduler.update_session(db, student, session.id, {"student_notes": "Prep list"}, now=NOW)
    assert updated["student_notes"] == "Prep list"


def test_outsider_cannot_update_or_view(db, pair):
    mentor, student = pair
    outsider = make_user(db, name="Outsider", email="outsider@example.com")
    session = add_session(db, mentor, student, START)

    with pytest.raises(AuthorizationError):
        session_scheduler.update_session(db, outsider, session.id, {"status": "cancelled"}, now=NOW)
    with pytest.raises(AuthorizationError):
        session_scheduler.get_session_for_participant(db, outsider, session.id)
    with pytest.raises(NotFoundError):
        session_scheduler.update_session(db, outsider, session.id + 100, {}, now=NOW)


# ======================
# JOIN
# ======================

def test_join_creates_room_lazily_and_issues_owner_token(db, pair, video):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    joined = session_scheduler.join_session(db, mentor.user, session.id, now=START - timedelta(minutes=5))

    assert joined["meeting_url"] == f"https://mentorbook.daily.co/mentor-session-{session.id}"
    assert joined["token"] == "token-1"
    assert joined["is_mentor"] is True
    assert video.tokens[0]["is_owner"] is True
    assert video.tokens[0]["expiry"] == int((START + timedelta(hours=2)).timestamp())

    student_join = session_scheduler.join_session(db, student, session.id, now=START)
    assert student_join["is_mentor"] is False
    assert video.tokens[1]["is_owner"] is False


def test_join_window_boundaries(db, pair, video):
    mentor, student = pair
    session = add_session(db, mentor, student, START)

    with pytest.raises(ValidationError) as exc:
        session_scheduler.join_session(db, student, session.id, now=START - timedelta(hours=24, minutes=1))
    assert exc.value.code == "join_window_not_open"

    with pytest.raises(ValidationError) as exc:
        session_scheduler.join_session(db, student, session.id, now=START + timedelta(hours=2, minutes=1))
    assert exc.value.code == "join_window_closed"

    assert session_scheduler.join_session(db, student, session.id, now=START - timedelta(hours=24))
    assert session_scheduler.join_session(db, student, session.id, now=START + timedelta(hours=2))


def test_join_token_failure_returns_url_only(db, pair, monkeypatch):
    mentor, student = pair
    session = add_session(db, mentor, student, START)
    monkeypatch.setattr(session_scheduler, "get_video_client", lambda: FakeVideoClient(fail_tokens=True))

    joined = session_scheduler.join_session(db, student, session.id, now=START)

    assert joined["meeting_url"]
    assert "token" not in joined


def test_join_rejects_inactive_session(db, pair, video):
    mentor, student = pair
    session = add_session(db, mentor, student, START, status="cancelled")

    with pytest.raises(ValidationError) as exc:
        session_scheduler.join_session(db, student, session.id, now=START)
    assert exc.value.code == "session_not_active"


# ======================
# READS
# ======================

def test_list_sessions_splits_roles(db, pair):
    mentor, student = pair
    add_session(db, mentor, student, START)

    as_student = session_scheduler.list_sessions(db, student)
    as_mentor = session_scheduler.list_sessions(db, mentor.user)

    assert len(as_student["as_student"]) == 1
    assert as_student["as_mentor"] == []
    assert as_student["is_mentor"] is False
    assert as_student["as_student"][0]["mentor"]["name"] == "Mentor One"
    assert as_mentor["is_mentor"] is True
    assert as_mentor["as_mentor"][0]["student"]["name"] == "Student One"


def test_usage_counts_only_active_sessions(db, pair):
    mentor, student = pair
    add_session(db, mentor, student, START, duration=45)
    add_session(db, mentor, student, START + timedelta(days=1), status="cancelled")

    usage = session_scheduler.get_usage(db, student, now=NOW)

    assert usage["usage"]["sessions_used"] == 1
    assert usage["usage"]["total_minutes_this_month"] == 45
    assert usage["usage"]["sessions_remaining"] == 3
