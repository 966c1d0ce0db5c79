from __future__ import annotations

import pytest

from conftest import connect, make_mentor, make_user
from mentorbook.crud import connection as connection_crud
from mentorbook.exceptions import AuthorizationError, NotFoundError, ValidationError
from mentorbook.models.connection import ConnectionStatus
from mentorbook.services import connection_service


def test_request_then_accept_enables_booking(db, sent_emails):
    mentor = make_mentor(db)
    student = make_user(db)

    connection = connection_service.request_connection(db, student, mentor.id, "Keen to learn Go")
    assert connection.status == "pending"
    assert not connection_crud.has_accepted_connection(db, mentor.id, student.id)

    connection_service.respond(db, mentor.user, connection.id, "accepted", "Happy to help")

    assert connection_crud.has_accepted_connection(db, mentor.id, student.id)
    assert [email["to"] for email in sent_emails] == ["mentor@example.com", "student@example.com"]
    assert "accepted your mentorship request" in sent_emails[1]["subject"]


def test_request_rules(db):
    hidden = make_mentor(db, name="Hidden", email="hidden@example.com", verified=False)
    mentor = make_mentor(db)
    student = make_user(db)

    with pytest.raises(NotFoundError):
        connection_service.request_connection(db, student, hidden.id)
    with pytest.raises(ValidationError):
        connection_service.request_connection(db, mentor.user, mentor.id)

    connection_service.request_connection(db, student, mentor.id)
    with pytest.raises(ValidationError) as exc:
        connection_service.request_connection(db, student, mentor.id)
    assert exc.value.code == "connection_exists"


def test_declined_request_can_be_renewed(db):
    mentor = make_mentor(db)
    student = make_user(db)
    declined = connect(db, mentor, student, status=ConnectionStatus.DECLINED.value)

    renewed = connection_service.request_connection(db, student, mentor.id, "Trying again")

    assert renewed.id == declined.id
    assert renewed.status == "pending"
    assert renewed.message == "Trying again"


def test_only_mentor_answers_and_either_party_ends(db):
    mentor = make_mentor(db)
    student = make_user(db)
    pending = connect(db, mentor, student, status=ConnectionStatus.PENDING.value)

    with pytest.raises(AuthorizationError):
        connection_service.respond(db, student, pending.id, "accepted")

    connection_service.respond(db, mentor.user, pending.id, "accepted")
    with pytest.raises(ValidationError):
        connection_service.respond(db, mentor.user, pending.id, "declined")

    ended = connection_service.respond(db, student, pending.id, "ended")
    assert ended.status == "ended"


def test_list_connections_by_role(db):
    mentor = make_mentor(db)
    student = make_user(db)
    connect(db, mentor, student)

    assert len(connection_service.list_connections(db, student)["as_student"]) == 1
    listed = connection_service.list_connections(db, mentor.user)
    assert listed["as_mentor"][0]["student_name"] == "Student One"
