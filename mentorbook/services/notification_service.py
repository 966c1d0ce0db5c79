from __future__ import annotations

import html
import logging
import re
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from mentorbook.config import settings
from mentorbook.utils.email import is_email_enabled, send_email

logger = logging.getLogger(__name__)


SESSION_BOOKED = "session_booked"
SESSION_REMINDER = "session_reminder"
SESSION_CANCELLED = "session_cancelled"
SESSION_FOLLOW_UP = "session_follow_up"
CONNECTION_REQUEST = "connection_request"
CONNECTION_ACCEPTED = "connection_accepted"
CONNECTION_DECLINED = "connection_declined"

_URL_RE = re.compile(r"https?://\S+")


def _format_when(value: Optional[datetime]) -> str:
    if value is None:
        return "TBD"
    return value.strftime("%A, %B %d, %Y at %H:%M %Z").strip()


def _session_booked(data: Dict[str, Any]) -> tuple[str, str]:
    subject = f"Mentorship Session Scheduled with {data['other_party_name']}"
    role_line = (
        f"{data['other_party_name']} booked a mentorship session with you."
        if data.get("is_for_mentor")
        else f"Your mentorship session with {data['other_party_name']} is booked."
    )
    lines = [
        f"Hi {data['recipient_name']},",
        "",
        role_line,
        f"When: {_format_when(data.get('session_date'))}",
        f"Topic: {data.get('topic') or 'General mentorship'}",
    ]
    if data.get("meeting_url"):
        lines.append(f"Meeting link: {data['meeting_url']}")
    return subject, "\n".join(lines)


def _session_reminder(data: Dict[str, Any]) -> tuple[str, str]:
    time_label = "tomorrow" if data.get("reminder_type") == "24h" else "in 1 hour"
    subject = f"Reminder: Mentorship session {time_label} with {data['other_party_name']}"
    lines = [
        f"Hi {data['recipient_name']},",
        "",
        f"Just a friendly reminder that your mentorship session is {time_label}!",
        f"With: {data['other_party_name']}",
        f"When: {_format_when(data.get('session_date'))}",
    ]
    if data.get("topic"):
        lines.append(f"Topic: {data['topic']}")
    if data.get("meeting_url"):
        lines.append(f"Join meeting: {data['meeting_url']}")
    return subject, "\n".join(lines)


def _session_cancelled(data: Dict[str, Any]) -> tuple[str, str]:
    subject = f"Mentorship session with {data['other_party_name']} was cancelled"
    body = (
        f"Hi {data['recipient_name']},\n\n"
        f"{data['other_party_name']} cancelled the session scheduled for "
        f"{_format_when(data.get('session_date'))}.\n"
        "You can book a new time from the mentor's availability."
    )
    return subject, body


def _session_follow_up(data: Dict[str, Any]) -> tuple[str, str]:
    subject = f"How was your session with {data['other_party_name']}?"
    body = (
        f"Hi {data['recipient_name']},\n\n"
        f"Your session with {data['other_party_name']} is complete.\n"
        f"Rate your session: {settings.APP_BASE_URL}/session/{data.get('session_id')}"
    )
    return subject, body


def _connection_request(data: Dict[str, Any]) -> tuple[str, str]:
    subject = f"New mentorship request from {data['student_name']}"
    body = f"Hi {data['mentor_name']},\n\n{data['student_name']} would like you to be their mentor."
    if data.get("message"):
        body += f"\n\nMessage:\n{data['message']}"
    return subject, body


def _connection_accepted(data: Dict[str, Any]) -> tuple[str, str]:
    subject = f"{data['mentor_name']} accepted your mentorship request"
    body = (
        f"Hi {data['student_name']},\n\n"
        f"{data['mentor_name']} accepted your request. You can now schedule a session."
    )
    if data.get("response"):
        body += f"\n\n{data['mentor_name']} says:\n{data['response']}"
    return subject, body


def _connection_declined(data: Dict[str, Any]) -> tuple[str, str]:
    subject = "Update on your mentorship request"
    body = (
        f"Hi {data['student_name']},\n\n"
        f"{data['mentor_name']} is not able to take on your request right now."
    )
    if data.get("response"):
        body += f"\n\n{data['response']}"
    return subject, body


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], tuple[str, str]]] = {
    SESSION_BOOKED: _session_booked,
    SESSION_REMINDER: _session_reminder,
    SESSION_CANCELLED: _session_cancelled,
    SESSION_FOLLOW_UP: _session_follow_up,
    CONNECTION_REQUEST: _connection_request,
    CONNECTION_ACCEPTED: _connection_accepted,
    CONNECTION_DECLINED: _connection_declined,
}


def render(template: str, data: Dict[str, Any]) -> tuple[str, str]:
    try:
        renderer = TEMPLATES[template]
    except KeyError:
        raise ValueError(f"Unknown email template: {template}")
    return renderer(data)


def render_html(body_text: str) -> str:
    """HTML alternative of a rendered body: escaped paragraphs with clickable links."""
    paragraphs = []
    for block in body_text.split("\n\n"):
        escaped = html.escape(block)
        linked = _URL_RE.sub(lambda m: f'<a href="{m.group(0)}">{m.group(0)}</a>', escaped)
        paragraphs.append("<p>" + linked.replace("\n", "<br>") + "</p>")
    return "\n".join(paragraphs)


def send_template(to_email: Optional[str], template: str, data: Dict[str, Any]) -> bool:
    """
    Render and send one templated email.

    Returns False when email is disabled, the recipient has no address or
    delivery fails. Never raises for delivery problems.
    """
    if not to_email:
        return False
    if not is_email_enabled():
        logger.debug("Email disabled - skipping %s", template)
        return False
    subject, body_text = render(template, data)
    try:
        return bool(
            send_email(
                to_email=to_email,
                subject=subject,
                body_text=body_text,
                body_html=render_html(body_text),
            )
        )
    except Exception:
        logger.exception("Email dispatch crashed for template %s", template)
        return False


def _send_in_thread(to_email: str, template: str, data: Dict[str, Any]) -> None:
    if not send_template(to_email, template, data):
        logger.info("Notification email not sent (template=%s)", template)


def dispatch(to_email: Optional[str], template: str, data: Dict[str, Any]) -> None:
    """Fire-and-forget delivery so API latency stays low."""
    if not to_email:
        return
    if not settings.EMAIL_SEND_IN_BACKGROUND:
        _send_in_thread(to_email, template, data)
        return
    worker = threading.Thread(
        target=_send_in_thread,
        args=(to_email, template, data),
        daemon=True,
    )
    worker.start()
