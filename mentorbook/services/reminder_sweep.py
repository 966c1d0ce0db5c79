"""
Reminder sweep.

Run periodically (every 15 minutes in production) by an external cron
hitting ``/internal/cron/session-reminders``. Each run emails both
participants of scheduled sessions starting in the 24-hour window
[now+23h, now+25h) and the 1-hour window [now+30m, now+90m).

The windows are wider than the cron interval, so a session normally gets
several reminders of each kind unless ``REMINDER_DEDUP_ENABLED`` turns on
the ``sent_reminders`` ledger.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.config import settings
from mentorbook.crud import session as session_crud
from mentorbook.services import notification_service
from mentorbook.services.session_scheduler import display_name
from mentorbook.utils.timeutils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

REMINDER_WINDOWS = {
    "24h": (timedelta(hours=23), timedelta(hours=25)),
    "1h": (timedelta(minutes=30), timedelta(minutes=90)),
}


def _claim_reminder(db: Session, session_id: int, reminder_type: str, now: datetime) -> bool:
    """Record the reminder in the ledger; False when it was already sent."""
    db.add(models.SentReminder(session_id=session_id, reminder_type=reminder_type, sent_at=now))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def _send_session_reminders(session: models.Session, reminder_type: str) -> Tuple[int, int]:
    """Email both participants; returns (sent, failed) counted per recipient."""
    student = session.student
    mentor_user = session.mentor.user if session.mentor else None
    student_name = display_name(student, "Mentee")
    mentor_name = display_name(mentor_user, "Mentor")
    common = {
        "reminder_type": reminder_type,
        "session_date": ensure_utc(session.scheduled_at),
        "topic": session.topic,
        "meeting_url": session.meeting_url,
    }

    recipients = []
    if student is not None:
        recipients.append((student.email, student_name, mentor_name))
    if mentor_user is not None:
        recipients.append((mentor_user.email, mentor_name, student_name))

    sent = failed = 0
    for to_email, recipient_name, other_party_name in recipients:
        delivered = notification_service.send_template(
            to_email,
            notification_service.SESSION_REMINDER,
            {**common, "recipient_name": recipient_name, "other_party_name": other_party_name},
        )
        if delivered:
            sent += 1
        else:
            failed += 1
            logger.warning("%s reminder for session %s not delivered to %s", reminder_type, session.id, to_email)
    return sent, failed


def run_reminder_sweep(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Send 24h and 1h reminders for upcoming scheduled sessions.

    Every undelivered email counts as a failure and the sweep continues.
    With email disabled the windows are still counted but nothing is sent
    or recorded in the ledger.
    """
    now = ensure_utc(now) if now is not None else utcnow()
    email_enabled = notification_service.is_email_enabled()
    if not email_enabled:
        logger.info("Email disabled - reminder sweep will not send")
    dedup = settings.REMINDER_DEDUP_ENABLED
    summary = {
        "sessions_24h": 0,
        "sessions_1h": 0,
        "emails_sent": 0,
        "failures": 0,
        "skipped_duplicates": 0,
    }

    for reminder_type, (lead_from, lead_to) in REMINDER_WINDOWS.items():
        sessions = session_crud.get_scheduled_sessions_between(db, now + lead_from, now + lead_to)
        summary[f"sessions_{reminder_type}"] = len(sessions)
        if not email_enabled:
            continue

        for session in sessions:
            if dedup and not _claim_reminder(db, session.id, reminder_type, now):
                summary["skipped_duplicates"] += 1
                continue
            try:
                sent, failed = _send_session_reminders(session, reminder_type)
            except Exception:
                summary["failures"] += 1
                logger.exception("Failed to send %s reminder for session %s", reminder_type, session.id)
                continue
            summary["emails_sent"] += sent
            summary["failures"] += failed

    logger.info(
        "Reminder sweep done: 24h=%s 1h=%s sent=%s failures=%s skipped=%s",
        summary["sessions_24h"],
        summary["sessions_1h"],
        summary["emails_sent"],
        summary["failures"],
        summary["skipped_duplicates"],
    )
    return summary
