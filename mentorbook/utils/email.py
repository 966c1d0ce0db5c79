"""Outbound SMTP delivery for notification emails."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from mentorbook.config import settings

logger = logging.getLogger(__name__)


def is_email_enabled() -> bool:
    return bool(settings.EMAIL_NOTIFICATIONS_ENABLED and settings.SMTP_SERVER and settings.EMAIL_FROM)


def build_message(
    to_email: str, subject: str, body_text: str, body_html: Optional[str] = None
) -> EmailMessage:
    """Plain-text message, with an HTML alternative when one is rendered."""
    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(body_text)
    if body_html:
        message.add_alternative(body_html, subtype="html")
    return message


def _connect() -> smtplib.SMTP:
    smtp_class = smtplib.SMTP_SSL if settings.SMTP_USE_SSL else smtplib.SMTP
    server = smtp_class(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS)
    try:
        if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
            server.starttls()
        if settings.EMAIL_PASSWORD:
            server.login(settings.SMTP_USERNAME or settings.EMAIL_FROM, settings.EMAIL_PASSWORD)
    except (smtplib.SMTPException, OSError):
        server.close()
        raise
    return server


def send_email(
    *,
    to_email: str,
    subject: str,
    body_text: str,
    body_html: Optional[str] = None,
) -> bool:
    """
    Deliver one message over SMTP.

    Returns False when email is disabled or the server rejects the message;
    SMTP and socket errors are logged, not raised.
    """
    if not is_email_enabled():
        return False

    message = build_message(to_email, subject, body_text, body_html)
    try:
        with _connect() as server:
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Email to %s failed (subject=%r): %s", to_email, subject, exc)
        return False
    return True
