# mentorbook/api/cron.py
"""Endpoints hit by the external scheduler."""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from mentorbook.config import settings
from mentorbook.database import get_db
from mentorbook.exceptions import AuthenticationError
from mentorbook.services.reminder_sweep import run_reminder_sweep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/cron", tags=["cron"])


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """
    Require ``Authorization: Bearer <CRON_SECRET>``.

    Without a configured secret the endpoints are only open in development.
    """
    secret = settings.CRON_SECRET
    if not secret:
        if settings.APP_ENV == "development":
            return
        logger.warning("Cron request rejected: CRON_SECRET is not configured")
        raise AuthenticationError("Unauthorized", code="cron_unauthorized").to_http_exception()

    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Cron request rejected: bad credentials")
        raise AuthenticationError("Unauthorized", code="cron_unauthorized").to_http_exception()


@router.api_route("/session-reminders", methods=["GET", "POST"], dependencies=[Depends(verify_cron_secret)])
def session_reminders(db: Session = Depends(get_db)):
    summary = run_reminder_sweep(db)
    return {"success": True, **summary}
