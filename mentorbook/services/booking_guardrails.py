# mentorbook/services/booking_guardrails.py
"""
Booking guardrails.

Pure validation of the business limits applied at booking time. Nothing in
this module touches the database: callers gather the inputs (monthly count,
last session with the mentor) and map the reason to a user message and
status code.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from mentorbook.exceptions import DomainError, QuotaError, ValidationError
from mentorbook.utils.timeutils import ensure_utc, start_of_next_month


# =====================================
# CONFIGURATION CONSTANTS
# =====================================

class SessionLimits:
    """Booking policy configuration."""
    MIN_DURATION_MINUTES = 15
    MAX_DURATION_MINUTES = 90
    MAX_DAYS_IN_ADVANCE = 30
    MIN_HOURS_BETWEEN_SESSIONS = 24
    FREE_MONTHLY_SESSIONS = 4
    PREMIUM_MONTHLY_SESSIONS = 20


TIER_LIMITS = {
    "free": SessionLimits.FREE_MONTHLY_SESSIONS,
    "premium": SessionLimits.PREMIUM_MONTHLY_SESSIONS,
    "enterprise": SessionLimits.PREMIUM_MONTHLY_SESSIONS,
}


class RejectionReason(str, enum.Enum):
    DURATION_BELOW_MINIMUM = "duration_below_minimum"
    DURATION_ABOVE_MAXIMUM = "duration_above_maximum"
    TOO_FAR_IN_ADVANCE = "too_far_in_advance"
    START_IN_PAST = "start_in_past"
    MONTHLY_QUOTA_EXCEEDED = "monthly_quota_exceeded"
    COOLDOWN_ACTIVE = "cooldown_active"


REASON_MESSAGES = {
    RejectionReason.DURATION_BELOW_MINIMUM: (
        f"Session duration must be at least {SessionLimits.MIN_DURATION_MINUTES} minutes"
    ),
    RejectionReason.DURATION_ABOVE_MAXIMUM: (
        f"Session duration cannot exceed {SessionLimits.MAX_DURATION_MINUTES} minutes"
    ),
    RejectionReason.TOO_FAR_IN_ADVANCE: (
        f"Sessions can only be booked up to {SessionLimits.MAX_DAYS_IN_ADVANCE} days in advance"
    ),
    RejectionReason.START_IN_PAST: "Cannot book a session in the past",
    RejectionReason.MONTHLY_QUOTA_EXCEEDED: "Monthly session limit reached",
    RejectionReason.COOLDOWN_ACTIVE: (
        f"Please wait {SessionLimits.MIN_HOURS_BETWEEN_SESSIONS} hours between "
        "booking sessions with the same mentor"
    ),
}

QUOTA_REASONS = frozenset({
    RejectionReason.MONTHLY_QUOTA_EXCEEDED,
    RejectionReason.COOLDOWN_ACTIVE,
})


@dataclass(frozen=True)
class GuardrailResult:
    reason: Optional[RejectionReason] = None
    retry_after_seconds: Optional[int] = None
    details: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES[self.reason] if self.reason else None

    def to_error(self) -> Optional[DomainError]:
        """Domain error for a rejection: 400 for input limits, 429 for quota and cooldown."""
        if self.reason is None:
            return None
        details = dict(self.details or {})
        if self.reason in QUOTA_REASONS:
            return QuotaError(
                self.message,
                code=self.reason.value,
                details=details,
                retry_after_seconds=self.retry_after_seconds,
            )
        return ValidationError(self.message, code=self.reason.value, details=details)


def tier_limit(subscription_tier: Optional[str]) -> int:
    """Monthly session quota for a subscription tier; unknown tiers count as free."""
    return TIER_LIMITS.get((subscription_tier or "free").lower(), SessionLimits.FREE_MONTHLY_SESSIONS)


def evaluate(
    requested_duration: int,
    requested_start: datetime,
    subscription_tier: Optional[str],
    sessions_this_month: int,
    last_session_created_at: Optional[datetime],
    now: datetime,
) -> GuardrailResult:
    """
    Run the ordered guardrail checks; the first failing check wins.

    Args:
        requested_duration: Session length in minutes
        requested_start: Requested start instant
        subscription_tier: Student's tier ("free", "premium", ...)
        sessions_this_month: Student's scheduled/completed sessions created this month
        last_session_created_at: Creation time of the student's latest session with this mentor
        now: Reference time

    Returns:
        GuardrailResult; ``ok`` is True when every check passes
    """
    now = ensure_utc(now)
    requested_start = ensure_utc(requested_start)

    if requested_duration < SessionLimits.MIN_DURATION_MINUTES:
        return GuardrailResult(
            RejectionReason.DURATION_BELOW_MINIMUM,
            details={"min_duration_minutes": SessionLimits.MIN_DURATION_MINUTES},
        )

    if requested_duration > SessionLimits.MAX_DURATION_MINUTES:
        return GuardrailResult(
            RejectionReason.DURATION_ABOVE_MAXIMUM,
            details={"max_duration_minutes": SessionLimits.MAX_DURATION_MINUTES},
        )

    if requested_start > now + timedelta(days=SessionLimits.MAX_DAYS_IN_ADVANCE):
        return GuardrailResult(
            RejectionReason.TOO_FAR_IN_ADVANCE,
            details={"max_days_in_advance": SessionLimits.MAX_DAYS_IN_ADVANCE},
        )

    if requested_start <= now:
        return GuardrailResult(RejectionReason.START_IN_PAST)

    limit = tier_limit(subscription_tier)
    if sessions_this_month >= limit:
        reset_at = start_of_next_month(now)
        return GuardrailResult(
            RejectionReason.MONTHLY_QUOTA_EXCEEDED,
            retry_after_seconds=int((reset_at - now).total_seconds()),
            details={
                "monthly_limit": limit,
                "sessions_used": sessions_this_month,
                "resets_at": reset_at.isoformat(),
            },
        )

    if last_session_created_at is not None:
        cooldown = timedelta(hours=SessionLimits.MIN_HOURS_BETWEEN_SESSIONS)
        elapsed = now - ensure_utc(last_session_created_at)
        if elapsed < cooldown:
            available_at = ensure_utc(last_session_created_at) + cooldown
            return GuardrailResult(
                RejectionReason.COOLDOWN_ACTIVE,
                retry_after_seconds=int((cooldown - elapsed).total_seconds()),
                details={"available_at": available_at.isoformat()},
            )

    return GuardrailResult()


def usage_summary(
    subscription_tier: Optional[str],
    sessions_used: int,
    total_minutes: int,
    now: datetime,
) -> Dict[str, Any]:
    """Monthly usage and the limits that apply to it."""
    limit = tier_limit(subscription_tier)
    return {
        "usage": {
            "sessions_used": sessions_used,
            "sessions_remaining": max(0, limit - sessions_used),
            "monthly_limit": limit,
            "total_minutes_this_month": total_minutes,
            "subscription_tier": subscription_tier or "free",
            "next_reset_date": start_of_next_month(now).isoformat(),
        },
        "limits": {
            "max_duration_minutes": SessionLimits.MAX_DURATION_MINUTES,
            "min_duration_minutes": SessionLimits.MIN_DURATION_MINUTES,
            "min_hours_between_sessions": SessionLimits.MIN_HOURS_BETWEEN_SESSIONS,
            "max_days_in_advance": SessionLimits.MAX_DAYS_IN_ADVANCE,
        },
    }
