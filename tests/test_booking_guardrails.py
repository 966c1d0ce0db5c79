from __future__ import annotations

from datetime import timedelta

from conftest import NOW
from mentorbook.exceptions import QuotaError, ValidationError
from mentorbook.services import booking_guardrails
from mentorbook.services.booking_guardrails import RejectionReason, tier_limit

TOMORROW = NOW + timedelta(days=1)


def _evaluate(**overrides):
    kwargs = {
        "requested_duration": 60,
        "requested_start": TOMORROW,
        "subscription_tier": "free",
        "sessions_this_month": 0,
        "last_session_created_at": None,
        "now": NOW,
    }
    kwargs.update(overrides)
    return booking_guardrails.evaluate(**kwargs)


def test_valid_request_passes():
    result = _evaluate()
    assert result.ok
    assert result.to_error() is None


def test_duration_below_minimum_and_above_maximum_are_rejected():
    too_short = _evaluate(requested_duration=10)
    too_long = _evaluate(requested_duration=120)

    assert too_short.reason == RejectionReason.DURATION_BELOW_MINIMUM
    assert too_long.reason == RejectionReason.DURATION_ABOVE_MAXIMUM
    assert isinstance(too_short.to_error(), ValidationError)
    assert too_long.to_error().code == "duration_above_maximum"


def test_duration_boundaries_are_inclusive():
    assert _evaluate(requested_duration=15).ok
    assert _evaluate(requested_duration=90).ok


def test_start_more_than_thirty_days_ahead_is_rejected():
    assert _evaluate(requested_start=NOW + timedelta(days=30)).ok
    result = _evaluate(requested_start=NOW + timedelta(days=30, minutes=1))
    assert result.reason == RejectionReason.TOO_FAR_IN_ADVANCE


def test_start_at_or_before_now_is_rejected():
    assert _evaluate(requested_start=NOW).reason == RejectionReason.START_IN_PAST
    assert _evaluate(requested_start=NOW - timedelta(hours=1)).reason == RejectionReason.START_IN_PAST


def test_free_tier_fifth_booking_hits_quota():
    result = _evaluate(sessions_this_month=4)

    assert result.reason == RejectionReason.MONTHLY_QUOTA_EXCEEDED
    error = result.to_error()
    assert isinstance(error, QuotaError)
    # 1 April 2026 00:00 UTC minus 2 March 08:00 UTC
    assert result.retry_after_seconds == int(timedelta(days=29, hours=16).total_seconds())
    assert error.headers() == {"Retry-After": str(result.retry_after_seconds)}
    assert error.details["monthly_limit"] == 4


def test_premium_and_enterprise_tiers_allow_twenty():
    assert _evaluate(subscription_tier="premium", sessions_this_month=19).ok
    assert not _evaluate(subscription_tier="premium", sessions_this_month=20).ok
    assert tier_limit("enterprise") == 20
    assert tier_limit("PREMIUM") == 20


def test_unknown_tier_counts_as_free():
    assert tier_limit("platinum") == 4
    assert tier_limit(None) == 4


def test_cooldown_with_same_mentor():
    last = NOW - timedelta(hours=23)
    result = _evaluate(last_session_created_at=last)

    assert result.reason == RejectionReason.COOLDOWN_ACTIVE
    assert result.retry_after_seconds == 3600
    assert isinstance(result.to_error(), QuotaError)

    assert _evaluate(last_session_created_at=NOW - timedelta(hours=24)).ok


def test_first_failing_check_wins():
    result = _evaluate(
        requested_duration=10,
        requested_start=NOW - timedelta(days=1),
        sessions_this_month=10,
        last_session_created_at=NOW,
    )
    assert result.reason == RejectionReason.DURATION_BELOW_MINIMUM


def test_evaluate_is_deterministic():
    first = _evaluate(sessions_this_month=4)
    second = _evaluate(sessions_this_month=4)
    assert first == second


def test_naive_inputs_are_read_as_utc():
    result = _evaluate(requested_start=TOMORROW.replace(tzinfo=None), now=NOW.replace(tzinfo=None))
    assert result.ok


def test_usage_summary_reports_remaining_sessions():
    summary = booking_guardrails.usage_summary("free", 3, 150, NOW)

    assert summary["usage"]["sessions_remaining"] == 1
    assert summary["usage"]["total_minutes_this_month"] == 150
    assert summary["usage"]["next_reset_date"].startswith("2026-04-01")
    assert summary["limits"]["max_duration_minutes"] == 90
    assert booking_guardrails.usage_summary("free", 7, 0, NOW)["usage"]["sessions_remaining"] == 0
