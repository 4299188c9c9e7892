"""
Daily quotas on "hide suggestion" and "refresh suggestions".

Two independent counters per profile.  A counter dated before today is
treated as {today, 0} (lazy reset on read or write, no scheduled job).

Limits (None = unlimited):
    basic   : 1 hide, 3 refreshes per day
    premium : unlimited
    admin   : unlimited

Quota exhaustion is not an error: callers get QuotaDecision(allowed=False).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime

from .config import Tuning, get_tuning
from .models import QuotaCounter, QuotaKind, UserProfile

LOGGER = logging.getLogger(__name__)

_COUNTER_FIELD: dict[str, str] = {"hide": "hide_count", "refresh": "refresh_count"}


@dataclass(frozen=True)
class QuotaDecision:
    """Result of a quota check; ``remaining``/``limit`` are None when unlimited."""

    allowed: bool
    remaining: int | None
    limit: int | None

    @property
    def unlimited(self) -> bool:
        return self.limit is None


def today_str(now: datetime | date | None = None) -> str:
    """Local calendar date as YYYY-MM-DD."""
    now = now or datetime.now()
    return now.strftime("%Y-%m-%d")


def quota_limit(profile: UserProfile, kind: QuotaKind, tuning: Tuning | None = None) -> int | None:
    """Daily limit for the profile's tier (None = unlimited)."""
    tuning = tuning or get_tuning()
    limits = tuning.quota_limits.get(profile.tier) or tuning.quota_limits["basic"]
    return limits.get(kind)


def current_counter(profile: UserProfile, kind: QuotaKind, today: str) -> QuotaCounter:
    """The counter for today, reset lazily if it belongs to another day."""
    counter: QuotaCounter | None = getattr(profile, _COUNTER_FIELD[kind])
    if counter is None or counter.date != today:
        return QuotaCounter(date=today, count=0)
    return counter


def check(
    profile: UserProfile,
    kind: QuotaKind,
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> QuotaDecision:
    """Whether one more action of this kind is allowed today."""
    limit = quota_limit(profile, kind, tuning)
    if limit is None:
        return QuotaDecision(allowed=True, remaining=None, limit=None)
    counter = current_counter(profile, kind, today_str(now))
    remaining = max(0, limit - counter.count)
    return QuotaDecision(allowed=remaining > 0, remaining=remaining, limit=limit)


def record(
    profile: UserProfile,
    kind: QuotaKind,
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> tuple[QuotaDecision, UserProfile]:
    """
    Check and, if allowed, count one action.

    Returns:
        (decision after the action, updated profile).  A rejected attempt
        returns the profile unchanged except for a lazily reset counter.
    """
    today = today_str(now)
    counter = current_counter(profile, kind, today)
    profile = replace(profile, **{_COUNTER_FIELD[kind]: counter})

    decision = check(profile, kind, now, tuning)
    if not decision.allowed:
        LOGGER.info("%s quota exhausted for %s (%s tier)", kind, profile.user_id, profile.tier)
        return decision, profile

    counter = QuotaCounter(date=today, count=counter.count + 1)
    profile = replace(profile, **{_COUNTER_FIELD[kind]: counter})
    remaining = None if decision.remaining is None else decision.remaining - 1
    return QuotaDecision(True, remaining, decision.limit), profile


def can_hide(profile: UserProfile, now: datetime | None = None) -> QuotaDecision:
    return check(profile, "hide", now)


def record_hide(profile: UserProfile, now: datetime | None = None) -> tuple[QuotaDecision, UserProfile]:
    return record(profile, "hide", now)


def can_refresh(profile: UserProfile, now: datetime | None = None) -> QuotaDecision:
    return check(profile, "refresh", now)


def record_refresh(
    profile: UserProfile, now: datetime | None = None
) -> tuple[QuotaDecision, UserProfile]:
    return record(profile, "refresh", now)
