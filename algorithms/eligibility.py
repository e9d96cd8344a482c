"""
Donation eligibility - 90 day cooldown between donations

Eligibility is never stored; it is recomputed from the last donation
date on every read because it changes purely with elapsed time.
"""
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

DONATION_COOLDOWN_DAYS = 90


@dataclass(frozen=True)
class Eligibility:
    is_eligible: bool
    next_eligible_date: Optional[datetime]
    days_remaining: int
    days_since_last_donation: Optional[int]
    message: str

    def as_dict(self):
        return asdict(self)


def cooldown_days():
    return int(getattr(settings, 'LIFELINK_DONATION_COOLDOWN_DAYS', DONATION_COOLDOWN_DAYS))


def _as_datetime(value):
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    else:
        raise TypeError(f"Expected date or datetime, got {type(value).__name__}")

    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


def check_eligibility(last_donation_date, now=None):
    """
    Work out whether a donor can donate right now

    Args:
        last_donation_date: date/datetime of the last donation, or None
        now: reference moment (defaults to timezone.now())

    Returns:
        Eligibility
    """
    if last_donation_date is None:
        return Eligibility(
            is_eligible=True,
            next_eligible_date=None,
            days_remaining=0,
            days_since_last_donation=None,
            message='Eligible for first-time donation',
        )

    now = _as_datetime(now) if now is not None else timezone.now()
    last = _as_datetime(last_donation_date)
    wait = timedelta(days=cooldown_days())

    elapsed = now - last
    days_since = max(0, elapsed.days)
    next_eligible = last + wait

    if elapsed >= wait:
        return Eligibility(
            is_eligible=True,
            next_eligible_date=next_eligible,
            days_remaining=0,
            days_since_last_donation=days_since,
            message=f'Eligible - Last donated {days_since} days ago',
        )

    remaining = max(0, math.ceil((next_eligible - now).total_seconds() / 86400))
    return Eligibility(
        is_eligible=False,
        next_eligible_date=next_eligible,
        days_remaining=remaining,
        days_since_last_donation=days_since,
        message=f'Must wait {remaining} more days (Last donated {days_since} days ago)',
    )
