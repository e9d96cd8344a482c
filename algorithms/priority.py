# algorithms/priority.py
from django.db.models import Case, IntegerField, Value, When
from django.utils import timezone

URGENT_WINDOW_HOURS = 24
EXPIRING_WINDOW_HOURS = 6

URGENCY_RANK = {
    'HIGH': 3,
    'MEDIUM': 2,
    'LOW': 1,
}


def urgency_rank_expression(field='urgency_level'):
    """
    Database expression ranking urgency levels so HIGH sorts first
    with order_by('-urgency_rank')
    """
    return Case(
        *[When(**{field: level}, then=Value(rank)) for level, rank in URGENCY_RANK.items()],
        default=Value(0),
        output_field=IntegerField(),
    )


def time_remaining(required_by_date, expires_at, now=None):
    """
    Time pressure flags for a requisition

    Returns a dict with:
    - hours_left: whole hours until the required-by date (never negative)
    - is_urgent: required within the next 24 hours
    - is_expiring: the requisition stops accepting responses within 6 hours
    """
    now = now or timezone.now()

    until_required = (required_by_date - now).total_seconds()
    until_expiry = (expires_at - now).total_seconds()

    return {
        'hours_left': max(0, int(until_required // 3600)),
        'is_urgent': until_required < URGENT_WINDOW_HOURS * 3600,
        'is_expiring': until_expiry < EXPIRING_WINDOW_HOURS * 3600,
    }
