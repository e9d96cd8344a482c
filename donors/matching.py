"""
Donor search & matching, and the requisition discovery feed

Both directions of the compatibility table are used here:
- seekers look for donors who can give to a requisition's blood group
- donors look for open requisitions their own blood group can serve
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from django.db.models import Case, Count, F, IntegerField, Prefetch, Q, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from algorithms.blood_compatibility import compatible_donors, compatible_recipients, normalize_blood_group
from algorithms.eligibility import Eligibility, check_eligibility, cooldown_days
from algorithms.priority import time_remaining, urgency_rank_expression
from donors import directory
from donors.models import DonorResponse
from lifelink.exceptions import BloodGroupRequired
from requisitions.models import BloodRequisition

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


def clamp_limit(limit, ceiling=None):
    ceiling = ceiling or settings.LIFELINK_SEARCH_LIMIT_CEILING
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return max(1, min(limit, ceiling))


@dataclass
class DonorCard:
    donor_id: int
    name: str
    blood_group: str
    total_donations: int
    location: str
    contact_available: bool
    phone: Optional[str]
    eligibility: Eligibility
    last_donation_date: Optional[datetime] = None

    @classmethod
    def from_profile(cls, profile, now=None):
        phone = directory.phone_of(profile) if profile.show_phone else None
        return cls(
            donor_id=profile.pk,
            name=directory.display_name(profile),
            blood_group=profile.blood_group,
            total_donations=profile.total_donations,
            location=profile.location or 'Location not specified',
            contact_available=phone is not None,
            phone=phone,
            eligibility=check_eligibility(profile.last_donation_date, now),
            last_donation_date=profile.last_donation_date,
        )

    def refresh_eligibility(self, now=None):
        self.eligibility = check_eligibility(self.last_donation_date, now)
        return self


def ranked_donor_queryset(queryset, now=None):
    """
    Order donor profiles: eligible now first, then most donations,
    then most recently active (last login, else last profile update)
    """
    now = now or timezone.now()
    cutoff = now - timedelta(days=cooldown_days())
    return queryset.annotate(
        eligible_now=Case(
            When(Q(last_donation_date__isnull=True) | Q(last_donation_date__lte=cutoff), then=Value(1)),
            default=Value(0),
            output_field=IntegerField(),
        ),
        last_activity=Coalesce('user__last_login', 'updated_at'),
    ).order_by('-eligible_now', '-total_donations', F('last_activity').desc(nulls_last=True), 'pk')


def find_available_donors(required_group, location=None, limit=DEFAULT_LIMIT, now=None):
    """
    Compatible donors for a blood group, best candidates first

    Ineligible donors are kept in the result and flagged through their
    eligibility so a seeker can see who exists.

    Args:
        required_group: recipient blood group
        location: optional case-insensitive substring of the donor's city or state
        limit: result cap, clamped to LIFELINK_SEARCH_LIMIT_CEILING

    Returns:
        list of DonorCard
    """
    required_group = normalize_blood_group(required_group)
    limit = clamp_limit(limit)

    queryset = directory.active_donors().filter(blood_group__in=compatible_donors(required_group))
    if location:
        location = location.strip()
        queryset = queryset.filter(Q(city__icontains=location) | Q(state__icontains=location))

    profiles = ranked_donor_queryset(queryset, now)[:limit]
    cards = [DonorCard.from_profile(profile, now) for profile in profiles]
    logger.debug(f"Donor search {required_group} @ {location or 'anywhere'}: {len(cards)} match(es)")
    return cards


# ========================================
# DISCOVERY FEED
# ========================================

@dataclass
class FeedItem:
    requisition: BloodRequisition
    donor_blood_group: str
    has_responded: bool
    response: Optional[str]
    responded_at: Optional[datetime]
    time_remaining: dict


@dataclass
class FeedPage:
    items: list
    page: int
    limit: int
    total_count: int
    total_pages: int
    donor_blood_group: str = field(default='')


def discover_requisitions(user, urgency_level=None, page=1, limit=DEFAULT_LIMIT, now=None):
    """
    Open requisitions the calling donor's blood can serve

    Raises:
        BloodGroupRequired: the caller has not set a blood group yet
    """
    now = now or timezone.now()
    profile = directory.get_profile(user, create=False)
    if profile is None or not profile.blood_group:
        raise BloodGroupRequired()

    limit = clamp_limit(limit, ceiling=100)
    queryset = BloodRequisition.objects.effectively_active(now).filter(
        required_blood_group__in=compatible_recipients(profile.blood_group),
    )
    if urgency_level:
        queryset = queryset.filter(urgency_level=urgency_level)

    queryset = queryset.select_related('requester').annotate(
        urgency_rank=urgency_rank_expression(),
        response_count=Count('responses', distinct=True),
        notification_count=Count('donor_notifications', distinct=True),
    ).prefetch_related(
        Prefetch('responses', queryset=DonorResponse.objects.filter(donor_id=profile.pk), to_attr='my_responses'),
    ).order_by('-urgency_rank', '-created_at', '-pk')

    paginator = Paginator(queryset, limit)
    try:
        requisitions = list(paginator.page(page).object_list)
    except EmptyPage:
        requisitions = []

    items = []
    for requisition in requisitions:
        mine = requisition.my_responses[0] if requisition.my_responses else None
        items.append(FeedItem(
            requisition=requisition,
            donor_blood_group=profile.blood_group,
            has_responded=mine is not None,
            response=mine.response if mine else None,
            responded_at=mine.responded_at if mine else None,
            time_remaining=time_remaining(requisition.required_by_date, requisition.expires_at, now),
        ))

    return FeedPage(
        items=items,
        page=int(page),
        limit=limit,
        total_count=paginator.count,
        total_pages=paginator.num_pages if paginator.count else 0,
        donor_blood_group=profile.blood_group,
    )
