"""
Donor-side profile operations: blood profile, donation log, dashboard
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from django.core.paginator import EmptyPage, Paginator
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from accounts import audit
from algorithms.blood_compatibility import BLOOD_GROUPS, normalize_blood_group
from algorithms.eligibility import check_eligibility, cooldown_days
from donors import directory
from donors.matching import DonorCard, clamp_limit, ranked_donor_queryset
from donors.models import DonationRecord, DonorProfile
from lifelink import cache
from lifelink.exceptions import DonorNotEligible

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('blood_group', 'is_blood_donor', 'show_phone', 'city', 'state')
RECENT_DONATIONS = 5


def get_blood_profile(user):
    profile = directory.get_profile(user)
    recent = list(profile.donations.all()[:RECENT_DONATIONS])
    return profile, recent


def update_blood_profile(user, data):
    """
    Update the caller's blood profile

    Only the fields present in data are changed. A blood group is required
    before the user can register as a donor.
    """
    profile = directory.get_profile(user)
    changed = []

    for name in PROFILE_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if name == 'blood_group' and value:
            value = normalize_blood_group(value)
        if getattr(profile, name) != value:
            setattr(profile, name, value)
            changed.append(name)

    if profile.is_blood_donor and not profile.blood_group:
        raise ValidationError({'blood_group': ['Blood group is required to register as a blood donor']})

    if changed:
        profile.save(update_fields=changed + ['updated_at'])
        audit.record(
            user, audit.BLOOD_PROFILE_UPDATED, profile,
            updated_fields=changed,
            blood_group=profile.blood_group,
            is_blood_donor=profile.is_blood_donor,
        )
        logger.info(f"Blood profile of user {user.pk} updated: {', '.join(changed)}")
    return profile


def record_donation(user, donation_date=None, location='', units=1, notes='', now=None):
    """
    Log a donation for the caller

    Raises:
        PermissionDenied: the caller is not a registered blood donor
        DonorNotEligible: the caller is still inside the cooldown window
    """
    now = now or timezone.now()
    donation_date = donation_date or now
    if donation_date > now:
        raise ValidationError({'donation_date': ['Donation date cannot be in the future']})

    with transaction.atomic():
        profile = DonorProfile.objects.select_for_update().filter(user=user).first()
        if profile is None or not profile.is_blood_donor:
            raise PermissionDenied("Only registered blood donors can add donation records")

        eligibility = check_eligibility(profile.last_donation_date, now)
        if not eligibility.is_eligible:
            raise DonorNotEligible(eligibility.message, existing=eligibility.as_dict())

        donation = DonationRecord.objects.create(
            donor=profile,
            donation_date=donation_date,
            location=location or '',
            units=units,
            notes=notes or '',
        )

        if profile.last_donation_date is None or donation_date > profile.last_donation_date:
            profile.last_donation_date = donation_date
        profile.total_donations += 1
        profile.total_units_donated += units
        profile.save(update_fields=['last_donation_date', 'total_donations', 'total_units_donated', 'updated_at'])

        audit.record(user, audit.DONATION_ADDED, donation, donation_date=donation_date, location=location, units=units)

    logger.info(f"Donation #{donation.pk} recorded for donor {profile.pk} ({units} unit(s))")
    return donation


def donation_history(user, page=1, limit=10):
    profile = directory.get_profile(user)
    paginator = Paginator(profile.donations.all(), clamp_limit(limit, ceiling=50))
    try:
        donations = list(paginator.page(page).object_list)
    except EmptyPage:
        donations = []
    return profile, donations, paginator


def donation_status(user):
    profile = directory.get_profile(user, create=False)
    if profile is None or not profile.is_blood_donor:
        raise ValidationError({'is_blood_donor': ['User is not registered as a blood donor']})
    return profile, check_eligibility(profile.last_donation_date)


# ========================================
# AGGREGATES (cached)
# ========================================

def blood_group_stats():
    """Active donor count per blood group, every group present"""
    def compute():
        counts = dict(
            directory.active_donors().order_by().values('blood_group')
            .annotate(total=Count('pk')).values_list('blood_group', 'total')
        )
        return {group: counts.get(group, 0) for group in BLOOD_GROUPS}

    return cache.get_or_compute('blood_group_stats', compute)


@dataclass
class DashboardPage:
    donors: list
    page: int
    limit: int
    total_count: int
    total_pages: int
    eligible_donors: int
    blood_group_distribution: dict
    filters: dict = field(default_factory=dict)


def dashboard(blood_group=None, eligible_only=False, city=None, page=1, limit=20, now=None):
    """Paged donor cards with eligibility and blood group stats"""
    blood_group = normalize_blood_group(blood_group) if blood_group else None
    limit = clamp_limit(limit, ceiling=50)
    city = (city or '').strip()

    def compute():
        moment = now or timezone.now()
        cutoff = moment - timedelta(days=cooldown_days())
        eligible_q = Q(last_donation_date__isnull=True) | Q(last_donation_date__lte=cutoff)

        queryset = directory.active_donors()
        if blood_group:
            queryset = queryset.filter(blood_group=blood_group)
        if city:
            queryset = queryset.filter(city__icontains=city)
        if eligible_only:
            queryset = queryset.filter(eligible_q)

        paginator = Paginator(ranked_donor_queryset(queryset, moment), limit)
        try:
            profiles = list(paginator.page(page).object_list)
        except EmptyPage:
            profiles = []

        return DashboardPage(
            donors=[DonorCard.from_profile(profile, moment) for profile in profiles],
            page=int(page),
            limit=limit,
            total_count=paginator.count,
            total_pages=paginator.num_pages if paginator.count else 0,
            eligible_donors=queryset.filter(eligible_q).count(),
            blood_group_distribution=blood_group_stats(),
            filters={'blood_group': blood_group, 'eligible_only': bool(eligible_only), 'city': city or None},
        )

    if now is not None:
        return compute()
    result = cache.get_or_compute(
        'dashboard', compute,
        blood_group=blood_group or '', eligible_only=int(bool(eligible_only)), city=city.lower(), page=page, limit=limit,
    )
    # a cached page can outlive a donor's cooldown
    moment = timezone.now()
    for card in result.donors:
        card.refresh_eligibility(moment)
    return result
