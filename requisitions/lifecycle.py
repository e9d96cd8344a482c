"""
Requisition lifecycle

    ACTIVE --> FULFILLED | CANCELLED   (terminal)
    ACTIVE --> EXPIRED                 (explicitly, or by the expiry sweep)
    EXPIRED --> ACTIVE                 (reuse only)

A requisition is only *effectively* active while its persisted status is
ACTIVE and expires_at has not passed; every read path checks both, so a
requisition whose window closed is treated as expired even before the
sweep flips its status.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Count, F, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from accounts import audit
from accounts.decorators import ensure_requester_or_admin
from algorithms.blood_compatibility import normalize_blood_group
from donors.models import DonorResponse
from lifelink import cache
from lifelink.exceptions import ConcurrentModification, InvalidTransition, RequisitionInactive
from requisitions.models import BloodRequisition

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BloodRequisition.ACTIVE: {BloodRequisition.FULFILLED, BloodRequisition.EXPIRED, BloodRequisition.CANCELLED},
}

TERMINAL_STATUSES = {BloodRequisition.FULFILLED, BloodRequisition.CANCELLED}


def max_lifetime():
    return timedelta(hours=settings.LIFELINK_REQUISITION_MAX_LIFETIME_HOURS)


def compute_expires_at(required_by_date, activated_at):
    """The active window closes at the deadline or after the max lifetime, whichever is first"""
    return min(required_by_date, activated_at + max_lifetime())


def is_effectively_active(requisition, now=None):
    now = now or timezone.now()
    return requisition.status == BloodRequisition.ACTIVE and requisition.expires_at >= now


def get_requisition(requisition_id):
    try:
        return BloodRequisition.objects.select_related('requester').get(pk=requisition_id)
    except (BloodRequisition.DoesNotExist, ValueError, TypeError):
        raise NotFound("Blood requisition not found")


def get_managed_requisition(actor, requisition_id, require_active=False, now=None):
    """Fetch a requisition the actor may manage (requester or admin)"""
    requisition = get_requisition(requisition_id)
    ensure_requester_or_admin(actor, requisition)
    if require_active and not is_effectively_active(requisition, now):
        raise RequisitionInactive("Can only notify donors for active requisitions")
    return requisition


def create_requisition(requester, data, now=None):
    """
    Raise a new blood requisition

    Args:
        requester: the user raising it
        data: validated fields (patient_name, hospital_name, contact_number,
              required_blood_group, required_by_date, location, ...)
    """
    now = now or timezone.now()
    required_by = data['required_by_date']
    if required_by <= now:
        raise ValidationError({'required_by_date': ['Required by date cannot be in the past']})

    fields = dict(data)
    fields['required_blood_group'] = normalize_blood_group(fields['required_blood_group'])
    requisition = BloodRequisition.objects.create(
        requester=requester,
        activated_at=now,
        expires_at=compute_expires_at(required_by, now),
        status=BloodRequisition.ACTIVE,
        **fields,
    )

    audit.record(
        requester, audit.REQUISITION_CREATED, requisition,
        required_blood_group=requisition.required_blood_group,
        urgency_level=requisition.urgency_level,
        units_needed=requisition.units_needed,
        location=requisition.location,
    )
    logger.info(f"Requisition #{requisition.pk} created by user {requester.pk} ({requisition.required_blood_group}, expires {requisition.expires_at.isoformat()})")
    return requisition


def _compare_and_swap(requisition, now, **changes):
    """
    Apply changes only if nobody touched the row since it was read

    Raises:
        ConcurrentModification: status or updated_at moved underneath us
    """
    changes['updated_at'] = now
    updated = BloodRequisition.objects.filter(
        pk=requisition.pk,
        status=requisition.status,
        updated_at=requisition.updated_at,
    ).update(**changes)

    if not updated:
        logger.warning(f"Lost compare-and-swap on requisition #{requisition.pk}")
        raise ConcurrentModification()

    requisition.refresh_from_db()
    cache.invalidate(f"requisition #{requisition.pk} changed")
    return requisition


def update_status(actor, requisition_id, new_status, notes=None, now=None):
    now = now or timezone.now()
    requisition = get_requisition(requisition_id)
    ensure_requester_or_admin(actor, requisition, "You can only update your own requisitions")

    if new_status not in dict(BloodRequisition.STATUS_CHOICES):
        raise ValidationError({'status': [f"Unknown status: {new_status}"]})

    old_status = requisition.status
    if new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
        if old_status in TERMINAL_STATUSES:
            detail = f"Requisition is already {old_status.lower()} and cannot be changed"
        elif old_status == BloodRequisition.EXPIRED:
            detail = "Expired requisitions can only be reactivated by reusing them"
        else:
            detail = f"Cannot change status from {old_status} to {new_status}"
        raise InvalidTransition(detail)

    changes = {'status': new_status}
    if notes is not None:
        changes['status_notes'] = notes
    _compare_and_swap(requisition, now, **changes)

    audit.record(actor, audit.REQUISITION_STATUS_UPDATED, requisition, old_status=old_status, new_status=new_status, notes=notes)
    logger.info(f"Requisition #{requisition.pk}: {old_status} -> {new_status} by user {actor.pk}")
    return requisition


def reuse_requisition(actor, requisition_id, required_by_date=None, now=None):
    """
    Reopen an expired requisition for a fresh active window

    Earlier notifications and responses stay attached, so donors who already
    answered are not asked again.
    """
    now = now or timezone.now()
    requisition = get_requisition(requisition_id)
    ensure_requester_or_admin(actor, requisition, "You can only reuse your own requisitions")

    lapsed = requisition.status == BloodRequisition.ACTIVE and requisition.expires_at < now
    if requisition.status != BloodRequisition.EXPIRED and not lapsed:
        raise InvalidTransition("Only expired requisitions can be reused")

    required_by = required_by_date or requisition.required_by_date
    if required_by <= now:
        raise ValidationError({'required_by_date': ['A new future required by date is needed to reuse this requisition']})

    _compare_and_swap(
        requisition, now,
        status=BloodRequisition.ACTIVE,
        required_by_date=required_by,
        activated_at=now,
        expires_at=compute_expires_at(required_by, now),
        reuse_count=F('reuse_count') + 1,
    )

    audit.record(actor, audit.REQUISITION_REUSED, requisition, reuse_count=requisition.reuse_count, expires_at=requisition.expires_at)
    logger.info(f"Requisition #{requisition.pk} reused (#{requisition.reuse_count}), active until {requisition.expires_at.isoformat()}")
    return requisition


def expire_stale_requisitions(now=None):
    """
    Flip every ACTIVE requisition whose window has closed to EXPIRED

    Returns:
        number of requisitions expired
    """
    now = now or timezone.now()
    expired = 0

    for requisition in BloodRequisition.objects.stale(now).only('pk', 'expires_at'):
        # guard on the status again in case it moved since the scan
        updated = BloodRequisition.objects.filter(
            pk=requisition.pk,
            status=BloodRequisition.ACTIVE,
            expires_at__lt=now,
        ).update(status=BloodRequisition.EXPIRED, updated_at=now)
        if updated:
            expired += 1
            audit.record(None, audit.REQUISITION_EXPIRED, requisition, expires_at=requisition.expires_at)

    if expired:
        cache.invalidate(f"{expired} requisitions expired")
    logger.info(f"Expiry sweep: {expired} requisition(s) expired")
    return expired


# ========================================
# READ HELPERS
# ========================================

def requisitions_for(user, status=None):
    """Requisitions raised by the user, newest first, with response and notification counts"""
    queryset = BloodRequisition.objects.filter(requester=user).annotate(
        response_count=Count('responses', distinct=True),
        willing_count=Count('responses', filter=Q(responses__response=DonorResponse.WILLING), distinct=True),
        notification_count=Count('donor_notifications', distinct=True),
    ).order_by('-created_at')
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def response_statistics(requisition):
    counts = dict(
        requisition.responses.order_by().values('response').annotate(total=Count('id')).values_list('response', 'total')
    )
    return {
        'total_responses': sum(counts.values()),
        'willing': counts.get(DonorResponse.WILLING, 0),
        'not_available': counts.get(DonorResponse.NOT_AVAILABLE, 0),
        'not_suitable': counts.get(DonorResponse.NOT_SUITABLE, 0),
        'notifications_sent': requisition.donor_notifications.count(),
    }
