"""
Donor response collection

Responding directly to a requisition and responding from a notification
share one code path. The database unique constraint on (donor,
requisition) decides races: the first response wins and every later
attempt gets AlreadyResponded carrying that first decision.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts import audit
from accounts.decorators import ensure_requester_or_admin
from algorithms.eligibility import Eligibility, check_eligibility
from donors import directory
from donors.models import DonorNotification, DonorResponse
from donors.tasks import notify_seeker_of_response
from lifelink.exceptions import AlreadyResponded, RequisitionInactive
from requisitions import lifecycle
from requisitions.models import BloodRequisition

logger = logging.getLogger(__name__)

RESPONSE_VALUES = [value for value, _ in DonorResponse.RESPONSE_CHOICES]


def response_snapshot(donor_response):
    return {
        'id': donor_response.pk,
        'response': donor_response.response,
        'message': donor_response.message,
        'responded_at': donor_response.responded_at.isoformat(),
        'is_contact_revealed': donor_response.is_contact_revealed,
    }


def should_reveal_contact(response, requisition, profile):
    return (
        response == DonorResponse.WILLING
        and requisition.allow_contact_reveal
        and profile.show_phone
    )


def _record_response(user, requisition, response, message, now, notification=None):
    if response not in RESPONSE_VALUES:
        raise ValidationError({'response': [f"Response must be one of {', '.join(RESPONSE_VALUES)}"]})

    if not lifecycle.is_effectively_active(requisition, now):
        raise RequisitionInactive("This blood requisition is no longer active or has expired")

    profile = directory.get_profile(user)
    phone = directory.phone_of(profile)
    revealed = should_reveal_contact(response, requisition, profile) and phone is not None

    try:
        with transaction.atomic():
            donor_response = DonorResponse.objects.create(
                donor=profile,
                requisition=requisition,
                response=response,
                message=message or '',
                responded_at=now,
                contact_phone=phone if revealed else None,
                is_contact_revealed=revealed,
            )
            if notification is not None and notification.read_at is None:
                DonorNotification.objects.filter(pk=notification.pk).update(read_at=now)
                notification.read_at = now

            audit.record(
                user, audit.RESPONSE_RECORDED, requisition,
                response=response,
                contact_revealed=revealed,
                via_notification=notification.pk if notification is not None else None,
            )
            transaction.on_commit(lambda: notify_seeker_of_response.delay(donor_response.pk), robust=True)
    except IntegrityError:
        existing = DonorResponse.objects.filter(donor=profile, requisition=requisition).first()
        if existing is None:
            raise
        logger.info(f"Donor {profile.pk} already responded to requisition #{requisition.pk} ({existing.response})")
        raise AlreadyResponded(existing=response_snapshot(existing))

    logger.info(f"Donor {profile.pk} responded {response} to requisition #{requisition.pk} (contact revealed: {revealed})")
    return donor_response


def respond(user, requisition_id, response, message=None, now=None):
    now = now or timezone.now()
    requisition = lifecycle.get_requisition(requisition_id)
    return _record_response(user, requisition, response, message, now)


def _own_notification(user, notification_id):
    try:
        notification = DonorNotification.objects.select_related('requisition').get(pk=notification_id)
    except (DonorNotification.DoesNotExist, ValueError, TypeError):
        raise NotFound("Notification not found")
    if notification.donor_id != user.pk:
        raise PermissionDenied("You can only act on your own notifications")
    return notification


def respond_to_notification(user, notification_id, response, message=None, now=None):
    now = now or timezone.now()
    notification = _own_notification(user, notification_id)
    return _record_response(user, notification.requisition, response, message, now, notification=notification)


def mark_notification_read(user, notification_id, now=None):
    now = now or timezone.now()
    notification = _own_notification(user, notification_id)
    if notification.read_at is None:
        notification.read_at = now
        notification.save(update_fields=['read_at'])
        audit.record(user, audit.NOTIFICATION_READ, notification, requisition_id=notification.requisition_id)
    return notification


def notifications_for(user, unread_only=False, now=None):
    """The donor's notifications, hiding requisitions that are no longer open"""
    now = now or timezone.now()
    queryset = DonorNotification.objects.select_related('requisition').filter(
        donor_id=user.pk,
        requisition__status=BloodRequisition.ACTIVE,
        requisition__expires_at__gte=now,
    )
    if unread_only:
        queryset = queryset.filter(read_at__isnull=True)
    return queryset.order_by('-created_at', '-id')


# ========================================
# WILLING DONORS (seeker view)
# ========================================

@dataclass
class WillingDonor:
    donor_id: int
    name: str
    blood_group: str
    total_donations: int
    location: str
    message: str
    responded_at: datetime
    is_contact_revealed: bool
    contact_phone: Optional[str]
    eligibility: Eligibility


def get_willing_donors(actor, requisition_id, now=None):
    """
    WILLING responses for a requisition, newest first, with each donor's
    current eligibility. Phones are only present where they were revealed.
    """
    now = now or timezone.now()
    requisition = lifecycle.get_requisition(requisition_id)
    ensure_requester_or_admin(actor, requisition, "You can only view responses for your own requisitions")

    responses = requisition.responses.select_related('donor__user').filter(
        response=DonorResponse.WILLING,
    ).order_by('-responded_at', '-id')

    donors = []
    for donor_response in responses:
        profile = donor_response.donor
        donors.append(WillingDonor(
            donor_id=profile.pk,
            name=directory.display_name(profile),
            blood_group=profile.blood_group,
            total_donations=profile.total_donations,
            location=profile.location or 'Location not specified',
            message=donor_response.message,
            responded_at=donor_response.responded_at,
            is_contact_revealed=donor_response.is_contact_revealed,
            contact_phone=donor_response.contact_phone if donor_response.is_contact_revealed else None,
            eligibility=check_eligibility(profile.last_donation_date, now),
        ))

    summary = {
        'total_willing': len(donors),
        'contacts_available': sum(1 for donor in donors if donor.is_contact_revealed),
        'eligible_donors': sum(1 for donor in donors if donor.eligibility.is_eligible),
    }
    return requisition, donors, summary
