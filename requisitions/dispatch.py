"""
Notification fan-out

Every targeted donor gets an idempotent get-or-create of their
notification row (unique per donor + requisition), then one delivery task
per notification. Nothing here is ordered and nothing aborts the batch:
a donor whose hand-off fails is counted in the result and logged.
"""
import logging
from dataclasses import asdict, dataclass

from django.conf import settings
from rest_framework.exceptions import ValidationError

from accounts import audit
from donors import directory
from donors.matching import find_available_donors
from donors.models import DonorNotification
from donors.tasks import deliver_donor_notification
from lifelink.channels import PRIORITY_HIGH, PRIORITY_MEDIUM
from requisitions import lifecycle

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    targeted: int = 0
    created: int = 0
    already_notified: int = 0
    notifications_sent: int = 0
    failed: int = 0

    def as_dict(self):
        return asdict(self)


def notification_content(requisition, custom_message=None):
    title = f"🆘 URGENT: {requisition.required_blood_group} Blood Needed"
    message = f"Emergency blood request for {requisition.patient_name} at {requisition.hospital_name}, {requisition.location}"
    if custom_message:
        message = f"{message}\n\nMessage: {custom_message}"
    priority = PRIORITY_HIGH if requisition.urgency_level == 'HIGH' else PRIORITY_MEDIUM
    return title, message, priority


def _hand_off(notification):
    """Queue delivery; a broker failure marks the row FAILED instead of raising"""
    try:
        deliver_donor_notification.delay(notification.pk)
    except Exception as e:
        logger.error(f"Could not queue notification {notification.pk} for donor {notification.donor_id}: {e}")
        DonorNotification.objects.filter(pk=notification.pk).update(
            status=DonorNotification.STATUS_FAILED,
            last_error=f"Queueing failed: {e}"[:255],
        )
        return False
    return True


def fan_out(requisition, profiles, custom_message=None, resend=False):
    title, message, priority = notification_content(requisition, custom_message)
    result = DispatchResult(targeted=len(profiles))

    for profile in profiles:
        notification, created = DonorNotification.objects.get_or_create(
            donor=profile,
            requisition=requisition,
            defaults={'title': title, 'message': message, 'priority': priority},
        )
        if created:
            result.created += 1
        else:
            result.already_notified += 1
            if not resend:
                continue
            notification.title = title
            notification.message = message
            notification.priority = priority
            notification.status = DonorNotification.STATUS_PENDING
            notification.save(update_fields=['title', 'message', 'priority', 'status'])

        if _hand_off(notification):
            result.notifications_sent += 1
        else:
            result.failed += 1

    return result


def notify_selected(actor, requisition_id, donor_ids, custom_message=None, resend=False, now=None):
    """
    Notify hand-picked donors about an active requisition

    The whole call is rejected if any id is not an active registered donor.
    """
    cap = settings.LIFELINK_SELECTED_CAP
    donor_ids = list(dict.fromkeys(donor_ids or []))
    if not donor_ids or len(donor_ids) > cap:
        raise ValidationError({'donor_ids': [f'Select between 1 and {cap} donors']})

    requisition = lifecycle.get_managed_requisition(actor, requisition_id, require_active=True, now=now)

    profiles, invalid = directory.resolve_donors(donor_ids)
    if invalid:
        raise ValidationError({
            'donor_ids': [f"Some selected donors are not valid or not active: {', '.join(str(i) for i in invalid)}"]
        })

    result = fan_out(requisition, profiles, custom_message, resend)

    audit.record(
        actor, audit.DONORS_NOTIFIED, requisition,
        donor_count=len(profiles),
        custom_message=bool(custom_message),
        **result.as_dict(),
    )
    logger.info(f"Requisition #{requisition.pk}: notified {result.notifications_sent}/{result.targeted} selected donors ({result.failed} failed)")
    return result


def notify_all(actor, requisition_id, custom_message=None, resend=False, now=None):
    """
    Broadcast to every compatible donor in the requisition's area, up to
    the broadcast cap. Donors still in their cooldown are included.
    """
    requisition = lifecycle.get_managed_requisition(actor, requisition_id, require_active=True, now=now)

    cards = find_available_donors(
        requisition.required_blood_group,
        requisition.location,
        limit=settings.LIFELINK_BROADCAST_CAP,
        now=now,
    )
    if not cards:
        raise ValidationError({'requisition_id': ['No compatible donors found in the specified area']})

    profiles, _ = directory.resolve_donors([card.donor_id for card in cards])
    result = fan_out(requisition, profiles, custom_message, resend)

    audit.record(
        actor, audit.BROADCAST_SENT, requisition,
        area=requisition.location,
        blood_group=requisition.required_blood_group,
        **result.as_dict(),
    )
    logger.info(f"Requisition #{requisition.pk}: broadcast to {result.targeted} donors in {requisition.location} ({result.notifications_sent} queued, {result.failed} failed)")
    return result
