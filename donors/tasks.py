# donors/tasks.py
"""
Celery tasks for donor notifications

Delivery is best effort: a failing channel marks the notification FAILED
and is logged, it never bubbles back into the request that queued it.
There is no automatic retry.
"""
import logging

from celery import shared_task
from django.utils import timezone

from donors import directory
from donors.models import DonorNotification, DonorResponse
from lifelink.channels import PRIORITY_HIGH, PRIORITY_MEDIUM, get_channel

logger = logging.getLogger(__name__)


def seeker_message(response):
    """Title, message and priority telling a seeker how a donor answered"""
    donor = response.donor
    name = directory.display_name(donor)
    patient = response.requisition.patient_name

    if response.response == DonorResponse.WILLING:
        message = f"{name} ({donor.blood_group}) is willing to help with your blood request for {patient}"
        if response.is_contact_revealed:
            message += f". Contact: {response.contact_phone}"
        return '✅ Donor Found!', message, PRIORITY_HIGH

    if response.response == DonorResponse.NOT_AVAILABLE:
        return '📱 Response Received', f"{name} received your blood request but is currently not available to donate", PRIORITY_MEDIUM

    return '📱 Response Received', f"{name} received your blood request but cannot donate at this time", PRIORITY_MEDIUM


@shared_task
def deliver_donor_notification(notification_id):
    """
    Push one donor notification through the configured channel
    and record whether it went out
    """
    try:
        notification = DonorNotification.objects.select_related('requisition').get(pk=notification_id)
    except DonorNotification.DoesNotExist:
        logger.warning(f"Notification {notification_id} not found; nothing to deliver")
        return 0

    requisition = notification.requisition
    payload = {
        'requisition_id': requisition.pk,
        'patient_name': requisition.patient_name,
        'hospital_name': requisition.hospital_name,
        'required_blood_group': requisition.required_blood_group,
        'urgency_level': requisition.urgency_level,
        'location': requisition.location,
        'expires_at': requisition.expires_at.isoformat(),
    }

    try:
        delivered = get_channel().send(
            notification.donor_id,
            notification.title,
            notification.message,
            payload=payload,
            priority=notification.priority,
        )
    except Exception as e:
        logger.exception(f"Delivery of notification {notification.pk} to donor {notification.donor_id} failed")
        DonorNotification.objects.filter(pk=notification.pk).update(
            status=DonorNotification.STATUS_FAILED,
            last_error=str(e)[:255],
        )
        return 0

    if delivered:
        DonorNotification.objects.filter(pk=notification.pk).update(
            status=DonorNotification.STATUS_SENT,
            delivered_at=timezone.now(),
            last_error='',
        )
        logger.info(f"📧 Notification {notification.pk} delivered to donor {notification.donor_id}")
    else:
        DonorNotification.objects.filter(pk=notification.pk).update(
            status=DonorNotification.STATUS_FAILED,
            last_error='Channel delivered nothing',
        )
        logger.warning(f"Notification {notification.pk}: channel reported no delivery for donor {notification.donor_id}")
    return delivered


@shared_task
def notify_seeker_of_response(response_id):
    """Tell the requester that a donor answered their requisition"""
    try:
        response = DonorResponse.objects.select_related('donor__user', 'requisition').get(pk=response_id)
    except DonorResponse.DoesNotExist:
        logger.warning(f"Response {response_id} not found; seeker not notified")
        return 0

    title, message, priority = seeker_message(response)
    requisition = response.requisition
    payload = {
        'requisition_id': requisition.pk,
        'donor_id': response.donor_id,
        'donor_blood_group': response.donor.blood_group,
        'response': response.response,
        'contact_revealed': response.is_contact_revealed,
        'donor_phone': response.contact_phone if response.is_contact_revealed else None,
    }

    try:
        delivered = get_channel().send(requisition.requester_id, title, message, payload=payload, priority=priority)
    except Exception:
        logger.exception(f"Notify seeker {requisition.requester_id} of response {response.pk} failed")
        return 0

    logger.info(f"✅ Notified seeker {requisition.requester_id} of donor response: {response.response}")
    return delivered
