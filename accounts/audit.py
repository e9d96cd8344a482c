"""
Audit sink

Every mutating LifeLink action emits exactly one audit record. The sink
implementation is pluggable (LIFELINK_AUDIT_SINK); the default writes
ActivityLog rows.
"""
import logging

from django.conf import settings
from django.utils.module_loading import import_string

from accounts.models import ActivityLog

logger = logging.getLogger(__name__)

# Action names
BLOOD_PROFILE_UPDATED = 'blood_profile_update'
DONATION_ADDED = 'donation_added'
REQUISITION_CREATED = 'lifelink_requisition_created'
REQUISITION_STATUS_UPDATED = 'lifelink_requisition_status_updated'
REQUISITION_REUSED = 'lifelink_requisition_reused'
REQUISITION_EXPIRED = 'lifelink_requisition_expired'
DONORS_NOTIFIED = 'lifelink_donors_notified'
BROADCAST_SENT = 'lifelink_broadcast_sent'
RESPONSE_RECORDED = 'lifelink_requisition_response'
NOTIFICATION_READ = 'lifelink_notification_read'


class DatabaseAuditSink:

    def record(self, actor, action, entity_type, entity_id, details):
        return ActivityLog.objects.create(
            actor=actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        )


def get_sink():
    return import_string(settings.LIFELINK_AUDIT_SINK)()


def record(actor, action, entity=None, **details):
    """
    Emit one audit record

    Args:
        actor: user performing the action, or None for system jobs
        action: one of the action names above
        entity: model instance the action applied to
        details: extra JSON-serialisable context
    """
    entity_type = entity._meta.label if entity is not None else ''
    entity_id = str(entity.pk) if entity is not None else ''
    if actor is not None and not getattr(actor, 'is_authenticated', False):
        actor = None

    logger.info(f"audit: {action} {entity_type}#{entity_id} by {getattr(actor, 'pk', 'system')}")
    return get_sink().record(actor, action, entity_type, entity_id, details)
