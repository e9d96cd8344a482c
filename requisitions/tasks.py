# requisitions/tasks.py
"""
Periodic requisition housekeeping (scheduled by Celery beat)
"""
import logging

from celery import shared_task

from requisitions.lifecycle import expire_stale_requisitions

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_requisitions_task():
    """Flip ACTIVE requisitions past their expires_at to EXPIRED"""
    expired = expire_stale_requisitions()
    if expired:
        logger.info(f"⏰ Expired {expired} stale requisition(s)")
    return expired
