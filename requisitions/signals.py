# requisitions/signals.py
"""
Keep the aggregate read caches honest when requisitions change
"""
from django.db.models.signals import post_save
from django.dispatch import receiver

from lifelink import cache
from requisitions.models import BloodRequisition


@receiver(post_save, sender=BloodRequisition)
def invalidate_on_requisition_change(sender, instance, created, **kwargs):
    cache.invalidate(f"requisition #{instance.pk} {'created' if created else 'updated'}")
