# donors/signals.py
"""
Invalidate dashboard and blood-group stats caches on donor-side writes
"""
from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from donors.models import DonationRecord, DonorProfile, DonorResponse
from lifelink import cache


@receiver(post_save, sender=DonorProfile)
def invalidate_on_profile_change(sender, instance, **kwargs):
    cache.invalidate(f"donor profile #{instance.pk}")


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def invalidate_on_account_change(sender, instance, created, update_fields=None, **kwargs):
    # is_active gates every donor aggregate; login stamps do not
    if created or (update_fields and set(update_fields) <= {'last_login'}):
        return
    cache.invalidate(f"account #{instance.pk}")


@receiver(post_save, sender=DonationRecord)
def invalidate_on_donation(sender, instance, created, **kwargs):
    if created:
        cache.invalidate(f"donation #{instance.pk}")


@receiver(post_save, sender=DonorResponse)
def invalidate_on_response(sender, instance, created, **kwargs):
    if created:
        cache.invalidate(f"response #{instance.pk}")
