"""
User-directory adapter

All donor lookups go through here so the rest of the engine only sees
DonorProfile rows of active users, whatever the user model looks like.
"""
from donors.models import DonorProfile


def get_profile(user, create=True):
    """Blood profile for a user, created empty on first access"""
    if create:
        profile, _ = DonorProfile.objects.get_or_create(user=user)
        return profile
    return DonorProfile.objects.filter(user=user).first()


def active_donors():
    """Registered blood donors whose accounts are active"""
    return DonorProfile.objects.select_related('user').filter(
        user__is_active=True,
        is_blood_donor=True,
        blood_group__isnull=False,
    )


def resolve_donors(donor_ids):
    """
    Look up donors by id

    Returns:
        (profiles in the order requested, list of ids that are not active donors)
    """
    found = active_donors().in_bulk(donor_ids)
    profiles = [found[donor_id] for donor_id in donor_ids if donor_id in found]
    invalid = [donor_id for donor_id in donor_ids if donor_id not in found]
    return profiles, invalid


def display_name(profile):
    return profile.user.display_name


def phone_of(profile):
    return profile.user.phone or None
