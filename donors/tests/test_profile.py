from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from accounts import audit
from accounts.models import ActivityLog
from donors import profile as donor_profile
from donors.models import DonationRecord, DonorProfile
from lifelink.exceptions import DonorNotEligible
from lifelink.testing import LifeLinkTestMixin


class BloodProfileTests(LifeLinkTestMixin, TestCase):

    def test_profile_created_on_first_read(self):
        user = self.make_user()
        profile, recent = donor_profile.get_blood_profile(user)
        self.assertEqual(profile.pk, user.pk)
        self.assertIsNone(profile.blood_group)
        self.assertEqual(recent, [])

    def test_update_normalises_and_audits(self):
        user = self.make_user()
        profile = donor_profile.update_blood_profile(user, {
            'blood_group': 'o-', 'is_blood_donor': True, 'city': 'Bhaktapur',
        })

        self.assertEqual(profile.blood_group, 'O-')
        self.assertTrue(profile.is_blood_donor)
        log = ActivityLog.objects.get(action=audit.BLOOD_PROFILE_UPDATED)
        self.assertEqual(sorted(log.details['updated_fields']), ['blood_group', 'city', 'is_blood_donor'])

    def test_unchanged_update_is_not_audited(self):
        donor = self.make_donor('B+', city='Kathmandu')
        donor_profile.update_blood_profile(donor.user, {'blood_group': 'B+', 'city': 'Kathmandu'})
        self.assertFalse(ActivityLog.objects.filter(action=audit.BLOOD_PROFILE_UPDATED).exists())

    def test_donor_needs_blood_group(self):
        user = self.make_user()
        with self.assertRaises(ValidationError):
            donor_profile.update_blood_profile(user, {'is_blood_donor': True})
        self.assertFalse(DonorProfile.objects.get(user=user).is_blood_donor)


class RecordDonationTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.now = timezone.now()

    def test_first_donation_updates_counters(self):
        donor = self.make_donor('A+')
        donation = donor_profile.record_donation(donor.user, location='Bir Hospital', units=2, now=self.now)

        donor.refresh_from_db()
        self.assertEqual(donation.donation_date, self.now)
        self.assertEqual(donor.last_donation_date, self.now)
        self.assertEqual(donor.total_donations, 1)
        self.assertEqual(donor.total_units_donated, 2)
        self.assertFalse(donor.can_donate)
        self.assertTrue(ActivityLog.objects.filter(action=audit.DONATION_ADDED, actor=donor.user).exists())

    def test_donation_inside_cooldown_is_refused(self):
        donor = self.make_donor('A+', last_donation_date=self.now - timedelta(days=89))
        with self.assertRaises(DonorNotEligible) as ctx:
            donor_profile.record_donation(donor.user, location='Bir Hospital', now=self.now)

        self.assertEqual(ctx.exception.existing['days_remaining'], 1)
        self.assertFalse(DonationRecord.objects.exists())

    def test_backdated_donation_keeps_latest_date(self):
        latest = self.now - timedelta(days=100)
        donor = self.make_donor('A+', last_donation_date=latest, total_donations=4)
        donor_profile.record_donation(donor.user, donation_date=self.now - timedelta(days=200),
                                      location='Teaching Hospital', now=self.now)

        donor.refresh_from_db()
        self.assertEqual(donor.last_donation_date, latest)
        self.assertEqual(donor.total_donations, 5)

    def test_future_date_rejected(self):
        donor = self.make_donor('A+')
        with self.assertRaises(ValidationError):
            donor_profile.record_donation(donor.user, donation_date=self.now + timedelta(days=1), now=self.now)

    def test_only_registered_donors(self):
        user = self.make_user()
        with self.assertRaises(PermissionDenied):
            donor_profile.record_donation(user, location='Bir Hospital', now=self.now)

    def test_history_and_status(self):
        donor = self.make_donor('A+')
        donor_profile.record_donation(donor.user, donation_date=self.now - timedelta(days=200),
                                      location='Bir Hospital', now=self.now - timedelta(days=200))
        donor_profile.record_donation(donor.user, donation_date=self.now - timedelta(days=95),
                                      location='Patan Hospital', now=self.now - timedelta(days=95))

        profile, donations, paginator = donor_profile.donation_history(donor.user, page=1, limit=1)
        self.assertEqual(paginator.count, 2)
        self.assertEqual(donations[0].location, 'Patan Hospital')

        profile, eligibility = donor_profile.donation_status(donor.user)
        self.assertTrue(eligibility.is_eligible)
        self.assertEqual(profile.total_donations, 2)

        with self.assertRaises(ValidationError):
            donor_profile.donation_status(self.make_user())


class DashboardTests(LifeLinkTestMixin, TestCase):

    def test_stats_cover_every_group(self):
        self.make_donor('O-')
        self.make_donor('O-')
        self.make_donor('AB+')

        stats = donor_profile.blood_group_stats()
        self.assertEqual(len(stats), 8)
        self.assertEqual(stats['O-'], 2)
        self.assertEqual(stats['AB+'], 1)
        self.assertEqual(stats['B-'], 0)

    def test_filters(self):
        now = timezone.now()
        self.make_donor('A+', city='Pokhara')
        self.make_donor('A+', city='Kathmandu', last_donation_date=now - timedelta(days=10))
        self.make_donor('B+', city='Kathmandu')

        page = donor_profile.dashboard(blood_group='a+', now=now)
        self.assertEqual(page.total_count, 2)
        self.assertEqual(page.eligible_donors, 1)
        self.assertEqual(page.filters['blood_group'], 'A+')

        self.assertEqual(donor_profile.dashboard(eligible_only=True, now=now).total_count, 2)
        self.assertEqual(donor_profile.dashboard(city='kathmandu', now=now).total_count, 2)

    def test_cached_until_a_donor_changes(self):
        donor = self.make_donor('A+')
        self.assertEqual(donor_profile.dashboard().total_count, 1)

        # a write that skips signals leaves the cached page in place
        DonorProfile.objects.filter(pk=donor.pk).update(is_blood_donor=False)
        self.assertEqual(donor_profile.dashboard().total_count, 1)

        # a normal save invalidates it
        self.make_donor('O+')
        page = donor_profile.dashboard()
        self.assertEqual(page.total_count, 1)
        self.assertEqual(page.donors[0].blood_group, 'O+')
        self.assertEqual(donor_profile.blood_group_stats()['O+'], 1)

    def test_cached_page_keeps_eligibility_current(self):
        now = timezone.now()
        self.make_donor('A+', last_donation_date=now - timedelta(days=89))

        card = donor_profile.dashboard().donors[0]
        self.assertFalse(card.eligibility.is_eligible)
        self.assertEqual(card.eligibility.days_remaining, 1)

        with patch('django.utils.timezone.now', return_value=now + timedelta(days=2)):
            with self.assertNumQueries(0):
                page = donor_profile.dashboard()

        self.assertTrue(page.donors[0].eligibility.is_eligible)
        self.assertEqual(page.donors[0].eligibility.days_remaining, 0)

    def test_deactivated_account_drops_out_of_cached_aggregates(self):
        donor = self.make_donor('B-')
        self.assertEqual(donor_profile.blood_group_stats()['B-'], 1)
        self.assertEqual(donor_profile.dashboard().total_count, 1)

        donor.user.is_active = False
        donor.user.save()

        self.assertEqual(donor_profile.blood_group_stats()['B-'], 0)
        self.assertEqual(donor_profile.dashboard().total_count, 0)

    def test_login_stamp_keeps_cached_aggregates(self):
        donor = self.make_donor('B-')
        self.assertEqual(donor_profile.blood_group_stats()['B-'], 1)

        donor.user.last_login = timezone.now()
        donor.user.save(update_fields=['last_login'])

        with self.assertNumQueries(0):
            self.assertEqual(donor_profile.blood_group_stats()['B-'], 1)
