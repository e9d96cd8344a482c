from datetime import timedelta

from django.test import SimpleTestCase, override_settings
from django.utils import timezone

from algorithms.eligibility import check_eligibility
from algorithms.priority import time_remaining


class EligibilityTests(SimpleTestCase):

    def setUp(self):
        self.now = timezone.now()

    def test_never_donated_is_eligible(self):
        result = check_eligibility(None, self.now)
        self.assertTrue(result.is_eligible)
        self.assertIsNone(result.next_eligible_date)
        self.assertEqual(result.days_remaining, 0)
        self.assertEqual(result.message, 'Eligible for first-time donation')

    def test_89_days_is_not_eligible(self):
        last = self.now - timedelta(days=89)
        result = check_eligibility(last, self.now)
        self.assertFalse(result.is_eligible)
        self.assertEqual(result.days_remaining, 1)
        self.assertEqual(result.days_since_last_donation, 89)
        self.assertEqual(result.next_eligible_date, last + timedelta(days=90))

    def test_exactly_90_days_is_eligible(self):
        last = self.now - timedelta(days=90)
        result = check_eligibility(last, self.now)
        self.assertTrue(result.is_eligible)
        self.assertEqual(result.days_remaining, 0)
        self.assertEqual(result.next_eligible_date, last + timedelta(days=90))

    def test_partial_days_round_up(self):
        last = self.now - timedelta(days=80, hours=12)
        result = check_eligibility(last, self.now)
        self.assertEqual(result.days_remaining, 10)

    def test_accepts_plain_dates(self):
        last = (self.now - timedelta(days=120)).date()
        self.assertTrue(check_eligibility(last, self.now).is_eligible)

    @override_settings(LIFELINK_DONATION_COOLDOWN_DAYS=56)
    def test_cooldown_is_configurable(self):
        last = self.now - timedelta(days=60)
        self.assertTrue(check_eligibility(last, self.now).is_eligible)


class TimeRemainingTests(SimpleTestCase):

    def test_flags(self):
        now = timezone.now()
        flags = time_remaining(now + timedelta(hours=30), now + timedelta(hours=5), now)
        self.assertEqual(flags['hours_left'], 30)
        self.assertFalse(flags['is_urgent'])
        self.assertTrue(flags['is_expiring'])

        flags = time_remaining(now + timedelta(hours=10), now + timedelta(hours=10), now)
        self.assertTrue(flags['is_urgent'])
        self.assertFalse(flags['is_expiring'])

    def test_hours_left_never_negative(self):
        now = timezone.now()
        self.assertEqual(time_remaining(now - timedelta(hours=3), now - timedelta(hours=3), now)['hours_left'], 0)
