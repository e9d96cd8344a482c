from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from donors import matching, responses
from donors.models import DonorProfile, DonorResponse
from lifelink.exceptions import BloodGroupRequired
from lifelink.testing import LifeLinkTestMixin

User = get_user_model()


class FindAvailableDonorsTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.now = timezone.now()

    def test_eligible_first_then_most_donations(self):
        veteran = self.make_donor('O-', total_donations=12)
        regular = self.make_donor('A-', total_donations=3)
        cooling_down = self.make_donor('A+', total_donations=20,
                                       last_donation_date=self.now - timedelta(days=30))

        cards = matching.find_available_donors('A+', now=self.now)

        self.assertEqual([card.donor_id for card in cards], [veteran.pk, regular.pk, cooling_down.pk])
        self.assertTrue(cards[0].eligibility.is_eligible)
        self.assertFalse(cards[2].eligibility.is_eligible)
        self.assertEqual(cards[2].eligibility.days_remaining, 60)

    def test_only_compatible_active_donors(self):
        match = self.make_donor('O+')
        self.make_donor('A+')
        asleep = self.make_donor('O+')
        asleep.user.is_active = False
        asleep.user.save()
        retired = self.make_donor('O+')
        DonorProfile.objects.filter(pk=retired.pk).update(is_blood_donor=False)

        cards = matching.find_available_donors('B+', now=self.now)
        self.assertEqual([card.donor_id for card in cards], [match.pk])

    def test_location_matches_city_or_state(self):
        pokhara = self.make_donor('O-', city='Pokhara', state='Gandaki')
        bagmati = self.make_donor('O-', city='Lalitpur', state='Bagmati')

        self.assertEqual([c.donor_id for c in matching.find_available_donors('O-', 'pokhara')], [pokhara.pk])
        self.assertEqual([c.donor_id for c in matching.find_available_donors('O-', ' BAGMATI ')], [bagmati.pk])

    def test_phone_only_when_donor_allows(self):
        public = self.make_donor('B+', show_phone=True, phone='9844444444')
        private = self.make_donor('B+', show_phone=False, phone='9855555555')

        cards = {card.donor_id: card for card in matching.find_available_donors('B+', now=self.now)}
        self.assertEqual(cards[public.pk].phone, '9844444444')
        self.assertTrue(cards[public.pk].contact_available)
        self.assertIsNone(cards[private.pk].phone)
        self.assertFalse(cards[private.pk].contact_available)

    def test_limit_is_clamped(self):
        for _ in range(3):
            self.make_donor('AB+')
        self.assertEqual(len(matching.find_available_donors('AB+', limit=2)), 2)
        self.assertEqual(len(matching.find_available_donors('AB+', limit=0)), 1)
        self.assertEqual(matching.clamp_limit(10000), 200)
        self.assertEqual(matching.clamp_limit('junk'), matching.DEFAULT_LIMIT)

    def test_invalid_blood_group(self):
        with self.assertRaises(ValueError):
            matching.find_available_donors('Q+')


class DiscoverRequisitionsTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.seeker = self.make_user('seeker')
        self.donor = self.make_donor('O-')

    def test_blood_group_required(self):
        newcomer = self.make_user('newcomer')
        with self.assertRaises(BloodGroupRequired):
            matching.discover_requisitions(newcomer)

        DonorProfile.objects.create(user=newcomer)
        with self.assertRaises(BloodGroupRequired):
            matching.discover_requisitions(newcomer)

    def test_only_requisitions_the_donor_can_serve(self):
        a_positive = self.make_donor('A+')
        o_negative_request = self.make_requisition(self.seeker, required_blood_group='O-')
        a_positive_request = self.make_requisition(self.seeker, required_blood_group='A+')

        universal = matching.discover_requisitions(self.donor.user)
        self.assertEqual({item.requisition.pk for item in universal.items},
                         {o_negative_request.pk, a_positive_request.pk})

        narrow = matching.discover_requisitions(a_positive.user)
        self.assertEqual([item.requisition.pk for item in narrow.items], [a_positive_request.pk])
        self.assertEqual(narrow.donor_blood_group, 'A+')

    def test_high_urgency_first(self):
        low = self.make_requisition(self.seeker, urgency_level='LOW')
        high = self.make_requisition(self.seeker, urgency_level='HIGH')
        medium = self.make_requisition(self.seeker, urgency_level='MEDIUM')

        feed = matching.discover_requisitions(self.donor.user)
        self.assertEqual([item.requisition.pk for item in feed.items], [high.pk, medium.pk, low.pk])

        only_low = matching.discover_requisitions(self.donor.user, urgency_level='LOW')
        self.assertEqual([item.requisition.pk for item in only_low.items], [low.pk])

    def test_requisition_drops_out_when_window_closes(self):
        now = timezone.now()
        requisition = self.make_requisition(self.seeker, hours=1, now=now)

        self.assertEqual(matching.discover_requisitions(self.donor.user, now=now).total_count, 1)
        later = matching.discover_requisitions(self.donor.user, now=now + timedelta(hours=2))
        self.assertEqual(later.total_count, 0)

        # still ACTIVE on disk until the sweep runs
        requisition.refresh_from_db()
        self.assertEqual(requisition.status, 'ACTIVE')

    def test_response_state_and_time_flags(self):
        now = timezone.now()
        requisition = self.make_requisition(self.seeker, hours=10, now=now)
        responses.respond(self.donor.user, requisition.pk, DonorResponse.NOT_AVAILABLE, now=now)

        item = matching.discover_requisitions(self.donor.user, now=now).items[0]
        self.assertTrue(item.has_responded)
        self.assertEqual(item.response, DonorResponse.NOT_AVAILABLE)
        self.assertEqual(item.requisition.response_count, 1)
        self.assertEqual(item.time_remaining['hours_left'], 10)
        self.assertTrue(item.time_remaining['is_urgent'])

        other = self.make_donor('O-')
        fresh_eyes = matching.discover_requisitions(other.user, now=now).items[0]
        self.assertFalse(fresh_eyes.has_responded)
        self.assertIsNone(fresh_eyes.response)

    def test_pagination(self):
        for _ in range(3):
            self.make_requisition(self.seeker)

        first = matching.discover_requisitions(self.donor.user, page=1, limit=2)
        second = matching.discover_requisitions(self.donor.user, page=2, limit=2)
        beyond = matching.discover_requisitions(self.donor.user, page=5, limit=2)

        self.assertEqual((len(first.items), first.total_count, first.total_pages), (2, 3, 2))
        self.assertEqual(len(second.items), 1)
        self.assertEqual(beyond.items, [])
