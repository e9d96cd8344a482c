from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts import audit
from accounts.models import ActivityLog
from donors.models import DonorResponse
from lifelink.exceptions import ConcurrentModification, InvalidTransition
from lifelink.testing import LifeLinkTestMixin
from requisitions import lifecycle
from requisitions.models import BloodRequisition
from requisitions.tasks import expire_stale_requisitions_task


class CreateRequisitionTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.seeker = self.make_user('seeker')
        self.now = timezone.now()

    def test_short_deadline_sets_expiry(self):
        requisition = self.make_requisition(self.seeker, hours=10, now=self.now)
        self.assertEqual(requisition.expires_at, self.now + timedelta(hours=10))
        self.assertEqual(requisition.status, BloodRequisition.ACTIVE)
        self.assertEqual(requisition.activated_at, self.now)

    def test_expiry_capped_at_72_hours(self):
        requisition = self.make_requisition(self.seeker, hours=24 * 5, now=self.now)
        self.assertEqual(requisition.expires_at, self.now + timedelta(hours=72))
        self.assertLessEqual(requisition.expires_at, requisition.required_by_date)

    def test_past_deadline_rejected(self):
        with self.assertRaises(ValidationError):
            self.make_requisition(self.seeker, hours=-1, now=self.now)
        self.assertFalse(BloodRequisition.objects.exists())

    def test_blood_group_normalised_and_audited(self):
        requisition = self.make_requisition(self.seeker, required_blood_group='ab-', now=self.now)
        self.assertEqual(requisition.required_blood_group, 'AB-')

        log = ActivityLog.objects.get(action=audit.REQUISITION_CREATED)
        self.assertEqual(log.actor, self.seeker)
        self.assertEqual(log.entity_type, 'requisitions.BloodRequisition')
        self.assertEqual(log.entity_id, str(requisition.pk))
        self.assertEqual(log.details['required_blood_group'], 'AB-')

    def test_effectively_active_follows_expiry(self):
        requisition = self.make_requisition(self.seeker, hours=1, now=self.now)
        self.assertTrue(lifecycle.is_effectively_active(requisition, self.now))
        self.assertFalse(lifecycle.is_effectively_active(requisition, self.now + timedelta(hours=2)))
        self.assertEqual(
            list(BloodRequisition.objects.effectively_active(self.now + timedelta(hours=2))), []
        )

    def test_unknown_requisition(self):
        with self.assertRaises(NotFound):
            lifecycle.get_requisition(999999)


class StatusTransitionTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.seeker = self.make_user('seeker')
        self.requisition = self.make_requisition(self.seeker)

    def test_fulfil_active_requisition(self):
        updated = lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.FULFILLED, 'Got 2 units')
        self.assertEqual(updated.status, BloodRequisition.FULFILLED)
        self.assertEqual(updated.status_notes, 'Got 2 units')

        log = ActivityLog.objects.get(action=audit.REQUISITION_STATUS_UPDATED)
        self.assertEqual(log.details['old_status'], 'ACTIVE')
        self.assertEqual(log.details['new_status'], 'FULFILLED')

    def test_terminal_status_cannot_change(self):
        lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.FULFILLED)
        with self.assertRaises(InvalidTransition):
            lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.CANCELLED)
        with self.assertRaises(InvalidTransition):
            lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.ACTIVE)

    def test_expired_only_reactivates_through_reuse(self):
        lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.EXPIRED)
        with self.assertRaises(InvalidTransition):
            lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.ACTIVE)

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValidationError):
            lifecycle.update_status(self.seeker, self.requisition.pk, 'PAUSED')

    def test_only_requester_or_admin(self):
        stranger = self.make_user('stranger')
        with self.assertRaises(PermissionDenied):
            lifecycle.update_status(stranger, self.requisition.pk, BloodRequisition.CANCELLED)

        admin = self.make_user('admin', user_type='super_admin')
        updated = lifecycle.update_status(admin, self.requisition.pk, BloodRequisition.CANCELLED)
        self.assertEqual(updated.status, BloodRequisition.CANCELLED)

    def test_stale_read_loses_to_concurrent_update(self):
        stale = BloodRequisition.objects.get(pk=self.requisition.pk)
        lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.FULFILLED)

        with patch('requisitions.lifecycle.get_requisition', return_value=stale):
            with self.assertRaises(ConcurrentModification):
                lifecycle.update_status(self.seeker, self.requisition.pk, BloodRequisition.CANCELLED)

        self.requisition.refresh_from_db()
        self.assertEqual(self.requisition.status, BloodRequisition.FULFILLED)


class ReuseTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.seeker = self.make_user('seeker')
        self.created = timezone.now() - timedelta(hours=5)
        self.requisition = self.make_requisition(self.seeker, hours=2, now=self.created)

    def test_reuse_expired_requisition(self):
        lifecycle.expire_stale_requisitions()
        donor = self.make_donor('A+')
        DonorResponse.objects.create(donor=donor, requisition=self.requisition, response=DonorResponse.NOT_AVAILABLE)

        now = timezone.now()
        reused = lifecycle.reuse_requisition(self.seeker, self.requisition.pk, now + timedelta(hours=12), now=now)

        self.assertEqual(reused.status, BloodRequisition.ACTIVE)
        self.assertEqual(reused.reuse_count, 1)
        self.assertEqual(reused.activated_at, now)
        self.assertEqual(reused.expires_at, now + timedelta(hours=12))
        self.assertTrue(lifecycle.is_effectively_active(reused, now))
        self.assertEqual(reused.responses.count(), 1)
        self.assertTrue(ActivityLog.objects.filter(action=audit.REQUISITION_REUSED).exists())

    def test_lapsed_but_unswept_requisition_can_be_reused(self):
        now = timezone.now()
        reused = lifecycle.reuse_requisition(self.seeker, self.requisition.pk, now + timedelta(days=5), now=now)
        self.assertEqual(reused.expires_at, now + timedelta(hours=72))

    def test_reuse_needs_a_future_deadline(self):
        lifecycle.expire_stale_requisitions()
        with self.assertRaises(ValidationError):
            lifecycle.reuse_requisition(self.seeker, self.requisition.pk)

    def test_open_or_terminal_requisitions_cannot_be_reused(self):
        fresh = self.make_requisition(self.seeker, hours=24)
        with self.assertRaises(InvalidTransition):
            lifecycle.reuse_requisition(self.seeker, fresh.pk, timezone.now() + timedelta(hours=30))

        lifecycle.update_status(self.seeker, fresh.pk, BloodRequisition.CANCELLED)
        with self.assertRaises(InvalidTransition):
            lifecycle.reuse_requisition(self.seeker, fresh.pk, timezone.now() + timedelta(hours=30))


class ExpirySweepTests(LifeLinkTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.seeker = self.make_user('seeker')
        past = timezone.now() - timedelta(hours=3)
        self.stale_one = self.make_requisition(self.seeker, hours=1, now=past)
        self.stale_two = self.make_requisition(self.seeker, hours=2, now=past)
        self.fresh = self.make_requisition(self.seeker, hours=24)

    def test_sweep_expires_only_lapsed_requisitions(self):
        self.assertEqual(lifecycle.expire_stale_requisitions(), 2)

        statuses = dict(BloodRequisition.objects.values_list('pk', 'status'))
        self.assertEqual(statuses[self.stale_one.pk], BloodRequisition.EXPIRED)
        self.assertEqual(statuses[self.stale_two.pk], BloodRequisition.EXPIRED)
        self.assertEqual(statuses[self.fresh.pk], BloodRequisition.ACTIVE)

        logs = ActivityLog.objects.filter(action=audit.REQUISITION_EXPIRED)
        self.assertEqual(logs.count(), 2)
        self.assertTrue(all(log.actor is None for log in logs))

        # second run has nothing left to do
        self.assertEqual(lifecycle.expire_stale_requisitions(), 0)

    def test_sweep_leaves_terminal_requisitions_alone(self):
        lifecycle.update_status(self.seeker, self.stale_one.pk, BloodRequisition.FULFILLED)
        self.assertEqual(lifecycle.expire_stale_requisitions(), 1)
        self.stale_one.refresh_from_db()
        self.assertEqual(self.stale_one.status, BloodRequisition.FULFILLED)

    def test_periodic_task(self):
        self.assertEqual(expire_stale_requisitions_task(), 2)

    def test_management_command_dry_run(self):
        out = StringIO()
        call_command('expire_requisitions', '--dry-run', stdout=out)
        self.assertIn('2 requisition(s) would be expired', out.getvalue())
        self.assertEqual(BloodRequisition.objects.filter(status=BloodRequisition.EXPIRED).count(), 0)

        call_command('expire_requisitions', stdout=out)
        self.assertEqual(BloodRequisition.objects.filter(status=BloodRequisition.EXPIRED).count(), 2)


class RequisitionReadTests(LifeLinkTestMixin, TestCase):

    def test_own_requisitions_with_counts(self):
        seeker = self.make_user('seeker')
        other = self.make_user('other')
        mine = self.make_requisition(seeker)
        self.make_requisition(other)

        willing = self.make_donor('A+')
        unavailable = self.make_donor('O-')
        DonorResponse.objects.create(donor=willing, requisition=mine, response=DonorResponse.WILLING)
        DonorResponse.objects.create(donor=unavailable, requisition=mine, response=DonorResponse.NOT_AVAILABLE)

        listed = list(lifecycle.requisitions_for(seeker))
        self.assertEqual([r.pk for r in listed], [mine.pk])
        self.assertEqual(listed[0].response_count, 2)
        self.assertEqual(listed[0].willing_count, 1)
        self.assertEqual(listed[0].notification_count, 0)

        stats = lifecycle.response_statistics(mine)
        self.assertEqual(stats['total_responses'], 2)
        self.assertEqual(stats['willing'], 1)
        self.assertEqual(stats['not_available'], 1)
        self.assertEqual(stats['not_suitable'], 0)

        self.assertEqual(list(lifecycle.requisitions_for(seeker, BloodRequisition.FULFILLED)), [])
