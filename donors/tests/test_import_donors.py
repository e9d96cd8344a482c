import os
import tempfile
from io import StringIO

import pandas as pd
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone

from donors.models import DonorProfile
from donors.profile import blood_group_stats
from lifelink.testing import LifeLinkTestMixin


class ImportDonorsCommandTests(LifeLinkTestMixin, TestCase):

    def _write_csv(self, rows):
        handle, path = tempfile.mkstemp(suffix='.csv')
        os.close(handle)
        self.addCleanup(os.remove, path)
        pd.DataFrame(rows).to_csv(path, index=False)
        return path

    def test_creates_and_updates_profiles(self):
        existing = self.make_donor('A+', city='Old Town')
        path = self._write_csv([
            {'email': 'sita@example.com', 'full_name': 'Sita Sharma', 'phone': '9841000000',
             'blood_group': 'o-', 'city': 'Pokhara', 'state': 'Gandaki',
             'last_donation_date': '2024-01-15', 'total_donations': '3', 'show_phone': 'yes'},
            {'email': existing.user.email, 'full_name': '', 'phone': '',
             'blood_group': 'B+', 'city': 'Kathmandu', 'state': 'Bagmati',
             'last_donation_date': '', 'total_donations': '', 'show_phone': 'no'},
        ])
        self.assertEqual(blood_group_stats()['O-'], 0)

        out = StringIO()
        call_command('import_donors', path, '--default-password', 'Welcome123!', stdout=out)

        sita = DonorProfile.objects.select_related('user').get(user__email='sita@example.com')
        self.assertEqual(sita.blood_group, 'O-')
        self.assertTrue(sita.is_blood_donor)
        self.assertTrue(sita.show_phone)
        self.assertEqual(sita.total_donations, 3)
        self.assertEqual(timezone.localtime(sita.last_donation_date).date().isoformat(), '2024-01-15')
        self.assertEqual(sita.user.first_name, 'Sita')
        self.assertTrue(sita.user.check_password('Welcome123!'))

        existing.refresh_from_db()
        self.assertEqual(existing.blood_group, 'B+')
        self.assertEqual(existing.city, 'Kathmandu')

        self.assertIn('Created: 1', out.getvalue())
        self.assertIn('Updated: 1', out.getvalue())
        # cached stats were refreshed by the import
        self.assertEqual(blood_group_stats()['O-'], 1)

    def test_bad_rows_are_skipped(self):
        path = self._write_csv([
            {'email': 'good@example.com', 'blood_group': 'AB-'},
            {'email': 'bad@example.com', 'blood_group': 'XY'},
        ])
        out = StringIO()
        call_command('import_donors', path, stdout=out)

        self.assertTrue(DonorProfile.objects.filter(user__email='good@example.com').exists())
        self.assertFalse(DonorProfile.objects.filter(user__email='bad@example.com').exists())
        self.assertIn('Skipped: 1', out.getvalue())

        good = DonorProfile.objects.get(user__email='good@example.com')
        self.assertFalse(good.user.has_usable_password())

    def test_missing_columns(self):
        path = self._write_csv([{'email': 'someone@example.com', 'city': 'Pokhara'}])
        with self.assertRaises(CommandError):
            call_command('import_donors', path, stdout=StringIO())

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('import_donors', '/nonexistent/donors.csv', stdout=StringIO())
