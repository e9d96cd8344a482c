# donors/management/commands/import_donors.py
"""
Bulk-load donor blood profiles from a CSV or Excel sheet
Usage: python manage.py import_donors path/to/donors.xlsx [--default-password ...]

Expected columns: email, full_name, phone, blood_group, city, state,
last_donation_date, total_donations, show_phone (only email and
blood_group are required)
"""
from pathlib import Path

import pandas as pd
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import IntegrityError, transaction
from django.utils import timezone

from algorithms.blood_compatibility import normalize_blood_group
from donors.models import DonorProfile
from lifelink import cache

User = get_user_model()

TRUE_VALUES = {'1', 'true', 'yes', 'y'}


def read_sheet(path):
    suffix = Path(path).suffix.lower()
    if suffix == '.csv':
        return pd.read_csv(path, dtype=str)
    if suffix in ('.xlsx', '.xls'):
        return pd.read_excel(path, dtype=str)
    raise CommandError(f'Unsupported file type: {suffix} (use .csv, .xlsx or .xls)')


def cell(row, name, default=''):
    value = row.get(name)
    if value is None or pd.isna(value):
        return default
    return str(value).strip()


def parse_date(value):
    if not value:
        return None
    moment = pd.to_datetime(value).to_pydatetime()
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


class Command(BaseCommand):
    help = 'Import donor blood profiles from a CSV or Excel file'

    def add_arguments(self, parser):
        parser.add_argument('file', type=str, help='Path to the CSV or Excel file')
        parser.add_argument('--default-password', default=None,
                            help='Password for newly created accounts (unusable password if omitted)')

    def handle(self, *args, **options):
        path = options['file']
        if not Path(path).exists():
            raise CommandError(f'File not found: {path}')

        self.stdout.write(self.style.WARNING(f'Starting import from {path}...'))
        df = read_sheet(path)
        df.columns = [str(column).strip().lower() for column in df.columns]
        self.stdout.write(f'Found {len(df)} rows')

        missing = {'email', 'blood_group'} - set(df.columns)
        if missing:
            raise CommandError(f"Missing required columns: {', '.join(sorted(missing))}")

        df = df.dropna(subset=['email'])

        imported_count = 0
        updated_count = 0
        skipped_count = 0

        for index, row in df.iterrows():
            line = index + 2  # header is line 1
            try:
                email = cell(row, 'email').lower()
                blood_group = normalize_blood_group(cell(row, 'blood_group'))
                last_donation_date = parse_date(cell(row, 'last_donation_date'))
                total_donations = int(float(cell(row, 'total_donations', '0') or 0))
            except (ValueError, TypeError) as e:
                skipped_count += 1
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: {e}'))
                continue

            full_name = cell(row, 'full_name')
            first_name, _, last_name = full_name.partition(' ')

            try:
                with transaction.atomic():
                    user, user_created = User.objects.get_or_create(
                        email=email,
                        defaults={
                            'username': email.split('@')[0].replace(' ', '_')[:150],
                            'first_name': first_name[:150],
                            'last_name': last_name[:150],
                            'phone': cell(row, 'phone')[:15],
                            'is_active': True,
                        }
                    )
                    if user_created:
                        if options['default_password']:
                            user.set_password(options['default_password'])
                        else:
                            user.set_unusable_password()
                        user.save(update_fields=['password'])

                    donor, created = DonorProfile.objects.update_or_create(
                        user=user,
                        defaults={
                            'blood_group': blood_group,
                            'is_blood_donor': True,
                            'city': cell(row, 'city')[:100],
                            'state': cell(row, 'state')[:100],
                            'show_phone': cell(row, 'show_phone').lower() in TRUE_VALUES,
                            'last_donation_date': last_donation_date,
                            'total_donations': total_donations,
                        }
                    )
            except IntegrityError as e:
                skipped_count += 1
                self.stdout.write(self.style.ERROR(f'✗ Error at row {line}: {e}'))
                continue

            if created:
                imported_count += 1
                self.stdout.write(f'✓ Created: {user.username} ({donor.blood_group}) - {user.email}')
            else:
                updated_count += 1
                self.stdout.write(f'↻ Updated: {user.username} ({donor.blood_group})')

        if imported_count or updated_count:
            cache.invalidate('donor import')

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✅ Import complete!\n'
                f'Created: {imported_count}\n'
                f'Updated: {updated_count}\n'
                f'Skipped: {skipped_count}\n'
                f'Total: {imported_count + updated_count}'
            )
        )
