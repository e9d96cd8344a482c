from django.core.management.base import BaseCommand

from requisitions.lifecycle import expire_stale_requisitions
from requisitions.models import BloodRequisition


class Command(BaseCommand):
    help = 'Mark ACTIVE blood requisitions whose active window has closed as EXPIRED'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Only report what would be expired')

    def handle(self, *args, **options):
        if options['dry_run']:
            stale = BloodRequisition.objects.stale()
            for requisition in stale:
                self.stdout.write(f"  would expire #{requisition.pk} {requisition} (expired {requisition.expires_at:%Y-%m-%d %H:%M})")
            self.stdout.write(self.style.WARNING(f"{stale.count()} requisition(s) would be expired"))
            return

        expired = expire_stale_requisitions()
        self.stdout.write(self.style.SUCCESS(f"✅ Expired {expired} requisition(s)"))
