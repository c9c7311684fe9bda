"""
Management command to delete audit log entries older than the retention period
Usage: python manage.py purge_audit_logs [--days N] [--dry-run]
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from backend.core.models import AuditLog
from backend.core.system_config import get_int_setting


class Command(BaseCommand):
    help = 'Delete audit log entries older than the AuditRetention setting (days)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            help='Override the AuditRetention setting',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report how many entries would be deleted',
        )

    def handle(self, *args, **options):
        days = options['days'] if options['days'] is not None else get_int_setting('AuditRetention', 90)
        if days < 1:
            raise CommandError('Retention must be at least 1 day.')

        cutoff = timezone.now() - timedelta(days=days)
        expired = AuditLog.objects.filter(timestamp__lt=cutoff)
        count = expired.count()

        if options['dry_run']:
            self.stdout.write(f'{count} audit log entries older than {days} days would be deleted.')
            return

        expired.delete()
        self.stdout.write(self.style.SUCCESS(
            f'Deleted {count} audit log entries older than {days} days.'
        ))
