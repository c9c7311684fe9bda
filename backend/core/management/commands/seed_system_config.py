"""
Management command to insert missing default SystemConfig keys
Usage: python manage.py seed_system_config
"""
from django.core.management.base import BaseCommand

from backend.core.system_config import seed_default_configs


class Command(BaseCommand):
    help = 'Insert default configuration keys that are missing from the database'

    def handle(self, *args, **options):
        created = seed_default_configs()
        self.stdout.write(self.style.SUCCESS(f'{created} configuration keys created.'))
