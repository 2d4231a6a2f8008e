"""
Management command to write a full JSON backup of the business tables
Usage: python manage.py backup_database [--output-dir ./backups] [--include-notifications]
"""
from django.conf import settings
from django.core.management.base import BaseCommand

from repairdesk.core.backup import write_backup
from repairdesk.core.utils import create_audit_log


class Command(BaseCommand):
    help = 'Write every business table to backup-<timestamp>.json'

    def add_arguments(self, parser):
        parser.add_argument(
            '--output-dir',
            default=None,
            help='Directory for the backup file (default: BACKUP_DIR setting)',
        )
        parser.add_argument(
            '--include-notifications',
            action='store_true',
            help='Also back up in-app notifications and push subscriptions',
        )

    def handle(self, *args, **options):
        output_dir = options['output_dir'] or settings.BACKUP_DIR
        path, counts = write_backup(output_dir, include_notifications=options['include_notifications'])

        for label, count in counts.items():
            self.stdout.write(f"  {label}: {count}")

        create_audit_log(action='backup', model_name='Database', object_id=path.name,
                         object_name=str(path), changes={'counts': counts})

        self.stdout.write(self.style.SUCCESS(f"✓ Backup written to {path} ({sum(counts.values())} rows)"))
