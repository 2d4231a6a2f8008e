"""
Management command to restore the business tables from a JSON backup
Usage: python manage.py restore_database <file> [--confirm]

WARNING: every table in the backup is emptied and refilled.
"""
from django.core.management.base import BaseCommand, CommandError

from repairdesk.core.backup import BackupError, load_backup, restore_backup
from repairdesk.core.utils import create_audit_log


class Command(BaseCommand):
    help = 'Replace the business tables with the contents of a backup file (all-or-nothing)'

    def add_arguments(self, parser):
        parser.add_argument('file', help='Path to a backup-<timestamp>.json file')
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Skip the confirmation prompt',
        )

    def handle(self, *args, **options):
        try:
            data = load_backup(options['file'])
        except BackupError as e:
            raise CommandError(str(e))

        self.stdout.write(f"Backup from {data.get('created_at', '?')}:")
        for label, rows in data['tables'].items():
            self.stdout.write(f"  {label}: {len(rows)}")

        if not options['confirm']:
            self.stdout.write(self.style.WARNING(
                '\n⚠️  WARNING: This will DELETE the current contents of the tables above!'
            ))
            response = input('Type "YES" to confirm: ')
            if response != 'YES':
                self.stdout.write(self.style.ERROR('Cancelled.'))
                return

        try:
            counts = restore_backup(data)
        except Exception as e:
            # the transaction has been rolled back at this point
            self.stdout.write(self.style.ERROR(f"✗ Restore failed, no data was changed: {str(e)}"))
            raise CommandError(f"Restore failed: {str(e)}")

        create_audit_log(action='restore', model_name='Database', object_id=str(options['file'])[:100],
                         object_name=str(options['file']), changes={'counts': counts})

        self.stdout.write(self.style.SUCCESS(f"✓ Restored {sum(counts.values())} rows in {len(counts)} tables"))
