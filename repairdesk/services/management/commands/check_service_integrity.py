"""
Management command to check services for broken references
Usage: python manage.py check_service_integrity [--delete] [--confirm]
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from repairdesk.services.models import Service
from repairdesk.services.validators import check_service_integrity, find_orphaned_services


class Command(BaseCommand):
    help = 'Check services for missing clients/appliances and other inconsistencies'

    def add_arguments(self, parser):
        parser.add_argument(
            '--delete',
            action='store_true',
            help='Delete services whose client or appliance no longer exists',
        )
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Skip confirmation prompt when deleting',
        )

    def handle(self, *args, **options):
        report = check_service_integrity()

        self.stdout.write(f"Services checked: {report['total_services']}")
        for check, count in report['counts'].items():
            line = f"  - {check}: {count}"
            self.stdout.write(self.style.WARNING(line) if count else line)

        if report['is_consistent']:
            self.stdout.write(self.style.SUCCESS('✓ All services are consistent'))
            return

        self.stdout.write('')
        for issue in report['issues']:
            self.stdout.write(self.style.WARNING(f"  ✗ {issue}"))

        if not options['delete']:
            return

        orphaned = find_orphaned_services()
        orphan_ids = sorted(set(orphaned['missing_client']) | set(orphaned['missing_appliance']))
        if not orphan_ids:
            self.stdout.write(self.style.SUCCESS('No orphaned services to delete.'))
            return

        if not options['confirm']:
            confirm = input(f'Delete {len(orphan_ids)} orphaned services? Type "YES" to confirm: ')
            if confirm != 'YES':
                self.stdout.write(self.style.ERROR('Operation cancelled.'))
                return

        with transaction.atomic():
            deleted, _ = Service.objects.filter(id__in=orphan_ids).delete()
        self.stdout.write(self.style.SUCCESS(f'✓ Deleted {len(orphan_ids)} orphaned services ({deleted} rows)'))
