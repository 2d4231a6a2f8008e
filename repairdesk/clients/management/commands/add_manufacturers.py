"""
Management command to add known appliance manufacturers to the database
"""
from django.conf import settings
from django.core.management.base import BaseCommand
from repairdesk.clients.models import Manufacturer


class Command(BaseCommand):
    help = "Adds known appliance manufacturers to the database"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear all unused manufacturers before adding new ones',
        )

    def handle(self, *args, **options):
        manufacturers = sorted(set([
            'Beko', 'Bosch', 'Siemens', 'Gorenje', 'Samsung', 'LG', 'Whirlpool', 'Miele',
            'Vox', 'Indesit', 'Ariston', 'Sharp', 'Hisense', 'Daikin', 'Mitsubishi', 'Gree',
        ] + list(settings.COMPLUS_BRANDS) + list(settings.BEKO_BRANDS)))

        if options['clear']:
            self.stdout.write(self.style.WARNING("Clearing unused manufacturers..."))
            deleted, _ = Manufacturer.objects.filter(appliances__isnull=True).delete()
            self.stdout.write(self.style.SUCCESS(f"{deleted} manufacturers cleared."))

        created_count = 0
        for name in manufacturers:
            _, created = Manufacturer.objects.get_or_create(name=name)
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  ✓ Created: {name}"))

        self.stdout.write(self.style.SUCCESS(
            f"\nCompleted: {created_count} manufacturers created, {Manufacturer.objects.count()} total"
        ))
