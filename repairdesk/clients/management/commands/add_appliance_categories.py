"""
Management command to add predefined appliance categories to the database
"""
from django.core.management.base import BaseCommand
from repairdesk.clients.models import ApplianceCategory


class Command(BaseCommand):
    help = "Adds predefined appliance categories to the database"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear all unused categories before adding new ones',
        )

    def handle(self, *args, **options):
        categories = [
            ('Frižider', 'fridge'),
            ('Zamrzivač', 'snowflake'),
            ('Veš mašina', 'washing-machine'),
            ('Mašina za sušenje veša', 'wind'),
            ('Mašina za sudove', 'utensils'),
            ('Šporet', 'flame'),
            ('Rerna', 'oven'),
            ('Aspirator', 'fan'),
            ('Mikrotalasna', 'microwave'),
            ('Klima uređaj', 'air-vent'),
            ('Bojler', 'droplets'),
            ('Rashladna vitrina', 'refrigerator'),
        ]

        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(self.style.SUCCESS("ADDING APPLIANCE CATEGORIES"))
        self.stdout.write(self.style.SUCCESS("=" * 60))

        if options['clear']:
            self.stdout.write(self.style.WARNING("Clearing unused categories..."))
            deleted, _ = ApplianceCategory.objects.filter(appliances__isnull=True).delete()
            self.stdout.write(self.style.SUCCESS(f"{deleted} categories cleared."))

        created_count = 0
        skipped_count = 0

        for name, icon in categories:
            category, created = ApplianceCategory.objects.get_or_create(name=name, defaults={'icon': icon})
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  ✓ Created: {name}"))
            else:
                skipped_count += 1
                self.stdout.write(self.style.WARNING(f"  ⊘ Skipped (already exists): {name}"))

        self.stdout.write(f"Categories Created: {created_count}")
        self.stdout.write(f"Categories Skipped (already exist): {skipped_count}")
        self.stdout.write(f"Total Categories in Database: {ApplianceCategory.objects.count()}")
