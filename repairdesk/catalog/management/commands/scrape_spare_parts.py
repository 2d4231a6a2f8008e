"""
Management command to import spare parts from the Quinnspares supplier site
Usage: python manage.py scrape_spare_parts [--manufacturer Candy --manufacturer Beko] [--max-products 10]
"""
from django.core.management.base import BaseCommand

from repairdesk.catalog.scraping import QuinnsparesScraper, DEFAULT_MANUFACTURERS
from repairdesk.core.utils import create_audit_log


class Command(BaseCommand):
    help = 'Scrape spare parts for the given manufacturers and upsert them into the catalog'

    def add_arguments(self, parser):
        parser.add_argument(
            '--manufacturer',
            action='append',
            dest='manufacturers',
            help=f"Manufacturer to scrape; repeatable (default: {', '.join(DEFAULT_MANUFACTURERS)})",
        )
        parser.add_argument(
            '--max-products',
            type=int,
            default=10,
            help='Maximum number of products per manufacturer (default: 10)',
        )

    def handle(self, *args, **options):
        manufacturers = options.get('manufacturers') or DEFAULT_MANUFACTURERS
        self.stdout.write(f"Scraping {', '.join(manufacturers)} (max {options['max_products']} products each)...")

        result = QuinnsparesScraper().run(manufacturers=manufacturers, max_products=options['max_products'])

        create_audit_log(action='scrape', model_name='SparePartsCatalog', object_id='quinnspares',
                         object_name='Quinnspares scraping (command)',
                         changes={'new_parts': result.new_parts, 'updated_parts': result.updated_parts,
                                  'errors': len(result.errors)})

        for error in result.errors:
            self.stdout.write(self.style.WARNING(f"  ✗ {error}"))

        summary = (f"{result.new_parts} new, {result.updated_parts} updated, "
                   f"{len(result.errors)} errors in {result.duration:.1f}s")
        if result.success:
            self.stdout.write(self.style.SUCCESS(f"✓ Scraping finished: {summary}"))
        else:
            self.stdout.write(self.style.ERROR(f"✗ Scraping failed: {summary}"))
