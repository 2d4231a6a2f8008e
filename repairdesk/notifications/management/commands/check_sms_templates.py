"""
Management command to render every SMS template with sample data and report lengths
Usage: python manage.py check_sms_templates [--show-messages] [--only-long]
"""
from django.core.management.base import BaseCommand

from repairdesk.notifications.sms_templates import check_template_lengths, SMS_MAX_LENGTH

SAMPLE_DATA = {
    'service_id': 1234,
    'client_name': 'Marko Petrović',
    'client_phone': '067123456',
    'technician_name': 'Gruica Todosijević',
    'technician_phone': '067654321',
    'device_type': 'Veš mašina',
    'device_model': 'EWF1408WDL',
    'manufacturer_name': 'Electrolux',
    'problem_description': 'Ne centrifugira, javlja grešku E20',
    'part_name': 'Pumpa za vodu',
    'quantity': 1,
    'estimated_date': '5-7 dana',
    'cost': '85.00',
    'business_partner_name': 'Tehnoplus d.o.o.',
    'status_description': 'U toku',
    'technician_notes': 'Zamenjen filter',
    'created_by': 'Jelena Todosijević',
    'old_status': 'Dodeljen',
    'new_status': 'Završen',
    'ordered_by': 'Jelena Todosijević',
    'urgency': 'high',
    'unavailable_reason': 'Nije kod kuće',
    'total_services': 12,
    'total_clients': 10,
    'total_parts': 4,
}


class Command(BaseCommand):
    help = 'Render all SMS templates with sample data and report which ones exceed one SMS segment'

    def add_arguments(self, parser):
        parser.add_argument(
            '--show-messages',
            action='store_true',
            help='Print the final message text for each template',
        )
        parser.add_argument(
            '--only-long',
            action='store_true',
            help='Show only templates that had to be shortened',
        )

    def handle(self, *args, **options):
        results = check_template_lengths(SAMPLE_DATA)
        shortened = [r for r in results if r['shortened']]

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS(f"SMS TEMPLATE LENGTHS (limit {SMS_MAX_LENGTH})"))
        self.stdout.write("=" * 80)

        for result in results:
            if options['only_long'] and not result['shortened']:
                continue
            line = f"{result['template']:<45} raw {result['raw_length']:>4}  final {result['final_length']:>4}"
            self.stdout.write(self.style.WARNING(line) if result['shortened'] else line)
            if options['show_messages']:
                self.stdout.write(f"    {result['message']}")

        self.stdout.write("")
        self.stdout.write(f"Templates: {len(results)}, shortened: {len(shortened)}")
        if any(r['final_length'] > SMS_MAX_LENGTH for r in results):
            self.stdout.write(self.style.ERROR('✗ Some messages exceed the SMS limit'))
        else:
            self.stdout.write(self.style.SUCCESS('✓ All messages fit in one SMS'))
