"""Transactional email through Django's mail framework"""
import logging
import smtplib

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone
from django.utils.html import format_html, format_html_join

logger = logging.getLogger(__name__)

COMPANY_NAME = 'Frigo Sistem Todosijević'
CONTACT_PHONE = '+382 69 021 689'


def render_email(heading, greeting, intro, details, closing):
    """Return (text, html) bodies for a message with a block of labeled details"""
    text_lines = [heading, '', greeting, '', intro, '']
    text_lines += [f'{label}: {value}' for label, value in details]
    text_lines += ['', closing, '', f'Srdačan pozdrav,\nTim {COMPANY_NAME}']

    rows = format_html_join('', '<p><strong>{}:</strong> {}</p>', details)
    html = format_html(
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #0066cc;">{}</h2><p>{}</p><p>{}</p>'
        '<div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 15px 0;">{}</div>'
        '<p>{}</p><p>Srdačan pozdrav,<br>Tim {}</p>'
        '<hr style="border: 1px solid #ddd; margin: 20px 0;">'
        '<p style="font-size: 12px; color: #666;">{}<br>Kontakt telefon: {}<br>Email: {}</p>'
        '</div>',
        heading, greeting, intro, rows, closing, COMPANY_NAME,
        COMPANY_NAME, CONTACT_PHONE, settings.DEFAULT_FROM_EMAIL,
    )
    return '\n'.join(text_lines), html


class EmailService:
    """Each method returns {'success': bool, 'error': str | None}"""

    @staticmethod
    def send(to, subject, text_body, html_body=None):
        recipients = [to] if isinstance(to, str) else list(to)
        recipients = [r for r in recipients if r]
        if not recipients:
            return {'success': False, 'error': 'Email adresa nije dostupna.'}

        message = EmailMultiAlternatives(
            subject=subject,
            body=text_body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=recipients,
        )
        if html_body:
            message.attach_alternative(html_body, 'text/html')
        try:
            message.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email '{subject}' to {', '.join(recipients)} failed: {str(e)}")
            return {'success': False, 'error': str(e)}
        logger.info(f"Email '{subject}' sent to {', '.join(recipients)}")
        return {'success': True, 'error': None}

    @classmethod
    def send_service_status_update(cls, client, service_id, status_label, description, technician_name):
        """Tell the client that their service changed status"""
        if not client.email:
            logger.warning(f"Status email for service #{service_id} skipped: {client.full_name} has no email")
            return {'success': False, 'error': 'Klijent nema email adresu.'}
        text, html = render_email(
            'Ažuriranje statusa servisa',
            f'Poštovani/a {client.full_name},',
            'Obaveštavamo Vas da je status Vašeg servisa ažuriran:',
            [
                ('Broj servisa', f'#{service_id}'),
                ('Novi status', status_label),
                ('Opis', description or '-'),
                ('Serviser', technician_name or '-'),
            ],
            f'Za sva dodatna pitanja kontaktirajte nas na {CONTACT_PHONE} ili odgovorom na ovaj email.',
        )
        return cls.send(client.email, f'Ažuriranje statusa servisa #{service_id}', text, html)

    @classmethod
    def send_new_service_assignment(cls, technician, service):
        if not technician.email:
            return {'success': False, 'error': 'Serviser nema email adresu.'}
        client = service.client
        scheduled = timezone.localtime(service.scheduled_date).strftime('%d.%m.%Y %H:%M') \
            if service.scheduled_date else 'Nije zakazano'
        text, html = render_email(
            'Novi servis dodeljen',
            f'Poštovani/a {technician.display_name},',
            'Dodeljen Vam je novi servis:',
            [
                ('Broj servisa', f'#{service.id}'),
                ('Klijent', client.full_name),
                ('Datum servisa', scheduled),
                ('Adresa', ', '.join(filter(None, [client.address, client.city])) or '-'),
                ('Opis problema', service.description),
            ],
            'Molimo Vas da potvrdite prijem ovog zadatka i planirate posetu u navedenom terminu.',
        )
        return cls.send(technician.email, f'Novi servis dodeljen #{service.id}', text, html)

    @classmethod
    def notify_admins(cls, email_type, recipient, service_id, details):
        """Copy to the configured admin mailboxes that an email went out"""
        admin_emails = getattr(settings, 'ADMIN_NOTIFICATION_EMAILS', [])
        if not admin_emails:
            logger.debug("No admin notification emails configured")
            return {'success': False, 'error': 'Nema administratorskih email adresa.'}
        text, html = render_email(
            'Administratorsko obaveštenje',
            'Poslato je sledeće email obaveštenje:',
            '',
            [
                ('Tip obaveštenja', email_type),
                ('Broj servisa', f'#{service_id}'),
                ('Poslato na', recipient),
                ('Datum i vreme', timezone.localtime().strftime('%d.%m.%Y %H:%M')),
                ('Detalji', details),
            ],
            'Ovo je automatsko obaveštenje sistema.',
        )
        subject = f'Administratorsko obaveštenje: {email_type} za servis #{service_id}'
        return cls.send(admin_emails, subject, text, html)
