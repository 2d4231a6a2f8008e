"""
Fan-out of service events to every notification channel.

Dispatch is synchronous and best-effort: each channel call is isolated, a
failure is logged and recorded in the DispatchReport, and nothing here ever
raises into the caller.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model

from repairdesk.core.utils import get_setting
from .email_service import EmailService
from .notification_service import NotificationService
from .push_service import PushService
from .sms_client import SMSMobileClient
from .sms_templates import generate_sms

logger = logging.getLogger(__name__)

User = get_user_model()


@dataclass
class DispatchReport:
    event: str
    in_app: int = 0
    sms: List[Dict[str, Any]] = field(default_factory=list)
    push: List[Dict[str, Any]] = field(default_factory=list)
    email: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def email_sent(self) -> bool:
        return any(item['success'] for item in self.email)

    @property
    def email_error(self) -> Optional[str]:
        for item in self.email:
            if not item['success'] and item.get('error'):
                return item['error']
        return None

    @property
    def sms_sent(self) -> int:
        return sum(1 for item in self.sms if item['success'])

    def merge(self, other):
        if other is None:
            return self
        self.event = f'{self.event}+{other.event}'
        self.in_app += other.in_app
        self.sms.extend(other.sms)
        self.push.extend(other.push)
        self.email.extend(other.email)
        self.errors.extend(other.errors)
        return self

    def as_dict(self):
        return {
            'event': self.event,
            'in_app': self.in_app,
            'sms_sent': self.sms_sent,
            'sms': self.sms,
            'push': self.push,
            'email': self.email,
            'email_sent': self.email_sent,
            'errors': self.errors,
        }


class Dispatch:
    """One fan-out run; collects results in `report`"""

    def __init__(self, event):
        self.report = DispatchReport(event=event)
        self._sms_client = None

    @property
    def sms_client(self):
        if self._sms_client is None:
            self._sms_client = SMSMobileClient()
        return self._sms_client

    def safely(self, channel, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.exception(f"{self.report.event}: {channel} channel failed")
            self.report.errors.append(f'{channel}: {str(e)}')
            return None

    def in_app(self, func, *args, **kwargs):
        created = self.safely('in_app', func, *args, **kwargs)
        if created is None:
            return
        self.report.in_app += len(created) if isinstance(created, list) else 1

    def sms(self, phone, template_type, data, recipient):
        entry = {'recipient': recipient, 'template': template_type, 'success': False}
        if not phone:
            entry['error'] = 'Nema broja telefona.'
            self.report.sms.append(entry)
            return
        if not self.sms_client.is_configured:
            entry['error'] = 'SMS servis nije konfigurisan.'
            self.report.sms.append(entry)
            return
        message = self.safely('sms', generate_sms, template_type, data)
        if message is None:
            return
        result = self.safely('sms', self.sms_client.send, phone, message) or {}
        entry['success'] = bool(result.get('success'))
        if result.get('error'):
            entry['error'] = result['error']
        self.report.sms.append(entry)

    def push(self, user, title, body, data=None):
        sent = self.safely('push', PushService.send_notification_to_user, user, title, body, data=data)
        self.report.push.append({'recipient': user.username, 'success': bool(sent)})

    def email(self, recipient, func, *args):
        result = self.safely('email', func, *args) or {'success': False, 'error': 'Greška pri slanju email-a.'}
        self.report.email.append({'recipient': recipient, 'success': result['success'], 'error': result.get('error')})
        return result


def status_label(value):
    from repairdesk.services.models import STATUS_DESCRIPTIONS
    return STATUS_DESCRIPTIONS.get(value, value)


def admins_with_phone():
    return User.objects.filter(role=User.ROLE_ADMIN, is_active=True).exclude(phone__isnull=True).exclude(phone='')


def is_complus_brand(manufacturer_name):
    brands = {b.lower() for b in getattr(settings, 'COMPLUS_BRANDS', [])}
    return bool(manufacturer_name) and manufacturer_name.lower() in brands


def service_sms_data(service, **extra):
    """Template values describing a service"""
    appliance = service.appliance
    technician = service.technician
    partner = service.business_partner
    data = {
        'service_id': service.id,
        'client_name': service.client.full_name,
        'client_phone': service.client.phone,
        'device_type': appliance.category.name if appliance else 'uređaj',
        'device_model': appliance.model if appliance else '',
        'manufacturer_name': appliance.manufacturer.name if appliance else '',
        'technician_name': technician.display_name if technician else 'Nije dodeljen',
        'technician_phone': technician.phone if technician else '',
        'problem_description': service.description,
        'business_partner_name': service.partner_company_name or (partner.display_name if partner else ''),
        'status_description': service.status_description,
        'technician_notes': service.technician_notes or '',
        'cost': str(service.cost) if service.cost is not None else '',
    }
    data.update(extra)
    return data


def notify_service_created(service, created_by=None):
    run = Dispatch('service_created')
    data = service_sms_data(service, created_by=created_by.display_name if created_by else '')

    if service.business_partner_id:
        run.in_app(NotificationService.notify_service_created_by_partner, service, service.business_partner)
        run.sms(service.business_partner.phone, 'protocol_service_created_to_partner', data,
                service.business_partner.username)
    elif created_by is not None and getattr(created_by, 'role', None) == User.ROLE_CUSTOMER:
        for admin in NotificationService.admins():
            run.in_app(NotificationService.create_notification, user=admin, title='Novi zahtev za servis',
                       message=f"Klijent {service.client.full_name} je prijavio servis #{service.id}.",
                       type='service_created', related_service=service, related_user=created_by, priority='high')

    run.sms(service.client.phone, 'protocol_service_created_to_client', data, service.client.full_name)
    for admin in admins_with_phone():
        if created_by is not None and admin.pk == created_by.pk:
            continue
        run.sms(admin.phone, 'admin_new_service', data, admin.username)

    logger.info(f"Service #{service.id} created: {run.report.in_app} in-app, {run.report.sms_sent} SMS")
    return run.report


def notify_technician_assigned(service, assigned_by=None):
    run = Dispatch('technician_assigned')
    technician = service.technician
    if technician is None:
        return run.report
    data = service_sms_data(service)

    run.in_app(NotificationService.notify_service_assigned, service, assigned_by=assigned_by)
    run.push(technician, 'Novi servis dodeljen',
             f"Dodeljen vam je novi servis: {data['client_name']} - {data['device_type']}",
             data={'type': 'service_assigned', 'serviceId': service.id, 'url': '/tech'})
    run.email(technician.username, EmailService.send_new_service_assignment, technician, service)

    run.sms(technician.phone, 'technician_new_service', data, technician.username)
    run.sms(service.client.phone, 'protocol_service_assigned_to_client', data, service.client.full_name)
    for admin in admins_with_phone():
        if assigned_by is not None and admin.pk == assigned_by.pk:
            continue
        run.sms(admin.phone, 'protocol_service_assigned_to_admin', data, admin.username)
    if service.business_partner_id:
        run.sms(service.business_partner.phone, 'business_partner_assigned', data,
                service.business_partner.username)

    logger.info(f"Service #{service.id} assigned to {technician.username}: {run.report.sms_sent} SMS")
    return run.report


def notify_status_changed(service, old_status, new_status, changed_by=None):
    """
    Status change fan-out: in-app, client email, and SMS to the client,
    admins, the business partner and the Com Plus supplier contact.
    """
    run = Dispatch('status_changed')
    data = service_sms_data(
        service,
        old_status=status_label(old_status),
        new_status=status_label(new_status),
    )

    run.in_app(NotificationService.notify_service_status_changed, service, old_status, new_status,
               changed_by=changed_by)

    result = run.email(service.client.full_name, EmailService.send_service_status_update,
                       service.client, service.id, status_label(new_status),
                       service.technician_notes or service.description, data['technician_name'])
    if result['success']:
        run.safely('email', EmailService.notify_admins, 'Promena statusa', service.client.email,
                   service.id, f"{status_label(old_status)} -> {status_label(new_status)}")

    run.sms(service.client.phone, 'service_status_changed', data, service.client.full_name)
    for admin in admins_with_phone():
        run.sms(admin.phone, 'admin_status_change', data, admin.username)
    if service.business_partner_id:
        run.sms(service.business_partner.phone, 'business_partner_status_changed', data,
                service.business_partner.username)
    if is_complus_brand(data['manufacturer_name']):
        run.sms(get_setting('complus_supplier_phone', ''), 'supplier_status_changed', data,
                get_setting('complus_supplier_name', 'Com Plus'))

    if new_status == 'completed':
        for admin in NotificationService.admins():
            if changed_by is not None and admin.pk == changed_by.pk:
                continue
            run.push(admin, 'Servis završen', f"Tehničar je završio servis za {data['client_name']}",
                     data={'type': 'service_completed', 'serviceId': service.id})

    logger.info(f"Service #{service.id} {old_status} -> {new_status}: "
                f"{run.report.in_app} in-app, {run.report.sms_sent} SMS, email_sent={run.report.email_sent}")
    return run.report


def notify_client_unavailable(service, reason, reported_by=None):
    run = Dispatch('client_unavailable')
    data = service_sms_data(service, unavailable_reason=reason)

    for admin in NotificationService.admins():
        run.in_app(NotificationService.create_notification, user=admin, title='Klijent nedostupan',
                   message=f"Servis #{service.id}: klijent {service.client.full_name} nije dostupan. Razlog: {reason}",
                   type='service_status_changed', related_service=service, related_user=reported_by,
                   priority='high')

    run.sms(service.client.phone, 'protocol_client_unavailable_to_client', data, service.client.full_name)
    for admin in admins_with_phone():
        run.sms(admin.phone, 'protocol_client_unavailable_to_admin', data, admin.username)
    if service.business_partner_id:
        run.sms(service.business_partner.phone, 'protocol_client_unavailable_to_partner', data,
                service.business_partner.username)

    logger.info(f"Service #{service.id} client unavailable: {run.report.sms_sent} SMS")
    return run.report


def notify_repair_refused(service, reason, refused_by=None):
    run = Dispatch('repair_refused')
    data = service_sms_data(service, refusal_reason=reason)

    recipients = list(NotificationService.admins())
    if service.business_partner_id:
        recipients.append(service.business_partner)
    for user in recipients:
        run.in_app(NotificationService.create_notification, user=user, title='Klijent odbio popravku',
                   message=f"Servis #{service.id} za {service.client.full_name} je zatvoren. Razlog: {reason}",
                   type='service_status_changed', related_service=service, related_user=refused_by)

    run.sms(service.client.phone, 'protocol_repair_refused_to_client', data, service.client.full_name)
    for admin in admins_with_phone():
        run.sms(admin.phone, 'protocol_repair_refused_to_admin', data, admin.username)
    if service.business_partner_id:
        run.sms(service.business_partner.phone, 'protocol_repair_refused_to_partner', data,
                service.business_partner.username)

    logger.info(f"Service #{service.id} repair refused: {run.report.sms_sent} SMS")
    return run.report


def part_order_sms_data(order):
    service = order.service
    estimated = order.estimated_delivery.strftime('%d.%m.%Y') if order.estimated_delivery else ''
    return service_sms_data(
        service,
        part_name=order.part_name,
        quantity=order.quantity,
        urgency=order.urgency,
        estimated_date=estimated,
        ordered_by=order.ordered_by.display_name if order.ordered_by else '',
    )


def notify_parts_ordered(order):
    run = Dispatch('parts_ordered')
    service = order.service
    data = part_order_sms_data(order)

    run.in_app(NotificationService.notify_parts_ordered, order)
    run.sms(service.client.phone, 'client_spare_part_ordered', data, service.client.full_name)
    for admin in admins_with_phone():
        run.sms(admin.phone, 'admin_parts_ordered', data, admin.username)
    if service.business_partner_id:
        run.sms(service.business_partner.phone, 'business_partner_parts_ordered', data,
                service.business_partner.username)
    if is_complus_brand(data['manufacturer_name']):
        run.sms(get_setting('complus_supplier_phone', ''), 'supplier_parts_ordered', data,
                get_setting('complus_supplier_name', 'Com Plus'))

    logger.info(f"Part order #{order.id} for service #{service.id}: {run.report.sms_sent} SMS")
    return run.report


def notify_parts_arrived(order):
    run = Dispatch('parts_arrived')
    service = order.service
    data = part_order_sms_data(order)

    run.in_app(NotificationService.notify_parts_arrived, order)
    run.sms(service.client.phone, 'client_spare_part_arrived', data, service.client.full_name)
    for admin in admins_with_phone():
        run.sms(admin.phone, 'admin_parts_arrived', data, admin.username)
    if service.technician_id:
        run.sms(service.technician.phone, 'technician_part_arrived', data, service.technician.username)
        run.push(service.technician, 'Stigao rezervni deo',
                 f"Deo {order.part_name} za servis #{service.id} je stigao.",
                 data={'type': 'parts_arrived', 'serviceId': service.id})

    logger.info(f"Part order #{order.id} arrived for service #{service.id}: {run.report.sms_sent} SMS")
    return run.report
