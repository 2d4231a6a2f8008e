"""In-app notifications stored in the notifications table"""
import logging

from django.contrib.auth import get_user_model
from django.utils import timezone

from .models import Notification

logger = logging.getLogger(__name__)

User = get_user_model()


class NotificationService:

    @staticmethod
    def create_notification(user, title, message, type='general', related_service=None,
                            related_user=None, priority='normal'):
        notification = Notification.objects.create(
            user=user,
            type=type,
            title=title,
            message=message,
            related_service=related_service,
            related_user=related_user,
            priority=priority,
        )
        logger.debug(f"Notification '{title}' created for {user}")
        return notification

    @staticmethod
    def admins():
        return User.objects.filter(role=User.ROLE_ADMIN, is_active=True)

    @classmethod
    def notify_service_assigned(cls, service, assigned_by=None):
        """Tell the technician a service was assigned to them"""
        if not service.technician_id:
            return None
        appliance = str(service.appliance) if service.appliance else 'uređaj'
        return cls.create_notification(
            user=service.technician,
            title='Novi servis dodeljen',
            message=f"Dodeljen vam je servis #{service.id} - {service.client.full_name}, {appliance}.",
            type='service_assigned',
            related_service=service,
            related_user=assigned_by,
            priority='high',
        )

    @classmethod
    def notify_service_created_by_partner(cls, service, partner):
        """Tell every admin that a business partner created a service"""
        company = service.partner_company_name or partner.display_name
        notifications = []
        for admin in cls.admins():
            notifications.append(cls.create_notification(
                user=admin,
                title='Novi servis od poslovnog partnera',
                message=f"{company} je kreirao servis #{service.id} za klijenta {service.client.full_name}.",
                type='service_created',
                related_service=service,
                related_user=partner,
                priority='high',
            ))
        return notifications

    @classmethod
    def notify_service_status_changed(cls, service, old_status, new_status, changed_by=None):
        """
        Admins hear about completed services, the business partner about every change.
        """
        from repairdesk.services.models import STATUS_DESCRIPTIONS

        old_label = STATUS_DESCRIPTIONS.get(old_status, old_status)
        new_label = STATUS_DESCRIPTIONS.get(new_status, new_status)
        notifications = []

        if new_status == 'completed':
            for admin in cls.admins():
                if changed_by is not None and admin.pk == changed_by.pk:
                    continue
                notifications.append(cls.create_notification(
                    user=admin,
                    title='Servis završen',
                    message=f"Servis #{service.id} ({service.client.full_name}) je završen.",
                    type='service_completed',
                    related_service=service,
                    related_user=changed_by,
                    priority='normal',
                ))

        if service.business_partner_id:
            notifications.append(cls.create_notification(
                user=service.business_partner,
                title='Promena statusa servisa',
                message=f"Servis #{service.id} za {service.client.full_name}: {old_label} -> {new_label}.",
                type='service_status_changed',
                related_service=service,
                related_user=changed_by,
                priority='normal',
            ))
        return notifications

    @classmethod
    def notify_parts_ordered(cls, order):
        service = order.service
        recipients = list(cls.admins())
        if service.business_partner_id:
            recipients.append(service.business_partner)
        return [
            cls.create_notification(
                user=user,
                title='Poručen rezervni deo',
                message=f"Za servis #{service.id} poručen je deo {order.part_name} ({order.quantity} kom).",
                type='parts_ordered',
                related_service=service,
                related_user=order.ordered_by,
                priority='high' if order.urgency != 'normal' else 'normal',
            )
            for user in recipients
        ]

    @classmethod
    def notify_parts_arrived(cls, order):
        service = order.service
        if not service.technician_id:
            return []
        return [cls.create_notification(
            user=service.technician,
            title='Stigao rezervni deo',
            message=f"Deo {order.part_name} za servis #{service.id} je stigao. Možete ugraditi.",
            type='parts_arrived',
            related_service=service,
            priority='high',
        )]

    @staticmethod
    def get_user_notifications(user, limit=50):
        return Notification.objects.filter(user=user).select_related('related_service')[:limit]

    @staticmethod
    def get_unread_count(user):
        return Notification.objects.filter(user=user, is_read=False).count()

    @staticmethod
    def mark_as_read(notification_id, user):
        """Returns the notification, or None when it does not belong to the user"""
        notification = Notification.objects.filter(pk=notification_id, user=user).first()
        if notification is None:
            return None
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['is_read', 'read_at'])
        return notification

    @staticmethod
    def mark_all_as_read(user):
        return Notification.objects.filter(user=user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )
