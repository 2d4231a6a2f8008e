from django.urls import path
from .views import (
    notification_list, notification_unread_count, notification_mark_read, notification_mark_all_read,
    push_vapid_public_key, push_subscribe, push_unsubscribe, push_test, push_broadcast_technicians,
    sms_preview, sms_test, sms_status,
    whatsapp_templates, whatsapp_send, whatsapp_auto_reply,
)

urlpatterns = [
    # In-app notifications
    path('notifications/', notification_list, name='notification-list'),
    path('notifications/unread-count/', notification_unread_count, name='notification-unread-count'),
    path('notifications/read-all/', notification_mark_all_read, name='notification-read-all'),
    path('notifications/<int:pk>/read/', notification_mark_read, name='notification-read'),

    # Web push
    path('push/vapid-public-key/', push_vapid_public_key, name='push-vapid-public-key'),
    path('push/subscribe/', push_subscribe, name='push-subscribe'),
    path('push/unsubscribe/', push_unsubscribe, name='push-unsubscribe'),
    path('push/test/', push_test, name='push-test'),
    path('push/broadcast-technicians/', push_broadcast_technicians, name='push-broadcast-technicians'),

    # SMS
    path('sms/preview/', sms_preview, name='sms-preview'),
    path('sms/test/', sms_test, name='sms-test'),
    path('sms/status/', sms_status, name='sms-status'),

    # WhatsApp
    path('whatsapp/templates/', whatsapp_templates, name='whatsapp-templates'),
    path('whatsapp/send/', whatsapp_send, name='whatsapp-send'),
    path('whatsapp/auto-reply/', whatsapp_auto_reply, name='whatsapp-auto-reply'),
]
