"""Browser push notifications through VAPID web push"""
import json
import logging

import requests
from django.contrib.auth import get_user_model
from pywebpush import webpush, WebPushException

from repairdesk.core.utils import get_setting
from .models import PushSubscription

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_ICON = '/icon-192.png'
EXPIRED_STATUS_CODES = (404, 410)


def build_payload(title, body, data=None, actions=None, icon=None, badge=None):
    return json.dumps({
        'title': title,
        'body': body,
        'icon': icon or DEFAULT_ICON,
        'badge': badge or DEFAULT_ICON,
        'data': data or {},
        'actions': actions or [],
    })


class PushService:

    @staticmethod
    def vapid_public_key():
        return get_setting('vapid_public_key', '')

    @staticmethod
    def is_configured():
        return bool(get_setting('vapid_public_key', '') and get_setting('vapid_private_key', ''))

    @staticmethod
    def save_subscription(user, subscription):
        """Create or replace the user's subscription; `subscription` is the browser PushSubscription JSON"""
        obj, created = PushSubscription.objects.update_or_create(
            user=user,
            defaults={
                'endpoint': subscription['endpoint'],
                'keys': subscription.get('keys') or {},
            },
        )
        logger.info(f"Push subscription {'created' if created else 'updated'} for user {user.id}")
        return obj

    @staticmethod
    def remove_subscription(user):
        deleted, _ = PushSubscription.objects.filter(user=user).delete()
        if deleted:
            logger.info(f"Push subscription removed for user {user.id}")
        return bool(deleted)

    @classmethod
    def _send(cls, subscription, payload):
        """Deliver one payload; expired subscriptions are deleted"""
        claims_email = get_setting('vapid_claims_email', 'mailto:info@frigosistemtodosijevic.com')
        if not claims_email.startswith('mailto:'):
            claims_email = f'mailto:{claims_email}'
        try:
            webpush(
                subscription_info=subscription.as_subscription_info(),
                data=payload,
                vapid_private_key=get_setting('vapid_private_key', ''),
                vapid_claims={'sub': claims_email},
                timeout=10,
            )
            return True
        except WebPushException as e:
            status_code = getattr(e.response, 'status_code', None)
            if status_code in EXPIRED_STATUS_CODES:
                logger.info(f"Push subscription of user {subscription.user_id} expired ({status_code}), removing")
                subscription.delete()
            else:
                logger.error(f"Push notification to user {subscription.user_id} failed: {str(e)}")
            return False
        except requests.RequestException as e:
            logger.error(f"Push notification to user {subscription.user_id} could not reach the push service: {str(e)}")
            return False

    @classmethod
    def send_notification_to_user(cls, user, title, body, data=None, actions=None):
        """Returns False when the user has no subscription or delivery failed"""
        if not cls.is_configured():
            logger.warning("Push notification skipped: VAPID keys not configured")
            return False
        subscription = PushSubscription.objects.filter(user=user).first()
        if subscription is None:
            logger.debug(f"No push subscription for user {user.id}")
            return False
        sent = cls._send(subscription, build_payload(title, body, data=data, actions=actions))
        if sent:
            logger.info(f"Push notification '{title}' sent to user {user.id}")
        return sent

    @classmethod
    def send_notification_to_all_technicians(cls, title, body, data=None, actions=None):
        """Broadcast to every active technician with a subscription"""
        if not cls.is_configured():
            logger.warning("Push broadcast skipped: VAPID keys not configured")
            return {'successful': 0, 'failed': 0, 'results': []}

        payload = build_payload(title, body, data=data, actions=actions)
        subscriptions = PushSubscription.objects.filter(
            user__role=User.ROLE_TECHNICIAN, user__is_active=True
        ).select_related('user')

        results = []
        for subscription in subscriptions:
            results.append({'user_id': subscription.user_id, 'success': cls._send(subscription, payload)})

        successful = sum(1 for r in results if r['success'])
        failed = len(results) - successful
        logger.info(f"Push broadcast to technicians: {successful} sent, {failed} failed")
        return {'successful': successful, 'failed': failed, 'results': results}
