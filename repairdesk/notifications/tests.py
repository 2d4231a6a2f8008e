"""
Test suite for the notifications module
Tests: SMS/WhatsApp templates, SMS and WhatsApp clients, web push, dispatch fan-out, in-app API
"""
from io import StringIO
from unittest import mock

import requests
from django.core.management import call_command
from django.test import TestCase, override_settings
from pywebpush import WebPushException
from rest_framework import status

from repairdesk.core.models import Setting
from repairdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from repairdesk.notifications import dispatcher
from repairdesk.notifications.models import Notification, PushSubscription
from repairdesk.notifications.notification_service import NotificationService
from repairdesk.notifications.push_service import PushService
from repairdesk.notifications.sms_client import SMSMobileClient
from repairdesk.notifications.sms_templates import (
    SMS_MAX_LENGTH, TEMPLATES, check_template_lengths, generate_sms, normalize_sms,
)
from repairdesk.notifications.management.commands.check_sms_templates import SAMPLE_DATA
from repairdesk.notifications.whatsapp_client import WhatsAppBusinessClient
from repairdesk.notifications.whatsapp_templates import (
    SERVICE_TEMPLATES, fill_template, find_auto_reply, format_currency, format_phone_number,
    get_template_by_id,
)
from repairdesk.services.models import Service

SUBSCRIPTION = {
    'endpoint': 'https://fcm.googleapis.com/fcm/send/abc123',
    'keys': {'p256dh': 'BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM',
             'auth': 'tBHItJI5svbpez7KI4CCXg'},
}

PUSH_SETTINGS = {'VAPID_PUBLIC_KEY': 'public-key', 'VAPID_PRIVATE_KEY': 'private-key'}


def enable_sms():
    Setting.objects.create(key='sms_mobile_enabled', value='true')
    Setting.objects.create(key='sms_mobile_api_key', value='test-key')


def sms_response(success=True, status_code=200):
    response = mock.Mock(status_code=status_code, ok=status_code < 400, reason='OK')
    response.json.return_value = {'success': success, 'message_id': 'msg-1'} if success \
        else {'error': 'Nedovoljno kredita'}
    return response


class SMSTemplateTests(TestCase):

    def test_serbian_letters_are_kept(self):
        self.assertEqual(normalize_sms('Poštovani, Vaš frižider je spreman – hvala!'),
                         'Poštovani, Vaš frižider je spreman - hvala!')

    def test_every_template_fits_one_sms(self):
        long_data = dict(SAMPLE_DATA, client_name='Aleksandra Radovanović-Vujošević',
                         problem_description='Ne centrifugira, curi voda ispod vrata i javlja grešku E20 ' * 3)
        for name in TEMPLATES:
            for data in (SAMPLE_DATA, long_data, {}):
                message = generate_sms(name, data)
                self.assertLessEqual(len(message), SMS_MAX_LENGTH, f'{name}: {message}')

    def test_unknown_template_falls_back(self):
        self.assertEqual(generate_sms('nepostojeci', {'service_id': 77}),
                         'Obaveštenje o servisu #77. Tel: 067051141')

    def test_missing_values_render_empty(self):
        message = generate_sms('technician_new_service', {'service_id': 5})
        self.assertIn('#5', message)
        self.assertNotIn('None', message)

    def test_completed_message_shows_positive_cost_only(self):
        data = dict(SAMPLE_DATA, cost='85.00')
        self.assertIn('85.00', generate_sms('client_service_completed', data))
        data['cost'] = '0'
        self.assertNotIn('cena', generate_sms('client_service_completed', data))

    def test_normalize_replaces_typographic_characters(self):
        self.assertEqual(normalize_sms('“Deo” — stigao…\n\nHvala'), '"Deo" - stigao... Hvala')

    def test_long_message_is_truncated(self):
        data = dict(SAMPLE_DATA, part_name='X' * 300)
        message = generate_sms('admin_parts_ordered', data)
        self.assertEqual(len(message), SMS_MAX_LENGTH)
        self.assertTrue(message.endswith('...'))

    def test_template_length_report(self):
        results = check_template_lengths(SAMPLE_DATA)
        self.assertEqual(len(results), len(TEMPLATES))
        self.assertTrue(all(r['final_length'] <= SMS_MAX_LENGTH for r in results))

        out = StringIO()
        call_command('check_sms_templates', only_long=True, stdout=out)
        self.assertIn('✓ All messages fit in one SMS', out.getvalue())


class WhatsAppTemplateTests(TestCase):

    def test_fill_template(self):
        template = SERVICE_TEMPLATES['SERVICE_REQUEST_CONFIRMED']
        message = fill_template(template, {'CLIENT_NAME': 'Marko', 'SERVICE_ID': 12, 'BRAND': ''})
        self.assertIn('Poštovani/a Marko', message)
        self.assertIn('#12', message)
        self.assertIn('{{BRAND}}', message)
        self.assertIn('{{ADDRESS}}', message)

    def test_find_auto_reply(self):
        self.assertIn('RADNO VREME', find_auto_reply('Koje je RADNO VREME subotom?'))
        self.assertIsNone(find_auto_reply('Dobar dan'))
        self.assertIsNone(find_auto_reply(''))

    def test_format_phone_number(self):
        self.assertEqual(format_phone_number('067 123 456'), '+38267123456')
        self.assertEqual(format_phone_number('69123456'), '+38269123456')
        self.assertEqual(format_phone_number('+382 68 123 456'), '+38268123456')
        self.assertEqual(format_phone_number('011 123 456'), '011 123 456')

    def test_format_currency(self):
        self.assertEqual(format_currency(85), '85.00 EUR')
        self.assertEqual(format_currency('12.5'), '12.50 EUR')

    def test_template_lookup(self):
        self.assertEqual(get_template_by_id('bp_service_assigned')['id'], 'bp_service_assigned')
        self.assertIsNone(get_template_by_id('missing'))


class SMSClientTests(TestCase):

    def test_not_configured_does_not_call_api(self):
        with mock.patch('repairdesk.notifications.sms_client.requests.post') as post:
            result = SMSMobileClient(api_key='', enabled=True).send('067123456', 'Test')
        self.assertFalse(result['success'])
        post.assert_not_called()

    def test_send_success(self):
        client = SMSMobileClient(api_key='key', enabled=True, base_url='https://sms.test/api/v1', gateway='gw1')
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response()) as post:
            result = client.send('067123456', 'Poruka')
        self.assertTrue(result['success'])
        self.assertEqual(result['message_id'], 'msg-1')
        args, kwargs = post.call_args
        self.assertEqual(args[0], 'https://sms.test/api/v1/send')
        self.assertEqual(kwargs['json'], {'api_key': 'key', 'to': '067123456', 'text': 'Poruka', 'gateway': 'gw1'})

    def test_provider_error_and_timeout(self):
        client = SMSMobileClient(api_key='key', enabled=True)
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response(success=False, status_code=402)):
            result = client.send('067123456', 'Poruka')
        self.assertEqual(result['error'], 'Nedovoljno kredita')

        with mock.patch('repairdesk.notifications.sms_client.requests.post', side_effect=requests.Timeout()):
            result = client.send('067123456', 'Poruka')
        self.assertFalse(result['success'])
        self.assertIn('Isteklo vreme', result['error'])

    def test_bulk_pauses_between_messages(self):
        client = SMSMobileClient(api_key='key', enabled=True)
        with mock.patch('repairdesk.notifications.sms_client.requests.post', return_value=sms_response()), \
                mock.patch('repairdesk.notifications.sms_client.time.sleep') as sleep:
            results = client.send_bulk([{'phone': '067111111', 'message': 'A'},
                                        {'phone': '067222222', 'message': 'B'}])
        self.assertEqual([r['success'] for r in results], [True, True])
        self.assertEqual(sleep.call_count, 1)


class WhatsAppClientTests(TestCase):

    def test_send_text_posts_to_graph_api(self):
        client = WhatsAppBusinessClient(access_token='token', phone_number_id='123', api_version='v23.0',
                                        enabled=True)
        response = mock.Mock(ok=True, status_code=200, content=b'{}')
        response.json.return_value = {'messages': [{'id': 'wamid.1'}]}
        with mock.patch('repairdesk.notifications.whatsapp_client.requests.post', return_value=response) as post:
            result = client.send_text('067 123 456', 'Zdravo')
        self.assertEqual(result, {'success': True, 'message_id': 'wamid.1'})
        args, kwargs = post.call_args
        self.assertEqual(args[0], 'https://graph.facebook.com/v23.0/123/messages')
        self.assertEqual(kwargs['json']['to'], '38267123456')

    def test_facebook_error(self):
        client = WhatsAppBusinessClient(access_token='token', phone_number_id='123', enabled=True)
        response = mock.Mock(ok=False, status_code=400, reason='Bad Request', content=b'{}')
        response.json.return_value = {'error': {'message': 'Invalid parameter', 'code': 100}}
        with mock.patch('repairdesk.notifications.whatsapp_client.requests.post', return_value=response):
            result = client.send_text('067123456', 'Zdravo')
        self.assertEqual(result['error'], 'Facebook API Error: Invalid parameter (Code: 100)')


@override_settings(**PUSH_SETTINGS)
class PushServiceTests(TestCase):

    def setUp(self):
        self.technician = TestDataFactory.create_technician()

    def test_subscription_is_replaced(self):
        PushService.save_subscription(self.technician, SUBSCRIPTION)
        PushService.save_subscription(self.technician, dict(SUBSCRIPTION, endpoint='https://push.test/new'))
        self.assertEqual(PushSubscription.objects.filter(user=self.technician).count(), 1)
        self.assertEqual(self.technician.push_subscription.endpoint, 'https://push.test/new')

    def test_send_uses_vapid_keys(self):
        PushService.save_subscription(self.technician, SUBSCRIPTION)
        with mock.patch('repairdesk.notifications.push_service.webpush') as webpush:
            sent = PushService.send_notification_to_user(self.technician, 'Naslov', 'Tekst', data={'serviceId': 1})
        self.assertTrue(sent)
        kwargs = webpush.call_args.kwargs
        self.assertEqual(kwargs['subscription_info'], SUBSCRIPTION)
        self.assertEqual(kwargs['vapid_private_key'], 'private-key')
        self.assertTrue(kwargs['vapid_claims']['sub'].startswith('mailto:'))
        self.assertIn('"title": "Naslov"', kwargs['data'])

    def test_expired_subscription_is_removed(self):
        PushService.save_subscription(self.technician, SUBSCRIPTION)
        error = WebPushException('Push failed: 410 Gone', response=mock.Mock(status_code=410))
        with mock.patch('repairdesk.notifications.push_service.webpush', side_effect=error):
            sent = PushService.send_notification_to_user(self.technician, 'Naslov', 'Tekst')
        self.assertFalse(sent)
        self.assertFalse(PushSubscription.objects.filter(user=self.technician).exists())

    def test_other_failures_keep_subscription(self):
        PushService.save_subscription(self.technician, SUBSCRIPTION)
        error = WebPushException('Push failed: 500', response=mock.Mock(status_code=500))
        with mock.patch('repairdesk.notifications.push_service.webpush', side_effect=error):
            self.assertFalse(PushService.send_notification_to_user(self.technician, 'Naslov', 'Tekst'))
        self.assertTrue(PushSubscription.objects.filter(user=self.technician).exists())

    def test_no_subscription(self):
        with mock.patch('repairdesk.notifications.push_service.webpush') as webpush:
            self.assertFalse(PushService.send_notification_to_user(self.technician, 'Naslov', 'Tekst'))
        webpush.assert_not_called()

    def test_broadcast_to_technicians(self):
        second = TestDataFactory.create_technician()
        customer = TestDataFactory.create_user()
        for user in (self.technician, second, customer):
            PushService.save_subscription(user, SUBSCRIPTION)
        with mock.patch('repairdesk.notifications.push_service.webpush',
                        side_effect=[None, WebPushException('boom', response=None)]):
            result = PushService.send_notification_to_all_technicians('Sastanak', 'U 8h')
        self.assertEqual((result['successful'], result['failed']), (1, 1))

    def test_unreachable_push_service_does_not_stop_broadcast(self):
        second = TestDataFactory.create_technician()
        for user in (self.technician, second):
            PushService.save_subscription(user, SUBSCRIPTION)
        with mock.patch('repairdesk.notifications.push_service.webpush',
                        side_effect=requests.ConnectionError('boom')):
            result = PushService.send_notification_to_all_technicians('Sastanak', 'U 8h')
        self.assertEqual((result['successful'], result['failed']), (0, 2))
        self.assertEqual(PushSubscription.objects.count(), 2)

    @override_settings(VAPID_PRIVATE_KEY='')
    def test_not_configured(self):
        PushService.save_subscription(self.technician, SUBSCRIPTION)
        self.assertFalse(PushService.send_notification_to_user(self.technician, 'Naslov', 'Tekst'))


class DispatchTests(TestCase):
    """Fan-out of service events"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(phone='067000001')
        self.technician = TestDataFactory.create_technician(phone='067000002')
        self.partner = TestDataFactory.create_business_partner(phone='067000003')
        self.client_record = TestDataFactory.create_client(phone='067000004', email='klijent@test.com')
        appliance = TestDataFactory.create_appliance(
            self.client_record, manufacturer=TestDataFactory.create_manufacturer('Candy'))
        self.service = TestDataFactory.create_service(
            appliance=appliance, technician=self.technician, business_partner=self.partner,
            status=Service.STATUS_IN_PROGRESS,
        )

    def test_sms_skipped_when_not_configured(self):
        with mock.patch('repairdesk.notifications.sms_client.requests.post') as post:
            report = dispatcher.notify_status_changed(self.service, 'in_progress', 'completed')
        post.assert_not_called()
        self.assertEqual(report.sms_sent, 0)
        self.assertTrue(all(item['error'] == 'SMS servis nije konfigurisan.' for item in report.sms))

    def test_status_change_reaches_every_recipient(self):
        enable_sms()
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response()) as post:
            report = dispatcher.notify_status_changed(self.service, 'in_progress', 'completed',
                                                      changed_by=self.technician)

        phones = {call.kwargs['json']['to'] for call in post.call_args_list}
        # client, admin, partner and the Com Plus supplier for Candy
        self.assertEqual(phones, {'067000004', '067000001', '067000003', '067590272'})
        self.assertEqual(report.sms_sent, 4)
        self.assertTrue(report.email_sent)
        self.assertTrue(Notification.objects.filter(user=self.partner, type='service_status_changed').exists())
        self.assertTrue(Notification.objects.filter(user=self.admin, type='service_completed').exists())

    def test_sms_failure_does_not_stop_other_channels(self):
        enable_sms()
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        side_effect=requests.ConnectionError('down')):
            report = dispatcher.notify_status_changed(self.service, 'in_progress', 'waiting_parts')
        self.assertEqual(report.sms_sent, 0)
        self.assertTrue(report.email_sent)
        self.assertEqual(report.in_app, 1)

    def test_channel_exception_is_recorded(self):
        with mock.patch.object(NotificationService, 'notify_service_status_changed',
                               side_effect=RuntimeError('db down')):
            report = dispatcher.notify_status_changed(self.service, 'in_progress', 'completed')
        self.assertEqual(report.in_app, 0)
        self.assertIn('in_app: db down', report.errors)
        self.assertTrue(report.email_sent)

    def test_missing_phone_is_reported(self):
        enable_sms()
        self.technician.phone = ''
        self.technician.save()
        with mock.patch('repairdesk.notifications.sms_client.requests.post', return_value=sms_response()):
            report = dispatcher.notify_technician_assigned(self.service, assigned_by=self.admin)
        technician_sms = [s for s in report.sms if s['template'] == 'technician_new_service'][0]
        self.assertEqual(technician_sms['error'], 'Nema broja telefona.')
        self.assertTrue(Notification.objects.filter(user=self.technician, type='service_assigned').exists())

    def test_creator_admin_gets_no_sms(self):
        enable_sms()
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response()) as post:
            dispatcher.notify_service_created(self.service, created_by=self.admin)
        phones = [call.kwargs['json']['to'] for call in post.call_args_list]
        self.assertNotIn('067000001', phones)
        self.assertIn('067000004', phones)

    def test_assignment_sms_skips_assigning_admin(self):
        other_admin = TestDataFactory.create_admin(phone='067000009')
        enable_sms()
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response()) as post:
            report = dispatcher.notify_technician_assigned(self.service, assigned_by=self.admin)
        phones = {call.kwargs['json']['to'] for call in post.call_args_list}
        self.assertIn('067000009', phones)
        self.assertNotIn('067000001', phones)
        admin_sms = [s for s in report.sms if s['template'] == 'protocol_service_assigned_to_admin']
        self.assertEqual([s['recipient'] for s in admin_sms], [other_admin.username])

    def test_client_unavailable_reaches_client_admin_and_partner(self):
        enable_sms()
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response()) as post:
            report = dispatcher.notify_client_unavailable(self.service, 'Nije kod kuće',
                                                          reported_by=self.technician)
        phones = {call.kwargs['json']['to'] for call in post.call_args_list}
        self.assertEqual(phones, {'067000004', '067000001', '067000003'})
        self.assertEqual(report.event, 'client_unavailable')
        self.assertEqual(report.sms_sent, 3)

    def test_repair_refused_notifies_partner_in_app(self):
        report = dispatcher.notify_repair_refused(self.service, 'Preskupo', refused_by=self.technician)
        self.assertEqual(report.in_app, 2)
        self.assertTrue(Notification.objects.filter(user=self.partner, title='Klijent odbio popravku').exists())
        self.assertIn('protocol_repair_refused_to_admin', [s['template'] for s in report.sms])


class NotificationAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_technician()
        self.other = TestDataFactory.create_technician()
        self.first = NotificationService.create_notification(self.user, 'Prvo', 'Poruka 1')
        self.second = NotificationService.create_notification(self.user, 'Drugo', 'Poruka 2')
        self.foreign = NotificationService.create_notification(self.other, 'Tuđe', 'Poruka')
        self.api = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_list_and_unread_count(self):
        response = self.api.get('/api/v1/notifications/')
        self.assertEqual(len(response.data), 2)
        response = self.api.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data, {'count': 2})

    def test_mark_read(self):
        response = self.api.post(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])
        self.assertEqual(self.api.get('/api/v1/notifications/unread-count/').data['count'], 1)
        response = self.api.get('/api/v1/notifications/', {'unread': 'true'})
        self.assertEqual([n['id'] for n in response.data], [self.second.id])

    def test_cannot_mark_foreign_notification(self):
        response = self.api.post(f'/api/v1/notifications/{self.foreign.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_mark_all_read(self):
        response = self.api.post('/api/v1/notifications/read-all/')
        self.assertEqual(response.data, {'updated': 2})
        self.assertFalse(Notification.objects.get(pk=self.foreign.pk).is_read)


class PushAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_technician()
        self.api = AuthenticatedAPIClient().authenticate_user(self.user)

    @override_settings(VAPID_PUBLIC_KEY='')
    def test_public_key_not_configured(self):
        response = self.api.get('/api/v1/push/vapid-public-key/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    @override_settings(**PUSH_SETTINGS)
    def test_subscribe_test_and_unsubscribe(self):
        response = self.api.get('/api/v1/push/vapid-public-key/')
        self.assertEqual(response.data, {'public_key': 'public-key'})

        response = self.api.post('/api/v1/push/subscribe/', SUBSCRIPTION, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        with mock.patch('repairdesk.notifications.push_service.webpush'):
            response = self.api.post('/api/v1/push/test/')
        self.assertEqual(response.data, {'success': True})

        response = self.api.delete('/api/v1/push/unsubscribe/')
        self.assertEqual(response.data, {'removed': True})
        response = self.api.post('/api/v1/push/test/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_subscribe_requires_endpoint(self):
        response = self.api.post('/api/v1/push/subscribe/', {'keys': SUBSCRIPTION['keys']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SMSAndWhatsAppAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.api = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_sms_preview(self):
        response = self.api.post('/api/v1/sms/preview/', {
            'template_type': 'client_spare_part_arrived',
            'data': {'service_id': 10, 'part_name': 'Grejač'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('#10', response.data['message'])
        self.assertEqual(response.data['max_length'], SMS_MAX_LENGTH)

    def test_sms_preview_renders_protocol_templates(self):
        response = self.api.post('/api/v1/sms/preview/', {
            'template_type': 'protocol_parts_ordered_to_partner',
            'data': {'service_id': 12, 'part_name': 'Pumpa', 'client_name': 'Ana',
                     'device_type': 'Frižider'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Rezervni deo Pumpa je porucen za servis #12', response.data['message'])

    def test_sms_test_reports_provider_failure(self):
        enable_sms()
        with mock.patch('repairdesk.notifications.sms_client.requests.post',
                        return_value=sms_response(success=False, status_code=402)):
            response = self.api.post('/api/v1/sms/test/', {'phone': '067123456', 'message': 'Test'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_sms_endpoints_are_admin_only(self):
        self.api.authenticate_user(TestDataFactory.create_technician())
        response = self.api.post('/api/v1/sms/preview/', {'template_type': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_whatsapp_unknown_template(self):
        response = self.api.post('/api/v1/whatsapp/send/', {'phone': '067123456', 'template_id': 'nema'},
                                 format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_whatsapp_auto_reply(self):
        response = self.api.post('/api/v1/whatsapp/auto-reply/', {'message': 'Koliko košta servis?'},
                                 format='json')
        self.assertTrue(response.data['matched'])
        response = self.api.post('/api/v1/whatsapp/auto-reply/', {'message': 'Zdravo'}, format='json')
        self.assertEqual(response.data, {'matched': False, 'reply': None})

    def test_whatsapp_templates_listing(self):
        response = self.api.get('/api/v1/whatsapp/templates/')
        ids = [t['id'] for t in response.data['templates']]
        self.assertIn('service_request_confirmed', ids)
        self.assertEqual(len(response.data['auto_replies']), 5)
