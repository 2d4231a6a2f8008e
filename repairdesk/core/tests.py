"""
Test suite for the core module
Tests: role permissions, registration, settings, audit log, SQL console, backup and restore
"""
import json
import tempfile
from io import StringIO
from pathlib import Path
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from rest_framework import status

from repairdesk.clients.models import Client
from repairdesk.core.backup import (
    BACKUP_VERSION, BackupError, build_backup, load_backup, restore_backup, write_backup,
)
from repairdesk.core.models import AuditLog, Setting, User
from repairdesk.core.permissions import has_role, is_admin_user
from repairdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from repairdesk.core.utils import create_audit_log, get_bool_setting, get_setting
from repairdesk.notifications.models import Notification, PushSubscription
from repairdesk.services.models import Service


class RolePermissionTests(TestCase):
    """Role helpers and role-scoped endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_is_admin_user(self):
        admin = TestDataFactory.create_admin()
        superuser = TestDataFactory.create_user(is_superuser=True)
        technician = TestDataFactory.create_technician()
        self.assertTrue(is_admin_user(admin))
        self.assertTrue(is_admin_user(superuser))
        self.assertFalse(is_admin_user(technician))

    def test_supplier_role_group(self):
        complus = TestDataFactory.create_supplier_user(role=User.ROLE_SUPPLIER_COMPLUS)
        beko = TestDataFactory.create_supplier_user(role=User.ROLE_SUPPLIER_BEKO)
        self.assertTrue(has_role(complus, 'supplier'))
        self.assertTrue(has_role(beko, 'supplier'))
        self.assertFalse(has_role(complus, 'admin', 'technician'))

    def test_supplier_cannot_use_admin_endpoints(self):
        supplier = TestDataFactory.create_supplier_user()
        self.client.authenticate_user(supplier)
        for url in ('/api/v1/admin/services/', '/api/v1/users/', '/api/v1/audit-logs/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, url)

    def test_customer_cannot_use_business_endpoints(self):
        customer = TestDataFactory.create_user()
        self.client.authenticate_user(customer)
        response = self.client.get('/api/v1/business/services/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_rejected(self):
        response = self.client.get('/api/v1/services/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuthAPITests(TestCase):
    """Registration, login and the current-user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_always_creates_customer(self):
        data = {
            'username': 'novi_klijent',
            'email': 'novi@test.com',
            'password': 'Sigurna!Lozinka42',
            'password_confirm': 'Sigurna!Lozinka42',
            'full_name': 'Novi Klijent',
            'role': 'admin',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(User.objects.get(username='novi_klijent').role, User.ROLE_CUSTOMER)
        profile = Client.objects.get(user__username='novi_klijent')
        self.assertEqual(profile.full_name, 'Novi Klijent')
        self.assertEqual(profile.email, 'novi@test.com')

    def test_register_password_mismatch(self):
        data = {
            'username': 'klijent2',
            'password': 'Sigurna!Lozinka42',
            'password_confirm': 'Druga!Lozinka42',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_returns_user_and_role(self):
        TestDataFactory.create_technician(username='serviser1', password='testpass123')
        response = self.client.post('/api/v1/auth/login/',
                                    {'username': 'serviser1', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['role'], User.ROLE_TECHNICIAN)

    def test_me_reports_access_flags(self):
        supplier = TestDataFactory.create_supplier_user(role=User.ROLE_SUPPLIER_BEKO)
        self.client.authenticate_user(supplier)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_view_parts'])
        self.assertTrue(response.data['can_access_supplier_portal'])
        self.assertFalse(response.data['can_manage_services'])

    def test_performance_beacon_is_anonymous(self):
        self.client.logout()
        response = self.client.post('/api/v1/analytics/performance/',
                                    {'name': 'LCP', 'value': 1834.5, 'rating': 'good', 'page': '/tech'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.post('/api/v1/analytics/performance/', {'name': 'LCP', 'value': 'spor'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserAdminAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_filter_users_by_role(self):
        TestDataFactory.create_technician()
        TestDataFactory.create_technician()
        TestDataFactory.create_user()
        response = self.client.get('/api/v1/users/', {'role': 'technician'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_cannot_delete_own_account(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_user_writes_audit_log(self):
        data = {
            'username': 'tehnicar_novi',
            'password': 'Sigurna!Lozinka42',
            'password_confirm': 'Sigurna!Lozinka42',
            'role': 'technician',
            'phone': '067111222',
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        log = AuditLog.objects.get(action='create', model_name='User')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.changes, {'role': 'technician'})


class SettingsTests(TestCase):

    @override_settings(COMPANY_PHONE='067000000')
    def test_get_setting_falls_back_to_django_settings(self):
        self.assertEqual(get_setting('company_phone'), '067000000')
        self.assertEqual(get_setting('not_configured_anywhere', 'x'), 'x')

    @override_settings(COMPANY_PHONE='067000000')
    def test_setting_row_wins(self):
        Setting.objects.create(key='company_phone', value='069123123')
        self.assertEqual(get_setting('company_phone'), '069123123')

    def test_get_bool_setting(self):
        Setting.objects.create(key='sms_mobile_enabled', value='true')
        self.assertTrue(get_bool_setting('sms_mobile_enabled'))
        Setting.objects.filter(key='sms_mobile_enabled').update(value='0')
        self.assertFalse(get_bool_setting('sms_mobile_enabled'))


class AuditLogTests(TestCase):

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(action='update', model_name='Service'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_log_list_filters(self):
        admin = TestDataFactory.create_admin()
        create_audit_log(user=admin, action='backup', model_name='Database', object_id='b1')
        create_audit_log(user=admin, action='scrape', model_name='SparePartsCatalog', object_id='quinnspares')
        client = AuthenticatedAPIClient().authenticate_user(admin)
        response = client.get('/api/v1/audit-logs/', {'action': 'scrape'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_id'], 'quinnspares')


class SQLConsoleTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_select_returns_rows(self):
        TestDataFactory.create_client(full_name='Petar Petrović')
        response = self.client.post('/api/v1/admin/sql/',
                                    {'query': 'SELECT full_name FROM clients'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['columns'], ['full_name'])
        self.assertEqual(response.data['rows'], [['Petar Petrović']])
        self.assertTrue(AuditLog.objects.filter(action='sql_query').exists())

    def test_write_statements_are_rejected(self):
        for query in ('DELETE FROM clients', 'SELECT 1; DROP TABLE clients', 'UPDATE users SET role = 1'):
            response = self.client.post('/api/v1/admin/sql/', {'query': query}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)

    def test_statements_slipping_past_the_filter_are_rolled_back(self):
        Setting.objects.create(key='sms_sender_id', value='FrigoSistem')
        with mock.patch('repairdesk.core.views.validate_read_only_query', return_value=None):
            self.client.post('/api/v1/admin/sql/',
                             {'query': "UPDATE settings SET value = 'x' WHERE key = 'sms_sender_id'"},
                             format='json')
        self.assertEqual(Setting.objects.get(key='sms_sender_id').value, 'FrigoSistem')

    def test_technician_cannot_run_queries(self):
        self.client.authenticate_user(TestDataFactory.create_technician())
        response = self.client.post('/api/v1/admin/sql/', {'query': 'SELECT 1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BackupRestoreTests(TestCase):
    """Full-table backups and all-or-nothing restore"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(username='admin_backup')
        self.technician = TestDataFactory.create_technician()
        self.service = TestDataFactory.create_service(technician=self.technician,
                                                      status=Service.STATUS_ASSIGNED)
        TestDataFactory.create_spare_part(part_number='PN-1')

    def test_backup_contents(self):
        data = build_backup()
        self.assertEqual(data['version'], BACKUP_VERSION)
        self.assertEqual(data['counts']['services.service'], 1)
        self.assertEqual(data['counts']['catalog.sparepartscatalog'], 1)
        self.assertNotIn('notifications.notification', data['tables'])
        self.assertIn('notifications.notification', build_backup(include_notifications=True)['tables'])

    def test_restore_replaces_tables(self):
        data = build_backup()
        TestDataFactory.create_client(full_name='Dodat posle backup-a')
        Service.objects.filter(pk=self.service.pk).update(status=Service.STATUS_CANCELLED)

        counts = restore_backup(data)

        self.assertEqual(counts['services.service'], 1)
        self.assertFalse(Client.objects.filter(full_name='Dodat posle backup-a').exists())
        self.assertEqual(Service.objects.get(pk=self.service.pk).status, Service.STATUS_ASSIGNED)
        self.assertTrue(User.objects.filter(username='admin_backup').exists())

    def test_restore_keeps_notifications_and_audit_users(self):
        notification = Notification.objects.create(user=self.technician, title='Dodeljen servis',
                                                   message='Servis #1', related_service=self.service)
        PushSubscription.objects.create(user=self.technician, endpoint='https://push.test/abc',
                                        keys={'p256dh': 'k', 'auth': 'a'})
        create_audit_log(user=self.admin, action='update', model_name='Service', object_id=str(self.service.pk))
        data = build_backup(include_notifications=False)

        restore_backup(data)

        restored = Notification.objects.get(pk=notification.pk)
        self.assertEqual(restored.user, self.technician)
        self.assertEqual(restored.related_service_id, self.service.pk)
        self.assertTrue(PushSubscription.objects.filter(user=self.technician).exists())
        self.assertTrue(AuditLog.objects.filter(user=self.admin, action='update').exists())

    def test_restore_drops_notifications_of_users_missing_from_backup(self):
        data = build_backup()
        customer = TestDataFactory.create_user(username='posle_backupa')
        Notification.objects.create(user=customer, title='Novo', message='Poruka')

        restore_backup(data)

        self.assertFalse(User.objects.filter(username='posle_backupa').exists())
        self.assertFalse(Notification.objects.filter(title='Novo').exists())

    def test_failed_restore_changes_nothing(self):
        data = build_backup()
        extra = TestDataFactory.create_client(full_name='Ostaje posle greške')
        rows = data['tables']['services.service']
        rows[0]['fields']['cost'] = 'nije broj'

        with self.assertRaises(Exception):
            restore_backup(data)

        self.assertTrue(Client.objects.filter(pk=extra.pk).exists())
        self.assertTrue(Service.objects.filter(pk=self.service.pk).exists())
        self.assertEqual(Client.objects.count(), 2)

    def test_unknown_table_is_rejected(self):
        with self.assertRaises(BackupError):
            restore_backup({'version': BACKUP_VERSION, 'tables': {'core.auditlog': []}})

    def test_backup_and_restore_commands(self):
        with tempfile.TemporaryDirectory() as tmp:
            out = StringIO()
            call_command('backup_database', output_dir=tmp, stdout=out)
            files = list(Path(tmp).glob('backup-*.json'))
            self.assertEqual(len(files), 1)
            self.assertIn('✓ Backup written', out.getvalue())
            with open(files[0], encoding='utf-8') as f:
                self.assertEqual(json.load(f)['version'], BACKUP_VERSION)

            Service.objects.filter(pk=self.service.pk).update(status=Service.STATUS_CANCELLED)
            out = StringIO()
            call_command('restore_database', str(files[0]), confirm=True, stdout=out)

        self.assertIn('✓ Restored', out.getvalue())
        self.assertEqual(Service.objects.get(pk=self.service.pk).status, Service.STATUS_ASSIGNED)
        self.assertTrue(AuditLog.objects.filter(action='backup').exists())
        self.assertTrue(AuditLog.objects.filter(action='restore').exists())

    def test_restore_rejects_wrong_version(self):
        with tempfile.TemporaryDirectory() as tmp:
            path, _ = write_backup(tmp)
            with open(path, encoding='utf-8') as f:
                data = json.load(f)
            data['version'] = '0.9'
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(data, f)

            with self.assertRaises(BackupError):
                load_backup(path)
            with self.assertRaises(CommandError):
                call_command('restore_database', str(path), confirm=True, stdout=StringIO())
