"""
Test suite for the services module
Tests: status workflow, role-scoped endpoints, partner scheduling flow, integrity checks, stats cache
"""
from decimal import Decimal
from io import StringIO

from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from repairdesk.core.models import AuditLog
from repairdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from repairdesk.notifications.models import Notification
from repairdesk.services.models import Service, ServiceStatusHistory
from repairdesk.services.stats import get_service_stats
from repairdesk.services.validators import check_service_integrity
from repairdesk.services.workflow import (
    InvalidAssignmentError, InvalidStatusError, ServicePermissionError,
    assign_technician, change_service_status, refuse_repair, report_client_unavailable,
)


class ServiceWorkflowTests(TestCase):
    """change_service_status and assign_technician"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.technician = TestDataFactory.create_technician()
        self.other_technician = TestDataFactory.create_technician()
        self.service = TestDataFactory.create_service(technician=self.technician,
                                                      status=Service.STATUS_ASSIGNED)

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(InvalidStatusError):
            change_service_status(self.service, 'done', self.admin)

    def test_technician_changes_own_service(self):
        result = change_service_status(self.service, Service.STATUS_IN_PROGRESS, self.technician)
        self.assertTrue(result.changed)
        self.service.refresh_from_db()
        self.assertEqual(self.service.status, Service.STATUS_IN_PROGRESS)
        history = ServiceStatusHistory.objects.get(service=self.service)
        self.assertEqual((history.old_status, history.new_status), ('assigned', 'in_progress'))
        self.assertTrue(AuditLog.objects.filter(action='status_change', object_id=str(self.service.id)).exists())

    def test_technician_cannot_change_foreign_service(self):
        with self.assertRaises(ServicePermissionError):
            change_service_status(self.service, Service.STATUS_COMPLETED, self.other_technician)
        self.service.refresh_from_db()
        self.assertEqual(self.service.status, Service.STATUS_ASSIGNED)

    def test_customer_cannot_change_status(self):
        with self.assertRaises(ServicePermissionError):
            change_service_status(self.service, Service.STATUS_CANCELLED, TestDataFactory.create_user())

    def test_completion_sets_completed_date_and_details(self):
        result = change_service_status(
            self.service, Service.STATUS_COMPLETED, self.technician,
            cost=Decimal('85.00'), technician_notes='Zamenjena pumpa', is_completely_fixed=True,
        )
        service = result.service
        self.assertIsNotNone(service.completed_date)
        self.assertEqual(service.cost, Decimal('85.00'))
        self.assertTrue(service.is_completely_fixed)
        self.assertIsNotNone(result.dispatch)

    def test_reopening_keeps_completed_date(self):
        completed = change_service_status(self.service, Service.STATUS_COMPLETED, self.admin).service
        reopened = change_service_status(completed, Service.STATUS_IN_PROGRESS, self.admin).service
        self.assertEqual(reopened.completed_date, completed.completed_date)

    def test_same_status_skips_notifications(self):
        result = change_service_status(self.service, Service.STATUS_ASSIGNED, self.technician,
                                       technician_notes='Dogovoren termin')
        self.assertFalse(result.changed)
        self.assertIsNone(result.dispatch)
        self.assertEqual(ServiceStatusHistory.objects.filter(service=self.service).count(), 0)
        self.assertEqual(Notification.objects.count(), 0)

    def test_assign_moves_pending_to_assigned(self):
        service = TestDataFactory.create_service()
        service, report = assign_technician(service, self.technician, self.admin)
        self.assertEqual(service.status, Service.STATUS_ASSIGNED)
        self.assertEqual(service.technician, self.technician)
        self.assertEqual(report.in_app, 1)
        self.assertTrue(Notification.objects.filter(user=self.technician, type='service_assigned').exists())

    def test_assign_rejects_non_technician_and_closed_service(self):
        with self.assertRaises(InvalidAssignmentError):
            assign_technician(self.service, self.admin, self.admin)
        closed = TestDataFactory.create_service(status=Service.STATUS_CANCELLED)
        with self.assertRaises(InvalidAssignmentError):
            assign_technician(closed, self.technician, self.admin)

    def test_reassigning_same_technician_sends_nothing(self):
        _, report = assign_technician(self.service, self.technician, self.admin)
        self.assertIsNone(report)


class ServiceStatusAPITests(TestCase):

    def setUp(self):
        self.technician = TestDataFactory.create_technician()
        self.other_technician = TestDataFactory.create_technician()
        self.service = TestDataFactory.create_service(technician=self.technician,
                                                      status=Service.STATUS_ASSIGNED)
        self.client = AuthenticatedAPIClient()

    def test_technician_updates_own_service(self):
        self.client.authenticate_user(self.technician)
        response = self.client.patch(f'/api/v1/services/{self.service.id}/status/',
                                     {'status': 'in_progress'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in_progress')
        self.assertEqual(response.data['status_description'], 'U toku')
        self.assertEqual(response.data['notifications']['event'], 'status_changed')

    def test_technician_cannot_update_foreign_service(self):
        self.client.authenticate_user(self.other_technician)
        response = self.client.patch(f'/api/v1/services/{self.service.id}/status/',
                                     {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)

    def test_invalid_status_returns_400(self):
        self.client.authenticate_user(self.technician)
        response = self.client.patch(f'/api/v1/services/{self.service.id}/status/',
                                     {'status': 'finished'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_business_partner_cannot_update_status(self):
        self.client.authenticate_user(TestDataFactory.create_business_partner())
        response = self.client.patch(f'/api/v1/services/{self.service.id}/status/',
                                     {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_technician_sees_only_own_services(self):
        TestDataFactory.create_service(technician=self.other_technician, status=Service.STATUS_ASSIGNED)
        self.client.authenticate_user(self.technician)
        response = self.client.get('/api/v1/technician/services/')
        self.assertEqual([s['id'] for s in response.data], [self.service.id])
        response = self.client.get('/api/v1/services/')
        self.assertEqual(len(response.data), 1)


class BusinessPartnerFlowTests(TestCase):
    """A partner's request from creation to completion"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.partner = TestDataFactory.create_business_partner()
        self.technician = TestDataFactory.create_technician(full_name='Gruica Todosijević')
        self.client_record = TestDataFactory.create_client(full_name='Marko Marković',
                                                           email='marko@test.com', created_by=self.partner)
        self.appliance = TestDataFactory.create_appliance(self.client_record)
        self.api = AuthenticatedAPIClient()

    def test_partner_service_is_scheduled_and_completed(self):
        self.api.authenticate_user(self.partner)
        response = self.api.post('/api/v1/business/services/', {
            'client': self.client_record.id,
            'appliance': self.appliance.id,
            'description': 'Ne greje vodu',
            'status': 'completed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        service_id = response.data['id']
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['business_partner'], self.partner.id)
        self.assertEqual(response.data['partner_company_name'], 'Tehnoplus d.o.o.')
        self.assertTrue(Notification.objects.filter(user=self.admin, type='service_created').exists())

        self.api.authenticate_user(self.admin)
        response = self.api.post(f'/api/v1/admin/services/{service_id}/assign-technician/', {
            'technician': self.technician.id,
            'scheduled_date': '2026-03-02T10:00:00+01:00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'assigned')
        self.assertEqual(response.data['technician_name'], 'Gruica Todosijević')

        self.api.authenticate_user(self.technician)
        for next_status in ('scheduled', 'in_progress'):
            response = self.api.patch(f'/api/v1/services/{service_id}/status/',
                                      {'status': next_status}, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)

        mail.outbox = []
        response = self.api.patch(f'/api/v1/services/{service_id}/status/', {
            'status': 'completed',
            'cost': '85.00',
            'technician_notes': 'Zamenjen grejač',
            'used_parts': 'Grejač 2000W',
            'is_completely_fixed': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertIsNotNone(response.data['completed_date'])
        self.assertEqual(response.data['cost'], '85.00')
        self.assertTrue(response.data['email_sent'])
        self.assertIn(f'Ažuriranje statusa servisa #{service_id}', [m.subject for m in mail.outbox])

        service = Service.objects.get(pk=service_id)
        self.assertEqual(
            list(service.status_history.order_by('id').values_list('new_status', flat=True)),
            ['pending', 'assigned', 'scheduled', 'in_progress', 'completed'],
        )
        self.assertEqual(
            Notification.objects.filter(user=self.partner, type='service_status_changed').count(), 3
        )
        self.assertTrue(Notification.objects.filter(user=self.admin, type='service_completed').exists())

        self.api.authenticate_user(self.partner)
        response = self.api.get(f'/api/v1/business/services/{service_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['history']), 5)

    def test_partner_cannot_use_foreign_client(self):
        foreign = TestDataFactory.create_client()
        appliance = TestDataFactory.create_appliance(foreign)
        self.api.authenticate_user(self.partner)
        response = self.api.post('/api/v1/business/services/', {
            'client': foreign.id,
            'appliance': appliance.id,
            'description': 'Ne radi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_appliance_must_belong_to_client(self):
        other_client = TestDataFactory.create_client(created_by=self.partner)
        self.api.authenticate_user(self.partner)
        response = self.api.post('/api/v1/business/services/', {
            'client': other_client.id,
            'appliance': self.appliance.id,
            'description': 'Ne radi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('appliance', response.data)

    def test_partner_does_not_see_other_partners_services(self):
        other_partner = TestDataFactory.create_business_partner(company_name='Drugi')
        service = TestDataFactory.create_service(business_partner=other_partner)
        self.api.authenticate_user(self.partner)
        response = self.api.get(f'/api/v1/business/services/{service.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CustomerServiceTests(TestCase):

    def test_customer_request_notifies_admins(self):
        admin = TestDataFactory.create_admin()
        customer = TestDataFactory.create_user()
        client_record = TestDataFactory.create_client(user=customer)
        appliance = TestDataFactory.create_appliance(client_record)

        api = AuthenticatedAPIClient().authenticate_user(customer)
        response = api.post('/api/v1/customer/services/', {
            'client': client_record.id,
            'appliance': appliance.id,
            'description': 'Curi voda',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['business_partner'], None)
        self.assertTrue(Notification.objects.filter(user=admin, title='Novi zahtev za servis').exists())

        response = api.get('/api/v1/customer/services/')
        self.assertEqual(len(response.data), 1)


    def test_registered_customer_files_request(self):
        TestDataFactory.create_admin()
        api = AuthenticatedAPIClient()
        response = api.post('/api/v1/auth/register/', {
            'username': 'marko_kupac',
            'password': 'Sigurna!Lozinka42',
            'password_confirm': 'Sigurna!Lozinka42',
            'full_name': 'Marko Kupac',
            'phone': '067333444',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        api.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

        profile_id = api.get('/api/v1/clients/').data[0]['id']
        response = api.post('/api/v1/appliances/', {
            'client': profile_id,
            'category': TestDataFactory.create_category().id,
            'manufacturer': TestDataFactory.create_manufacturer().id,
            'model': 'WMB 71032',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = api.post('/api/v1/customer/services/', {
            'appliance': response.data['id'],
            'description': 'Ne centrifugira',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['client'], profile_id)


class AdminServiceAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.technician = TestDataFactory.create_technician()
        self.api = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_admin_list_filters_and_pagination(self):
        for _ in range(3):
            TestDataFactory.create_service()
        TestDataFactory.create_service(technician=self.technician, status=Service.STATUS_IN_PROGRESS)
        response = self.api.get('/api/v1/admin/services/', {'status': 'pending', 'limit': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['total_pages'], 2)

        response = self.api.get('/api/v1/admin/services/', {'unassigned': 'false'})
        self.assertEqual(response.data['count'], 1)

    def test_admin_creates_service_with_technician(self):
        client_record = TestDataFactory.create_client()
        appliance = TestDataFactory.create_appliance(client_record)
        response = self.api.post('/api/v1/services/', {
            'client': client_record.id,
            'appliance': appliance.id,
            'technician': self.technician.id,
            'description': 'Ne hladi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'assigned')
        self.assertIn('technician_assigned', response.data['notifications']['event'])

    def test_admin_update_changes_status_through_workflow(self):
        service = TestDataFactory.create_service(technician=self.technician, status=Service.STATUS_ASSIGNED)
        response = self.api.patch(f'/api/v1/admin/services/{service.id}/',
                                  {'status': 'cancelled', 'urgency': 'high'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['urgency'], 'high')
        self.assertTrue(ServiceStatusHistory.objects.filter(service=service, new_status='cancelled').exists())

    def test_pagination_limit_is_clamped(self):
        for _ in range(3):
            TestDataFactory.create_service()
        response = self.api.get('/api/v1/admin/services/', {'limit': 0})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['page_size'], 1)
        self.assertEqual(len(response.data['results']), 1)

        response = self.api.get('/api/v1/admin/services/', {'limit': -5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['page_size'], 1)

        response = self.api.get('/api/v1/admin/services/', {'limit': 5000})
        self.assertEqual(response.data['page_size'], 100)
        self.assertEqual(response.data['count'], 3)

    def test_rejected_update_saves_nothing(self):
        service = TestDataFactory.create_service(description='Ne greje')
        inactive = TestDataFactory.create_technician(is_active=False)
        response = self.api.patch(f'/api/v1/admin/services/{service.id}/',
                                  {'description': 'Izmenjeno', 'technician': inactive.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        service.refresh_from_db()
        self.assertEqual(service.description, 'Ne greje')
        self.assertIsNone(service.technician)
        self.assertFalse(AuditLog.objects.filter(model_name='Service', action='update').exists())

    def test_history_endpoint(self):
        service = TestDataFactory.create_service(technician=self.technician, status=Service.STATUS_ASSIGNED)
        change_service_status(service, Service.STATUS_WAITING_PARTS, self.admin, notify=False)
        response = self.api.get(f'/api/v1/services/{service.id}/history/')
        self.assertEqual(response.data[0]['new_status_description'], 'Čeka rezervne delove')


class VisitOutcomeTests(TestCase):
    """Client-unavailable and refused-repair visits"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.technician = TestDataFactory.create_technician()
        self.partner = TestDataFactory.create_business_partner()
        self.service = TestDataFactory.create_service(
            technician=self.technician, status=Service.STATUS_SCHEDULED,
            business_partner=self.partner, scheduled_date=timezone.now(),
        )

    def test_client_unavailable_needs_new_appointment(self):
        result = report_client_unavailable(self.service, 'Nije bio kod kuće', self.technician)

        service = Service.objects.get(pk=self.service.pk)
        self.assertEqual(service.status, Service.STATUS_ASSIGNED)
        self.assertTrue(service.needs_rescheduling)
        self.assertIsNone(service.scheduled_date)
        self.assertEqual(service.client_unavailable_reason, 'Nije bio kod kuće')
        self.assertTrue(ServiceStatusHistory.objects.filter(
            service=service, notes='Klijent nedostupan: Nije bio kod kuće').exists())

        templates = [entry['template'] for entry in result.dispatch.sms]
        self.assertIn('protocol_client_unavailable_to_client', templates)
        self.assertIn('protocol_client_unavailable_to_partner', templates)
        self.assertTrue(Notification.objects.filter(user=self.admin, title='Klijent nedostupan').exists())

    def test_scheduling_again_clears_rescheduling_flag(self):
        report_client_unavailable(self.service, 'Ne javlja se', self.technician, notify=False)
        change_service_status(self.service, Service.STATUS_SCHEDULED, self.admin, notify=False)
        self.assertFalse(Service.objects.get(pk=self.service.pk).needs_rescheduling)

    def test_refused_repair_closes_service(self):
        result = refuse_repair(self.service, 'Preskupa popravka', self.technician)

        service = Service.objects.get(pk=self.service.pk)
        self.assertEqual(service.status, Service.STATUS_CANCELLED)
        self.assertTrue(service.customer_refused_repair)
        self.assertEqual(service.repair_refusal_reason, 'Preskupa popravka')
        self.assertEqual(result.old_status, Service.STATUS_SCHEDULED)

        templates = [entry['template'] for entry in result.dispatch.sms]
        self.assertIn('protocol_repair_refused_to_client', templates)
        self.assertIn('protocol_repair_refused_to_partner', templates)
        self.assertTrue(Notification.objects.filter(user=self.partner, title='Klijent odbio popravku').exists())

    def test_closed_service_is_rejected(self):
        Service.objects.filter(pk=self.service.pk).update(status=Service.STATUS_COMPLETED)
        self.service.refresh_from_db()
        with self.assertRaises(InvalidStatusError):
            report_client_unavailable(self.service, 'Nije kod kuće', self.technician)
        with self.assertRaises(InvalidStatusError):
            refuse_repair(self.service, 'Ne želi', self.technician)

    def test_other_technician_is_forbidden(self):
        other = TestDataFactory.create_technician()
        with self.assertRaises(ServicePermissionError):
            refuse_repair(self.service, 'Ne želi', other)

    def test_endpoints(self):
        api = AuthenticatedAPIClient().authenticate_user(self.technician)
        response = api.post(f'/api/v1/services/{self.service.id}/client-unavailable/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = api.post(f'/api/v1/services/{self.service.id}/client-unavailable/',
                            {'reason': 'Nije otvorio vrata'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['needs_rescheduling'])
        self.assertEqual(response.data['notifications']['event'], 'client_unavailable')

        response = api.post(f'/api/v1/services/{self.service.id}/refuse-repair/',
                            {'reason': 'Kupiće novi uređaj'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Service.STATUS_CANCELLED)
        self.assertTrue(response.data['customer_refused_repair'])


class ServiceIntegrityTests(TestCase):

    def setUp(self):
        self.technician = TestDataFactory.create_technician()

    def test_consistent_data(self):
        TestDataFactory.create_service(technician=self.technician, status=Service.STATUS_ASSIGNED)
        report = check_service_integrity()
        self.assertTrue(report['is_consistent'])
        self.assertEqual(report['total_services'], 1)

    def test_detects_inconsistencies(self):
        TestDataFactory.create_service(status=Service.STATUS_IN_PROGRESS)
        TestDataFactory.create_service(status=Service.STATUS_COMPLETED)
        client_record = TestDataFactory.create_client()
        foreign_appliance = TestDataFactory.create_appliance(TestDataFactory.create_client())
        TestDataFactory.create_service(client=client_record, appliance=foreign_appliance)

        report = check_service_integrity()
        self.assertFalse(report['is_consistent'])
        self.assertEqual(report['counts']['active_without_technician'], 1)
        self.assertEqual(report['counts']['completed_without_date'], 1)
        self.assertEqual(report['counts']['appliance_client_mismatch'], 1)

    def test_orphaned_service_is_reported_and_deleted(self):
        orphan = Service.objects.create(client_id=999999, description='Siroče')
        report = check_service_integrity()
        self.assertEqual(report['orphaned']['missing_client'], [orphan.id])

        out = StringIO()
        call_command('check_service_integrity', delete=True, confirm=True, stdout=out)
        self.assertIn('✓ Deleted 1 orphaned services', out.getvalue())
        self.assertFalse(Service.objects.filter(pk=orphan.pk).exists())

    def test_integrity_endpoint_is_admin_only(self):
        api = AuthenticatedAPIClient().authenticate_user(self.technician)
        self.assertEqual(api.get('/api/v1/admin/services/integrity/').status_code, status.HTTP_403_FORBIDDEN)
        api.authenticate_user(TestDataFactory.create_admin())
        response = api.get('/api/v1/admin/services/integrity/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('is_consistent', response.data)


class ServiceStatsTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_stats_are_cached_and_invalidated(self):
        TestDataFactory.create_service()
        self.assertEqual(get_service_stats()['total'], 1)

        # without the commit hook running the cached value stays
        Service.objects.create(client=TestDataFactory.create_client(), description='Drugi')
        self.assertEqual(get_service_stats()['total'], 1)

        with self.captureOnCommitCallbacks(execute=True):
            Service.objects.create(client=TestDataFactory.create_client(), description='Treći')
        stats = get_service_stats()
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['by_status']['pending'], 3)
        self.assertEqual(stats['unassigned'], 3)
