"""
Test suite for the clients module
Tests: role-scoped client access, appliances, reference data and seeding commands
"""
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from repairdesk.clients.models import Client, ApplianceCategory, Manufacturer, Appliance
from repairdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ClientModelTests(TestCase):

    def test_appliance_str(self):
        client = TestDataFactory.create_client()
        appliance = TestDataFactory.create_appliance(client, model='WTV 8736')
        self.assertEqual(str(appliance), 'Veš mašina Beko WTV 8736')
        appliance.model = None
        self.assertEqual(str(appliance), 'Veš mašina Beko')


class ClientAPITests(TestCase):
    """Client visibility per role"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.partner = TestDataFactory.create_business_partner()
        self.other_partner = TestDataFactory.create_business_partner(company_name='Drugi partner')
        self.customer = TestDataFactory.create_user()
        self.partner_client = TestDataFactory.create_client(full_name='Partnerov klijent', created_by=self.partner)
        self.own_client = TestDataFactory.create_client(full_name='Moj profil', user=self.customer)
        self.other_client = TestDataFactory.create_client(full_name='Tuđi klijent', created_by=self.other_partner)
        self.client = AuthenticatedAPIClient()

    def test_admin_sees_all_clients(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

    def test_partner_sees_only_own_clients(self):
        self.client.authenticate_user(self.partner)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual([c['full_name'] for c in response.data], ['Partnerov klijent'])
        response = self.client.get(f'/api/v1/clients/{self.other_client.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_sees_own_profile(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual([c['full_name'] for c in response.data], ['Moj profil'])

    def test_supplier_has_no_client_access(self):
        self.client.authenticate_user(TestDataFactory.create_supplier_user())
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_partner_creates_client(self):
        self.client.authenticate_user(self.partner)
        data = {'full_name': 'Novi Klijent', 'phone': '067 123 456', 'city': 'Budva'}
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Client.objects.get(pk=response.data['id']).created_by, self.partner)

    def test_partner_cannot_link_customer_account(self):
        self.client.authenticate_user(self.partner)
        data = {'full_name': 'Novi Klijent', 'phone': '067 123 456', 'user': self.customer.id}
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Client.objects.filter(full_name='Novi Klijent').exists())

        response = self.client.patch(f'/api/v1/clients/{self.partner_client.id}/',
                                     {'user': self.customer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.partner_client.refresh_from_db()
        self.assertIsNone(self.partner_client.user)

    def test_admin_links_customer_account(self):
        customer = TestDataFactory.create_user()
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/clients/{self.partner_client.id}/',
                                     {'user': customer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.partner_client.refresh_from_db()
        self.assertEqual(self.partner_client.user, customer)

    def test_customer_without_profile_gets_one(self):
        customer = TestDataFactory.create_user(full_name='Ana Marković', phone='067111222')
        self.client.authenticate_user(customer)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['full_name'] for c in response.data], ['Ana Marković'])
        self.assertEqual(Client.objects.get(user=customer).phone, '067111222')

    def test_phone_needs_six_digits(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/clients/', {'full_name': 'X', 'phone': '12-3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_technician_cannot_create_client(self):
        self.client.authenticate_user(TestDataFactory.create_technician())
        response = self.client.post('/api/v1/clients/', {'full_name': 'X', 'phone': '067123456'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_client_with_services_cannot_be_deleted(self):
        TestDataFactory.create_service(client=self.partner_client)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/clients/{self.partner_client.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/clients/{self.other_client.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class ApplianceAPITests(TestCase):

    def setUp(self):
        self.partner = TestDataFactory.create_business_partner()
        self.own_client = TestDataFactory.create_client(created_by=self.partner)
        self.foreign_client = TestDataFactory.create_client()
        self.category = TestDataFactory.create_category('Frižider')
        self.manufacturer = TestDataFactory.create_manufacturer('Candy')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.partner)

    def test_register_appliance_for_own_client(self):
        data = {
            'client': self.own_client.id,
            'category': self.category.id,
            'manufacturer': self.manufacturer.id,
            'model': 'CMDDS 5144',
        }
        response = self.client.post('/api/v1/appliances/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['manufacturer_name'], 'Candy')

    def test_appliance_for_foreign_client_is_rejected(self):
        data = {
            'client': self.foreign_client.id,
            'category': self.category.id,
            'manufacturer': self.manufacturer.id,
        }
        response = self.client.post('/api/v1/appliances/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Appliance.objects.count(), 0)


class ReferenceDataTests(TestCase):

    def test_only_admin_creates_categories(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_technician())
        response = client.post('/api/v1/categories/', {'name': 'Klima'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        client.authenticate_user(TestDataFactory.create_admin())
        response = client.post('/api/v1/categories/', {'name': 'Klima', 'icon': 'ac'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_manufacturer_in_use_cannot_be_deleted(self):
        appliance = TestDataFactory.create_appliance(TestDataFactory.create_client())
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.delete(f'/api/v1/manufacturers/{appliance.manufacturer_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_seed_commands_are_idempotent(self):
        call_command('add_manufacturers', stdout=StringIO())
        call_command('add_appliance_categories', stdout=StringIO())
        manufacturers = Manufacturer.objects.count()
        categories = ApplianceCategory.objects.count()
        self.assertTrue(Manufacturer.objects.filter(name='Candy').exists())

        call_command('add_manufacturers', stdout=StringIO())
        call_command('add_appliance_categories', stdout=StringIO())
        self.assertEqual(Manufacturer.objects.count(), manufacturers)
        self.assertEqual(ApplianceCategory.objects.count(), categories)
