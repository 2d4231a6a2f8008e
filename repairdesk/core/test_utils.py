"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from repairdesk.clients.models import Client, ApplianceCategory, Manufacturer, Appliance
from repairdesk.services.models import Service
from repairdesk.catalog.models import SparePartsCatalog, SparePartOrder
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def random_phone():
        return f'06{random.randint(7, 9)}{random.randint(100000, 999999)}'

    @staticmethod
    def create_user(username=None, role=User.ROLE_CUSTOMER, password='testpass123', phone=None,
                    full_name=None, email=None, **extra):
        """Create a test user with the given role"""
        if not username:
            username = f'{role}_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            phone=phone,
            full_name=full_name or username.replace('_', ' ').title(),
            **extra
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMIN, **kwargs)

    @staticmethod
    def create_technician(**kwargs):
        kwargs.setdefault('phone', TestDataFactory.random_phone())
        return TestDataFactory.create_user(role=User.ROLE_TECHNICIAN, **kwargs)

    @staticmethod
    def create_business_partner(company_name='Tehnoplus d.o.o.', **kwargs):
        return TestDataFactory.create_user(role=User.ROLE_BUSINESS_PARTNER, company_name=company_name, **kwargs)

    @staticmethod
    def create_supplier_user(role=User.ROLE_SUPPLIER_COMPLUS, **kwargs):
        return TestDataFactory.create_user(role=role, **kwargs)

    @staticmethod
    def create_client(full_name=None, phone=None, created_by=None, user=None, email=None, city='Podgorica'):
        """Create a test client"""
        if not full_name:
            full_name = f'Klijent {TestDataFactory.random_string(6)}'
        return Client.objects.create(
            full_name=full_name,
            phone=phone or TestDataFactory.random_phone(),
            email=email,
            city=city,
            created_by=created_by,
            user=user,
        )

    @staticmethod
    def create_category(name=None):
        if not name:
            name = f'Kategorija {TestDataFactory.random_string(6)}'
        return ApplianceCategory.objects.get_or_create(name=name)[0]

    @staticmethod
    def create_manufacturer(name=None):
        if not name:
            name = f'Proizvođač {TestDataFactory.random_string(6)}'
        return Manufacturer.objects.get_or_create(name=name)[0]

    @staticmethod
    def create_appliance(client, category=None, manufacturer=None, model='WM-100'):
        """Create a test appliance for a client"""
        return Appliance.objects.create(
            client=client,
            category=category or TestDataFactory.create_category('Veš mašina'),
            manufacturer=manufacturer or TestDataFactory.create_manufacturer('Beko'),
            model=model,
        )

    @staticmethod
    def create_service(client=None, appliance=None, technician=None, status=Service.STATUS_PENDING,
                       description='Ne radi centrifuga', **extra):
        """Create a test service (without notifications)"""
        if client is None:
            client = appliance.client if appliance else TestDataFactory.create_client()
        if appliance is None:
            appliance = TestDataFactory.create_appliance(client)
        return Service.objects.create(
            client=client,
            appliance=appliance,
            technician=technician,
            status=status,
            description=description,
            **extra
        )

    @staticmethod
    def create_spare_part(part_number=None, part_name='Pumpa za vodu', manufacturer='Beko', **extra):
        """Create a test catalog entry"""
        if not part_number:
            part_number = f'PN-{TestDataFactory.random_string(8).upper()}'
        return SparePartsCatalog.objects.create(
            part_number=part_number,
            part_name=part_name,
            manufacturer=manufacturer,
            **extra
        )

    @staticmethod
    def create_part_order(service, part_name='Pumpa za vodu', ordered_by=None, **extra):
        return SparePartOrder.objects.create(
            service=service,
            part_name=part_name,
            ordered_by=ordered_by,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
