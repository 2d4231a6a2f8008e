"""
Test suite for the catalog module
Tests: scraping upsert, catalog browsing per role, part orders, supplier portal, stats
"""
from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from repairdesk.core.models import AuditLog
from repairdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from repairdesk.notifications.models import Notification
from repairdesk.services.models import Service
from repairdesk.catalog.models import SparePartsCatalog, SparePartOrder
from repairdesk.catalog.scraping import (
    QuinnsparesScraper, ScrapedPart, ScrapingResult, clean_part_name, generate_part_number,
    map_availability, map_category, parse_price, save_part,
)
from repairdesk.catalog.stats import get_catalog_stats

BASE_URL = 'https://shop.test'

CANDY_LISTING = """
<html><body>
  <div class="product-list">
    <a href="/product/drain-pump-1.html">Drain pump</a>
    <a href="/product/door-seal-2.html#reviews">Door seal</a>
    <a href="/product/x.html">X</a>
    <a href="https://other.test/product/foreign.html">Foreign</a>
  </div>
</body></html>
"""

DRAIN_PUMP_PAGE = """
<html><body>
  <h1>Original   Drain Pump Washing Machine</h1>
  <span class="price">£24.99</span>
  <div class="availability">In stock</div>
  <img class="product-img" src="/img/pump.jpg">
  <ul class="compatible-models"><li>GO 1260</li><li>X</li></ul>
</body></html>
"""

DOOR_SEAL_PAGE = """
<html><body>
  <h1>Door Seal</h1>
  <span class="sku">41021233</span>
  <div class="stock">Out of stock</div>
</body></html>
"""

SHORT_TITLE_PAGE = '<html><body><h1>X</h1></body></html>'


class FakeResponse:

    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Client Error')


class FakeSession:
    """Serves pages from a dict; unknown URLs answer 404"""

    def __init__(self, pages):
        self.pages = pages
        self.headers = {}
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url not in self.pages:
            return FakeResponse('', status_code=404)
        return FakeResponse(self.pages[url])


def candy_pages():
    return {
        f'{BASE_URL}/candy/c-1022.html': CANDY_LISTING,
        f'{BASE_URL}/product/drain-pump-1.html': DRAIN_PUMP_PAGE,
        f'{BASE_URL}/product/door-seal-2.html': DOOR_SEAL_PAGE,
        f'{BASE_URL}/product/x.html': SHORT_TITLE_PAGE,
    }


def make_scraper(pages):
    return QuinnsparesScraper(base_url=BASE_URL, min_delay=0, max_delay=0, session=FakeSession(pages),
                              sleep=lambda seconds: None)


class ScrapingHelperTests(TestCase):

    def test_map_availability(self):
        self.assertEqual(map_availability('Out of stock'), SparePartsCatalog.AVAILABILITY_OUT_OF_STOCK)
        self.assertEqual(map_availability('Discontinued item'), SparePartsCatalog.AVAILABILITY_DISCONTINUED)
        self.assertEqual(map_availability('Available to order'), SparePartsCatalog.AVAILABILITY_SPECIAL_ORDER)
        self.assertEqual(map_availability('In stock'), SparePartsCatalog.AVAILABILITY_AVAILABLE)
        self.assertEqual(map_availability(None), SparePartsCatalog.AVAILABILITY_AVAILABLE)

    def test_map_category(self):
        self.assertEqual(map_category('Dish rack wheel'), 'dishwasher')
        self.assertEqual(map_category('Filter', 'fits every fridge'), 'fridge-freezer')
        self.assertEqual(map_category('Screw set'), 'universal')

    def test_part_number_is_stable(self):
        url = f'{BASE_URL}/product/drain-pump-1.html'
        first = generate_part_number('Candy', 'Drain Pump 230V!', url)
        self.assertEqual(first, generate_part_number('Candy', 'Drain Pump 230V!', url))
        self.assertTrue(first.startswith('QS-CANDY-DRAINPUMP2-'))
        self.assertNotEqual(first, generate_part_number('Candy', 'Drain Pump 230V!', url + '?v=2'))

    def test_clean_part_name_and_price(self):
        self.assertEqual(clean_part_name('  Genuine  Door   Hinge '), 'Door Hinge')
        self.assertEqual(parse_price('£12,50 inc VAT'), Decimal('12.50'))
        self.assertIsNone(parse_price('Call for price'))

    def test_save_part_keeps_manual_eur_price(self):
        part = ScrapedPart(part_number='PN-1', part_name='Grejač', manufacturer='Beko',
                           supplier_url=f'{BASE_URL}/product/1', price_gbp=Decimal('10.00'))
        self.assertTrue(save_part(part))
        SparePartsCatalog.objects.filter(part_number='PN-1').update(price_eur=Decimal('15.00'))

        part.price_gbp = Decimal('11.00')
        self.assertFalse(save_part(part))
        stored = SparePartsCatalog.objects.get(part_number='PN-1')
        self.assertEqual(stored.price_eur, Decimal('15.00'))
        self.assertEqual(stored.price_gbp, Decimal('11.00'))
        self.assertEqual(stored.source_type, SparePartsCatalog.SOURCE_WEB_SCRAPING)

    def test_save_part_matches_by_name_and_manufacturer(self):
        TestDataFactory.create_spare_part(part_number='MANUAL-1', part_name='Grejač', manufacturer='Beko')
        part = ScrapedPart(part_number='QS-BEKO-GREJA-0001', part_name='Grejač', manufacturer='Beko',
                           supplier_url=f'{BASE_URL}/product/2')
        self.assertFalse(save_part(part))
        self.assertEqual(SparePartsCatalog.objects.count(), 1)
        self.assertEqual(SparePartsCatalog.objects.get().part_number, 'MANUAL-1')


class ScraperTests(TestCase):

    def test_scrape_upserts_parts(self):
        result = make_scraper(candy_pages()).run(manufacturers=['Candy'], max_products=10)

        self.assertTrue(result.success)
        self.assertEqual((result.new_parts, result.updated_parts), (2, 0))
        self.assertEqual(result.errors, [])

        pump = SparePartsCatalog.objects.get(part_name='Drain Pump Washing Machine')
        self.assertTrue(pump.part_number.startswith('QS-CANDY-'))
        self.assertEqual(pump.price_gbp, Decimal('24.99'))
        self.assertEqual(pump.category, 'washing-machine')
        self.assertEqual(pump.image_urls, [f'{BASE_URL}/img/pump.jpg'])
        self.assertEqual(pump.compatible_models, ['GO 1260'])
        self.assertEqual(pump.supplier_name, 'Quinnspares')

        seal = SparePartsCatalog.objects.get(part_number='41021233')
        self.assertEqual(seal.availability, SparePartsCatalog.AVAILABILITY_OUT_OF_STOCK)
        self.assertEqual(seal.description, 'Candy rezervni deo - Door Seal')

    def test_second_run_updates_in_place(self):
        make_scraper(candy_pages()).run(manufacturers=['Candy'])
        result = make_scraper(candy_pages()).run(manufacturers=['Candy'])
        self.assertEqual((result.new_parts, result.updated_parts), (0, 2))
        self.assertEqual(SparePartsCatalog.objects.count(), 2)

    def test_max_products_limits_links(self):
        scraper = make_scraper(candy_pages())
        result = scraper.run(manufacturers=['Candy'], max_products=1)
        self.assertEqual(result.new_parts, 1)
        self.assertNotIn(f'{BASE_URL}/product/door-seal-2.html', scraper.session.requested)

    def test_failed_product_page_is_reported(self):
        pages = candy_pages()
        del pages[f'{BASE_URL}/product/door-seal-2.html']
        result = make_scraper(pages).run(manufacturers=['Candy'])
        self.assertTrue(result.success)
        self.assertEqual(result.new_parts, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertIn('door-seal-2', result.errors[0])

    def test_success_when_any_manufacturer_page_works(self):
        result = make_scraper(candy_pages()).run(manufacturers=['Candy', 'Beko'])
        self.assertTrue(result.success)
        self.assertIn('Beko', result.errors[0])

    def test_failure_when_every_page_fails(self):
        result = make_scraper({}).run(manufacturers=['Beko', 'Whirlpool'])
        self.assertFalse(result.success)
        self.assertEqual(len(result.errors), 2)
        self.assertIn('Nepoznat proizvođač', result.errors[1])


class ScrapeEndpointTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

    def test_admin_runs_scraper(self):
        with mock.patch('repairdesk.catalog.views.QuinnsparesScraper') as scraper_class:
            scraper_class.return_value.run.return_value = ScrapingResult(success=True, new_parts=3,
                                                                         updated_parts=1, duration=2.5)
            response = self.client.post('/api/v1/admin/spare-parts/scrape/',
                                        {'manufacturers': ['Candy'], 'max_products': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['new_parts'], 3)
        scraper_class.return_value.run.assert_called_once_with(manufacturers=['Candy'], max_products=5)
        self.assertTrue(AuditLog.objects.filter(action='scrape').exists())

    def test_failed_scrape_returns_bad_gateway(self):
        with mock.patch('repairdesk.catalog.views.QuinnsparesScraper') as scraper_class:
            scraper_class.return_value.run.return_value = ScrapingResult(success=False, errors=['timeout'])
            response = self.client.post('/api/v1/admin/spare-parts/scrape/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_max_products_is_bounded(self):
        response = self.client.post('/api/v1/admin/spare-parts/scrape/', {'max_products': 500}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_technician_cannot_scrape(self):
        self.client.authenticate_user(TestDataFactory.create_technician())
        response = self.client.post('/api/v1/admin/spare-parts/scrape/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_scrape_command(self):
        out = StringIO()
        with mock.patch('repairdesk.catalog.management.commands.scrape_spare_parts.QuinnsparesScraper') as scraper_class:
            scraper_class.return_value.run.return_value = ScrapingResult(success=True, new_parts=4)
            call_command('scrape_spare_parts', manufacturers=['Beko'], max_products=2, stdout=out)
        scraper_class.return_value.run.assert_called_once_with(manufacturers=['Beko'], max_products=2)
        self.assertIn('✓ Scraping finished: 4 new, 0 updated', out.getvalue())


class CatalogAPITests(TestCase):

    def setUp(self):
        self.pump = TestDataFactory.create_spare_part(part_number='CANDY-41', part_name='Pumpa za vodu',
                                                      manufacturer='Candy', price_eur=Decimal('30.00'))
        self.heater = TestDataFactory.create_spare_part(part_number='BEKO-7', part_name='Grejač',
                                                        manufacturer='Beko', category='washing-machine',
                                                        price_eur=Decimal('45.00'))
        self.filter = TestDataFactory.create_spare_part(part_number='ELUX-3', part_name='Filter masti',
                                                        manufacturer='Electrolux', category='cooker-hood')
        self.client = AuthenticatedAPIClient()

    def test_technician_browses_and_filters(self):
        self.client.authenticate_user(TestDataFactory.create_technician())
        response = self.client.get('/api/v1/spare-parts/')
        self.assertEqual(response.data['count'], 3)

        response = self.client.get('/api/v1/spare-parts/', {'manufacturer': 'beko'})
        self.assertEqual([p['part_number'] for p in response.data['results']], ['BEKO-7'])

        response = self.client.get('/api/v1/spare-parts/', {'search': 'pumpa'})
        self.assertEqual([p['part_number'] for p in response.data['results']], ['CANDY-41'])

        response = self.client.get('/api/v1/spare-parts/', {'max_price': '40'})
        self.assertEqual([p['part_number'] for p in response.data['results']], ['CANDY-41'])

    def test_supplier_sees_own_brands(self):
        self.client.authenticate_user(TestDataFactory.create_supplier_user())
        response = self.client.get('/api/v1/spare-parts/')
        self.assertEqual({p['manufacturer'] for p in response.data['results']}, {'Candy', 'Electrolux'})
        response = self.client.get(f'/api/v1/spare-parts/{self.heater.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_has_no_access(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/spare-parts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_only_admin_edits_catalog(self):
        self.client.authenticate_user(TestDataFactory.create_technician())
        data = {'part_number': 'NEW-1', 'part_name': 'Kaiš', 'manufacturer': 'Beko'}
        response = self.client.post('/api/v1/spare-parts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/spare-parts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['source_type'], SparePartsCatalog.SOURCE_MANUAL)

        response = self.client.patch(f'/api/v1/spare-parts/{self.pump.id}/', {'stock_level': 4}, format='json')
        self.assertEqual(response.data['stock_level'], 4)

    def test_compatible_models_must_be_names(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        data = {'part_number': 'NEW-2', 'part_name': 'Kaiš', 'manufacturer': 'Beko', 'compatible_models': [1, 2]}
        response = self.client.post('/api/v1/spare-parts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PartOrderTests(TestCase):
    """Ordering parts moves the service to waiting_parts"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.technician = TestDataFactory.create_technician()
        self.partner = TestDataFactory.create_business_partner()
        candy = TestDataFactory.create_manufacturer('Candy')
        appliance = TestDataFactory.create_appliance(TestDataFactory.create_client(), manufacturer=candy)
        self.service = TestDataFactory.create_service(appliance=appliance, technician=self.technician,
                                                      business_partner=self.partner,
                                                      status=Service.STATUS_IN_PROGRESS)
        self.client = AuthenticatedAPIClient().authenticate_user(self.technician)

    def test_technician_orders_part(self):
        data = {'service': self.service.id, 'part_name': 'Pumpa za vodu', 'quantity': 2, 'urgency': 'high'}
        response = self.client.post('/api/v1/part-orders/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['service_status'], Service.STATUS_WAITING_PARTS)
        self.assertEqual(response.data['ordered_by'], self.technician.id)
        self.assertEqual(response.data['notifications']['event'], 'parts_ordered')

        self.service.refresh_from_db()
        self.assertEqual(self.service.status, Service.STATUS_WAITING_PARTS)
        self.assertTrue(self.service.status_history.filter(new_status=Service.STATUS_WAITING_PARTS).exists())
        self.assertTrue(Notification.objects.filter(user=self.admin, type='parts_ordered').exists())
        self.assertTrue(Notification.objects.filter(user=self.partner, type='parts_ordered').exists())
        self.assertTrue(AuditLog.objects.filter(action='parts_order').exists())

    def test_order_from_catalog_fills_part_details(self):
        part = TestDataFactory.create_spare_part(part_number='CANDY-9', part_name='Grejač',
                                                 manufacturer='Candy', supplier_name='Com Plus')
        response = self.client.post('/api/v1/part-orders/', {'service': self.service.id, 'catalog_part': part.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = SparePartOrder.objects.get(pk=response.data['id'])
        self.assertEqual((order.part_name, order.part_number, order.supplier_name), ('Grejač', 'CANDY-9', 'Com Plus'))

    def test_part_name_required(self):
        response = self.client.post('/api/v1/part-orders/', {'service': self.service.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('part_name', response.data)

    def test_foreign_service_is_rejected(self):
        other = TestDataFactory.create_service(technician=TestDataFactory.create_technician(),
                                               status=Service.STATUS_IN_PROGRESS)
        response = self.client.post('/api/v1/part-orders/', {'service': other.id, 'part_name': 'Kaiš'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(SparePartOrder.objects.exists())

    def test_closed_service_is_rejected(self):
        self.service.status = Service.STATUS_COMPLETED
        self.service.save()
        response = self.client.post('/api/v1/part-orders/', {'service': self.service.id, 'part_name': 'Kaiš'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_technician_lists_own_orders(self):
        TestDataFactory.create_part_order(self.service, ordered_by=self.admin)
        TestDataFactory.create_part_order(TestDataFactory.create_service(), part_name='Tuđi deo')
        response = self.client.get('/api/v1/part-orders/')
        self.assertEqual([o['part_name'] for o in response.data], ['Pumpa za vodu'])

    def test_only_admin_updates_orders(self):
        order = TestDataFactory.create_part_order(self.service, ordered_by=self.technician)
        response = self.client.patch(f'/api/v1/part-orders/{order.id}/', {'status': 'ordered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/part-orders/{order.id}/', {'status': 'received'}, format='json')
        self.assertEqual(response.data['notifications']['event'], 'parts_arrived')
        self.assertTrue(Notification.objects.filter(user=self.technician, type='parts_arrived').exists())


class SupplierPortalTests(TestCase):

    def setUp(self):
        self.technician = TestDataFactory.create_technician()
        candy = TestDataFactory.create_manufacturer('Candy')
        beko = TestDataFactory.create_manufacturer('Beko')
        client = TestDataFactory.create_client()
        candy_service = TestDataFactory.create_service(
            appliance=TestDataFactory.create_appliance(client, manufacturer=candy),
            technician=self.technician, status=Service.STATUS_WAITING_PARTS,
        )
        beko_service = TestDataFactory.create_service(
            appliance=TestDataFactory.create_appliance(client, manufacturer=beko),
            technician=self.technician, status=Service.STATUS_WAITING_PARTS,
        )
        self.candy_order = TestDataFactory.create_part_order(candy_service, part_name='Pumpa',
                                                             status=SparePartOrder.STATUS_ORDERED)
        self.beko_order = TestDataFactory.create_part_order(beko_service, part_name='Grejač')
        self.complus = TestDataFactory.create_supplier_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.complus)

    def test_supplier_sees_brand_orders(self):
        response = self.client.get('/api/v1/supplier/orders/')
        self.assertIn('Candy', response.data['brands'])
        self.assertEqual([o['id'] for o in response.data['results']], [self.candy_order.id])

        self.client.authenticate_user(TestDataFactory.create_supplier_user(role='supplier_beko'))
        response = self.client.get('/api/v1/supplier/orders/')
        self.assertEqual([o['id'] for o in response.data['results']], [self.beko_order.id])

    def test_status_filter(self):
        response = self.client.get('/api/v1/supplier/orders/', {'status': 'pending,received'})
        self.assertEqual(response.data['results'], [])

    def test_received_announces_arrival(self):
        response = self.client.patch(f'/api/v1/supplier/orders/{self.candy_order.id}/',
                                     {'status': 'received', 'notes': 'Stiglo kurirom'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'received')
        self.assertEqual(response.data['notifications']['event'], 'parts_arrived')
        self.assertTrue(Notification.objects.filter(user=self.technician, type='parts_arrived').exists())

        response = self.client.patch(f'/api/v1/supplier/orders/{self.candy_order.id}/',
                                     {'notes': 'Ispravka'}, format='json')
        self.assertEqual(response.data['notifications'], {})

    def test_supplier_cannot_reset_to_pending(self):
        response = self.client.patch(f'/api/v1/supplier/orders/{self.candy_order.id}/',
                                     {'status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_brand_order_is_hidden(self):
        response = self.client.patch(f'/api/v1/supplier/orders/{self.beko_order.id}/',
                                     {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_technician_cannot_use_portal(self):
        self.client.authenticate_user(self.technician)
        response = self.client.get('/api/v1/supplier/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CatalogStatsTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_stats_are_cached_and_invalidated(self):
        TestDataFactory.create_spare_part(manufacturer='Candy')
        first = get_catalog_stats()
        self.assertEqual(first['total_parts'], 1)

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_spare_part(manufacturer='Beko', category='oven')
        stats = get_catalog_stats()
        self.assertEqual(stats['total_parts'], 2)
        self.assertEqual(stats['by_manufacturer'], {'Candy': 1, 'Beko': 1})

    def test_stats_endpoint_is_admin_only(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_technician())
        self.assertEqual(client.get('/api/v1/spare-parts/stats/').status_code, status.HTTP_403_FORBIDDEN)

        client.authenticate_user(TestDataFactory.create_admin())
        service = TestDataFactory.create_service()
        TestDataFactory.create_part_order(service)
        response = client.get('/api/v1/spare-parts/stats/')
        self.assertEqual(response.data['open_orders'], 1)
        self.assertEqual(response.data['orders_by_status'], {'pending': 1})
