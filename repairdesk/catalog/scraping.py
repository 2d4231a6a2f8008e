"""
Spare-parts scraping from the Quinnspares supplier site.

Category pages of each manufacturer are fetched with requests, product links
and product pages are parsed with BeautifulSoup, and every part is upserted
into the catalog. Re-running for the same part updates it in place.
"""
import logging
import random
import re
import time
import zlib
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from django.conf import settings

from repairdesk.core.cache_signals import suspend_cache_signals, invalidate_catalog_stats_cache
from .models import SparePartsCatalog

logger = logging.getLogger(__name__)

SUPPLIER_NAME = 'Quinnspares'

DEFAULT_MANUFACTURERS = ['Candy', 'Beko', 'Electrolux', 'Hoover']

MANUFACTURER_PATHS = {
    'candy': '/candy/c-1022.html',
    'beko': '/beko/c-1651.html',
    'electrolux': '/electrolux/c-1109.html',
    'hoover': '/hoover/c-1170.html',
}

REQUEST_HEADERS = {
    'User-Agent': ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                   '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'),
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
}

PRODUCT_LINK_SELECTORS = [
    'a[href*="/product/"]',
    'a[href*="/part/"]',
    'a[href*="/spare-part/"]',
    '.product-item a',
    '.product-card a',
    '.product a',
    '.product-list a',
    '[data-product] a',
]

TITLE_SELECTORS = ['h1', '.product-title', '.product-name', '.title']
DESCRIPTION_SELECTORS = ['.product-description', '.description', '.product-details']
PRICE_SELECTORS = ['.price', '.product-price', '[class*="price"]']
PART_NUMBER_SELECTORS = ['.part-number', '.sku', '.code']
AVAILABILITY_SELECTORS = ['.availability', '.stock']
IMAGE_SELECTORS = ['img[class*="product"]', '.product-image img', 'img[alt*="product"]']
MODEL_SELECTORS = '.compatible-models li, .models li'

CATEGORY_KEYWORDS = [
    ('washing-machine', ('washing', 'veš', 'washer')),
    ('dishwasher', ('dishwasher', 'sudopera', 'dish')),
    ('oven', ('oven', 'šporet', 'pećnica', 'cooker')),
    ('cooker-hood', ('hood', 'aspirator', 'extractor')),
    ('tumble-dryer', ('dryer', 'sušilica', 'tumble')),
    ('fridge-freezer', ('fridge', 'freezer', 'frižider', 'zamrzivač')),
    ('microwave', ('microwave', 'mikrotalasna', 'micro')),
    ('vacuum-cleaner', ('vacuum', 'usisivač', 'hoover bag')),
]


@dataclass
class ScrapedPart:
    part_number: str
    part_name: str
    manufacturer: str
    supplier_url: str
    category: str = 'universal'
    description: Optional[str] = None
    price_gbp: Optional[Decimal] = None
    price_eur: Optional[Decimal] = None
    image_urls: List[str] = field(default_factory=list)
    availability: str = SparePartsCatalog.AVAILABILITY_AVAILABLE
    compatible_models: List[str] = field(default_factory=list)
    technical_specs: Optional[str] = None
    supplier_name: str = SUPPLIER_NAME
    is_oem_part: bool = False


@dataclass
class ScrapingResult:
    success: bool
    new_parts: int = 0
    updated_parts: int = 0
    errors: List[str] = field(default_factory=list)
    duration: float = 0.0

    def as_dict(self):
        return {
            'success': self.success,
            'new_parts': self.new_parts,
            'updated_parts': self.updated_parts,
            'errors': self.errors,
            'duration': round(self.duration, 2),
        }


def map_category(title, description=''):
    text = f'{title} {description or ""}'.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return 'universal'


def map_availability(text):
    value = (text or '').lower()
    if 'out of stock' in value or 'nema' in value or 'unavailable' in value:
        return SparePartsCatalog.AVAILABILITY_OUT_OF_STOCK
    if 'discontinued' in value or 'prestalo' in value:
        return SparePartsCatalog.AVAILABILITY_DISCONTINUED
    if 'special' in value or 'to order' in value:
        return SparePartsCatalog.AVAILABILITY_SPECIAL_ORDER
    return SparePartsCatalog.AVAILABILITY_AVAILABLE


def clean_part_name(title):
    """Collapse whitespace, drop an "Original/OEM/Genuine" prefix, cap at 200 chars"""
    name = re.sub(r'\s+', ' ', title or '').strip()
    name = re.sub(r'^(Original|OEM|Genuine|Originalni)\s*', '', name, flags=re.IGNORECASE)
    return name.strip()[:200]


def generate_part_number(manufacturer, title, url):
    """
    QS-<MANUFACTURER>-<first 10 alphanumerics of title>-<4 digits>.

    The suffix is derived from the product URL so repeated runs produce the
    same number for the same product.
    """
    cleaned = re.sub(r'[^a-zA-Z0-9]', '', title or '').upper()[:10]
    suffix = zlib.crc32(url.encode('utf-8')) % 10000
    return f'QS-{manufacturer.upper()}-{cleaned}-{suffix:04d}'


def parse_price(text):
    match = re.search(r'\d+(?:[.,]\d+)?', text or '')
    if not match:
        return None
    try:
        return Decimal(match.group(0).replace(',', '.')).quantize(Decimal('0.01'))
    except InvalidOperation:
        return None


def _first_text(soup, selectors):
    for selector in selectors:
        element = soup.select_one(selector)
        if element:
            text = element.get_text(' ', strip=True)
            if text:
                return text
    return ''


def _first_attr(soup, selectors, attribute):
    for selector in selectors:
        element = soup.select_one(selector)
        if element and element.get(attribute):
            return element[attribute]
    return ''


def save_part(part):
    """
    Insert or update a catalog entry.

    Matches by part number first, then by name and manufacturer.
    Returns True when a new row was created.
    """
    existing = SparePartsCatalog.objects.filter(part_number=part.part_number).first()
    if existing is None:
        existing = SparePartsCatalog.objects.filter(
            part_name=part.part_name, manufacturer=part.manufacturer
        ).first()

    values = {
        'part_name': part.part_name,
        'description': part.description,
        'category': part.category,
        'manufacturer': part.manufacturer,
        'price_gbp': part.price_gbp,
        'price_eur': part.price_eur,
        'supplier_name': part.supplier_name,
        'supplier_url': part.supplier_url,
        'image_urls': part.image_urls,
        'availability': part.availability,
        'compatible_models': part.compatible_models,
        'technical_specs': part.technical_specs,
        'source_type': SparePartsCatalog.SOURCE_WEB_SCRAPING,
        'is_oem_part': part.is_oem_part,
    }

    if existing is not None:
        for attr, value in values.items():
            # scraped pages carry no EUR price or specs; keep values entered by hand
            if value is None and attr in ('price_eur', 'technical_specs'):
                continue
            setattr(existing, attr, value)
        existing.save()
        return False

    SparePartsCatalog.objects.create(part_number=part.part_number, **values)
    return True


class QuinnsparesScraper:

    def __init__(self, base_url=None, timeout=None, min_delay=None, max_delay=None,
                 session: Optional[requests.Session] = None, sleep: Callable[[float], None] = time.sleep):
        self.base_url = (base_url or getattr(settings, 'SCRAPER_BASE_URL', 'https://www.quinnspares.com')).rstrip('/')
        self.timeout = timeout or getattr(settings, 'SCRAPER_TIMEOUT', 10)
        self.min_delay = getattr(settings, 'SCRAPER_MIN_DELAY', 1) if min_delay is None else min_delay
        self.max_delay = getattr(settings, 'SCRAPER_MAX_DELAY', 3) if max_delay is None else max_delay
        self.session = session or requests.Session()
        self.session.headers.update(REQUEST_HEADERS)
        self.sleep = sleep

    def fetch(self, url):
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return BeautifulSoup(response.text, 'html.parser')

    def manufacturer_url(self, manufacturer):
        path = MANUFACTURER_PATHS.get(manufacturer.lower())
        return f'{self.base_url}{path}' if path else None

    def delay(self):
        if self.max_delay <= 0:
            return
        self.sleep(random.uniform(self.min_delay, self.max_delay))

    def extract_product_links(self, soup, page_url):
        """Absolute product URLs on the supplier's own domain, in page order"""
        host = urlparse(self.base_url).netloc
        links = []
        for selector in PRODUCT_LINK_SELECTORS:
            for anchor in soup.select(selector):
                href = anchor.get('href')
                if not href:
                    continue
                url = urljoin(page_url, href).split('#')[0]
                if urlparse(url).netloc == host and url != page_url and url not in links:
                    links.append(url)
        return links

    def extract_part(self, soup, url, manufacturer):
        title = _first_text(soup, TITLE_SELECTORS)
        if len(title) <= 3:
            return None

        description = _first_text(soup, DESCRIPTION_SELECTORS)
        image = _first_attr(soup, IMAGE_SELECTORS, 'src')
        models = [li.get_text(strip=True) for li in soup.select(MODEL_SELECTORS)]

        return ScrapedPart(
            part_number=_first_text(soup, PART_NUMBER_SELECTORS) or generate_part_number(manufacturer, title, url),
            part_name=clean_part_name(title),
            description=description or f'{manufacturer} rezervni deo - {title}',
            category=map_category(title, description),
            manufacturer=manufacturer,
            price_gbp=parse_price(_first_text(soup, PRICE_SELECTORS)),
            supplier_url=url,
            image_urls=[urljoin(url, image)] if image else [],
            availability=map_availability(_first_text(soup, AVAILABILITY_SELECTORS)),
            compatible_models=[m for m in models if len(m) > 2],
        )

    def scrape_manufacturer(self, manufacturer, max_products, result):
        """Returns False on a page-level failure"""
        url = self.manufacturer_url(manufacturer)
        if url is None:
            result.errors.append(f'Nepoznat proizvođač za scraping: {manufacturer}')
            return False

        try:
            listing = self.fetch(url)
        except requests.RequestException as e:
            logger.error(f"Scraping {manufacturer} category page failed: {str(e)}")
            result.errors.append(f'Greška pri scraping-u {manufacturer}: {str(e)}')
            return False

        links = self.extract_product_links(listing, url)[:max_products]
        logger.info(f"Scraping {manufacturer}: {len(links)} product links")

        for index, product_url in enumerate(links):
            try:
                part = self.extract_part(self.fetch(product_url), product_url, manufacturer)
                if part is not None:
                    if save_part(part):
                        result.new_parts += 1
                    else:
                        result.updated_parts += 1
            except Exception as e:
                logger.warning(f"Scraping product {product_url} failed: {str(e)}")
                result.errors.append(f'Greška pri obradi proizvoda {product_url}: {str(e)}')
            if index < len(links) - 1:
                self.delay()
        return True

    def run(self, manufacturers=None, max_products=10):
        """Scrape the given manufacturers; returns a ScrapingResult"""
        manufacturers = manufacturers or DEFAULT_MANUFACTURERS
        started = time.monotonic()
        result = ScrapingResult(success=False)

        with suspend_cache_signals():
            page_ok = [self.scrape_manufacturer(m, max_products, result) for m in manufacturers]
        invalidate_catalog_stats_cache()

        result.success = any(page_ok)
        result.duration = time.monotonic() - started
        logger.info(f"Scraping finished in {result.duration:.1f}s: {result.new_parts} new, "
                    f"{result.updated_parts} updated, {len(result.errors)} errors")
        return result
