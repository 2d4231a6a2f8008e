from django.conf import settings
from django.db import models


class SparePartsCatalog(models.Model):
    """Spare part known to the shop, entered by hand or scraped from a supplier site"""
    CATEGORY_CHOICES = [
        ('washing-machine', 'Veš mašina'),
        ('dishwasher', 'Sudo mašina'),
        ('oven', 'Rerna'),
        ('cooker-hood', 'Aspirator'),
        ('tumble-dryer', 'Sušilica'),
        ('fridge-freezer', 'Frižider/Zamrzivač'),
        ('microwave', 'Mikrotalasna'),
        ('vacuum-cleaner', 'Usisivač'),
        ('universal', 'Univerzalni'),
    ]

    AVAILABILITY_AVAILABLE = 'available'
    AVAILABILITY_OUT_OF_STOCK = 'out_of_stock'
    AVAILABILITY_DISCONTINUED = 'discontinued'
    AVAILABILITY_SPECIAL_ORDER = 'special_order'

    AVAILABILITY_CHOICES = [
        (AVAILABILITY_AVAILABLE, 'Dostupno'),
        (AVAILABILITY_OUT_OF_STOCK, 'Nema na stanju'),
        (AVAILABILITY_DISCONTINUED, 'Ukinuto'),
        (AVAILABILITY_SPECIAL_ORDER, 'Po porudžbini'),
    ]

    SOURCE_MANUAL = 'manual'
    SOURCE_WEB_SCRAPING = 'web_scraping'

    SOURCE_CHOICES = [
        (SOURCE_MANUAL, 'Ručni unos'),
        (SOURCE_WEB_SCRAPING, 'Web scraping'),
    ]

    part_number = models.CharField(max_length=100, unique=True)
    part_name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default='universal')
    manufacturer = models.CharField(max_length=100)
    price_eur = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    price_gbp = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    supplier_name = models.CharField(max_length=100, blank=True, null=True)
    supplier_url = models.URLField(max_length=500, blank=True, null=True)
    image_urls = models.JSONField(default=list, blank=True)
    availability = models.CharField(max_length=20, choices=AVAILABILITY_CHOICES, default=AVAILABILITY_AVAILABLE)
    stock_level = models.IntegerField(default=0)
    compatible_models = models.JSONField(default=list, blank=True)
    technical_specs = models.TextField(blank=True, null=True)
    source_type = models.CharField(max_length=20, choices=SOURCE_CHOICES, default=SOURCE_MANUAL)
    is_oem_part = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'spare_parts_catalog'
        ordering = ['manufacturer', 'part_name']
        indexes = [
            models.Index(fields=['manufacturer', 'category'], name='idx_part_mfr_category'),
            models.Index(fields=['part_name', 'manufacturer'], name='idx_part_name_mfr'),
        ]

    def __str__(self):
        return f"{self.part_number} - {self.part_name}"


class SparePartOrder(models.Model):
    """Part ordered for a service"""
    STATUS_PENDING = 'pending'
    STATUS_ORDERED = 'ordered'
    STATUS_RECEIVED = 'received'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Na čekanju'),
        (STATUS_ORDERED, 'Poručeno'),
        (STATUS_RECEIVED, 'Primljeno'),
        (STATUS_DELIVERED, 'Isporučeno'),
        (STATUS_CANCELLED, 'Otkazano'),
    ]

    URGENCY_CHOICES = [
        ('normal', 'Normalno'),
        ('high', 'Brzo'),
        ('urgent', 'Hitno'),
    ]

    service = models.ForeignKey('services.Service', on_delete=models.CASCADE, related_name='part_orders')
    catalog_part = models.ForeignKey(
        SparePartsCatalog, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders'
    )
    part_name = models.CharField(max_length=255)
    part_number = models.CharField(max_length=100, blank=True, null=True)
    quantity = models.PositiveIntegerField(default=1)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='normal')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    supplier_name = models.CharField(max_length=100, blank=True, null=True)
    estimated_delivery = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    ordered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='part_orders'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'spare_part_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_partorder_status'),
            models.Index(fields=['service', 'status'], name='idx_partorder_service_status'),
        ]

    def __str__(self):
        return f"{self.part_name} x{self.quantity} (servis #{self.service_id})"
