from django.conf import settings
from django.db import models


class Client(models.Model):
    """A person or household whose appliances are serviced"""
    full_name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=30)
    address = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='client_profile', help_text="Linked customer account"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_clients'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clients'
        ordering = ['full_name']
        indexes = [
            models.Index(fields=['phone'], name='idx_client_phone'),
            models.Index(fields=['full_name'], name='idx_client_name'),
        ]

    def __str__(self):
        return self.full_name


class ApplianceCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    icon = models.CharField(max_length=50, blank=True, default='')

    class Meta:
        db_table = 'appliance_categories'
        ordering = ['name']
        verbose_name_plural = 'appliance categories'

    def __str__(self):
        return self.name


class Manufacturer(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        db_table = 'manufacturers'
        ordering = ['name']

    def __str__(self):
        return self.name


class Appliance(models.Model):
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='appliances')
    category = models.ForeignKey(ApplianceCategory, on_delete=models.PROTECT, related_name='appliances')
    manufacturer = models.ForeignKey(Manufacturer, on_delete=models.PROTECT, related_name='appliances')
    model = models.CharField(max_length=100, blank=True, null=True)
    serial_number = models.CharField(max_length=100, blank=True, null=True)
    purchase_date = models.DateField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'appliances'
        ordering = ['-created_at']

    def __str__(self):
        label = f"{self.category.name} {self.manufacturer.name}"
        return f"{label} {self.model}" if self.model else label
