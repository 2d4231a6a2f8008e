from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Application user; the role decides which dashboard and endpoints are available"""
    ROLE_ADMIN = 'admin'
    ROLE_TECHNICIAN = 'technician'
    ROLE_CUSTOMER = 'customer'
    ROLE_BUSINESS_PARTNER = 'business_partner'
    ROLE_SUPPLIER_COMPLUS = 'supplier_complus'
    ROLE_SUPPLIER_BEKO = 'supplier_beko'

    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_TECHNICIAN, 'Serviser'),
        (ROLE_CUSTOMER, 'Klijent'),
        (ROLE_BUSINESS_PARTNER, 'Poslovni partner'),
        (ROLE_SUPPLIER_COMPLUS, 'Dobavljač Com Plus'),
        (ROLE_SUPPLIER_BEKO, 'Dobavljač Beko'),
    ]

    full_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default=ROLE_CUSTOMER)
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    company_name = models.CharField(max_length=255, blank=True, null=True, help_text="Business partner company")
    specialization = models.CharField(max_length=255, blank=True, null=True, help_text="Technician specialization")
    is_verified = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.full_name or self.username

    @property
    def display_name(self):
        return self.full_name or self.get_full_name() or self.username

    @property
    def is_admin_role(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_technician(self):
        return self.role == self.ROLE_TECHNICIAN

    @property
    def is_customer(self):
        return self.role == self.ROLE_CUSTOMER

    @property
    def is_business_partner(self):
        return self.role == self.ROLE_BUSINESS_PARTNER

    @property
    def is_supplier(self):
        return self.role.startswith('supplier_')


class Setting(models.Model):
    """Runtime settings editable by administrators"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('technician_assign', 'Technician Assigned'),
        ('parts_order', 'Parts Ordered'),
        ('backup', 'Backup'),
        ('restore', 'Restore'),
        ('scrape', 'Catalog Scraping'),
        ('sql_query', 'SQL Query'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., client name, part number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
        ]
