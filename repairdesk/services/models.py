from django.conf import settings
from django.db import models

from repairdesk.clients.models import Client, Appliance


class Service(models.Model):
    """A single repair job tracked from intake to completion"""
    STATUS_PENDING = 'pending'
    STATUS_ASSIGNED = 'assigned'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_WAITING_PARTS = 'waiting_parts'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Na čekanju'),
        (STATUS_ASSIGNED, 'Dodeljen serviseru'),
        (STATUS_SCHEDULED, 'Zakazan termin'),
        (STATUS_IN_PROGRESS, 'U toku'),
        (STATUS_WAITING_PARTS, 'Čeka rezervne delove'),
        (STATUS_COMPLETED, 'Završen'),
        (STATUS_CANCELLED, 'Otkazan'),
    ]

    ACTIVE_STATUSES = [STATUS_ASSIGNED, STATUS_SCHEDULED, STATUS_IN_PROGRESS, STATUS_WAITING_PARTS]
    CLOSED_STATUSES = [STATUS_COMPLETED, STATUS_CANCELLED]

    WARRANTY_CHOICES = [
        ('in_warranty', 'U garanciji'),
        ('out_of_warranty', 'Van garancije'),
    ]

    URGENCY_CHOICES = [
        ('normal', 'Normalno'),
        ('high', 'Hitno'),
        ('urgent', 'Veoma hitno'),
    ]

    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='services')
    appliance = models.ForeignKey(Appliance, on_delete=models.SET_NULL, null=True, blank=True, related_name='services')
    technician = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='assigned_services'
    )
    business_partner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='partner_services'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_services'
    )
    partner_company_name = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    warranty_status = models.CharField(max_length=20, choices=WARRANTY_CHOICES, default='out_of_warranty')
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='normal')
    scheduled_date = models.DateTimeField(null=True, blank=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    technician_notes = models.TextField(blank=True, null=True)
    used_parts = models.TextField(blank=True, null=True)
    machine_notes = models.TextField(blank=True, null=True)
    is_completely_fixed = models.BooleanField(null=True, blank=True)
    client_unavailable_reason = models.TextField(blank=True, null=True)
    needs_rescheduling = models.BooleanField(default=False)
    customer_refused_repair = models.BooleanField(default=False)
    repair_refusal_reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'services'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_service_status'),
            models.Index(fields=['-created_at'], name='idx_service_created'),
            models.Index(fields=['technician', 'status'], name='idx_service_tech_status'),
        ]

    def __str__(self):
        return f"Servis #{self.pk}"

    @property
    def status_description(self):
        return STATUS_DESCRIPTIONS.get(self.status, self.status)

    @property
    def is_closed(self):
        return self.status in self.CLOSED_STATUSES


STATUS_DESCRIPTIONS = dict(Service.STATUS_CHOICES)


class ServiceStatusHistory(models.Model):
    """One row per status change of a service"""
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name='status_history')
    old_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='service_status_changes'
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'service_status_history'
        ordering = ['-created_at']
        verbose_name_plural = 'service status history'

    def __str__(self):
        return f"#{self.service_id}: {self.old_status} -> {self.new_status}"
