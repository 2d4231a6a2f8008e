from django.contrib import admin
from .models import Service, ServiceStatusHistory


class ServiceStatusHistoryInline(admin.TabularInline):
    model = ServiceStatusHistory
    extra = 0
    readonly_fields = ['old_status', 'new_status', 'changed_by', 'notes', 'created_at']


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ['id', 'client', 'appliance', 'technician', 'status', 'urgency', 'scheduled_date', 'created_at']
    list_filter = ['status', 'urgency', 'warranty_status', 'needs_rescheduling', 'customer_refused_repair', 'created_at']
    search_fields = ['id', 'client__full_name', 'client__phone', 'description']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at', 'completed_date']
    raw_id_fields = ['client', 'appliance', 'technician', 'business_partner', 'created_by']
    inlines = [ServiceStatusHistoryInline]


@admin.register(ServiceStatusHistory)
class ServiceStatusHistoryAdmin(admin.ModelAdmin):
    list_display = ['service', 'old_status', 'new_status', 'changed_by', 'created_at']
    list_filter = ['new_status', 'created_at']
    readonly_fields = ['service', 'old_status', 'new_status', 'changed_by', 'notes', 'created_at']
