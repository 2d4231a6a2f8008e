from django.contrib import admin
from .models import SparePartsCatalog, SparePartOrder


@admin.register(SparePartsCatalog)
class SparePartsCatalogAdmin(admin.ModelAdmin):
    list_display = ['part_number', 'part_name', 'manufacturer', 'category', 'price_eur', 'availability',
                    'source_type', 'last_updated']
    list_filter = ['category', 'availability', 'source_type', 'is_oem_part', 'manufacturer']
    search_fields = ['part_number', 'part_name', 'description']
    readonly_fields = ['created_at', 'last_updated']


@admin.register(SparePartOrder)
class SparePartOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'service', 'part_name', 'quantity', 'urgency', 'status', 'estimated_delivery',
                    'ordered_by', 'created_at']
    list_filter = ['status', 'urgency', 'created_at']
    search_fields = ['part_name', 'part_number', 'service__client__full_name']
    raw_id_fields = ['service', 'catalog_part', 'ordered_by']
    readonly_fields = ['created_at', 'updated_at']
