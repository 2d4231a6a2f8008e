from django.contrib import admin
from .models import Client, ApplianceCategory, Manufacturer, Appliance


class ApplianceInline(admin.TabularInline):
    model = Appliance
    extra = 0


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'phone', 'email', 'city', 'created_by', 'created_at']
    list_filter = ['city', 'created_at']
    search_fields = ['full_name', 'phone', 'email', 'address']
    ordering = ['full_name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ApplianceInline]


@admin.register(ApplianceCategory)
class ApplianceCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'icon']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Manufacturer)
class ManufacturerAdmin(admin.ModelAdmin):
    list_display = ['name']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Appliance)
class ApplianceAdmin(admin.ModelAdmin):
    list_display = ['client', 'category', 'manufacturer', 'model', 'serial_number', 'created_at']
    list_filter = ['category', 'manufacturer']
    search_fields = ['model', 'serial_number', 'client__full_name']
