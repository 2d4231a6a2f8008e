from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Setting, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'full_name', 'role', 'phone', 'is_active', 'is_verified', 'date_joined']
    list_filter = ['role', 'is_active', 'is_verified', 'is_staff', 'date_joined']
    search_fields = ['username', 'email', 'full_name', 'phone', 'company_name']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Servis', {'fields': ('full_name', 'role', 'phone', 'address', 'city', 'company_name',
                               'specialization', 'is_verified')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Servis', {'fields': ('full_name', 'role', 'phone')}),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['model_name', 'object_id', 'object_name']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']
