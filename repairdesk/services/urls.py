from django.urls import path
from .views import (
    service_list_create, service_detail, service_update_status, service_history,
    service_client_unavailable, service_refuse_repair,
    admin_service_list, admin_service_detail, admin_assign_technician, admin_service_integrity,
    service_stats, technician_service_list,
    business_service_list_create, business_service_detail,
    customer_service_list_create,
)

urlpatterns = [
    # Shared, scoped by role
    path('services/', service_list_create, name='service-list-create'),
    path('services/<int:pk>/', service_detail, name='service-detail'),
    path('services/<int:pk>/status/', service_update_status, name='service-update-status'),
    path('services/<int:pk>/history/', service_history, name='service-history'),
    path('services/<int:pk>/client-unavailable/', service_client_unavailable, name='service-client-unavailable'),
    path('services/<int:pk>/refuse-repair/', service_refuse_repair, name='service-refuse-repair'),
    path('stats/', service_stats, name='service-stats'),

    # Admin
    path('admin/services/', admin_service_list, name='admin-service-list'),
    path('admin/services/integrity/', admin_service_integrity, name='admin-service-integrity'),
    path('admin/services/<int:pk>/', admin_service_detail, name='admin-service-detail'),
    path('admin/services/<int:pk>/assign-technician/', admin_assign_technician, name='admin-assign-technician'),

    # Technician
    path('technician/services/', technician_service_list, name='technician-service-list'),

    # Business partner
    path('business/services/', business_service_list_create, name='business-service-list-create'),
    path('business/services/<int:pk>/', business_service_detail, name='business-service-detail'),

    # Customer
    path('customer/services/', customer_service_list_create, name='customer-service-list-create'),
]
