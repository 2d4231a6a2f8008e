"""
URL configuration for the repairdesk project.

Every app exposes its endpoints under api/v1/. Role-scoped endpoints carry
their role as a path prefix (admin/, business/, technician/, customer/,
supplier/).
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Frigo Sistem Servis Admin Panel"
admin.site.site_title = "Frigo Sistem Servis Admin Portal"
admin.site.index_title = "Upravljanje servisima"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('repairdesk.core.urls')),
    path('api/v1/', include('repairdesk.clients.urls')),
    path('api/v1/', include('repairdesk.services.urls')),
    path('api/v1/', include('repairdesk.notifications.urls')),
    path('api/v1/', include('repairdesk.catalog.urls')),
]
