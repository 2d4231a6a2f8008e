from django.urls import path
from .views import (
    spare_part_list_create, spare_part_detail, spare_part_stats,
    part_order_list_create, part_order_detail,
    supplier_order_list, supplier_order_detail,
    admin_scrape_spare_parts,
)

urlpatterns = [
    # Spare parts catalog
    path('spare-parts/', spare_part_list_create, name='spare-part-list-create'),
    path('spare-parts/stats/', spare_part_stats, name='spare-part-stats'),
    path('spare-parts/<int:pk>/', spare_part_detail, name='spare-part-detail'),

    # Part orders
    path('part-orders/', part_order_list_create, name='part-order-list-create'),
    path('part-orders/<int:pk>/', part_order_detail, name='part-order-detail'),

    # Supplier portal
    path('supplier/orders/', supplier_order_list, name='supplier-order-list'),
    path('supplier/orders/<int:pk>/', supplier_order_detail, name='supplier-order-detail'),

    # Scraping
    path('admin/spare-parts/scrape/', admin_scrape_spare_parts, name='admin-spare-parts-scrape'),
]
