from django.urls import path
from .views import (
    client_list_create, client_detail, client_appliances,
    appliance_list_create, appliance_detail,
    category_list_create, category_detail,
    manufacturer_list_create, manufacturer_detail,
)

urlpatterns = [
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:pk>/appliances/', client_appliances, name='client-appliances'),
    path('appliances/', appliance_list_create, name='appliance-list-create'),
    path('appliances/<int:pk>/', appliance_detail, name='appliance-detail'),
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('manufacturers/', manufacturer_list_create, name='manufacturer-list-create'),
    path('manufacturers/<int:pk>/', manufacturer_detail, name='manufacturer-detail'),
]
