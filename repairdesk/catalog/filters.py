import django_filters
from django.db.models import Q

from .models import SparePartsCatalog, SparePartOrder


class SparePartsCatalogFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.MultipleChoiceFilter(choices=SparePartsCatalog.CATEGORY_CHOICES)
    manufacturer = django_filters.CharFilter(field_name='manufacturer', lookup_expr='iexact')
    availability = django_filters.MultipleChoiceFilter(choices=SparePartsCatalog.AVAILABILITY_CHOICES)
    source_type = django_filters.ChoiceFilter(choices=SparePartsCatalog.SOURCE_CHOICES)
    is_oem_part = django_filters.BooleanFilter()
    min_price = django_filters.NumberFilter(field_name='price_eur', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price_eur', lookup_expr='lte')

    class Meta:
        model = SparePartsCatalog
        fields = ['category', 'manufacturer', 'availability', 'source_type', 'is_oem_part']

    def filter_search(self, queryset, name, value):
        """Part number, name, description and compatible models"""
        if not value:
            return queryset
        return queryset.filter(
            Q(part_number__icontains=value) |
            Q(part_name__icontains=value) |
            Q(description__icontains=value) |
            Q(compatible_models__icontains=value)
        )


class SparePartOrderFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=SparePartOrder.STATUS_CHOICES)
    urgency = django_filters.ChoiceFilter(choices=SparePartOrder.URGENCY_CHOICES)
    service = django_filters.NumberFilter(field_name='service_id')
    manufacturer = django_filters.CharFilter(field_name='service__appliance__manufacturer__name',
                                             lookup_expr='iexact')
    created_after = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_before = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = SparePartOrder
        fields = ['status', 'urgency', 'service']
