import django_filters
from django.db.models import Q
from .models import Service


class ServiceFilter(django_filters.FilterSet):
    """Filters for the admin service list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.MultipleChoiceFilter(choices=Service.STATUS_CHOICES)
    technician = django_filters.NumberFilter(field_name='technician_id', lookup_expr='exact')
    client = django_filters.NumberFilter(field_name='client_id', lookup_expr='exact')
    business_partner = django_filters.NumberFilter(field_name='business_partner_id', lookup_expr='exact')
    urgency = django_filters.ChoiceFilter(choices=Service.URGENCY_CHOICES)
    warranty_status = django_filters.ChoiceFilter(choices=Service.WARRANTY_CHOICES)
    manufacturer = django_filters.CharFilter(field_name='appliance__manufacturer__name', lookup_expr='iexact')
    created_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    scheduled_from = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='date__gte')
    scheduled_to = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='date__lte')
    unassigned = django_filters.BooleanFilter(field_name='technician', lookup_expr='isnull')

    class Meta:
        model = Service
        fields = ['search', 'status', 'technician', 'client', 'business_partner', 'urgency',
                  'warranty_status', 'manufacturer', 'unassigned']

    def filter_search(self, queryset, name, value):
        """Search by service id, client, phone, description or appliance model"""
        value = (value or '').strip()
        if not value:
            return queryset
        query = (
            Q(client__full_name__icontains=value) |
            Q(client__phone__icontains=value) |
            Q(description__icontains=value) |
            Q(appliance__model__icontains=value) |
            Q(appliance__serial_number__icontains=value)
        )
        if value.lstrip('#').isdigit():
            query |= Q(pk=int(value.lstrip('#')))
        return queryset.filter(query)
