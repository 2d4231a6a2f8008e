"""Spare-parts catalog and order counters for the admin dashboard"""
from django.db.models import Count
from django.utils import timezone

from repairdesk.core.cache_utils import cached_query, CATALOG_STATS_CACHE_TTL
from .models import SparePartsCatalog, SparePartOrder


@cached_query(cache_ttl=CATALOG_STATS_CACHE_TTL, key_prefix="catalog_stats")
def get_catalog_stats():
    def counts(queryset, field):
        return {row[field]: row['total'] for row in queryset.values(field).annotate(total=Count('id')).order_by()}

    parts = SparePartsCatalog.objects.all()
    return {
        'total_parts': parts.count(),
        'by_category': counts(parts, 'category'),
        'by_manufacturer': counts(parts, 'manufacturer'),
        'by_availability': counts(parts, 'availability'),
        'by_source': counts(parts, 'source_type'),
        'orders_by_status': counts(SparePartOrder.objects.all(), 'status'),
        'open_orders': SparePartOrder.objects.filter(
            status__in=[SparePartOrder.STATUS_PENDING, SparePartOrder.STATUS_ORDERED]
        ).count(),
        'generated_at': timezone.now().isoformat(),
    }
