"""Dashboard numbers for the admin panel"""
from django.db.models import Count, Sum
from django.utils import timezone

from repairdesk.core.cache_utils import cached_query, SERVICE_STATS_CACHE_TTL
from .models import Service


@cached_query(cache_ttl=SERVICE_STATS_CACHE_TTL, key_prefix="service_stats")
def get_service_stats():
    by_status = {code: 0 for code, _ in Service.STATUS_CHOICES}
    for row in Service.objects.values('status').annotate(total=Count('id')):
        by_status[row['status']] = row['total']

    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    completed_this_month = Service.objects.filter(
        status=Service.STATUS_COMPLETED, completed_date__gte=month_start
    )
    revenue = completed_this_month.aggregate(total=Sum('cost'))['total']

    per_technician = list(
        Service.objects.filter(technician__isnull=False, status__in=Service.ACTIVE_STATUSES)
        .values('technician_id', 'technician__full_name', 'technician__username')
        .annotate(active=Count('id'))
        .order_by('-active')
    )

    return {
        'total': sum(by_status.values()),
        'by_status': by_status,
        'active': sum(by_status[s] for s in Service.ACTIVE_STATUSES),
        'unassigned': Service.objects.filter(technician__isnull=True).exclude(
            status__in=Service.CLOSED_STATUSES).count(),
        'completed_this_month': completed_this_month.count(),
        'revenue_this_month': str(revenue or 0),
        'technicians': [
            {
                'technician_id': row['technician_id'],
                'technician_name': row['technician__full_name'] or row['technician__username'],
                'active_services': row['active'],
            }
            for row in per_technician
        ],
        'generated_at': timezone.now().isoformat(),
    }
