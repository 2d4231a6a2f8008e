"""
Data consistency checks for services and the records they reference
"""
from django.db.models import F

from repairdesk.clients.models import Client, Appliance
from django.contrib.auth import get_user_model
from .models import Service

User = get_user_model()


def find_orphaned_services():
    """
    Services pointing at client or appliance rows that no longer exist.

    Foreign keys prevent this on databases that enforce them; rows restored
    from backups or copied from legacy databases can still break it.

    Returns dict with 'missing_client' and 'missing_appliance' id lists.
    """
    missing_client = list(
        Service.objects.exclude(client_id__in=Client.objects.values('id'))
        .values_list('id', flat=True)
    )
    missing_appliance = list(
        Service.objects.filter(appliance_id__isnull=False)
        .exclude(appliance_id__in=Appliance.objects.values('id'))
        .values_list('id', flat=True)
    )
    return {
        'missing_client': missing_client,
        'missing_appliance': missing_appliance,
    }


def check_service_integrity():
    """
    Validate every service against the records it references.

    Returns:
        dict with validation results:
        {
            'is_consistent': bool,
            'total_services': int,
            'orphaned': {'missing_client': [...], 'missing_appliance': [...]},
            'counts': {check name: number of services},
            'issues': list of issue descriptions
        }
    """
    issues = []
    counts = {}

    orphaned = find_orphaned_services()
    counts['missing_client'] = len(orphaned['missing_client'])
    for service_id in orphaned['missing_client']:
        issues.append(f'Service #{service_id} references a client that does not exist.')
    counts['missing_appliance'] = len(orphaned['missing_appliance'])
    for service_id in orphaned['missing_appliance']:
        issues.append(f'Service #{service_id} references an appliance that does not exist.')

    without_appliance = list(
        Service.objects.filter(appliance_id__isnull=True).values_list('id', flat=True)
    )
    counts['without_appliance'] = len(without_appliance)
    for service_id in without_appliance:
        issues.append(f'Service #{service_id} has no appliance (appliance was removed).')

    mismatched = list(
        Service.objects.filter(appliance__isnull=False)
        .exclude(appliance__client_id=F('client_id'))
        .values_list('id', flat=True)
    )
    counts['appliance_client_mismatch'] = len(mismatched)
    for service_id in mismatched:
        issues.append(f'Service #{service_id} uses an appliance that belongs to a different client.')

    active_unassigned = list(
        Service.objects.filter(status__in=Service.ACTIVE_STATUSES, technician__isnull=True)
        .values_list('id', 'status')
    )
    counts['active_without_technician'] = len(active_unassigned)
    for service_id, service_status in active_unassigned:
        issues.append(f'Service #{service_id} is {service_status} but has no technician.')

    completed_without_date = list(
        Service.objects.filter(status=Service.STATUS_COMPLETED, completed_date__isnull=True)
        .values_list('id', flat=True)
    )
    counts['completed_without_date'] = len(completed_without_date)
    for service_id in completed_without_date:
        issues.append(f'Service #{service_id} is completed but has no completed date.')

    wrong_role = list(
        Service.objects.filter(technician__isnull=False)
        .exclude(technician__role=User.ROLE_TECHNICIAN)
        .values_list('id', 'technician__username')
    )
    counts['technician_wrong_role'] = len(wrong_role)
    for service_id, username in wrong_role:
        issues.append(f'Service #{service_id} is assigned to {username}, who is not a technician.')

    return {
        'is_consistent': not issues,
        'total_services': Service.objects.count(),
        'orphaned': orphaned,
        'counts': counts,
        'issues': issues,
    }
