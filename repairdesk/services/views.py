import logging

from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from repairdesk.clients.views import ensure_client_profile, scoped_clients
from repairdesk.core.permissions import (
    IsAdmin, IsAdminOrTechnician, IsTechnician, IsBusinessPartner, IsCustomer, is_admin_user,
)
from repairdesk.core.utils import create_audit_log
from repairdesk.notifications import dispatcher
from .filters import ServiceFilter
from .models import Service
from .serializers import (
    ServiceSerializer, ServiceRequestSerializer, StatusUpdateSerializer,
    AssignTechnicianSerializer, ServiceStatusHistorySerializer, VisitOutcomeSerializer,
)
from .stats import get_service_stats
from .validators import check_service_integrity
from .workflow import (
    ServiceWorkflowError, change_service_status, assign_technician, register_new_service,
    report_client_unavailable, refuse_repair,
)

logger = logging.getLogger(__name__)

User = get_user_model()

MAX_PAGE_SIZE = 100


def service_queryset():
    return Service.objects.select_related(
        'client', 'appliance', 'appliance__category', 'appliance__manufacturer',
        'technician', 'business_partner',
    )


def scoped_services(user):
    """Services visible to the user, by role"""
    services = service_queryset()
    if is_admin_user(user):
        return services
    role = getattr(user, 'role', None)
    if role == 'technician':
        return services.filter(technician=user)
    if role == 'business_partner':
        return services.filter(business_partner=user)
    if role == 'customer':
        return services.filter(client__user=user)
    return services.none()


def workflow_error_response(error):
    return Response({'error': str(error)}, status=error.status_code)


def dispatch_payload(report):
    return report.as_dict() if report is not None else {}


def paginated_response(request, queryset, serializer_class):
    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 25))
    except ValueError:
        page, limit = 1, 25
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


def create_service_for(request, serializer_class, data=None, **save_kwargs):
    """Validate, insert, record and announce a new service"""
    serializer = serializer_class(data=request.data if data is None else data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    client = serializer.validated_data['client']
    if not scoped_clients(request.user).filter(pk=client.pk).exists():
        return Response({'error': 'Klijent nije pronađen.'}, status=status.HTTP_404_NOT_FOUND)

    technician = serializer.validated_data.pop('technician', None)
    service = serializer.save(created_by=request.user, **save_kwargs)
    report = register_new_service(service, request.user, request=request)

    if technician is not None:
        try:
            service, assign_report = assign_technician(service, technician, request.user, request=request)
            if report is not None and assign_report is not None:
                report.merge(assign_report)
        except ServiceWorkflowError as e:
            return workflow_error_response(e)

    data = ServiceSerializer(service).data
    data['notifications'] = dispatch_payload(report)
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def service_list_create(request):
    """Services visible to the caller; administrators can create services"""
    if request.method == 'GET':
        services = scoped_services(request.user)
        status_filter = request.query_params.get('status')
        if status_filter:
            services = services.filter(status__in=status_filter.split(','))
        return Response(ServiceSerializer(services, many=True).data)

    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može kreirati servise ovde.'},
                        status=status.HTTP_403_FORBIDDEN)
    return create_service_for(request, ServiceSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def service_detail(request, pk):
    """Retrieve a service visible to the caller"""
    service = get_object_or_404(scoped_services(request.user), pk=pk)
    return Response(ServiceSerializer(service).data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAdminOrTechnician])
def service_update_status(request, pk):
    """Change the status of a service and record work details"""
    service = get_object_or_404(service_queryset(), pk=pk)
    serializer = StatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    new_status = data.pop('status')
    try:
        result = change_service_status(service, new_status, request.user, request=request, **data)
    except ServiceWorkflowError as e:
        return workflow_error_response(e)

    response = ServiceSerializer(service_queryset().get(pk=result.service.pk)).data
    response['notifications'] = dispatch_payload(result.dispatch)
    if result.dispatch is not None:
        response['email_sent'] = result.dispatch.email_sent
        if result.dispatch.email_error:
            response['email_error'] = result.dispatch.email_error
    return Response(response)


def visit_outcome(request, pk, operation):
    service = get_object_or_404(service_queryset(), pk=pk)
    serializer = VisitOutcomeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        result = operation(service, serializer.validated_data['reason'], request.user, request=request)
    except ServiceWorkflowError as e:
        return workflow_error_response(e)

    response = ServiceSerializer(service_queryset().get(pk=result.service.pk)).data
    response['notifications'] = dispatch_payload(result.dispatch)
    return Response(response)


@api_view(['POST'])
@permission_classes([IsAdminOrTechnician])
def service_client_unavailable(request, pk):
    """Technician could not reach the client; the visit needs a new appointment"""
    return visit_outcome(request, pk, report_client_unavailable)


@api_view(['POST'])
@permission_classes([IsAdminOrTechnician])
def service_refuse_repair(request, pk):
    """Close a service whose customer declined the repair"""
    return visit_outcome(request, pk, refuse_repair)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def service_history(request, pk):
    """Status history of a service"""
    service = get_object_or_404(scoped_services(request.user), pk=pk)
    history = service.status_history.select_related('changed_by')
    return Response(ServiceStatusHistorySerializer(history, many=True).data)


@api_view(['GET'])
@permission_classes([IsAdmin])
def admin_service_list(request):
    """All services with filters and pagination"""
    filterset = ServiceFilter(request.query_params, queryset=service_queryset())
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, ServiceSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdmin])
def admin_service_detail(request, pk):
    """Retrieve, update or delete any service"""
    service = get_object_or_404(service_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(ServiceSerializer(service).data)

    if request.method == 'DELETE':
        create_audit_log(request=request, action='delete', model_name='Service',
                         object_id=service.id, object_name=str(service))
        service.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = ServiceSerializer(service, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data.pop('status', None)
    technician = serializer.validated_data.pop('technician', service.technician)
    previous_technician_id = service.technician_id

    # field edits, reassignment and status change commit together or not at all;
    # notifications go out only once everything is saved
    status_result = None
    try:
        with transaction.atomic():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Service',
                             object_id=service.id, object_name=str(service),
                             changes={k: str(v) for k, v in serializer.validated_data.items()})
            if technician is not None and technician.pk != service.technician_id:
                service, _ = assign_technician(service, technician, request.user, request=request, notify=False)
            elif technician is None and service.technician_id is not None:
                service.technician = None
                service.save(update_fields=['technician', 'updated_at'])
            if new_status and new_status != service.status:
                status_result = change_service_status(service, new_status, request.user,
                                                      request=request, notify=False)
                service = status_result.service
    except ServiceWorkflowError as e:
        return workflow_error_response(e)

    reports = []
    if service.technician_id is not None and service.technician_id != previous_technician_id:
        reports.append(dispatcher.notify_technician_assigned(service, assigned_by=request.user))
    if status_result is not None and status_result.changed:
        reports.append(dispatcher.notify_status_changed(
            service, status_result.old_status, status_result.new_status, changed_by=request.user
        ))

    response = ServiceSerializer(service_queryset().get(pk=service.pk)).data
    merged = None
    for report in reports:
        if report is None:
            continue
        if merged is None:
            merged = report
        else:
            merged.merge(report)
    response['notifications'] = dispatch_payload(merged)
    return Response(response)


@api_view(['PUT', 'POST'])
@permission_classes([IsAdmin])
def admin_assign_technician(request, pk):
    """Assign (or reassign) a technician to a service"""
    service = get_object_or_404(service_queryset(), pk=pk)
    serializer = AssignTechnicianSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    technician = User.objects.filter(pk=serializer.validated_data['technician']).first()
    try:
        service, report = assign_technician(
            service, technician, request.user, request=request,
            scheduled_date=serializer.validated_data.get('scheduled_date'),
        )
    except ServiceWorkflowError as e:
        return workflow_error_response(e)

    response = ServiceSerializer(service_queryset().get(pk=service.pk)).data
    response['notifications'] = dispatch_payload(report)
    return Response(response)


@api_view(['GET'])
@permission_classes([IsAdmin])
def admin_service_integrity(request):
    """Consistency report for services and their references"""
    return Response(check_service_integrity())


@api_view(['GET'])
@permission_classes([IsAdmin])
def service_stats(request):
    """Dashboard counters (cached)"""
    return Response(get_service_stats())


@api_view(['GET'])
@permission_classes([IsTechnician])
def technician_service_list(request):
    """Services assigned to the calling technician"""
    services = service_queryset().filter(technician=request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        services = services.filter(status__in=status_filter.split(','))
    elif request.query_params.get('active') in ('1', 'true'):
        services = services.filter(status__in=Service.ACTIVE_STATUSES)
    return Response(ServiceSerializer(services, many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessPartner])
def business_service_list_create(request):
    """Services created by the calling business partner"""
    if request.method == 'GET':
        services = service_queryset().filter(business_partner=request.user)
        return Response(ServiceSerializer(services, many=True).data)
    return create_service_for(
        request, ServiceRequestSerializer,
        business_partner=request.user,
        partner_company_name=request.user.company_name or request.user.display_name,
    )


@api_view(['GET'])
@permission_classes([IsBusinessPartner])
def business_service_detail(request, pk):
    """One service of the calling business partner"""
    service = get_object_or_404(service_queryset().filter(business_partner=request.user), pk=pk)
    data = ServiceSerializer(service).data
    data['history'] = ServiceStatusHistorySerializer(
        service.status_history.select_related('changed_by'), many=True
    ).data
    return Response(data)


@api_view(['GET', 'POST'])
@permission_classes([IsCustomer])
def customer_service_list_create(request):
    """Service requests of the calling customer"""
    if request.method == 'GET':
        services = service_queryset().filter(client__user=request.user)
        return Response(ServiceSerializer(services, many=True).data)

    # customers always file requests for their own client record
    data = request.data.copy()
    data['client'] = ensure_client_profile(request.user).pk
    return create_service_for(request, ServiceRequestSerializer, data=data)
