import logging

from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from repairdesk.core.permissions import (
    IsAdmin, IsAdminOrTechnician, IsSupplier, CanViewParts, is_admin_user,
)
from repairdesk.core.utils import create_audit_log
from repairdesk.notifications import dispatcher
from repairdesk.services.models import Service
from repairdesk.services.views import paginated_response, dispatch_payload, workflow_error_response
from repairdesk.services.workflow import ServiceWorkflowError, change_service_status
from .filters import SparePartsCatalogFilter, SparePartOrderFilter
from .models import SparePartsCatalog, SparePartOrder
from .scraping import QuinnsparesScraper
from .serializers import (
    SparePartsCatalogSerializer, SparePartOrderSerializer, SupplierOrderUpdateSerializer,
    ScrapeRequestSerializer,
)
from .stats import get_catalog_stats

logger = logging.getLogger(__name__)

SUPPLIER_BRAND_SETTINGS = {
    'supplier_complus': 'COMPLUS_BRANDS',
    'supplier_beko': 'BEKO_BRANDS',
}


def supplier_brands(user):
    """Manufacturer names a supplier account is responsible for"""
    setting_name = SUPPLIER_BRAND_SETTINGS.get(getattr(user, 'role', None))
    return list(getattr(settings, setting_name, [])) if setting_name else []


def brand_filter(field, brands):
    query = Q(pk__in=[])
    for brand in brands:
        query |= Q(**{f'{field}__iexact': brand})
    return query


def scoped_parts(user):
    parts = SparePartsCatalog.objects.all()
    if getattr(user, 'role', '').startswith('supplier_'):
        return parts.filter(brand_filter('manufacturer', supplier_brands(user)))
    return parts


def order_queryset():
    return SparePartOrder.objects.select_related(
        'service', 'service__client', 'service__appliance', 'service__appliance__manufacturer',
        'service__appliance__category', 'service__technician', 'service__business_partner',
        'catalog_part', 'ordered_by',
    )


def scoped_orders(user):
    orders = order_queryset()
    if is_admin_user(user):
        return orders
    if user.role == 'technician':
        return orders.filter(Q(service__technician=user) | Q(ordered_by=user))
    if user.role.startswith('supplier_'):
        return orders.filter(brand_filter('service__appliance__manufacturer__name', supplier_brands(user)))
    return orders.none()


def announce_order_status(order, old_status):
    """Dispatch "parts arrived" when an order reaches received"""
    if old_status != order.status and order.status == SparePartOrder.STATUS_RECEIVED:
        return dispatcher.notify_parts_arrived(order)
    return None


# Spare parts catalog

@api_view(['GET', 'POST'])
@permission_classes([CanViewParts])
def spare_part_list_create(request):
    """Browse the catalog; administrators add parts"""
    if request.method == 'GET':
        filterset = SparePartsCatalogFilter(request.query_params, queryset=scoped_parts(request.user))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return paginated_response(request, filterset.qs, SparePartsCatalogSerializer)

    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može dodavati delove.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = SparePartsCatalogSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    part = serializer.save(source_type=SparePartsCatalog.SOURCE_MANUAL)
    create_audit_log(request=request, action='create', model_name='SparePartsCatalog',
                     object_id=part.id, object_name=str(part))
    return Response(SparePartsCatalogSerializer(part).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([CanViewParts])
def spare_part_detail(request, pk):
    part = get_object_or_404(scoped_parts(request.user), pk=pk)

    if request.method == 'GET':
        return Response(SparePartsCatalogSerializer(part).data)

    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može menjati katalog.'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        create_audit_log(request=request, action='delete', model_name='SparePartsCatalog',
                         object_id=part.id, object_name=str(part))
        part.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = SparePartsCatalogSerializer(part, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    part = serializer.save()
    create_audit_log(request=request, action='update', model_name='SparePartsCatalog',
                     object_id=part.id, object_name=str(part),
                     changes={k: str(v) for k, v in serializer.validated_data.items()})
    return Response(SparePartsCatalogSerializer(part).data)


@api_view(['GET'])
@permission_classes([IsAdmin])
def spare_part_stats(request):
    """Catalog and order counters (cached)"""
    return Response(get_catalog_stats())


# Part orders

@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrTechnician])
def part_order_list_create(request):
    """
    Part orders. Creating an order puts the service into waiting_parts and
    notifies the client, admins, business partner and supplier.
    """
    if request.method == 'GET':
        filterset = SparePartOrderFilter(request.query_params, queryset=scoped_orders(request.user))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(SparePartOrderSerializer(filterset.qs, many=True).data)

    serializer = SparePartOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    service = serializer.validated_data['service']
    if not is_admin_user(request.user) and service.technician_id != request.user.id:
        return Response({'error': 'Možete poručiti delove samo za svoje servise.'},
                        status=status.HTTP_403_FORBIDDEN)
    if service.is_closed:
        return Response({'error': 'Servis je zatvoren.'}, status=status.HTTP_400_BAD_REQUEST)

    order = serializer.save(ordered_by=request.user)
    create_audit_log(request=request, action='parts_order', model_name='SparePartOrder',
                     object_id=order.id, object_name=str(order),
                     changes={'service': service.id, 'part_name': order.part_name, 'quantity': order.quantity})

    if service.status != Service.STATUS_WAITING_PARTS:
        try:
            change_service_status(service, Service.STATUS_WAITING_PARTS, request.user, request=request,
                                  notify=False)
        except ServiceWorkflowError as e:
            return workflow_error_response(e)

    order = order_queryset().get(pk=order.pk)
    report = dispatcher.notify_parts_ordered(order)
    data = SparePartOrderSerializer(order).data
    data['notifications'] = dispatch_payload(report)
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAdminOrTechnician])
def part_order_detail(request, pk):
    order = get_object_or_404(scoped_orders(request.user), pk=pk)

    if request.method == 'GET':
        return Response(SparePartOrderSerializer(order).data)

    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može menjati porudžbine.'}, status=status.HTTP_403_FORBIDDEN)

    old_status = order.status
    serializer = SparePartOrderSerializer(order, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    order = serializer.save()
    create_audit_log(request=request, action='update', model_name='SparePartOrder',
                     object_id=order.id, object_name=str(order),
                     changes={k: str(v) for k, v in serializer.validated_data.items()})

    order = order_queryset().get(pk=order.pk)
    data = SparePartOrderSerializer(order).data
    data['notifications'] = dispatch_payload(announce_order_status(order, old_status))
    return Response(data)


# Supplier portal

@api_view(['GET'])
@permission_classes([IsSupplier])
def supplier_order_list(request):
    """Orders for the supplier's brand group"""
    orders = scoped_orders(request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        orders = orders.filter(status__in=status_filter.split(','))
    return Response({
        'brands': supplier_brands(request.user),
        'results': SparePartOrderSerializer(orders, many=True).data,
    })


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsSupplier])
def supplier_order_detail(request, pk):
    order = get_object_or_404(scoped_orders(request.user), pk=pk)

    if request.method == 'GET':
        return Response(SparePartOrderSerializer(order).data)

    old_status = order.status
    serializer = SupplierOrderUpdateSerializer(order, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    create_audit_log(request=request, action='update', model_name='SparePartOrder',
                     object_id=order.id, object_name=str(order),
                     changes={k: str(v) for k, v in serializer.validated_data.items()})

    order = order_queryset().get(pk=order.pk)
    data = SparePartOrderSerializer(order).data
    data['notifications'] = dispatch_payload(announce_order_status(order, old_status))
    return Response(data)


# Scraping

@api_view(['POST'])
@permission_classes([IsAdmin])
def admin_scrape_spare_parts(request):
    """Run the supplier scraper synchronously"""
    serializer = ScrapeRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    result = QuinnsparesScraper().run(
        manufacturers=serializer.validated_data.get('manufacturers'),
        max_products=serializer.validated_data['max_products'],
    )
    create_audit_log(request=request, action='scrape', model_name='SparePartsCatalog',
                     object_id='quinnspares', object_name='Quinnspares scraping',
                     changes={'new_parts': result.new_parts, 'updated_parts': result.updated_parts,
                              'errors': len(result.errors)})
    response_status = status.HTTP_200_OK if result.success else status.HTTP_502_BAD_GATEWAY
    return Response(result.as_dict(), status=response_status)
