from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db.models import Q
from django.shortcuts import get_object_or_404

from repairdesk.core.permissions import RolePermission, is_admin_user, has_role
from repairdesk.core.utils import create_audit_log
from .models import Client, ApplianceCategory, Manufacturer, Appliance
from .serializers import (
    ClientSerializer, ClientDetailSerializer, ApplianceSerializer,
    ApplianceCategorySerializer, ManufacturerSerializer,
)


class CanAccessClients(RolePermission):
    allowed_roles = ('admin', 'technician', 'business_partner', 'customer')


def scoped_clients(user):
    """Clients visible to the user"""
    clients = Client.objects.select_related('created_by')
    if has_role(user, 'admin', 'technician'):
        return clients
    if user.role == 'business_partner':
        return clients.filter(created_by=user)
    if user.role == 'customer':
        return clients.filter(user=user)
    return clients.none()


def ensure_client_profile(user):
    """Client record of a customer account; created from the account on first use"""
    try:
        return user.client_profile
    except Client.DoesNotExist:
        pass
    return Client.objects.create(
        full_name=user.display_name,
        email=user.email or None,
        phone=user.phone or '',
        address=user.address,
        city=user.city,
        user=user,
        created_by=user,
    )


def scoped_appliances(user):
    """Appliances whose client is visible to the user"""
    return Appliance.objects.select_related('client', 'category', 'manufacturer').filter(
        client__in=scoped_clients(user)
    )


def can_write_clients(user):
    return has_role(user, 'admin', 'business_partner')


def links_other_account(request, serializer, client=None):
    """True when a non-admin tries to change the customer account linked to a client"""
    if is_admin_user(request.user) or 'user' not in serializer.validated_data:
        return False
    current = client.user if client is not None else None
    return serializer.validated_data['user'] != current


@api_view(['GET', 'POST'])
@permission_classes([CanAccessClients])
def client_list_create(request):
    """List visible clients or create a client"""
    if request.method == 'GET':
        if request.user.role == 'customer':
            ensure_client_profile(request.user)
        clients = scoped_clients(request.user)
        search = request.query_params.get('search')
        if search:
            clients = clients.filter(
                Q(full_name__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search) |
                Q(city__icontains=search)
            )
        city = request.query_params.get('city')
        if city:
            clients = clients.filter(city__iexact=city)
        serializer = ClientSerializer(clients, many=True)
        return Response(serializer.data)

    if not can_write_clients(request.user):
        return Response({'error': 'Nemate dozvolu za kreiranje klijenata.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ClientSerializer(data=request.data)
    if serializer.is_valid():
        if links_other_account(request, serializer):
            return Response({'error': 'Samo administrator može povezati klijenta sa nalogom.'},
                            status=status.HTTP_403_FORBIDDEN)
        client = serializer.save(created_by=request.user)
        create_audit_log(request=request, action='create', model_name='Client',
                         object_id=client.id, object_name=client.full_name)
        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([CanAccessClients])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = get_object_or_404(scoped_clients(request.user), pk=pk)

    if request.method == 'GET':
        return Response(ClientDetailSerializer(client).data)

    if not can_write_clients(request.user):
        return Response({'error': 'Nemate dozvolu za izmenu klijenata.'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            if links_other_account(request, serializer, client):
                return Response({'error': 'Samo administrator može povezati klijenta sa nalogom.'},
                                status=status.HTTP_403_FORBIDDEN)
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Client',
                             object_id=client.id, object_name=client.full_name, changes=request.data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može brisati klijente.'}, status=status.HTTP_403_FORBIDDEN)
    if client.services.exists():
        return Response(
            {'error': 'Klijent ima servise i ne može biti obrisan.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    create_audit_log(request=request, action='delete', model_name='Client',
                     object_id=client.id, object_name=client.full_name)
    client.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([CanAccessClients])
def client_appliances(request, pk):
    """Appliances belonging to one client"""
    client = get_object_or_404(scoped_clients(request.user), pk=pk)
    appliances = client.appliances.select_related('category', 'manufacturer', 'client')
    return Response(ApplianceSerializer(appliances, many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([CanAccessClients])
def appliance_list_create(request):
    """List visible appliances or register a new one"""
    if request.method == 'GET':
        appliances = scoped_appliances(request.user)
        client_id = request.query_params.get('client')
        if client_id:
            appliances = appliances.filter(client_id=client_id)
        return Response(ApplianceSerializer(appliances, many=True).data)

    if request.user.role == 'technician':
        return Response({'error': 'Nemate dozvolu za dodavanje uređaja.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ApplianceSerializer(data=request.data)
    if serializer.is_valid():
        client = serializer.validated_data['client']
        if not scoped_clients(request.user).filter(pk=client.pk).exists():
            return Response({'error': 'Klijent nije pronađen.'}, status=status.HTTP_404_NOT_FOUND)
        appliance = serializer.save()
        create_audit_log(request=request, action='create', model_name='Appliance',
                         object_id=appliance.id, object_name=str(appliance))
        return Response(ApplianceSerializer(appliance).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([CanAccessClients])
def appliance_detail(request, pk):
    """Retrieve, update or delete an appliance"""
    appliance = get_object_or_404(scoped_appliances(request.user), pk=pk)

    if request.method == 'GET':
        return Response(ApplianceSerializer(appliance).data)

    if request.user.role == 'technician':
        return Response({'error': 'Nemate dozvolu za izmenu uređaja.'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ApplianceSerializer(appliance, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            client = serializer.validated_data.get('client', appliance.client)
            if not scoped_clients(request.user).filter(pk=client.pk).exists():
                return Response({'error': 'Klijent nije pronađen.'}, status=status.HTTP_404_NOT_FOUND)
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može brisati uređaje.'}, status=status.HTTP_403_FORBIDDEN)
    create_audit_log(request=request, action='delete', model_name='Appliance',
                     object_id=appliance.id, object_name=str(appliance))
    appliance.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


def reference_list_create(request, model, serializer_class):
    if request.method == 'GET':
        return Response(serializer_class(model.objects.all(), many=True).data)
    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može dodavati šifarnike.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def reference_detail(request, model, serializer_class, pk):
    obj = get_object_or_404(model, pk=pk)
    if request.method == 'GET':
        return Response(serializer_class(obj).data)
    if not is_admin_user(request.user):
        return Response({'error': 'Samo administrator može menjati šifarnike.'}, status=status.HTTP_403_FORBIDDEN)
    if request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(obj, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if obj.appliances.exists():
        return Response({'error': 'Stavka se koristi i ne može biti obrisana.'}, status=status.HTTP_400_BAD_REQUEST)
    obj.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List appliance categories or create one"""
    return reference_list_create(request, ApplianceCategory, ApplianceCategorySerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete an appliance category"""
    return reference_detail(request, ApplianceCategory, ApplianceCategorySerializer, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def manufacturer_list_create(request):
    """List manufacturers or create one"""
    return reference_list_create(request, Manufacturer, ManufacturerSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def manufacturer_detail(request, pk):
    """Retrieve, update or delete a manufacturer"""
    return reference_detail(request, Manufacturer, ManufacturerSerializer, pk)
