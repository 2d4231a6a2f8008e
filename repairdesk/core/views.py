import logging
import re

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import connection, transaction, DatabaseError
from django.shortcuts import get_object_or_404
from django.db.models import Q
from .models import Setting, AuditLog
from .permissions import IsAdmin, is_admin_user
from .serializers import (
    UserSerializer, UserCreateSerializer,
    SettingSerializer, AuditLogSerializer,
    PerformanceMetricSerializer, SQLQuerySerializer,
)
from .utils import create_audit_log
from repairdesk.clients.views import ensure_client_profile

logger = logging.getLogger(__name__)

User = get_user_model()

SQL_ROW_LIMIT = 500
SQL_READ_ONLY_PATTERN = re.compile(r'^\s*(select|with)\b', re.IGNORECASE)
SQL_FORBIDDEN_PATTERN = re.compile(
    r'\b(insert|update|delete|drop|alter|create|truncate|grant|revoke|replace|attach|detach|pragma|vacuum|copy)\b',
    re.IGNORECASE,
)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Customer self-registration"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            user = serializer.save(role=User.ROLE_CUSTOMER)
            ensure_client_profile(user)
        token = CustomTokenObtainPairSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAdmin])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        search = request.query_params.get('search')
        if search:
            users = users.filter(
                Q(username__icontains=search) |
                Q(full_name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(request=request, action='create', model_name='User',
                             object_id=user.id, object_name=user.username, changes={'role': user.role})
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdmin])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='User',
                             object_id=user.id, object_name=user.username, changes=request.data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'Ne možete obrisati sopstveni nalog.'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='User',
                         object_id=user.id, object_name=user.username)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role-derived access flags"""
    user = request.user
    user_data = UserSerializer(user).data

    is_admin = is_admin_user(user)
    user_data['is_admin'] = is_admin
    user_data['can_manage_services'] = is_admin or user.is_technician
    user_data['can_create_services'] = is_admin or user.is_business_partner or user.is_customer
    user_data['can_view_parts'] = is_admin or user.is_technician or user.is_supplier
    user_data['can_access_supplier_portal'] = user.is_supplier
    return Response(user_data)


@api_view(['GET', 'POST'])
@permission_classes([IsAdmin])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings_qs = Setting.objects.all().order_by('key')
        serializer = SettingSerializer(settings_qs, many=True)
        return Response(serializer.data)
    else:
        serializer = SettingSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdmin])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAdmin])
def audit_log_list(request):
    """List audit logs with optional filters"""
    logs = AuditLog.objects.select_related('user').all()

    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)
    model_name = request.query_params.get('model_name')
    if model_name:
        logs = logs.filter(model_name=model_name)
    user_id = request.query_params.get('user')
    if user_id:
        logs = logs.filter(user_id=user_id)
    object_id = request.query_params.get('object_id')
    if object_id:
        logs = logs.filter(object_id=object_id)

    try:
        limit = min(int(request.query_params.get('limit', 100)), 1000)
    except ValueError:
        limit = 100

    serializer = AuditLogSerializer(logs[:limit], many=True)
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([AllowAny])
def performance_beacon(request):
    """Collects client-side performance metrics (web vitals)"""
    serializer = PerformanceMetricSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    metric = serializer.validated_data
    logger.info(
        f"Performance metric {metric['name']}={metric['value']:.2f} "
        f"rating={metric.get('rating', 'n/a')} page={metric.get('page', '')}"
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


def validate_read_only_query(query):
    """Return an error message when the query is not a single read-only statement"""
    statement = query.strip().rstrip(';').strip()
    if not statement:
        return 'Upit je prazan.'
    if ';' in statement:
        return 'Dozvoljen je samo jedan upit.'
    if not SQL_READ_ONLY_PATTERN.match(statement):
        return 'Dozvoljeni su samo SELECT upiti.'
    if SQL_FORBIDDEN_PATTERN.search(statement):
        return 'Upit sadrži nedozvoljene komande.'
    return None


@api_view(['POST'])
@permission_classes([IsAdmin])
def sql_console(request):
    """Run a single read-only SQL query for administrators"""
    serializer = SQLQuerySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    query = serializer.validated_data['query']
    error = validate_read_only_query(query)
    if error:
        return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)

    statement = query.strip().rstrip(';').strip()
    try:
        with transaction.atomic():
            with connection.cursor() as cursor:
                if connection.vendor == 'postgresql':
                    cursor.execute('SET TRANSACTION READ ONLY')
                cursor.execute(statement)
                columns = [col[0] for col in cursor.description] if cursor.description else []
                rows = cursor.fetchmany(SQL_ROW_LIMIT + 1) if cursor.description else []
            # console queries are never committed
            transaction.set_rollback(True)
    except DatabaseError as e:
        logger.warning(f"SQL console query failed: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    truncated = len(rows) > SQL_ROW_LIMIT
    rows = [list(row) for row in rows[:SQL_ROW_LIMIT]]
    create_audit_log(request=request, action='sql_query', model_name='SQL',
                     object_id='console', changes={'query': statement[:1000], 'rows': len(rows)})
    return Response({
        'columns': columns,
        'rows': rows,
        'row_count': len(rows),
        'truncated': truncated,
    })
