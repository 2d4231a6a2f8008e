"""Utility functions for audit logging and runtime settings"""
import logging

from django.conf import settings

from .models import AuditLog, Setting

logger = logging.getLogger(__name__)

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_setting(key, default=None):
    """
    Read a runtime setting.

    A row in the settings table wins; otherwise the Django setting with the
    upper-cased key is used, then `default`.
    """
    row = Setting.objects.filter(key=key).values_list('value', flat=True).first()
    if row is not None:
        return row
    return getattr(settings, key.upper(), default)


def get_bool_setting(key, default=False):
    value = get_setting(key, default)
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in TRUE_VALUES


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, status_change, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or object_id in (None, ''):
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Audit logging never fails the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None
