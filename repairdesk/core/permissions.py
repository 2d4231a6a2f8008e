"""Role based permissions shared by all apps"""
from rest_framework.permissions import BasePermission


def is_admin_user(user):
    """Superusers and users with the admin role"""
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or getattr(user, 'role', None) == 'admin'


def has_role(user, *roles):
    if not user or not user.is_authenticated:
        return False
    if 'admin' in roles and is_admin_user(user):
        return True
    role = getattr(user, 'role', '') or ''
    if 'supplier' in roles and role.startswith('supplier_'):
        return True
    return role in roles


class RolePermission(BasePermission):
    allowed_roles = ()
    message = 'Nemate dozvolu za ovu akciju.'

    def has_permission(self, request, view):
        return has_role(request.user, *self.allowed_roles)


class IsAdmin(RolePermission):
    allowed_roles = ('admin',)


class IsTechnician(RolePermission):
    allowed_roles = ('technician',)


class IsAdminOrTechnician(RolePermission):
    allowed_roles = ('admin', 'technician')


class IsBusinessPartner(RolePermission):
    allowed_roles = ('business_partner',)


class IsCustomer(RolePermission):
    allowed_roles = ('customer',)


class IsSupplier(RolePermission):
    allowed_roles = ('supplier',)


class CanViewParts(RolePermission):
    allowed_roles = ('admin', 'technician', 'supplier')
