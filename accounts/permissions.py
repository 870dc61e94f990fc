from rest_framework import permissions


class IsAdminRole(permissions.BasePermission):
    """
    Allows access only to ADMIN users (or superusers).
    """
    def has_permission(self, request, view):
        return request.user.is_authenticated and getattr(request.user, 'is_admin_role', False)


class IsAdminRoleOrReadOnly(permissions.BasePermission):
    """Any authenticated user may read; only administrators may write."""

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return getattr(request.user, 'is_admin_role', False)
