from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Allows access to users with the admin role (or Django superusers)"""
    message = 'Administrator role required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin_role', False))


def get_branch_scope(user):
    """
    Branch a user's reads are restricted to.

    Returns None when the user may see every branch (superusers, and admins
    not attached to a branch).
    """
    if user.is_superuser:
        return None
    if user.role == user.ROLE_ADMIN and not user.branch_id:
        return None
    return user.branch
