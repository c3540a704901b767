"""
DRF permission classes based on the marketplace role.

Service calls enforce roles through AuthContext as well; these classes
reject wrong-role callers before a request body is even parsed.
"""

from rest_framework.permissions import BasePermission

from authentication.models import UserRole


class IsAdminRole(BasePermission):
    """Allow only users with the admin role."""

    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.role == UserRole.ADMIN)


class IsLeadBuyer(BasePermission):
    """Allow contractors and affiliates, the roles that purchase leads."""

    message = "Only contractors and affiliates can manage refund requests."

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and user.role in (UserRole.CONTRACTOR, UserRole.AFFILIATE)
        )
