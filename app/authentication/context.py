"""
Explicit caller identity for service calls.

Views build an AuthContext once per request from the authenticated DRF
user and pass it into every service operation. Services never read the
request or a thread-local.

Usage:
    from authentication.context import AuthContext

    auth = AuthContext.from_request(request)
    RefundService.approve_refund(auth, refund_request_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from authentication.models import UserRole
from core.exceptions import AuthenticationError, AuthorizationError

if TYPE_CHECKING:
    from rest_framework.request import Request


@dataclass(frozen=True)
class AuthContext:
    """
    Identity of the actor performing an operation.

    Attributes:
        user_id: Primary key of the authenticated user
        role: One of UserRole values
    """

    user_id: int
    role: str

    @classmethod
    def from_request(cls, request: Request) -> AuthContext:
        """
        Build the context from an authenticated request.

        Raises:
            AuthenticationError: If the request has no authenticated user
        """
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            raise AuthenticationError("Authentication required")
        return cls(user_id=user.pk, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def require_role(self, *roles: str) -> None:
        """
        Raise AuthorizationError unless the caller has one of the roles.
        """
        if self.role not in roles:
            raise AuthorizationError(
                f"Role '{self.role}' may not perform this operation",
                error_code="ROLE_NOT_ALLOWED",
                details={"role": self.role, "allowed_roles": list(roles)},
            )

    def require_admin(self) -> None:
        if not self.is_admin:
            raise AuthorizationError(
                "Admin access required",
                error_code="ADMIN_REQUIRED",
                details={"role": self.role},
            )
