"""
Base exception classes for application-wide error handling.

Every domain error carries a human-readable message, a machine-readable
error code and the HTTP status the API layer should answer with. Views do
not translate these by hand: the DRF exception handler in
core.exception_handlers renders them.

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── ValidationError - Missing or invalid input (400)
    ├── AuthenticationError - No authenticated session (401)
    ├── AuthorizationError - Authenticated but wrong role (403)
    │   └── PermissionDeniedError - Alias kept for object-level checks
    ├── NotFoundError - Unknown id (404)
    ├── ConflictError - Invalid state transition or concurrent write (409)
    ├── RateLimitError - Too many requests (429)
    ├── ServerError - Unexpected internal failure (500)
    └── ExternalServiceError - Third-party call failed (502)

Usage:
    from core.exceptions import ConflictError, ValidationError

    if not reason.strip():
        raise ValidationError("Reason is required", error_code="REASON_REQUIRED")

    raise ConflictError(
        "Cannot approve a refund with status 'denied'",
        error_code="INVALID_STATE_TRANSITION",
        details={"current_status": "denied", "action": "approve"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        status_code: HTTP status used when rendered by the API layer
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Refund request not found",
                "error_code": "NOT_FOUND",
                "details": {"refund_request_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for service-layer checks such as a blank reason, an unknown
    reason category, or a refund requested outside the refund window.
    DRF serializer validation still handles request-shape errors.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class AuthenticationError(BaseApplicationError):
    """Raised when an operation needs an authenticated caller and has none."""

    default_error_code: str = "AUTHENTICATION_REQUIRED"
    status_code: int = 401


class AuthorizationError(BaseApplicationError):
    """
    Raised when the caller is authenticated but their role may not
    perform the operation.

    Example:
        if auth.role != UserRole.ADMIN:
            raise AuthorizationError(
                "Admin access required",
                error_code="ADMIN_REQUIRED",
                details={"role": auth.role},
            )
    """

    default_error_code: str = "FORBIDDEN"
    status_code: int = 403


class PermissionDeniedError(AuthorizationError):
    """
    Raised when the caller may use the operation but not on this object
    (e.g. a contractor answering another contractor's refund request).
    """

    default_error_code: str = "PERMISSION_DENIED"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for single-resource lookups where existence is expected. List
    queries return empty results instead.
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current resource state.

    Use for:
    - Acting on a terminal refund request
    - Losing a concurrent write (optimistic FSM save)
    - Duplicate entries
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class RateLimitError(BaseApplicationError):
    """Raised when rate limit is exceeded. Include retry_after in details."""

    default_error_code: str = "RATE_LIMIT_EXCEEDED"
    status_code: int = 429


class ServerError(BaseApplicationError):
    """Raised for unexpected internal failures that the caller cannot fix."""

    default_error_code: str = "SERVER_ERROR"
    status_code: int = 500


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for Stripe API failures, network timeouts and unexpected provider
    responses. Log the original error; do not expose provider internals
    to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 502
