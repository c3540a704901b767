"""
Audit trail writer for refund actions.

Entries are append-only (see payments.models.AuditLog) and are written
inside the same transaction as the state change they describe.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from payments.models import AuditLog

if TYPE_CHECKING:
    from typing import Any

    from authentication.context import AuthContext

REFUND_REQUEST_RESOURCE = "refund_request"


class AuditLogService(BaseService):
    """Creates AuditLog rows. All methods are classmethods."""

    @classmethod
    def record(
        cls,
        auth: AuthContext,
        action: str,
        resource_id,
        old_status: str | None = None,
        new_status: str | None = None,
        details: dict[str, Any] | None = None,
        resource_type: str = REFUND_REQUEST_RESOURCE,
    ) -> AuditLog:
        """
        Append one audit entry.

        Args:
            auth: Acting user
            action: AuditAction value
            resource_id: Id of the affected row
            old_status / new_status: Status before and after the action
            details: Extra context (reason, amount, risk score)
        """
        changes = {}
        if old_status is not None or new_status is not None:
            changes["status"] = {"old": old_status, "new": new_status}

        entry = AuditLog.objects.create(
            actor_id=auth.user_id,
            actor_role=auth.role,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            changes=changes,
            details=details or {},
        )
        cls.get_logger().info(
            "Audit entry recorded",
            extra={
                "action": action,
                "resource_type": resource_type,
                "resource_id": str(resource_id),
                "actor_id": auth.user_id,
            },
        )
        return entry
