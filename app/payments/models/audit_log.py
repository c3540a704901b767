"""
Append-only audit trail for refund administration.

Every refund state change writes exactly one AuditLog row. Rows are
immutable once saved: updates and deletes raise.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class AuditAction(models.TextChoices):
    REFUND_REQUESTED = "refund_requested", "Refund Requested"
    REFUND_APPROVED = "refund_approved", "Refund Approved"
    REFUND_DENIED = "refund_denied", "Refund Denied"
    REFUND_INFO_REQUESTED = "refund_info_requested", "Refund Info Requested"
    REFUND_INFO_RESPONDED = "refund_info_responded", "Refund Info Responded"


class AuditLog(UUIDPrimaryKeyMixin, BaseModel):
    """
    One administrative or contractor action on a resource.

    Fields:
        actor: User who performed the action (kept null if the user is removed)
        actor_role: Role of the actor at the time of the action
        action: AuditAction value
        resource_type / resource_id: What was acted on
        changes: Field-level before/after values
        details: Free-form context (reason, amount, risk score)
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    actor_role = models.CharField(max_length=20, blank=True)

    action = models.CharField(max_length=50, choices=AuditAction.choices, db_index=True)
    resource_type = models.CharField(max_length=50)
    resource_id = models.CharField(max_length=64)

    changes = models.JSONField(default=dict, blank=True)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log"
        indexes = [
            models.Index(fields=["resource_type", "resource_id"], name="payments_al_resource_idx"),
            models.Index(fields=["actor", "created_at"], name="payments_al_actor_created_idx"),
        ]

    def __str__(self) -> str:
        return f"AuditLog({self.action}, {self.resource_type}:{self.resource_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit log entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries cannot be deleted.")
