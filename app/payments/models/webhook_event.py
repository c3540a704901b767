"""
WebhookEvent model: idempotency record for inbound payment-provider events.

One row per provider event id. The webhook view get_or_creates the row
before dispatching, and an event that already reached PROCESSED is
acknowledged without re-running its handler.

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event["id"],
        defaults={"event_type": stripe_event["type"], "payload": payload},
    )
    if event.is_processed:
        return JsonResponse({"received": True})
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Delivery log for signed provider events.

    Fields:
        stripe_event_id: Provider event id (evt_xxx), unique
        event_type: e.g. "payment_intent.succeeded"
        payload: Verified event body
        status: PENDING -> PROCESSING -> PROCESSED / FAILED
        retry_count: Number of times a handler was run for this event
        error_message: Last handler failure
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider event id - unique constraint for idempotency",
    )

    event_type = models.CharField(max_length=100, db_index=True)

    payload = models.JSONField(help_text="Verified event body")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="payments_we_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type}, {self.status})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    # The mark_* helpers do not save; the caller decides when to persist.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message[:2000]

    def get_object(self) -> dict:
        """Return payload["data"]["object"], or {} for malformed payloads."""
        data = self.payload.get("data") if isinstance(self.payload, dict) else None
        obj = data.get("object") if isinstance(data, dict) else None
        return obj if isinstance(obj, dict) else {}
