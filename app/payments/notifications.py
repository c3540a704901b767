"""
Fire-and-forget notification dispatch.

RefundNotifier schedules Celery email tasks with transaction.on_commit,
so nothing is sent for a rolled-back change. A broker outage is logged
and never fails the operation that triggered the notification.
"""

from __future__ import annotations

import logging
from functools import partial

from django.db import transaction

from payments import tasks

logger = logging.getLogger(__name__)


def _deliver(task, object_id: str) -> None:
    try:
        task.delay(object_id)
    except Exception:
        logger.exception(
            "Failed to enqueue notification",
            extra={"task": task.name, "object_id": object_id},
        )


class RefundNotifier:
    """Enqueues payment and refund emails. All methods are classmethods."""

    @classmethod
    def _enqueue(cls, task, object_id) -> None:
        transaction.on_commit(partial(_deliver, task, str(object_id)))

    @classmethod
    def purchase_confirmed(cls, payment) -> None:
        cls._enqueue(tasks.send_purchase_confirmation_email, payment.id)

    @classmethod
    def payment_failed(cls, payment) -> None:
        cls._enqueue(tasks.send_payment_failed_email, payment.id)

    @classmethod
    def refund_requested(cls, refund_request) -> None:
        cls._enqueue(tasks.send_refund_request_submitted_email, refund_request.id)

    @classmethod
    def refund_approved(cls, refund_request) -> None:
        cls._enqueue(tasks.send_refund_approved_email, refund_request.id)

    @classmethod
    def refund_denied(cls, refund_request) -> None:
        cls._enqueue(tasks.send_refund_denied_email, refund_request.id)

    @classmethod
    def info_requested(cls, refund_request) -> None:
        cls._enqueue(tasks.send_refund_info_requested_email, refund_request.id)
