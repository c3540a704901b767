"""
Payment ledger writer.

All Payment writes go through PaymentLedger. Recording is idempotent on
the Stripe PaymentIntent id: the unique constraint on
Payment.stripe_payment_intent_id decides insert races, and the loser
re-reads the winning row.

Usage:
    from payments.ledger import PaymentLedger, PaymentData

    payment, created = PaymentLedger.record(PaymentData(...))
    if not created:
        return  # duplicate delivery
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService
from leads.models import LeadType
from payments.models import Payment
from payments.state_machines import PaymentRefundStatus, PaymentStatus

from .types import PaymentData


class PaymentLedger(BaseService):
    """
    Service class for Payment rows.

    Key features:
    - Idempotency via the unique PaymentIntent id (safe to retry)
    - Status changes are conditional UPDATEs, never read-modify-write

    All methods are classmethods - no instance state is maintained.
    """

    @classmethod
    def exists(cls, payment_intent_id: str) -> bool:
        return Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).exists()

    @classmethod
    def get_by_payment_intent(cls, payment_intent_id: str) -> Payment | None:
        return Payment.objects.filter(stripe_payment_intent_id=payment_intent_id).first()

    @classmethod
    def record(cls, data: PaymentData) -> tuple[Payment, bool]:
        """
        Insert a Payment for the PaymentIntent unless one already exists.

        Args:
            data: Validated payment outcome

        Returns:
            (payment, created) - created is False when the row existed,
            including when a concurrent delivery inserted it first
        """
        existing = cls.get_by_payment_intent(data.stripe_payment_intent_id)
        if existing:
            return existing, False

        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    contractor_id=data.contractor_id,
                    lead_type=data.lead_type,
                    amount=data.amount,
                    currency=data.currency,
                    status=data.status,
                    failure_reason=data.failure_reason,
                    stripe_payment_intent_id=data.stripe_payment_intent_id,
                    stripe_charge_id=data.stripe_charge_id,
                    stripe_transaction_id=data.stripe_transaction_id,
                    **data.lead_fields,
                )
        except IntegrityError:
            winner = cls.get_by_payment_intent(data.stripe_payment_intent_id)
            if winner is None:
                raise
            cls.get_logger().info(
                "Payment already recorded by concurrent delivery",
                extra={"payment_intent_id": data.stripe_payment_intent_id},
            )
            return winner, False

        cls.get_logger().info(
            "Payment recorded",
            extra={
                "payment_id": str(payment.id),
                "payment_intent_id": payment.stripe_payment_intent_id,
                "status": payment.status,
                "amount": str(payment.amount),
            },
        )
        return payment, True

    @classmethod
    def upgrade_to_completed(cls, data: PaymentData) -> bool:
        """
        Turn a FAILED record into COMPLETED when the same PaymentIntent
        later succeeds (customer retried with another card).

        Returns:
            True if a failed row was upgraded
        """
        updated = Payment.objects.filter(
            stripe_payment_intent_id=data.stripe_payment_intent_id,
            status=PaymentStatus.FAILED,
        ).update(
            status=PaymentStatus.COMPLETED,
            amount=data.amount,
            failure_reason=None,
            stripe_charge_id=data.stripe_charge_id,
            stripe_transaction_id=data.stripe_transaction_id,
            updated_at=timezone.now(),
        )
        if updated:
            cls.get_logger().info(
                "Failed payment upgraded to completed",
                extra={"payment_intent_id": data.stripe_payment_intent_id},
            )
        return updated == 1

    @classmethod
    def get_completed_for_lead(
        cls,
        contractor_id: int,
        lead_id: uuid.UUID | str,
        lead_type: str,
    ) -> Payment | None:
        """Most recent COMPLETED payment by the contractor for the lead."""
        lead_filter = (
            {"system_lead_id": lead_id}
            if lead_type == LeadType.SYSTEM_LEAD
            else {"hes_request_id": lead_id}
        )
        return (
            Payment.objects.filter(
                contractor_id=contractor_id,
                status=PaymentStatus.COMPLETED,
                **lead_filter,
            )
            .order_by("-created_at")
            .first()
        )

    @classmethod
    def set_refund_status(cls, payment_id: uuid.UUID, refund_status: str) -> None:
        Payment.objects.filter(id=payment_id).update(
            refund_status=refund_status,
            updated_at=timezone.now(),
        )

    @classmethod
    def mark_refunded(
        cls,
        payment: Payment,
        stripe_refund_id: str | None,
        amount: Decimal,
    ) -> Payment:
        """
        Record an issued refund on the payment and return it refreshed.

        A charge.refunded webhook may have already flipped the status; the
        refund id and amount are written either way.
        """
        now = timezone.now()
        Payment.objects.filter(id=payment.id).update(
            status=PaymentStatus.REFUNDED,
            refund_status=PaymentRefundStatus.REFUNDED,
            refund_amount=amount,
            refund_stripe_id=stripe_refund_id,
            refund_date=now,
            updated_at=now,
        )
        payment.refresh_from_db()
        cls.get_logger().info(
            "Payment marked refunded",
            extra={
                "payment_id": str(payment.id),
                "refund_id": stripe_refund_id,
                "amount": str(amount),
            },
        )
        return payment

    @classmethod
    def mark_charge_refunded(cls, charge_id: str, amount: Decimal | None = None) -> int:
        """
        Mark the COMPLETED payment for a Stripe charge as REFUNDED.

        amount is the total Stripe reports as refunded on the charge; it is
        stored as refund_amount when positive.

        Returns:
            Number of rows updated. Zero is normal: the charge may be
            unknown or already refunded.
        """
        now = timezone.now()
        fields = {
            "status": PaymentStatus.REFUNDED,
            "refund_status": PaymentRefundStatus.REFUNDED,
            "refund_date": now,
            "updated_at": now,
        }
        if amount:
            fields["refund_amount"] = amount

        updated = Payment.objects.filter(
            stripe_charge_id=charge_id,
            status=PaymentStatus.COMPLETED,
        ).update(**fields)
        cls.get_logger().info(
            "Charge refund applied",
            extra={"charge_id": charge_id, "rows_updated": updated},
        )
        return updated
