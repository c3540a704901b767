"""
Refund service: the contractor refund request lifecycle.

This module provides the RefundService class which enforces the refund
request state machine and issues the Stripe refund on approval.

State Flow:
    request_refund          -> PENDING
    approve_refund          PENDING / MORE_INFO_REQUESTED -> APPROVED
    deny_refund             PENDING / MORE_INFO_REQUESTED -> DENIED
    request_more_info       PENDING -> MORE_INFO_REQUESTED
    respond_to_info_request MORE_INFO_REQUESTED -> PENDING

Every operation takes the caller's AuthContext as its first argument.

Usage:
    from payments.services import RefundService

    refund_request = RefundService.request_refund(
        auth,
        lead_id=lead.id,
        lead_type=LeadType.SYSTEM_LEAD,
        reason="Homeowner never answered",
        reason_category=RefundReasonCategory.NO_RESPONSE,
    )

    RefundService.approve_refund(admin_auth, refund_request.id, admin_notes="OK")

Safety:
    - Approval locks the request row and saves the APPROVED status before
      Stripe is called, so no other reviewer can act on it while the
      refund is in flight
    - A Stripe failure rolls the approval back; the request stays
      reviewable
    - The Stripe idempotency key is derived from the refund request id,
      so re-approving after a timeout or rollback replays the same refund
    - Status writes are conditional on the status read
      (ConcurrentTransitionMixin); the losing reviewer gets a 409
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import Count, Sum
from django.utils import timezone
from django_fsm import TransitionNotAllowed, can_proceed

from authentication.models import UserRole
from core.exceptions import PermissionDeniedError, ValidationError
from core.services import BaseService
from leads.services import LeadAllocationService
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import InvalidStateTransitionError, StripeError
from payments.ledger import PaymentLedger
from payments.models import AuditAction, Payment, RefundRequest
from payments.notifications import RefundNotifier
from payments.services.audit_service import AuditLogService
from payments.services.refund_store import RefundRequestFilters, RefundRequestStore
from payments.state_machines import (
    LeadType,
    PaymentRefundStatus,
    PaymentStatus,
    RefundReasonCategory,
    RefundRequestStatus,
)

if TYPE_CHECKING:
    from datetime import date, datetime

    from authentication.context import AuthContext
    from payments.adapters import RefundResult


LEAD_BUYER_ROLES = (UserRole.CONTRACTOR, UserRole.AFFILIATE)

# Risk score weights
RISK_RECENT_REQUESTS = 30
RISK_HIGH_REFUND_RATE = 25
RISK_SHORT_NOTES = 15
RISK_QUICK_REQUEST = 20
RISK_HIGH_AMOUNT = 10
RISK_MAX = 100

RECENT_REQUEST_WINDOW_DAYS = 7
RECENT_REQUEST_LIMIT = 2
REFUND_RATE_THRESHOLD = Decimal("0.3")
SHORT_NOTES_LENGTH = 10
HIGH_AMOUNT_THRESHOLD = Decimal("100")


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ContractorRefundStats:
    """Purchase and refund history shown to the reviewing admin."""

    total_purchased: int
    total_closed: int
    conversion_rate: int
    previous_refund_requests: int
    previous_refund_approvals: int
    avg_lead_value: Decimal


@dataclass
class RefundRequestDetails:
    """A refund request joined with contractor, lead and stats."""

    refund_request: RefundRequest
    contractor_name: str | None
    contractor_email: str | None
    contractor_company: str | None
    lead_address: str | None
    lead_system_type: str | None
    amount: Decimal | None
    contractor_stats: ContractorRefundStats


def _half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


class RefundService(BaseService):
    """
    Service for the refund request workflow.

    All methods are classmethods - no instance state is maintained.
    """

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        cls._stripe_adapter = adapter

    # =========================================================================
    # Contractor Operations
    # =========================================================================

    @classmethod
    def request_refund(
        cls,
        auth: AuthContext,
        lead_id: uuid.UUID | str,
        lead_type: str,
        reason: str | None,
        reason_category: str | None,
        notes: str | None = None,
    ) -> RefundRequest:
        """
        File a refund request for a purchased lead.

        Raises:
            AuthorizationError: Caller is not a contractor or affiliate
            ValidationError: Missing/invalid input, no completed payment,
                refund window expired, or an open request already exists
        """
        auth.require_role(*LEAD_BUYER_ROLES)

        reason = cls.require_text(reason, "reason", "Reason is required")
        reason_category = cls.require_text(
            reason_category, "reason_category", "Reason category is required"
        )
        if reason_category not in RefundReasonCategory.values:
            raise ValidationError(
                "Invalid reason category",
                error_code="INVALID_REASON_CATEGORY",
                details={"reason_category": reason_category},
            )
        if lead_type not in LeadType.values:
            raise ValidationError(
                "Invalid lead type",
                error_code="INVALID_LEAD_TYPE",
                details={"lead_type": lead_type},
            )
        try:
            lead_uuid = uuid.UUID(str(lead_id))
        except ValueError:
            raise ValidationError(
                "Invalid lead id",
                error_code="INVALID_LEAD_ID",
                details={"lead_id": str(lead_id)},
            )
        notes = (notes or "").strip() or None

        with cls.atomic():
            payment = PaymentLedger.get_completed_for_lead(
                contractor_id=auth.user_id,
                lead_id=lead_uuid,
                lead_type=lead_type,
            )
            if payment is None:
                raise ValidationError(
                    "No completed payment found for this lead",
                    error_code="PAYMENT_NOT_FOUND_FOR_LEAD",
                    details={"lead_id": str(lead_uuid), "lead_type": lead_type},
                )

            # Serializes concurrent filings for the same payment
            payment = Payment.objects.select_for_update().get(id=payment.id)

            window_days = settings.REFUND_WINDOW_DAYS
            age = timezone.now() - payment.created_at
            if age > timedelta(days=window_days):
                raise ValidationError(
                    f"Refund window has expired. Refunds must be requested "
                    f"within {window_days} days of purchase.",
                    error_code="REFUND_WINDOW_EXPIRED",
                    details={"refund_window_days": window_days},
                )

            if RefundRequestStore.has_open_request(payment.id):
                raise ValidationError(
                    "A refund request is already open for this payment",
                    error_code="REFUND_REQUEST_EXISTS",
                    details={"payment_id": str(payment.id)},
                )

            risk_score = cls.calculate_risk_score(
                contractor_id=auth.user_id,
                amount=payment.amount,
                age=age,
                notes=notes,
            )

            refund_request = RefundRequestStore.create(
                payment=payment,
                contractor_id=auth.user_id,
                lead_id=lead_uuid,
                lead_type=lead_type,
                reason=reason,
                reason_category=reason_category,
                notes=notes,
                risk_score=risk_score,
            )
            PaymentLedger.set_refund_status(payment.id, PaymentRefundStatus.REQUESTED)

            AuditLogService.record(
                auth,
                AuditAction.REFUND_REQUESTED,
                refund_request.id,
                old_status=None,
                new_status=refund_request.status,
                details={
                    "payment_id": str(payment.id),
                    "reason_category": reason_category,
                    "risk_score": risk_score,
                },
            )
            RefundNotifier.refund_requested(refund_request)

        cls.get_logger().info(
            "Refund requested",
            extra={
                "refund_request_id": str(refund_request.id),
                "payment_id": str(payment.id),
                "contractor_id": auth.user_id,
                "risk_score": risk_score,
            },
        )
        return refund_request

    @classmethod
    def respond_to_info_request(
        cls,
        auth: AuthContext,
        refund_request_id: uuid.UUID | str,
        response: str | None,
    ) -> RefundRequest:
        """
        Record the contractor's answer and put the request back in review.

        Raises:
            PermissionDeniedError: Caller does not own the request
            ValidationError: Blank response
            InvalidStateTransitionError: No information was requested
        """
        response = cls.require_text(response, "response", "Response is required")
        refund_request = RefundRequestStore.get(refund_request_id)

        if refund_request.contractor_id != auth.user_id:
            raise PermissionDeniedError(
                "You can only respond to your own refund requests",
                details={"refund_request_id": str(refund_request.id)},
            )

        old_status = refund_request.status
        cls._ensure_can_proceed(refund_request, refund_request.record_info_response, "respond")

        with cls.atomic():
            cls._apply(refund_request.record_info_response, response=response)
            RefundRequestStore.save_transition(refund_request, "respond")
            AuditLogService.record(
                auth,
                AuditAction.REFUND_INFO_RESPONDED,
                refund_request.id,
                old_status=old_status,
                new_status=refund_request.status,
            )

        cls.get_logger().info(
            "Refund info response recorded",
            extra={"refund_request_id": str(refund_request.id)},
        )
        return refund_request

    @classmethod
    def list_contractor_refunds(cls, auth: AuthContext) -> list[RefundRequest]:
        auth.require_role(*LEAD_BUYER_ROLES)
        return list(RefundRequestStore.list_for_contractor(auth.user_id))

    # =========================================================================
    # Admin Operations
    # =========================================================================

    @classmethod
    def approve_refund(
        cls,
        auth: AuthContext,
        refund_request_id: uuid.UUID | str,
        admin_notes: str | None = None,
    ) -> RefundRequest:
        """
        Approve a refund request and return the money through Stripe.

        Raises:
            AuthorizationError: Caller is not an admin
            PaymentNotFoundError: Unknown id
            InvalidStateTransitionError: Request already approved or denied
            StripeError: Stripe refused or was unreachable; nothing persisted
        """
        auth.require_admin()
        admin_notes = (admin_notes or "").strip() or None

        # The row lock is held across the Stripe call; any error rolls the
        # approval back.
        with cls.atomic():
            refund_request = RefundRequestStore.get_for_update(refund_request_id)
            old_status = refund_request.status
            cls._ensure_can_proceed(refund_request, refund_request.approve, "approve")
            cls._apply(refund_request.approve, admin_id=auth.user_id, admin_notes=admin_notes)
            RefundRequestStore.save_transition(refund_request, "approve")

            payment = refund_request.payment
            refund_id, refund_amount = cls._refund_payment(refund_request, payment)

            PaymentLedger.mark_refunded(payment, refund_id, refund_amount)
            AuditLogService.record(
                auth,
                AuditAction.REFUND_APPROVED,
                refund_request.id,
                old_status=old_status,
                new_status=refund_request.status,
                details={
                    "payment_id": str(payment.id),
                    "amount": str(refund_amount),
                    "stripe_refund_id": refund_id,
                },
            )
            RefundNotifier.refund_approved(refund_request)

        cls.get_logger().info(
            "Refund approved",
            extra={
                "refund_request_id": str(refund_request.id),
                "payment_id": str(payment.id),
                "stripe_refund_id": refund_id,
                "admin_id": auth.user_id,
            },
        )
        return refund_request

    @classmethod
    def deny_refund(
        cls,
        auth: AuthContext,
        refund_request_id: uuid.UUID | str,
        reason: str | None,
    ) -> RefundRequest:
        auth.require_admin()
        reason = cls.require_text(reason, "reason", "Denial reason is required")
        refund_request = RefundRequestStore.get(refund_request_id)
        old_status = refund_request.status
        cls._ensure_can_proceed(refund_request, refund_request.deny, "deny")

        with cls.atomic():
            cls._apply(refund_request.deny, admin_id=auth.user_id, reason=reason)
            RefundRequestStore.save_transition(refund_request, "deny")
            PaymentLedger.set_refund_status(refund_request.payment_id, PaymentRefundStatus.DENIED)
            AuditLogService.record(
                auth,
                AuditAction.REFUND_DENIED,
                refund_request.id,
                old_status=old_status,
                new_status=refund_request.status,
                details={"reason": reason},
            )
            RefundNotifier.refund_denied(refund_request)

        cls.get_logger().info(
            "Refund denied",
            extra={"refund_request_id": str(refund_request.id), "admin_id": auth.user_id},
        )
        return refund_request

    @classmethod
    def request_more_info(
        cls,
        auth: AuthContext,
        refund_request_id: uuid.UUID | str,
        question: str | None,
    ) -> RefundRequest:
        auth.require_admin()
        question = cls.require_text(question, "question", "Question is required")
        refund_request = RefundRequestStore.get(refund_request_id)
        old_status = refund_request.status
        cls._ensure_can_proceed(refund_request, refund_request.request_info, "request_info")

        with cls.atomic():
            cls._apply(refund_request.request_info, admin_id=auth.user_id, question=question)
            RefundRequestStore.save_transition(refund_request, "request_info")
            AuditLogService.record(
                auth,
                AuditAction.REFUND_INFO_REQUESTED,
                refund_request.id,
                old_status=old_status,
                new_status=refund_request.status,
                details={"question": question},
            )
            RefundNotifier.info_requested(refund_request)

        cls.get_logger().info(
            "Refund info requested",
            extra={"refund_request_id": str(refund_request.id), "admin_id": auth.user_id},
        )
        return refund_request

    @classmethod
    def get_refund_request_with_details(
        cls,
        auth: AuthContext,
        refund_request_id: uuid.UUID | str,
    ) -> RefundRequestDetails:
        auth.require_admin()
        refund_request = RefundRequestStore.get(refund_request_id)

        contractor = refund_request.contractor
        profile = getattr(contractor, "profile", None)
        lead = LeadAllocationService.describe_lead(refund_request.lead_type, refund_request.lead_id)

        return RefundRequestDetails(
            refund_request=refund_request,
            contractor_name=(profile.full_name or None) if profile else None,
            contractor_email=contractor.email or None,
            contractor_company=(profile.company_name or None) if profile else None,
            lead_address=lead.address,
            lead_system_type=lead.system_type,
            amount=refund_request.payment.amount,
            contractor_stats=cls.get_contractor_stats(refund_request.contractor_id),
        )

    @classmethod
    def list_refund_requests(
        cls,
        auth: AuthContext,
        status: str | None = None,
        contractor_id: int | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
    ) -> list[RefundRequest]:
        """Admin queue, newest first. status="all" disables the status filter."""
        auth.require_admin()
        if status and status != "all" and status not in RefundRequestStatus.values:
            raise ValidationError(
                "Invalid status filter",
                error_code="INVALID_STATUS",
                details={"status": status},
            )
        filters = RefundRequestFilters(
            status=status,
            contractor_id=contractor_id,
            date_from=date_from,
            date_to=date_to,
        )
        return list(RefundRequestStore.list(filters))

    # =========================================================================
    # Risk & Stats
    # =========================================================================

    @classmethod
    def calculate_risk_score(
        cls,
        contractor_id: int,
        amount: Decimal,
        age: timedelta,
        notes: str | None,
    ) -> int:
        """
        Advisory 0-100 score; counts the contractor's existing requests
        (the one being filed is not yet saved).
        """
        score = 0
        since = timezone.now() - timedelta(days=RECENT_REQUEST_WINDOW_DAYS)

        recent_requests = RefundRequest.objects.filter(
            contractor_id=contractor_id,
            requested_date__gte=since,
        ).count()
        if recent_requests > RECENT_REQUEST_LIMIT:
            score += RISK_RECENT_REQUESTS

        total_purchases = Payment.objects.filter(
            contractor_id=contractor_id,
            status=PaymentStatus.COMPLETED,
        ).count()
        total_requests = RefundRequest.objects.filter(contractor_id=contractor_id).count()
        if total_purchases and Decimal(total_requests) / total_purchases > REFUND_RATE_THRESHOLD:
            score += RISK_HIGH_REFUND_RATE

        if notes and len(notes.strip()) < SHORT_NOTES_LENGTH:
            score += RISK_SHORT_NOTES

        if age < timedelta(days=1):
            score += RISK_QUICK_REQUEST

        if amount > HIGH_AMOUNT_THRESHOLD:
            score += RISK_HIGH_AMOUNT

        return min(score, RISK_MAX)

    @classmethod
    def get_contractor_stats(cls, contractor_id: int) -> ContractorRefundStats:
        purchases = Payment.objects.filter(
            contractor_id=contractor_id,
            status=PaymentStatus.COMPLETED,
        ).aggregate(count=Count("id"), total=Sum("amount"))
        total_purchased = purchases["count"] or 0
        total_amount = purchases["total"] or Decimal("0")

        total_closed = LeadAllocationService.count_closed(contractor_id)
        requests = RefundRequest.objects.filter(contractor_id=contractor_id)

        if total_purchased:
            conversion_rate = int(_half_up(Decimal(total_closed) * 100 / total_purchased))
            avg_lead_value = _half_up(Decimal(total_amount) / total_purchased, "0.01")
        else:
            conversion_rate = 0
            avg_lead_value = Decimal("0.00")

        return ContractorRefundStats(
            total_purchased=total_purchased,
            total_closed=total_closed,
            conversion_rate=conversion_rate,
            previous_refund_requests=requests.count(),
            previous_refund_approvals=requests.filter(
                status=RefundRequestStatus.APPROVED
            ).count(),
            avg_lead_value=avg_lead_value,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @classmethod
    def _ensure_can_proceed(cls, refund_request: RefundRequest, transition_method, action: str) -> None:
        """Reject a transition the state machine forbids, before any side effect."""
        if not can_proceed(transition_method):
            raise InvalidStateTransitionError(
                f"Cannot {action.replace('_', ' ')} a refund request with status "
                f"'{refund_request.status}'",
                details={
                    "refund_request_id": str(refund_request.id),
                    "current_status": refund_request.status,
                    "action": action,
                },
            )

    @classmethod
    def _apply(cls, transition_method, **kwargs) -> None:
        try:
            transition_method(**kwargs)
        except TransitionNotAllowed as e:
            raise InvalidStateTransitionError(str(e))
    @classmethod
    def _refund_payment(
        cls,
        refund_request: RefundRequest,
        payment: Payment,
    ) -> tuple[str | None, Decimal]:
        """
        Return the money for an approved request.

        Returns:
            (stripe_refund_id, refunded_amount). No Stripe call is made when
            the payment has no PaymentIntent or a charge.refunded event
            already marked it refunded.
        """
        if payment.status == PaymentStatus.REFUNDED:
            cls.get_logger().info(
                "Payment already refunded, skipping Stripe refund",
                extra={"payment_id": str(payment.id)},
            )
            return payment.refund_stripe_id, payment.refund_amount or payment.amount

        if not payment.stripe_payment_intent_id:
            cls.get_logger().warning(
                "Payment has no PaymentIntent, skipping Stripe refund",
                extra={"payment_id": str(payment.id)},
            )
            return None, payment.amount

        result = cls._issue_stripe_refund(refund_request, payment)
        return result.id, Decimal(result.amount_cents) / Decimal(100)

    @classmethod
    def _issue_stripe_refund(
        cls,
        refund_request: RefundRequest,
        payment: Payment,
    ) -> RefundResult:
        """Full refund of the payment's PaymentIntent."""
        adapter = cls.get_stripe_adapter()
        try:
            return adapter.create_refund(
                payment_intent_id=payment.stripe_payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="refund",
                    entity_id=refund_request.id,
                ),
                reason="requested_by_customer",
                metadata={
                    "refund_request_id": str(refund_request.id),
                    "payment_id": str(payment.id),
                },
            )
        except StripeError as e:
            cls.get_logger().error(
                "Stripe refund failed",
                extra={
                    "refund_request_id": str(refund_request.id),
                    "payment_id": str(payment.id),
                    "error_code": e.error_code,
                    "retryable": e.is_retryable,
                },
            )
            raise
