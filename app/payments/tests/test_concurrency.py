"""
Concurrent review tests.

Two admins acting on the same refund request are simulated by handing the
service a copy of the row loaded before the other admin's decision was
saved. Status writes are conditional on the loaded status, so the second
decision must fail with a 409 and leave no trace. Approval claims the
request before Stripe is called, so a reviewer acting while the refund is
in flight is turned away.
"""

from unittest.mock import patch

import pytest

from core.exceptions import ValidationError
from payments.exceptions import InvalidStateTransitionError
from payments.models import AuditAction, AuditLog, Payment
from payments.services import RefundRequestStore, RefundService
from payments.state_machines import PaymentRefundStatus, PaymentStatus, RefundRequestStatus


@pytest.mark.django_db
class TestConcurrentReview:
    def test_deny_after_concurrent_approval_fails(
        self, admin_auth, pending_refund_request, mock_stripe_adapter
    ):
        stale = RefundRequestStore.get(pending_refund_request.id)
        RefundService.approve_refund(admin_auth, pending_refund_request.id)

        with patch.object(RefundRequestStore, "get", return_value=stale):
            with pytest.raises(InvalidStateTransitionError):
                RefundService.deny_refund(admin_auth, pending_refund_request.id, reason="Too late")

        pending_refund_request.refresh_from_db()
        assert pending_refund_request.status == RefundRequestStatus.APPROVED

        payment = Payment.objects.get(id=pending_refund_request.payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refund_status == PaymentRefundStatus.REFUNDED

        actions = list(
            AuditLog.objects.filter(resource_id=str(pending_refund_request.id)).values_list(
                "action", flat=True
            )
        )
        assert actions == [AuditAction.REFUND_APPROVED]

    def test_deny_while_refund_in_flight_is_rejected(
        self, admin_auth, pending_refund_request, mock_stripe_adapter
    ):
        """A reviewer acting during the Stripe call sees the request already approved."""
        refund_result = mock_stripe_adapter.create_refund.return_value
        denial_errors = []

        def deny_then_refund(**kwargs):
            try:
                RefundService.deny_refund(
                    admin_auth, pending_refund_request.id, reason="Lead was valid"
                )
            except InvalidStateTransitionError as e:
                denial_errors.append(e)
            return refund_result

        mock_stripe_adapter.create_refund.side_effect = deny_then_refund

        RefundService.approve_refund(admin_auth, pending_refund_request.id)

        assert len(denial_errors) == 1
        assert denial_errors[0].details["current_status"] == RefundRequestStatus.APPROVED

        pending_refund_request.refresh_from_db()
        assert pending_refund_request.status == RefundRequestStatus.APPROVED

        payment = Payment.objects.get(id=pending_refund_request.payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refund_status == PaymentRefundStatus.REFUNDED
        assert payment.refund_stripe_id == "re_test_123"
        assert list(
            AuditLog.objects.filter(resource_id=str(pending_refund_request.id)).values_list(
                "action", flat=True
            )
        ) == [AuditAction.REFUND_APPROVED]

    def test_info_request_after_concurrent_denial_fails(self, admin_auth, pending_refund_request):
        stale = RefundRequestStore.get(pending_refund_request.id)
        RefundService.deny_refund(admin_auth, pending_refund_request.id, reason="Lead was valid")

        with patch.object(RefundRequestStore, "get", return_value=stale):
            with pytest.raises(InvalidStateTransitionError) as exc_info:
                RefundService.request_more_info(
                    admin_auth, pending_refund_request.id, question="Call log?"
                )

        assert exc_info.value.status_code == 409
        pending_refund_request.refresh_from_db()
        assert pending_refund_request.status == RefundRequestStatus.DENIED
        assert pending_refund_request.info_requested is None

    def test_second_filing_is_rejected(self, contractor_auth, completed_payment):
        """Should allow only one open request per payment."""
        params = {
            "lead_id": completed_payment.lead_id,
            "lead_type": completed_payment.lead_type,
            "reason": "Homeowner never answered",
            "reason_category": "no_response",
        }
        RefundService.request_refund(contractor_auth, **params)

        with pytest.raises(ValidationError) as exc_info:
            RefundService.request_refund(contractor_auth, **params)

        assert exc_info.value.error_code == "REFUND_REQUEST_EXISTS"
