"""
Tests for payment models.

Covers the RefundRequest state machine (django-fsm), the append-only
AuditLog, WebhookEvent bookkeeping and Payment helpers.
"""

import pytest
from django.db import IntegrityError, transaction
from django_fsm import ConcurrentTransition, TransitionNotAllowed, can_proceed

from payments.models import AuditAction, AuditLog, RefundRequest
from payments.state_machines import LeadType, RefundRequestStatus, WebhookEventStatus
from payments.tests.factories import PaymentFactory, RefundRequestFactory, WebhookEventFactory


# =============================================================================
# RefundRequest Transitions
# =============================================================================


@pytest.mark.django_db
class TestRefundRequestTransitions:
    """Tests for RefundRequest state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_pending_to_approved(self, admin_user):
        """Should approve a pending request and stamp the review."""
        refund_request = RefundRequestFactory()

        refund_request.approve(admin_id=admin_user.id, admin_notes="Verified")
        refund_request.save()

        refund_request.refresh_from_db()
        assert refund_request.status == RefundRequestStatus.APPROVED
        assert refund_request.reviewed_by_id == admin_user.id
        assert refund_request.admin_notes == "Verified"
        assert refund_request.reviewed_date is not None
        assert refund_request.refund_date == refund_request.reviewed_date

    def test_pending_to_denied(self, admin_user):
        """Should store the denial reason as admin notes."""
        refund_request = RefundRequestFactory()

        refund_request.deny(admin_id=admin_user.id, reason="Lead was valid")
        refund_request.save()

        assert refund_request.status == RefundRequestStatus.DENIED
        assert refund_request.admin_notes == "Lead was valid"
        assert refund_request.refund_date is None

    def test_info_round_trip(self, admin_user):
        """Should go to MORE_INFO_REQUESTED and back to PENDING."""
        refund_request = RefundRequestFactory()

        refund_request.request_info(admin_id=admin_user.id, question="Call log?")
        refund_request.save()
        assert refund_request.status == RefundRequestStatus.MORE_INFO_REQUESTED
        assert refund_request.info_requested == "Call log?"

        refund_request.record_info_response(response="Attached")
        refund_request.save()
        assert refund_request.status == RefundRequestStatus.PENDING
        assert refund_request.info_response == "Attached"
        assert refund_request.info_response_date is not None

    def test_more_info_requested_can_be_decided(self):
        """Should allow approve and deny while waiting for information."""
        refund_request = RefundRequestFactory(status=RefundRequestStatus.MORE_INFO_REQUESTED)

        assert can_proceed(refund_request.approve)
        assert can_proceed(refund_request.deny)
        assert not can_proceed(refund_request.request_info)

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    @pytest.mark.parametrize(
        "terminal_status",
        [RefundRequestStatus.APPROVED, RefundRequestStatus.DENIED],
    )
    def test_terminal_states_are_final(self, admin_user, terminal_status):
        """Should reject every transition out of a terminal state."""
        refund_request = RefundRequestFactory(status=terminal_status)

        with pytest.raises(TransitionNotAllowed):
            refund_request.approve(admin_id=admin_user.id)
        with pytest.raises(TransitionNotAllowed):
            refund_request.deny(admin_id=admin_user.id, reason="x")
        with pytest.raises(TransitionNotAllowed):
            refund_request.request_info(admin_id=admin_user.id, question="x")
        with pytest.raises(TransitionNotAllowed):
            refund_request.record_info_response(response="x")

    def test_pending_cannot_record_response(self):
        """Should reject an unsolicited info response."""
        refund_request = RefundRequestFactory()

        with pytest.raises(TransitionNotAllowed):
            refund_request.record_info_response(response="Unprompted")

    # -------------------------------------------------------------------------
    # Concurrent Reviews
    # -------------------------------------------------------------------------

    def test_stale_instance_cannot_overwrite_decision(self, admin_user):
        """Should reject the second of two reviews loaded from the same row."""
        refund_request = RefundRequestFactory()
        first = RefundRequest.objects.get(id=refund_request.id)
        second = RefundRequest.objects.get(id=refund_request.id)

        first.approve(admin_id=admin_user.id)
        first.save()

        second.deny(admin_id=admin_user.id, reason="Too late")
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            second.save()

        refund_request.refresh_from_db()
        assert refund_request.status == RefundRequestStatus.APPROVED


# =============================================================================
# AuditLog
# =============================================================================


@pytest.mark.django_db
class TestAuditLog:
    def _entry(self, admin_user):
        return AuditLog.objects.create(
            actor=admin_user,
            actor_role=admin_user.role,
            action=AuditAction.REFUND_DENIED,
            resource_type="refund_request",
            resource_id="abc",
            changes={"status": {"old": "pending", "new": "denied"}},
        )

    def test_entries_cannot_be_updated(self, admin_user):
        entry = self._entry(admin_user)
        entry.details = {"tampered": True}

        with pytest.raises(ValueError):
            entry.save()

        entry.refresh_from_db()
        assert entry.details == {}

    def test_entries_cannot_be_deleted(self, admin_user):
        entry = self._entry(admin_user)

        with pytest.raises(ValueError):
            entry.delete()

        assert AuditLog.objects.filter(id=entry.id).exists()


# =============================================================================
# WebhookEvent
# =============================================================================


@pytest.mark.django_db
class TestWebhookEvent:
    def test_processing_increments_retry_count(self):
        event = WebhookEventFactory()

        event.mark_processing()
        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 2

    def test_mark_processed_clears_error(self):
        event = WebhookEventFactory(status=WebhookEventStatus.FAILED, error_message="boom")

        event.mark_processed()

        assert event.is_processed
        assert event.processed_at is not None
        assert event.error_message is None

    def test_mark_failed_truncates_message(self):
        event = WebhookEventFactory()

        event.mark_failed("x" * 5000)

        assert event.status == WebhookEventStatus.FAILED
        assert len(event.error_message) == 2000

    def test_get_object_tolerates_malformed_payload(self):
        assert WebhookEventFactory(payload={"data": "nope"}).get_object() == {}
        assert WebhookEventFactory(payload={"data": {"object": {"id": "pi_1"}}}).get_object() == {
            "id": "pi_1"
        }

    def test_event_id_is_unique(self):
        WebhookEventFactory(stripe_event_id="evt_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            WebhookEventFactory(stripe_event_id="evt_dup")


# =============================================================================
# Payment
# =============================================================================


@pytest.mark.django_db
class TestPayment:
    def test_lead_id_follows_lead_type(self):
        system_payment = PaymentFactory()
        hes_payment = PaymentFactory(hes_purchase=True)

        assert system_payment.lead_id == system_payment.system_lead_id
        assert hes_payment.lead_type == LeadType.HES_REQUEST
        assert hes_payment.lead_id == hes_payment.hes_request_id

    def test_amount_cents(self):
        payment = PaymentFactory(amount="49.99")
        payment.refresh_from_db()

        assert payment.amount_cents == 4999

    def test_payment_intent_is_unique(self):
        PaymentFactory(stripe_payment_intent_id="pi_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            PaymentFactory(stripe_payment_intent_id="pi_dup")
