"""
Tests for PaymentLedger.

Tests cover:
1. Idempotent recording keyed on the PaymentIntent id
2. Recovery when a concurrent delivery wins the insert race
3. FAILED -> COMPLETED upgrade
4. Refund bookkeeping (mark_refunded, mark_charge_refunded)
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from leads.tests.factories import HESRequestFactory, SystemLeadFactory
from payments.ledger import PaymentData, PaymentLedger
from payments.models import Payment
from payments.state_machines import LeadType, PaymentRefundStatus, PaymentStatus
from payments.tests.factories import PaymentFactory


@pytest.fixture
def system_lead(db):
    return SystemLeadFactory()


@pytest.fixture
def payment_data(contractor, system_lead):
    return PaymentData(
        contractor_id=contractor.id,
        lead_type=LeadType.SYSTEM_LEAD,
        lead_id=system_lead.id,
        amount=Decimal("49.00"),
        status=PaymentStatus.COMPLETED,
        stripe_payment_intent_id="pi_ledger_1",
        stripe_charge_id="ch_ledger_1",
        stripe_transaction_id="ch_ledger_1",
    )


@pytest.mark.django_db
class TestRecord:
    def test_creates_payment(self, payment_data, contractor, system_lead):
        payment, created = PaymentLedger.record(payment_data)

        assert created is True
        assert payment.contractor_id == contractor.id
        assert payment.system_lead_id == system_lead.id
        assert payment.hes_request_id is None
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.refund_status == PaymentRefundStatus.NONE
        assert payment.amount == Decimal("49.00")
        assert payment.stripe_charge_id == "ch_ledger_1"

    def test_records_hes_request_purchase(self, contractor):
        hes = HESRequestFactory()
        data = PaymentData(
            contractor_id=contractor.id,
            lead_type=LeadType.HES_REQUEST,
            lead_id=hes.id,
            amount=Decimal("25.00"),
            status=PaymentStatus.COMPLETED,
            stripe_payment_intent_id="pi_hes_1",
        )

        payment, created = PaymentLedger.record(data)

        assert created is True
        assert payment.hes_request_id == hes.id
        assert payment.system_lead_id is None

    def test_second_delivery_is_a_no_op(self, payment_data):
        first, first_created = PaymentLedger.record(payment_data)
        second, second_created = PaymentLedger.record(payment_data)

        assert first_created is True
        assert second_created is False
        assert second.id == first.id
        assert Payment.objects.count() == 1

    def test_existing_failed_row_is_not_overwritten(self, payment_data):
        PaymentFactory(
            stripe_payment_intent_id="pi_ledger_1",
            status=PaymentStatus.FAILED,
        )

        payment, created = PaymentLedger.record(payment_data)

        assert created is False
        assert payment.status == PaymentStatus.FAILED

    def test_lost_insert_race_returns_winner(self, payment_data):
        """Should return the concurrently inserted row instead of raising."""
        winner = PaymentFactory(stripe_payment_intent_id="pi_ledger_1")

        # Simulate the pre-check running before the winner committed
        with patch.object(PaymentLedger, "get_by_payment_intent", side_effect=[None, winner]):
            payment, created = PaymentLedger.record(payment_data)

        assert created is False
        assert payment.id == winner.id
        assert Payment.objects.filter(stripe_payment_intent_id="pi_ledger_1").count() == 1


@pytest.mark.django_db
class TestUpgradeToCompleted:
    def test_upgrades_failed_payment(self, payment_data):
        failed = PaymentFactory(
            stripe_payment_intent_id="pi_ledger_1",
            status=PaymentStatus.FAILED,
            failure_reason="Card declined",
            stripe_charge_id=None,
        )

        assert PaymentLedger.upgrade_to_completed(payment_data) is True

        failed.refresh_from_db()
        assert failed.status == PaymentStatus.COMPLETED
        assert failed.failure_reason is None
        assert failed.stripe_charge_id == "ch_ledger_1"

    def test_completed_payment_is_left_alone(self, payment_data):
        PaymentFactory(stripe_payment_intent_id="pi_ledger_1")

        assert PaymentLedger.upgrade_to_completed(payment_data) is False


@pytest.mark.django_db
class TestRefundBookkeeping:
    def test_mark_refunded(self, completed_payment):
        payment = PaymentLedger.mark_refunded(completed_payment, "re_1", Decimal("49.00"))

        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refund_status == PaymentRefundStatus.REFUNDED
        assert payment.refund_stripe_id == "re_1"
        assert payment.refund_amount == Decimal("49.00")
        assert payment.refund_date is not None

    def test_mark_charge_refunded(self, completed_payment):
        updated = PaymentLedger.mark_charge_refunded(completed_payment.stripe_charge_id)

        completed_payment.refresh_from_db()
        assert updated == 1
        assert completed_payment.status == PaymentStatus.REFUNDED
        assert completed_payment.refund_status == PaymentRefundStatus.REFUNDED
        assert completed_payment.refund_amount is None

    def test_mark_charge_refunded_stores_amount(self, completed_payment):
        PaymentLedger.mark_charge_refunded(completed_payment.stripe_charge_id, Decimal("12.50"))

        completed_payment.refresh_from_db()
        assert completed_payment.refund_amount == Decimal("12.50")

    def test_mark_charge_refunded_skips_already_refunded(self, completed_payment):
        PaymentLedger.mark_charge_refunded(completed_payment.stripe_charge_id)

        assert PaymentLedger.mark_charge_refunded(completed_payment.stripe_charge_id) == 0

    def test_mark_charge_refunded_unknown_charge(self, db):
        assert PaymentLedger.mark_charge_refunded("ch_unknown") == 0

    def test_set_refund_status(self, completed_payment):
        PaymentLedger.set_refund_status(completed_payment.id, PaymentRefundStatus.DENIED)

        completed_payment.refresh_from_db()
        assert completed_payment.refund_status == PaymentRefundStatus.DENIED
        assert completed_payment.status == PaymentStatus.COMPLETED


@pytest.mark.django_db
class TestGetCompletedForLead:
    def test_returns_completed_payment(self, contractor, completed_payment):
        payment = PaymentLedger.get_completed_for_lead(
            contractor_id=contractor.id,
            lead_id=completed_payment.system_lead_id,
            lead_type=LeadType.SYSTEM_LEAD,
        )

        assert payment == completed_payment

    def test_ignores_refunded_payment(self, contractor, completed_payment):
        Payment.objects.filter(id=completed_payment.id).update(status=PaymentStatus.REFUNDED)

        assert (
            PaymentLedger.get_completed_for_lead(
                contractor_id=contractor.id,
                lead_id=completed_payment.system_lead_id,
                lead_type=LeadType.SYSTEM_LEAD,
            )
            is None
        )
