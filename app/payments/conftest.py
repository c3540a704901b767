"""
Pytest fixtures for payment tests.

Usage:
    def test_deny(admin_auth, pending_refund_request):
        RefundService.deny_refund(admin_auth, pending_refund_request.id, reason="Valid lead")
"""

from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.context import AuthContext
from authentication.tests.factories import AdminFactory, ContractorFactory
from leads.models import SystemLeadStatus
from leads.tests.factories import SystemLeadFactory
from payments.adapters import RefundResult
from payments.services import RefundService
from payments.tests.factories import PaymentFactory, RefundRequestFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def contractor(db):
    return ContractorFactory(
        profile__full_name="Pat Contractor",
        profile__company_name="Acme HVAC",
    )


@pytest.fixture
def admin_user(db):
    return AdminFactory()


@pytest.fixture
def contractor_auth(contractor):
    return AuthContext(user_id=contractor.id, role=contractor.role)


@pytest.fixture
def admin_auth(admin_user):
    return AuthContext(user_id=admin_user.id, role=admin_user.role)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create JWT-authenticated clients for any user.

    Usage:
        client = authenticated_client_factory(admin_user)
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def contractor_api_client(authenticated_client_factory, contractor):
    return authenticated_client_factory(contractor)


@pytest.fixture
def admin_api_client(authenticated_client_factory, admin_user):
    return authenticated_client_factory(admin_user)


# =============================================================================
# Purchase Fixtures
# =============================================================================


@pytest.fixture
def purchased_lead(db, contractor):
    return SystemLeadFactory(
        status=SystemLeadStatus.PURCHASED,
        purchased_by_contractor=contractor,
    )


@pytest.fixture
def completed_payment(db, contractor, purchased_lead):
    return PaymentFactory(contractor=contractor, system_lead=purchased_lead)


@pytest.fixture
def pending_refund_request(db, completed_payment):
    return RefundRequestFactory(payment=completed_payment)


# =============================================================================
# Stripe Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_adapter():
    """
    Inject a mock Stripe adapter into RefundService.

    create_refund returns a full refund of 49.00 by default.
    """
    adapter = MagicMock()
    adapter.create_refund.return_value = RefundResult(
        id="re_test_123",
        amount_cents=4900,
        currency="usd",
        status="succeeded",
        payment_intent_id="pi_test_000000",
        raw_response={},
    )
    RefundService.set_stripe_adapter(adapter)
    yield adapter
    RefundService.set_stripe_adapter(None)
