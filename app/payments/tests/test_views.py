"""
Tests for the refund API views.

Tests focus on observable HTTP behavior:
- Response status codes and error codes
- Response body structure (camelCase input, snake_case output)
- Role enforcement
- Database state changes
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework import status

from authentication.tests.factories import ContractorFactory, UserFactory
from payments.exceptions import StripeAPIUnavailableError
from payments.models import Payment, RefundRequest
from payments.state_machines import (
    PaymentStatus,
    RefundReasonCategory,
    RefundRequestStatus,
)
from payments.tests.factories import RefundRequestFactory


# =============================================================================
# URL Constants
# =============================================================================


CREATE_URL = "/api/v1/refund-requests/"
CONTRACTOR_LIST_URL = "/api/v1/contractor/refunds/"
ADMIN_LIST_URL = "/api/v1/admin/refund-requests/"


def respond_url(refund_request_id):
    return f"/api/v1/refund-requests/{refund_request_id}/respond/"


def admin_detail_url(refund_request_id):
    return f"/api/v1/admin/refund-requests/{refund_request_id}/"


def admin_action_url(refund_request_id, action):
    return f"/api/v1/admin/refund-requests/{refund_request_id}/{action}/"


def _create_body(payment, **overrides):
    body = {
        "leadId": str(payment.lead_id),
        "leadType": payment.lead_type,
        "reason": "Homeowner never answered",
        "reasonCategory": RefundReasonCategory.NO_RESPONSE,
        "notes": "Called five times over two weeks",
    }
    body.update(overrides)
    return body


# =============================================================================
# POST /refund-requests/
# =============================================================================


@pytest.mark.django_db
class TestRefundRequestCreateView:
    def test_creates_request(self, contractor_api_client, completed_payment):
        response = contractor_api_client.post(
            CREATE_URL, _create_body(completed_payment), format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == RefundRequestStatus.PENDING
        assert response.data["payment_id"] == str(completed_payment.id)
        assert response.data["lead_id"] == str(completed_payment.lead_id)
        assert response.data["amount"] == "49.00"
        assert response.data["reason_category"] == RefundReasonCategory.NO_RESPONSE
        assert "risk_score" not in response.data
        assert RefundRequest.objects.filter(payment=completed_payment).count() == 1

    def test_requires_authentication(self, api_client, completed_payment):
        response = api_client.post(CREATE_URL, _create_body(completed_payment), format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_rejects_non_buyer_roles(
        self, authenticated_client_factory, admin_user, completed_payment
    ):
        for user in (UserFactory(), admin_user):
            client = authenticated_client_factory(user)

            response = client.post(CREATE_URL, _create_body(completed_payment), format="json")

            assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_lead_id(self, contractor_api_client, completed_payment):
        body = _create_body(completed_payment)
        del body["leadId"]

        response = contractor_api_client.post(CREATE_URL, body, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "leadId" in response.data

    def test_blank_reason(self, contractor_api_client, completed_payment):
        response = contractor_api_client.post(
            CREATE_URL, _create_body(completed_payment, reason=""), format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "REASON_REQUIRED"
        assert response.data["details"] == {"reason": ["This field is required."]}

    def test_invalid_reason_category(self, contractor_api_client, completed_payment):
        response = contractor_api_client.post(
            CREATE_URL,
            _create_body(completed_payment, reasonCategory="changed_my_mind"),
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_REASON_CATEGORY"

    def test_refund_window_expired(self, contractor_api_client, completed_payment):
        Payment.objects.filter(id=completed_payment.id).update(
            created_at=timezone.now() - timedelta(days=45)
        )

        response = contractor_api_client.post(
            CREATE_URL, _create_body(completed_payment), format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "REFUND_WINDOW_EXPIRED"

    def test_open_request_exists(self, contractor_api_client, pending_refund_request):
        response = contractor_api_client.post(
            CREATE_URL, _create_body(pending_refund_request.payment), format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "REFUND_REQUEST_EXISTS"


# =============================================================================
# Contractor endpoints
# =============================================================================


@pytest.mark.django_db
class TestRefundRequestRespondView:
    @pytest.fixture
    def awaiting_info(self, completed_payment):
        return RefundRequestFactory(
            payment=completed_payment,
            status=RefundRequestStatus.MORE_INFO_REQUESTED,
            info_requested="When did you last call?",
        )

    def test_owner_responds(self, contractor_api_client, awaiting_info):
        response = contractor_api_client.post(
            respond_url(awaiting_info.id), {"response": "Yesterday"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == RefundRequestStatus.PENDING
        assert response.data["info_response"] == "Yesterday"

    def test_other_contractor_forbidden(self, authenticated_client_factory, awaiting_info):
        client = authenticated_client_factory(ContractorFactory())

        response = client.post(respond_url(awaiting_info.id), {"response": "Hi"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_pending_request_conflicts(self, contractor_api_client, pending_refund_request):
        response = contractor_api_client.post(
            respond_url(pending_refund_request.id), {"response": "Hi"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "INVALID_STATE_TRANSITION"


@pytest.mark.django_db
class TestContractorRefundListView:
    def test_lists_only_own_requests(self, contractor_api_client, pending_refund_request):
        RefundRequestFactory()

        response = contractor_api_client.get(CONTRACTOR_LIST_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.data] == [str(pending_refund_request.id)]


# =============================================================================
# Admin endpoints
# =============================================================================


@pytest.mark.django_db
class TestAdminRefundRequestListView:
    def test_lists_requests(self, admin_api_client, pending_refund_request):
        RefundRequestFactory(status=RefundRequestStatus.DENIED)

        response = admin_api_client.get(ADMIN_LIST_URL)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 2
        assert {"risk_score", "contractor_email", "reviewed_by_id"} <= set(response.data[0])

    def test_filters_by_status(self, admin_api_client, pending_refund_request):
        RefundRequestFactory(status=RefundRequestStatus.DENIED)

        response = admin_api_client.get(ADMIN_LIST_URL, {"status": "pending"})

        assert [item["id"] for item in response.data] == [str(pending_refund_request.id)]

    def test_invalid_status(self, admin_api_client):
        response = admin_api_client.get(ADMIN_LIST_URL, {"status": "archived"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_STATUS"

    def test_contractor_forbidden(self, contractor_api_client):
        response = contractor_api_client.get(ADMIN_LIST_URL)

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestAdminRefundRequestDetailView:
    def test_returns_review_context(self, admin_api_client, pending_refund_request):
        response = admin_api_client.get(admin_detail_url(pending_refund_request.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == str(pending_refund_request.id)
        assert response.data["contractor_name"] == "Pat Contractor"
        assert response.data["contractor_company"] == "Acme HVAC"
        assert response.data["lead_address"] == "Austin, TX, 78701"
        assert response.data["lead_system_type"] == "HVAC"
        assert response.data["amount"] == "49.00"
        assert response.data["contractor_stats"]["total_purchased"] == 1
        assert response.data["contractor_stats"]["avg_lead_value"] == "49.00"

    def test_unknown_request(self, admin_api_client):
        response = admin_api_client.get(admin_detail_url("7d3a5f1e-0000-4000-8000-000000000000"))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "REFUND_REQUEST_NOT_FOUND"


@pytest.mark.django_db
class TestAdminRefundActions:
    def test_approve(self, admin_api_client, pending_refund_request, mock_stripe_adapter):
        response = admin_api_client.post(
            admin_action_url(pending_refund_request.id, "approve"),
            {"adminNotes": "Confirmed"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == RefundRequestStatus.APPROVED
        assert response.data["admin_notes"] == "Confirmed"
        assert Payment.objects.get(id=pending_refund_request.payment_id).status == PaymentStatus.REFUNDED

    def test_approve_twice_conflicts(self, admin_api_client, pending_refund_request, mock_stripe_adapter):
        url = admin_action_url(pending_refund_request.id, "approve")
        admin_api_client.post(url, {}, format="json")

        response = admin_api_client.post(url, {}, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert mock_stripe_adapter.create_refund.call_count == 1

    def test_approve_stripe_unavailable(
        self, admin_api_client, pending_refund_request, mock_stripe_adapter
    ):
        mock_stripe_adapter.create_refund.side_effect = StripeAPIUnavailableError(
            "Could not connect to Stripe. Please retry."
        )

        response = admin_api_client.post(
            admin_action_url(pending_refund_request.id, "approve"), {}, format="json"
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data["error_code"] == "STRIPE_UNAVAILABLE"
        pending_refund_request.refresh_from_db()
        assert pending_refund_request.status == RefundRequestStatus.PENDING

    def test_deny_requires_reason(self, admin_api_client, pending_refund_request):
        response = admin_api_client.post(
            admin_action_url(pending_refund_request.id, "deny"), {}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "REASON_REQUIRED"

    def test_deny(self, admin_api_client, pending_refund_request):
        response = admin_api_client.post(
            admin_action_url(pending_refund_request.id, "deny"),
            {"reason": "Lead was valid"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == RefundRequestStatus.DENIED
        assert response.data["admin_notes"] == "Lead was valid"

    def test_request_info_then_again_conflicts(self, admin_api_client, pending_refund_request):
        url = admin_action_url(pending_refund_request.id, "request-info")

        first = admin_api_client.post(url, {"question": "Call log?"}, format="json")
        second = admin_api_client.post(url, {"question": "Again?"}, format="json")

        assert first.status_code == status.HTTP_200_OK
        assert first.data["status"] == RefundRequestStatus.MORE_INFO_REQUESTED
        assert second.status_code == status.HTTP_409_CONFLICT

    def test_contractor_cannot_approve(
        self, contractor_api_client, pending_refund_request, mock_stripe_adapter
    ):
        response = contractor_api_client.post(
            admin_action_url(pending_refund_request.id, "approve"), {}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        mock_stripe_adapter.create_refund.assert_not_called()
