"""
URL configuration for the payments app.

Routes (prefixed with /api/v1/ in the main URLconf):
    - refund-requests/...           - Contractor refund endpoints
    - contractor/refunds/           - Contractor refund history
    - admin/refund-requests/...     - Admin review endpoints
    - webhooks/payments/            - Stripe webhook endpoint
"""

from django.urls import path

from payments.views import (
    AdminRefundApproveView,
    AdminRefundDenyView,
    AdminRefundRequestDetailView,
    AdminRefundRequestInfoView,
    AdminRefundRequestListView,
    ContractorRefundListView,
    RefundRequestCreateView,
    RefundRequestRespondView,
)
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Contractor
    path("refund-requests/", RefundRequestCreateView.as_view(), name="refund-request-create"),
    path(
        "refund-requests/<uuid:refund_request_id>/respond/",
        RefundRequestRespondView.as_view(),
        name="refund-request-respond",
    ),
    path("contractor/refunds/", ContractorRefundListView.as_view(), name="contractor-refunds"),
    # Admin
    path(
        "admin/refund-requests/",
        AdminRefundRequestListView.as_view(),
        name="admin-refund-request-list",
    ),
    path(
        "admin/refund-requests/<uuid:refund_request_id>/",
        AdminRefundRequestDetailView.as_view(),
        name="admin-refund-request-detail",
    ),
    path(
        "admin/refund-requests/<uuid:refund_request_id>/approve/",
        AdminRefundApproveView.as_view(),
        name="admin-refund-approve",
    ),
    path(
        "admin/refund-requests/<uuid:refund_request_id>/deny/",
        AdminRefundDenyView.as_view(),
        name="admin-refund-deny",
    ),
    path(
        "admin/refund-requests/<uuid:refund_request_id>/request-info/",
        AdminRefundRequestInfoView.as_view(),
        name="admin-refund-request-info",
    ),
    # Webhooks
    path("webhooks/payments/", stripe_webhook, name="stripe-webhook"),
]
