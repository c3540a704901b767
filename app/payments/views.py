"""
DRF views for the refund workflow.

Endpoints:
    POST /api/v1/refund-requests/                           - File a refund request
    POST /api/v1/refund-requests/{id}/respond/              - Answer an info request
    GET  /api/v1/contractor/refunds/                        - Caller's own requests
    GET  /api/v1/admin/refund-requests/                     - Admin list
    GET  /api/v1/admin/refund-requests/{id}/                - Admin detail with stats
    POST /api/v1/admin/refund-requests/{id}/approve/        - Approve and refund
    POST /api/v1/admin/refund-requests/{id}/deny/           - Deny
    POST /api/v1/admin/refund-requests/{id}/request-info/   - Ask the contractor

Views only translate HTTP to service calls. Every service call receives
an AuthContext built from the authenticated user; domain errors are
rendered by core.exception_handlers.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.context import AuthContext
from authentication.permissions import IsAdminRole, IsLeadBuyer
from payments.serializers import (
    AdminRefundRequestSerializer,
    ApproveRefundSerializer,
    DenyRefundSerializer,
    InfoResponseSerializer,
    RefundRequestCreateSerializer,
    RefundRequestDetailSerializer,
    RefundRequestListQuerySerializer,
    RefundRequestSerializer,
    RequestInfoSerializer,
)
from payments.services import RefundService

REFUND_REQUEST_ID = OpenApiParameter(
    name="refund_request_id",
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.PATH,
    description="Refund request ID",
)


# =============================================================================
# Contractor Endpoints
# =============================================================================


class RefundRequestCreateView(APIView):
    """
    File a refund request for a purchased lead.

    POST /api/v1/refund-requests/
    """

    permission_classes = [IsAuthenticated, IsLeadBuyer]

    @extend_schema(
        operation_id="create_refund_request",
        summary="Request a refund",
        description=(
            "File a refund request for a lead the caller paid for. The payment must "
            "be completed, inside the refund window, and have no open request."
        ),
        request=RefundRequestCreateSerializer,
        responses={
            201: RefundRequestSerializer,
            400: OpenApiResponse(description="Invalid input or refund not allowed"),
            403: OpenApiResponse(description="Caller is not a contractor or affiliate"),
        },
        tags=["Refunds"],
    )
    def post(self, request):
        serializer = RefundRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund_request = RefundService.request_refund(
            AuthContext.from_request(request),
            **serializer.validated_data,
        )
        return Response(
            RefundRequestSerializer(refund_request).data,
            status=status.HTTP_201_CREATED,
        )


class RefundRequestRespondView(APIView):
    """
    Answer an admin's question on the caller's own refund request.

    POST /api/v1/refund-requests/{id}/respond/
    """

    permission_classes = [IsAuthenticated, IsLeadBuyer]

    @extend_schema(
        operation_id="respond_to_refund_info_request",
        summary="Respond to info request",
        parameters=[REFUND_REQUEST_ID],
        request=InfoResponseSerializer,
        responses={
            200: RefundRequestSerializer,
            400: OpenApiResponse(description="Response is blank"),
            403: OpenApiResponse(description="Not the owner of the request"),
            404: OpenApiResponse(description="Refund request not found"),
            409: OpenApiResponse(description="No information was requested"),
        },
        tags=["Refunds"],
    )
    def post(self, request, refund_request_id):
        serializer = InfoResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund_request = RefundService.respond_to_info_request(
            AuthContext.from_request(request),
            refund_request_id,
            response=serializer.validated_data.get("response"),
        )
        return Response(RefundRequestSerializer(refund_request).data)


class ContractorRefundListView(APIView):
    """
    List the caller's refund requests, newest first.

    GET /api/v1/contractor/refunds/
    """

    permission_classes = [IsAuthenticated, IsLeadBuyer]

    @extend_schema(
        operation_id="list_contractor_refunds",
        summary="List my refund requests",
        responses={200: RefundRequestSerializer(many=True)},
        tags=["Refunds"],
    )
    def get(self, request):
        refund_requests = RefundService.list_contractor_refunds(AuthContext.from_request(request))
        return Response(RefundRequestSerializer(refund_requests, many=True).data)


# =============================================================================
# Admin Endpoints
# =============================================================================


class AdminRefundRequestListView(APIView):
    """
    List refund requests for review.

    GET /api/v1/admin/refund-requests/?status=pending&contractor_id=7
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        operation_id="admin_list_refund_requests",
        summary="List refund requests",
        parameters=[
            OpenApiParameter(
                name="status",
                type=str,
                description="pending, approved, denied, more_info_requested, or all",
            ),
            OpenApiParameter(name="contractor_id", type=int),
            OpenApiParameter(name="date_from", type=OpenApiTypes.DATETIME),
            OpenApiParameter(name="date_to", type=OpenApiTypes.DATETIME),
        ],
        responses={200: AdminRefundRequestSerializer(many=True)},
        tags=["Refunds - Admin"],
    )
    def get(self, request):
        query = RefundRequestListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        refund_requests = RefundService.list_refund_requests(
            AuthContext.from_request(request),
            **query.validated_data,
        )
        return Response(AdminRefundRequestSerializer(refund_requests, many=True).data)


class AdminRefundRequestDetailView(APIView):
    """
    Refund request with contractor, lead, and history context.

    GET /api/v1/admin/refund-requests/{id}/
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        operation_id="admin_get_refund_request",
        summary="Get refund request details",
        parameters=[REFUND_REQUEST_ID],
        responses={
            200: RefundRequestDetailSerializer,
            404: OpenApiResponse(description="Refund request not found"),
        },
        tags=["Refunds - Admin"],
    )
    def get(self, request, refund_request_id):
        details = RefundService.get_refund_request_with_details(
            AuthContext.from_request(request),
            refund_request_id,
        )
        return Response(RefundRequestDetailSerializer(details).data)


class AdminRefundApproveView(APIView):
    """
    Approve a refund request and refund the payment through Stripe.

    POST /api/v1/admin/refund-requests/{id}/approve/
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        operation_id="admin_approve_refund",
        summary="Approve refund",
        parameters=[REFUND_REQUEST_ID],
        request=ApproveRefundSerializer,
        responses={
            200: AdminRefundRequestSerializer,
            404: OpenApiResponse(description="Refund request not found"),
            409: OpenApiResponse(description="Request already reviewed"),
            502: OpenApiResponse(description="Stripe refund failed"),
        },
        tags=["Refunds - Admin"],
    )
    def post(self, request, refund_request_id):
        serializer = ApproveRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund_request = RefundService.approve_refund(
            AuthContext.from_request(request),
            refund_request_id,
            admin_notes=serializer.validated_data.get("admin_notes"),
        )
        return Response(AdminRefundRequestSerializer(refund_request).data)


class AdminRefundDenyView(APIView):
    """
    Deny a refund request.

    POST /api/v1/admin/refund-requests/{id}/deny/
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        operation_id="admin_deny_refund",
        summary="Deny refund",
        parameters=[REFUND_REQUEST_ID],
        request=DenyRefundSerializer,
        responses={
            200: AdminRefundRequestSerializer,
            400: OpenApiResponse(description="Reason is required"),
            404: OpenApiResponse(description="Refund request not found"),
            409: OpenApiResponse(description="Request already reviewed"),
        },
        tags=["Refunds - Admin"],
    )
    def post(self, request, refund_request_id):
        serializer = DenyRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund_request = RefundService.deny_refund(
            AuthContext.from_request(request),
            refund_request_id,
            reason=serializer.validated_data.get("reason"),
        )
        return Response(AdminRefundRequestSerializer(refund_request).data)


class AdminRefundRequestInfoView(APIView):
    """
    Ask the contractor for more information.

    POST /api/v1/admin/refund-requests/{id}/request-info/
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        operation_id="admin_request_refund_info",
        summary="Request more information",
        parameters=[REFUND_REQUEST_ID],
        request=RequestInfoSerializer,
        responses={
            200: AdminRefundRequestSerializer,
            400: OpenApiResponse(description="Question is required"),
            404: OpenApiResponse(description="Refund request not found"),
            409: OpenApiResponse(description="Request is not pending"),
        },
        tags=["Refunds - Admin"],
    )
    def post(self, request, refund_request_id):
        serializer = RequestInfoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund_request = RefundService.request_more_info(
            AuthContext.from_request(request),
            refund_request_id,
            question=serializer.validated_data.get("question"),
        )
        return Response(AdminRefundRequestSerializer(refund_request).data)
