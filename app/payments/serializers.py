"""
DRF serializers for the refund API.

Input serializers accept the camelCase keys the web client sends
(reasonCategory, leadId, leadType, adminNotes) and expose snake_case
validated_data to the views. Blank/missing required text is left to the
service layer so the error codes stay consistent with non-HTTP callers.

Output serializers:
    RefundRequestSerializer: Refund request as seen by its contractor
    AdminRefundRequestSerializer: Adds reviewer and risk fields
    RefundRequestDetailSerializer: Admin review page with contractor stats
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment, RefundRequest


# =============================================================================
# Input Serializers
# =============================================================================


class RefundRequestCreateSerializer(serializers.Serializer):
    """
    Body of POST /refund-requests/.

    Example:
        {
            "leadId": "9b6c...",
            "leadType": "system_lead",
            "reason": "Homeowner never picked up",
            "reasonCategory": "no_response",
            "notes": "Called 5 times over 2 weeks"
        }
    """

    leadId = serializers.CharField(source="lead_id")
    leadType = serializers.CharField(source="lead_type")
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reasonCategory = serializers.CharField(
        source="reason_category", required=False, allow_blank=True, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ApproveRefundSerializer(serializers.Serializer):
    adminNotes = serializers.CharField(
        source="admin_notes", required=False, allow_blank=True, allow_null=True
    )


class DenyRefundSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RequestInfoSerializer(serializers.Serializer):
    question = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InfoResponseSerializer(serializers.Serializer):
    response = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RefundRequestListQuerySerializer(serializers.Serializer):
    """Query parameters for the admin refund list."""

    status = serializers.CharField(required=False)
    contractor_id = serializers.IntegerField(required=False)
    date_from = serializers.DateTimeField(required=False)
    date_to = serializers.DateTimeField(required=False)


# =============================================================================
# Output Serializers
# =============================================================================


class PaymentSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "amount",
            "currency",
            "status",
            "refund_status",
            "stripe_payment_intent_id",
            "created_at",
        ]
        read_only_fields = fields


class RefundRequestSerializer(serializers.ModelSerializer):
    """Refund request as shown to the contractor who filed it."""

    payment_id = serializers.UUIDField(read_only=True)
    amount = serializers.DecimalField(
        source="payment.amount", max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = RefundRequest
        fields = [
            "id",
            "payment_id",
            "lead_id",
            "lead_type",
            "amount",
            "reason",
            "reason_category",
            "notes",
            "status",
            "requested_date",
            "reviewed_date",
            "admin_notes",
            "refund_date",
            "info_requested",
            "info_requested_date",
            "info_response",
            "info_response_date",
        ]
        read_only_fields = fields


class AdminRefundRequestSerializer(RefundRequestSerializer):
    contractor_id = serializers.IntegerField(read_only=True)
    contractor_email = serializers.EmailField(source="contractor.email", read_only=True)
    reviewed_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta(RefundRequestSerializer.Meta):
        fields = RefundRequestSerializer.Meta.fields + [
            "contractor_id",
            "contractor_email",
            "reviewed_by_id",
            "risk_score",
        ]
        read_only_fields = fields


class ContractorRefundStatsSerializer(serializers.Serializer):
    total_purchased = serializers.IntegerField()
    total_closed = serializers.IntegerField()
    conversion_rate = serializers.IntegerField()
    previous_refund_requests = serializers.IntegerField()
    previous_refund_approvals = serializers.IntegerField()
    avg_lead_value = serializers.DecimalField(max_digits=10, decimal_places=2)


class RefundRequestDetailSerializer(serializers.Serializer):
    """
    Serializes a RefundRequestDetails record for the admin review page.

    The refund request fields are flattened into the top level alongside
    contractor and lead information.
    """

    contractor_name = serializers.CharField(allow_null=True)
    contractor_email = serializers.CharField(allow_null=True)
    contractor_company = serializers.CharField(allow_null=True)
    lead_address = serializers.CharField(allow_null=True)
    lead_system_type = serializers.CharField(allow_null=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    contractor_stats = ContractorRefundStatsSerializer()

    def to_representation(self, instance):
        data = AdminRefundRequestSerializer(instance.refund_request).data
        data.update(super().to_representation(instance))
        return data
