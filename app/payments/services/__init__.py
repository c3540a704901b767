"""
Payment services.

This module provides:
- RefundService: Refund request lifecycle (request, review, Stripe refund)
- RefundRequestStore: Persistence for refund requests
- AuditLogService: Append-only audit trail

Usage:
    from payments.services import RefundService

    RefundService.deny_refund(auth, refund_request_id, reason="Lead was valid")
"""

from payments.services.audit_service import AuditLogService
from payments.services.refund_service import (
    ContractorRefundStats,
    RefundRequestDetails,
    RefundService,
)
from payments.services.refund_store import RefundRequestFilters, RefundRequestStore

__all__ = [
    "AuditLogService",
    "ContractorRefundStats",
    "RefundRequestDetails",
    "RefundRequestFilters",
    "RefundRequestStore",
    "RefundService",
]
