from .refund import (
    RefundStatus,
    Platform,
    RefundOutcome,
    PaymentInfo,
    SubmitRefundRequest,
    OverrideRequest,
    ExtractedFields,
    RefundRecord,
    SubmitRefundResult,
    OverrideResult,
)
from .audit import AuditAction, AuditEntry, SYSTEM_ACTOR
from .credentials import Capabilities, TenantCredentials, CredentialsUpdate

__all__ = [
    "RefundStatus", "Platform", "RefundOutcome", "PaymentInfo",
    "SubmitRefundRequest", "OverrideRequest", "ExtractedFields",
    "RefundRecord", "SubmitRefundResult", "OverrideResult",
    "AuditAction", "AuditEntry", "SYSTEM_ACTOR",
    "Capabilities", "TenantCredentials", "CredentialsUpdate",
]
