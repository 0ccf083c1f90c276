from datetime import datetime
from enum import Enum
from typing import Any
from pydantic import BaseModel


class AuditAction(str, Enum):
    CREATED = "created"
    FRAUD_SCORE_DEFAULTED = "fraud_score_defaulted"
    FRAUD_REJECTED = "fraud_rejected"
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"
    EXECUTION_STARTED = "execution_started"
    EXECUTION_SUCCEEDED = "execution_succeeded"
    EXECUTION_FAILED = "execution_failed"
    NO_PAYMENT_ROUTE = "no_payment_route"
    MANUAL_OVERRIDE = "manual_override"


SYSTEM_ACTOR = "system"


class AuditEntry(BaseModel):
    model_config = {"frozen": True}

    id: str
    timestamp: datetime
    refund_id: str
    tenant_id: str
    action: AuditAction
    actor: str
    details: dict[str, Any]
