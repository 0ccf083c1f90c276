from decimal import Decimal
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class RefundStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED_FRAUD = "rejected_fraud"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class Platform(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    SHOPIFY = "shopify"


class RefundOutcome(str, Enum):
    """What a pipeline run ended with, as reported to the caller."""

    PENDING_REVIEW = "pending_review"
    REJECTED_FRAUD = "rejected_fraud"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_PAYMENT_ROUTE = "no_payment_route"
    UPDATED = "updated"


class PaymentInfo(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    platform: Optional[str] = Field(None, min_length=1, max_length=30)
    payment_intent_id: Optional[str] = Field(None, min_length=1, max_length=255)
    sale_id: Optional[str] = Field(None, min_length=1, max_length=255)


class SubmitRefundRequest(BaseModel):
    model_config = {"extra": "forbid"}

    message: str = Field(..., min_length=1, max_length=5000)
    payment_info: Optional[PaymentInfo] = None
    manual_override: bool = False


class OverrideRequest(BaseModel):
    model_config = {"extra": "forbid"}

    status: RefundStatus


class ExtractedFields(BaseModel):
    order_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    reason: Optional[str] = None


class RefundRecord(BaseModel):
    """Primary compliance record. Never deleted; replaced wholesale on each transition."""

    model_config = {"frozen": True}

    refund_id: str
    tenant_id: str
    order_id: str
    amount: Decimal
    currency: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    reason: Optional[str] = None
    fraud_score: float = Field(..., ge=0.0, le=1.0)
    status: RefundStatus
    manual_override: bool = False
    payment_info: Optional[PaymentInfo] = None
    platform: Optional[Platform] = None
    provider_reference: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    processed_at: Optional[datetime] = None


class SubmitRefundResult(BaseModel):
    refund_id: str
    status: RefundStatus
    fraud_score: float
    outcome: RefundOutcome
    platform: Optional[Platform] = None
    message: str


class OverrideResult(BaseModel):
    refund_id: str
    status: RefundStatus
    outcome: RefundOutcome
    message: str
