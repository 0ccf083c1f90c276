"""
Refund decision engine.

Pure functions with no side effects or I/O. Rules are evaluated in order:

  1. manual_override            -> APPROVED (bypasses both thresholds)
  2. fraud_score >  fraud limit -> REJECTED_FRAUD (exclusive: equal does not reject)
  3. amount     <= auto limit   -> APPROVED (inclusive: equal auto-approves)
  4. otherwise                  -> PENDING_REVIEW
"""
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app import config
from app.models.refund import RefundStatus


class Decision(str, Enum):
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"
    REJECTED_FRAUD = "rejected_fraud"

    @property
    def status(self) -> RefundStatus:
        """Initial ledger status for a record created from this decision."""
        return RefundStatus(self.value)


class DecisionThresholds(BaseModel):
    model_config = {"frozen": True}

    auto_approve_threshold: Decimal = Field(Decimal("100"), ge=Decimal("0"))
    fraud_score_threshold: float = Field(0.7, ge=0.0, le=1.0)


def decide(
    amount: Decimal,
    fraud_score: float,
    auto_approve_threshold: Decimal,
    fraud_score_threshold: float,
    manual_override: bool = False,
) -> Decision:
    """
    Turn an extracted amount and fraud score into a decision.

    Args:
        amount: Refund amount in currency units.
        fraud_score: Risk estimate in [0.0, 1.0].
        auto_approve_threshold: Amount at or below which a refund skips review.
        fraud_score_threshold: Score strictly above which a refund is rejected.
        manual_override: Operator-forced approval.

    Returns:
        The Decision.

    Example:
        decide(Decimal("100"), 0.7, Decimal("100"), 0.7) -> APPROVED
    """
    if manual_override:
        return Decision.APPROVED
    if fraud_score > fraud_score_threshold:
        return Decision.REJECTED_FRAUD
    if amount <= auto_approve_threshold:
        return Decision.APPROVED
    return Decision.PENDING_REVIEW


class DecisionEngine:
    """Binds a DecisionThresholds value to decide()."""

    def __init__(self, thresholds: DecisionThresholds):
        self.thresholds = thresholds

    def decide(self, amount: Decimal, fraud_score: float, manual_override: bool = False) -> Decision:
        return decide(
            amount=amount,
            fraud_score=fraud_score,
            auto_approve_threshold=self.thresholds.auto_approve_threshold,
            fraud_score_threshold=self.thresholds.fraud_score_threshold,
            manual_override=manual_override,
        )


def default_thresholds() -> DecisionThresholds:
    return DecisionThresholds(
        auto_approve_threshold=config.AUTO_APPROVE_THRESHOLD,
        fraud_score_threshold=config.FRAUD_SCORE_THRESHOLD,
    )


def load_tenant_thresholds(
    base: Optional[DecisionThresholds] = None,
    overrides: Optional[dict[str, dict]] = None,
) -> dict[str, DecisionThresholds]:
    """
    Validate every per-tenant override against the deployment defaults.

    Raises:
        ValueError: If an override is not an object or a merged threshold is out of range.
    """
    base = base or default_thresholds()
    if overrides is None:
        overrides = config.get_tenant_threshold_overrides()
    resolved = {}
    for tenant_id, values in overrides.items():
        if not isinstance(values, dict):
            raise ValueError(f"Threshold overrides for tenant {tenant_id!r} must be a JSON object")
        resolved[tenant_id] = DecisionThresholds.model_validate({**base.model_dump(), **values})
    return resolved


# Resolved at import so a bad AUTO_APPROVE_THRESHOLD, FRAUD_SCORE_THRESHOLD or
# TENANT_THRESHOLDS stops the service at boot instead of failing each request.
DEFAULT_THRESHOLDS = default_thresholds()
TENANT_THRESHOLDS = load_tenant_thresholds(DEFAULT_THRESHOLDS)


def thresholds_for_tenant(
    tenant_id: str,
    base: Optional[DecisionThresholds] = None,
    overrides: Optional[dict[str, dict]] = None,
) -> DecisionThresholds:
    """Apply any per-tenant overrides on top of the deployment defaults."""
    if base is None and overrides is None:
        return TENANT_THRESHOLDS.get(tenant_id, DEFAULT_THRESHOLDS)
    base = base or DEFAULT_THRESHOLDS
    return load_tenant_thresholds(base, overrides).get(tenant_id, base)
