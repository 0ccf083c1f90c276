"""
Business rule validation for the refund pipeline.

Validators never read or write the store — no side effects.
"""
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.engine.money import quantize_amount
from app.errors import ExtractionFailed, InvalidTransition
from app.models.refund import ExtractedFields, RefundStatus

MAX_REFUND_AMOUNT = Decimal("1000000.00")

# Statuses an operator may ask for. Execution states are reached only by dispatching.
OVERRIDE_TARGETS = frozenset({RefundStatus.APPROVED, RefundStatus.REJECTED_FRAUD})


def validate_extracted_fields(fields: ExtractedFields, default_currency: str) -> ExtractedFields:
    """
    Check that extraction produced the fields the pipeline needs.

    Args:
        fields: Raw extractor output.
        default_currency: Currency to assume when none was extracted.

    Returns:
        A normalized copy: trimmed order id, upper-case currency, amount
        rounded half-up to the currency's minor unit.

    Raises:
        ExtractionFailed: If order_id or amount is missing or unusable.
    """
    missing = []
    order_id = (fields.order_id or "").strip()
    if not order_id:
        missing.append("order_id")
    if fields.amount is None:
        missing.append("amount")
    if missing:
        raise ExtractionFailed(
            "Could not extract refund details from request",
            details={"missing_fields": missing},
        )

    currency = (fields.currency or default_currency).strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        currency = default_currency
    amount = _validate_amount(fields.amount, currency)

    return fields.model_copy(update={"order_id": order_id, "amount": amount, "currency": currency})


def _validate_amount(amount: Decimal, currency: str) -> Decimal:
    """Round to the currency's minor unit; what is left must be a positive, bounded amount."""
    try:
        rounded = quantize_amount(amount, currency) if amount.is_finite() else None
    except (AttributeError, InvalidOperation):
        rounded = None
    if rounded is None or rounded <= Decimal("0") or rounded > MAX_REFUND_AMOUNT:
        raise ExtractionFailed(
            f"Extracted refund amount {amount} is not a valid refund amount",
            details={"amount": str(amount)},
        )
    return rounded


def validate_override_target(status: RefundStatus, refund_id: Optional[str] = None) -> None:
    """Rule: operators may only approve or reject; execution states come from the dispatcher."""
    if status not in OVERRIDE_TARGETS:
        raise InvalidTransition(
            f"Override to {status.value} is not allowed",
            details={
                "refund_id": refund_id,
                "requested_status": status.value,
                "allowed": sorted(s.value for s in OVERRIDE_TARGETS),
            },
        )
