"""
Refund ledger — creates refund records and moves them between statuses.

Records always start in a decision status (pending_review, approved,
rejected_fraud). Every later change must appear in the transition table and
is written with a compare-and-swap on the current status, which is what stops
a refund from being executed twice.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from app.engine.decision import Decision
from app.errors import InvalidTransition, RefundNotFound
from app.models.refund import ExtractedFields, PaymentInfo, RefundRecord, RefundStatus
from app.repository.store import InMemoryStore, store as default_store

logger = logging.getLogger(__name__)

S = RefundStatus

# Transitions the pipeline may make on its own.
SYSTEM_TRANSITIONS: dict[RefundStatus, frozenset[RefundStatus]] = {
    S.APPROVED: frozenset({S.EXECUTING}),
    S.EXECUTING: frozenset({S.COMPLETED, S.FAILED}),
}

# Transitions that additionally require an operator override.
OVERRIDE_TRANSITIONS: dict[RefundStatus, frozenset[RefundStatus]] = {
    S.PENDING_REVIEW: frozenset({S.APPROVED, S.REJECTED_FRAUD}),
    S.FAILED: frozenset({S.EXECUTING}),
}


def is_legal_transition(current: RefundStatus, new: RefundStatus, override: bool = False) -> bool:
    if new in SYSTEM_TRANSITIONS.get(current, frozenset()):
        return True
    return override and new in OVERRIDE_TRANSITIONS.get(current, frozenset())


class RefundLedger:
    def __init__(self, store: InMemoryStore = default_store):
        self._store = store

    def create(
        self,
        tenant_id: str,
        decision: Decision,
        fields: ExtractedFields,
        fraud_score: float,
        currency: str,
        manual_override: bool = False,
        payment_info: Optional[PaymentInfo] = None,
    ) -> RefundRecord:
        """Persist a new refund in the status the decision maps to."""
        if not isinstance(decision, Decision):
            raise TypeError("RefundLedger.create requires a Decision")
        now = datetime.now(timezone.utc)
        record = RefundRecord(
            refund_id=f"RF-{str(uuid.uuid4())[:8].upper()}",
            tenant_id=tenant_id,
            order_id=fields.order_id,
            amount=fields.amount,
            currency=currency,
            customer_name=fields.customer_name,
            customer_email=fields.customer_email,
            reason=fields.reason,
            fraud_score=fraud_score,
            status=decision.status,
            manual_override=manual_override,
            payment_info=payment_info,
            created_at=now,
            updated_at=now,
        )
        self._store.insert_refund(record)
        logger.info("refund created refund_id=%s tenant_id=%s status=%s", record.refund_id, tenant_id, record.status.value)
        return record

    def get(self, tenant_id: str, refund_id: str) -> RefundRecord:
        """Fetch a refund owned by tenant_id. Other tenants' refunds are reported as not found."""
        record = self._store.get_refund(refund_id)
        if record is None or record.tenant_id != tenant_id:
            raise RefundNotFound(f"Refund {refund_id} not found")
        return record

    def list_for_tenant(self, tenant_id: str, status: Optional[RefundStatus] = None) -> list[RefundRecord]:
        records = self._store.list_refunds(tenant_id)
        if status is not None:
            records = [r for r in records if r.status == status]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def advance(
        self,
        refund_id: str,
        expected: RefundStatus,
        new: RefundStatus,
        override: bool = False,
        **changes: Any,
    ) -> RefundRecord:
        """
        Move a refund from `expected` to `new`.

        Raises:
            InvalidTransition: The pair is not in the transition table. Nothing is written.
            StaleState: The stored status is no longer `expected`. Nothing is written.
        """
        if not is_legal_transition(expected, new, override=override):
            raise InvalidTransition(
                f"Cannot move refund {refund_id} from {expected.value} to {new.value}",
                details={"from": expected.value, "to": new.value, "override": override},
            )
        now = datetime.now(timezone.utc)
        changes["updated_at"] = now
        if new in (S.COMPLETED, S.FAILED):
            changes["processed_at"] = now
        elif new == S.EXECUTING:
            changes["processed_at"] = None
        record = self._store.compare_and_set_status(refund_id, expected, new, **changes)
        logger.info("refund advanced refund_id=%s %s -> %s", refund_id, expected.value, new.value)
        return record

