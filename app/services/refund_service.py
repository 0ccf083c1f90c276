"""
Refund service — orchestrates extraction, scoring, decision, persistence,
execution, audit, and notification.

Submit flow: extract → score → decide → create record → audit
             → [approved] dispatch → notify
Override flow: load → check transition → [approved] dispatch → audit → notify

Notification always runs last and its failure never reaches the caller.
"""
import logging
from typing import Any, Callable, Optional, Protocol

from app import config
from app.engine.decision import Decision, DecisionEngine, DecisionThresholds, thresholds_for_tenant
from app.errors import OperatorRequired, RefundServiceError, ScoringUnavailable
from app.integrations.extractor import ChatCompletionsExtractor, Extractor, RuleBasedExtractor
from app.integrations.fraud_scorer import ChatCompletionsFraudScorer, FraudScorer, KeywordFraudScorer
from app.integrations.slack import SlackNotifier
from app.models.audit import AuditAction, AuditEntry, SYSTEM_ACTOR
from app.models.refund import (
    OverrideResult,
    PaymentInfo,
    RefundOutcome,
    RefundRecord,
    RefundStatus,
    SubmitRefundResult,
)
from app.providers import default_backends
from app.repository.store import InMemoryStore, store as default_store
from app.services.audit_service import AuditTrail
from app.services.credential_service import CredentialResolver
from app.services.dispatcher import DispatchResult, ProviderDispatcher
from app.services.ledger import RefundLedger
from app.validators.refund_validator import validate_extracted_fields, validate_override_target

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, tenant_id: str, refund_id: str, summary: dict[str, Any]) -> None: ...


_OUTCOME_MESSAGES = {
    RefundOutcome.PENDING_REVIEW: "Refund created for review",
    RefundOutcome.REJECTED_FRAUD: "Refund request flagged as potentially fraudulent",
    RefundOutcome.COMPLETED: "Refund approved and processed",
    RefundOutcome.FAILED: "Refund approved but the payment provider could not process it",
    RefundOutcome.NO_PAYMENT_ROUTE: "Refund approved but no payment provider is configured for it",
    RefundOutcome.UPDATED: "Refund status updated",
}


class RefundPipeline:
    def __init__(
        self,
        extractor: Extractor,
        scorer: FraudScorer,
        resolver: CredentialResolver,
        dispatcher: ProviderDispatcher,
        ledger: RefundLedger,
        audit: AuditTrail,
        notifier: NotificationSink,
        thresholds_for: Callable[[str], DecisionThresholds] = thresholds_for_tenant,
        fraud_score_default: Optional[float] = None,
        default_currency: Optional[str] = None,
    ):
        self.extractor = extractor
        self.scorer = scorer
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.audit = audit
        self.notifier = notifier
        self.thresholds_for = thresholds_for
        self.fraud_score_default = (
            fraud_score_default if fraud_score_default is not None else config.FRAUD_SCORE_DEFAULT
        )
        self.default_currency = default_currency or config.DEFAULT_CURRENCY

    # ── Submit ──────────────────────────────────────────────────────────────

    def submit(
        self,
        tenant_id: str,
        message: str,
        payment_info: Optional[PaymentInfo] = None,
        manual_override: bool = False,
        actor: str = SYSTEM_ACTOR,
    ) -> SubmitRefundResult:
        """
        Process a customer refund message end-to-end.

        Args:
            tenant_id: Merchant the refund belongs to.
            message: Raw customer message.
            payment_info: Optional platform hint and payment references.
            manual_override: Force approval regardless of thresholds.
            actor: Identity recorded on audit entries.

        Returns:
            SubmitRefundResult with the final status and outcome.

        Raises:
            OperatorRequired: manual_override was set without an operator actor. Nothing is recorded.
            ExtractionFailed: Order id or amount could not be determined. Nothing is recorded.
            StoreUnavailable: The store could not be reached.
        """
        if manual_override and actor == SYSTEM_ACTOR:
            raise OperatorRequired("Manual override requires an operator identity")
        fields = validate_extracted_fields(self.extractor.extract(message), self.default_currency)
        fraud_score, scoring_error = self._score(message)

        thresholds = self.thresholds_for(tenant_id)
        decision = DecisionEngine(thresholds).decide(fields.amount, fraud_score, manual_override)

        record = self.ledger.create(
            tenant_id=tenant_id,
            decision=decision,
            fields=fields,
            fraud_score=fraud_score,
            currency=fields.currency,
            manual_override=manual_override,
            payment_info=payment_info,
        )
        logger.info(
            "refund created refund_id=%s tenant_id=%s status=%s fraud_score=%.2f",
            record.refund_id, tenant_id, record.status.value, fraud_score,
        )
        self.audit.append(record.refund_id, tenant_id, AuditAction.CREATED, actor, {
            "status": record.status.value,
            "order_id": record.order_id,
            "amount": str(record.amount),
            "currency": record.currency,
            "fraud_score": fraud_score,
            "manual_override": manual_override,
            "auto_approve_threshold": str(thresholds.auto_approve_threshold),
            "fraud_score_threshold": thresholds.fraud_score_threshold,
        })
        if scoring_error is not None:
            self.audit.append(record.refund_id, tenant_id, AuditAction.FRAUD_SCORE_DEFAULTED, SYSTEM_ACTOR, {
                "default_score": self.fraud_score_default,
                "error_code": scoring_error.code,
                "message": scoring_error.message,
            })

        platform = None
        if decision == Decision.REJECTED_FRAUD:
            self.audit.append(record.refund_id, tenant_id, AuditAction.FRAUD_REJECTED, SYSTEM_ACTOR, {
                "fraud_score": fraud_score,
                "fraud_score_threshold": thresholds.fraud_score_threshold,
            })
            outcome = RefundOutcome.REJECTED_FRAUD
        elif decision == Decision.PENDING_REVIEW:
            self.audit.append(record.refund_id, tenant_id, AuditAction.PENDING_REVIEW, SYSTEM_ACTOR, {
                "amount": str(record.amount),
                "auto_approve_threshold": str(thresholds.auto_approve_threshold),
            })
            outcome = RefundOutcome.PENDING_REVIEW
        else:
            self.audit.append(record.refund_id, tenant_id, AuditAction.APPROVED, actor, {
                "manual_override": manual_override,
            })
            dispatched = self.dispatcher.execute(record, actor=actor)
            record, outcome, platform = dispatched.record, dispatched.outcome, dispatched.platform

        self._notify(record, outcome)
        return SubmitRefundResult(
            refund_id=record.refund_id,
            status=record.status,
            fraud_score=record.fraud_score,
            outcome=outcome,
            platform=platform,
            message=_OUTCOME_MESSAGES[outcome],
        )

    def _score(self, message: str) -> tuple[float, Optional[ScoringUnavailable]]:
        """Score a message, substituting the neutral default when the scorer is unavailable."""
        try:
            return self.scorer.score(message), None
        except ScoringUnavailable as exc:
            logger.warning("fraud scoring unavailable, using default %.2f: %s", self.fraud_score_default, exc.message)
            return self.fraud_score_default, exc

    # ── Override ────────────────────────────────────────────────────────────

    def override(self, tenant_id: str, refund_id: str, new_status: RefundStatus, actor: str) -> OverrideResult:
        """
        Apply an operator decision to an existing refund.

        Approving a pending_review or failed refund dispatches it exactly once
        with the stored order id and amount. Every attempt on an existing
        refund, successful or not, leaves a manual_override audit entry.

        Raises:
            RefundNotFound: No such refund for this tenant.
            InvalidTransition: The requested change is not allowed from the current status.
            StaleState: The refund changed while the override was being applied.
        """
        record = self.ledger.get(tenant_id, refund_id)
        prior = record.status
        dispatched: Optional[DispatchResult] = None
        try:
            validate_override_target(new_status, refund_id)
            if new_status == RefundStatus.APPROVED and prior == RefundStatus.PENDING_REVIEW:
                record = self.ledger.advance(
                    refund_id, prior, RefundStatus.APPROVED, override=True, manual_override=True,
                )
                dispatched = self.dispatcher.execute(record, actor=actor)
            elif new_status == RefundStatus.APPROVED and prior == RefundStatus.FAILED:
                dispatched = self.dispatcher.execute(
                    record, expected=RefundStatus.FAILED, override=True, actor=actor, manual_override=True,
                )
            else:
                record = self.ledger.advance(refund_id, prior, new_status, override=True, manual_override=True)
        except RefundServiceError as exc:
            logger.info("override rejected refund_id=%s tenant_id=%s actor=%s code=%s", refund_id, tenant_id, actor, exc.code)
            self.audit.append(refund_id, tenant_id, AuditAction.MANUAL_OVERRIDE, actor, {
                "from": prior.value,
                "requested": new_status.value,
                "result": exc.code,
                "message": exc.message,
            })
            raise

        if dispatched is not None:
            record, outcome = dispatched.record, dispatched.outcome
        elif record.status == RefundStatus.REJECTED_FRAUD:
            outcome = RefundOutcome.REJECTED_FRAUD
        else:
            outcome = RefundOutcome.UPDATED

        logger.info(
            "override applied refund_id=%s tenant_id=%s actor=%s %s->%s",
            refund_id, tenant_id, actor, prior.value, record.status.value,
        )
        self.audit.append(refund_id, tenant_id, AuditAction.MANUAL_OVERRIDE, actor, {
            "from": prior.value,
            "requested": new_status.value,
            "result": outcome.value,
            "status": record.status.value,
        })
        self._notify(record, outcome)
        return OverrideResult(
            refund_id=record.refund_id,
            status=record.status,
            outcome=outcome,
            message=_OUTCOME_MESSAGES[outcome],
        )

    # ── Reads ───────────────────────────────────────────────────────────────

    def get_refund(self, tenant_id: str, refund_id: str) -> RefundRecord:
        return self.ledger.get(tenant_id, refund_id)

    def list_refunds(self, tenant_id: str, status: Optional[RefundStatus] = None) -> list[RefundRecord]:
        return self.ledger.list_for_tenant(tenant_id, status=status)

    def audit_entries(self, tenant_id: str, refund_id: Optional[str] = None) -> list[AuditEntry]:
        return self.audit.entries(tenant_id, refund_id=refund_id)

    # ── Notification ────────────────────────────────────────────────────────

    def _notify(self, record: RefundRecord, outcome: RefundOutcome) -> None:
        summary = {
            "refund_id": record.refund_id,
            "order_id": record.order_id,
            "amount": str(record.amount),
            "currency": record.currency,
            "customer_name": record.customer_name,
            "status": record.status.value,
            "outcome": outcome.value,
            "fraud_score": record.fraud_score,
            "platform": record.platform.value if record.platform else None,
        }
        try:
            self.notifier.notify(record.tenant_id, record.refund_id, summary)
        except Exception:
            logger.warning("notification failed refund_id=%s", record.refund_id, exc_info=True)


def build_pipeline(store: InMemoryStore = default_store, mock_mode: Optional[bool] = None) -> RefundPipeline:
    """Wire a pipeline from configuration: offline adapters in MOCK_MODE, live ones otherwise."""
    if mock_mode is None:
        mock_mode = config.MOCK_MODE
    ledger = RefundLedger(store)
    audit = AuditTrail(store)
    resolver = CredentialResolver(store)
    if mock_mode:
        extractor, scorer = RuleBasedExtractor(), KeywordFraudScorer()
    else:
        extractor, scorer = ChatCompletionsExtractor(), ChatCompletionsFraudScorer()
    return RefundPipeline(
        extractor=extractor,
        scorer=scorer,
        resolver=resolver,
        dispatcher=ProviderDispatcher(default_backends(mock_mode), ledger, audit, resolver),
        ledger=ledger,
        audit=audit,
        notifier=SlackNotifier(resolver),
    )


_pipeline: Optional[RefundPipeline] = None


def get_pipeline() -> RefundPipeline:
    """FastAPI dependency returning the process-wide pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline
