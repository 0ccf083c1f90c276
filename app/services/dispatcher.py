"""
Provider dispatcher — pick exactly one payment backend for an approved
refund, invoke it once, and record the outcome.

Selection is an ordered table of routes. An explicit platform hint wins if
the tenant can serve it; otherwise the first route whose capability is
present and whose payment reference is known is used:

  Stripe  (needs payment_intent_id)
  PayPal  (needs sale_id)
  Shopify (needs only credentials; refunds the order id)

No match leaves the refund approved and unexecuted (no_payment_route).
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from app.errors import CredentialsMissing, ProviderError, UnsupportedPlatform
from app.models.audit import AuditAction, SYSTEM_ACTOR
from app.models.credentials import Capabilities
from app.models.refund import Platform, RefundOutcome, RefundRecord, RefundStatus
from app.providers.base import PaymentBackend
from app.services.audit_service import AuditTrail
from app.services.credential_service import CredentialResolver
from app.services.ledger import RefundLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentRoute:
    platform: Platform
    available: Callable[[Capabilities], bool]
    reference: Callable[[RefundRecord], Optional[str]]


def _payment_field(name: str) -> Callable[[RefundRecord], Optional[str]]:
    def get(record: RefundRecord) -> Optional[str]:
        return getattr(record.payment_info, name) if record.payment_info else None
    return get


ROUTES: tuple[PaymentRoute, ...] = (
    PaymentRoute(Platform.STRIPE, lambda caps: caps.has_stripe, _payment_field("payment_intent_id")),
    PaymentRoute(Platform.PAYPAL, lambda caps: caps.has_paypal, _payment_field("sale_id")),
    PaymentRoute(Platform.SHOPIFY, lambda caps: caps.has_shopify, lambda record: record.order_id),
)


@dataclass(frozen=True)
class Selection:
    platform: Platform
    reference: str


@dataclass(frozen=True)
class DispatchResult:
    record: RefundRecord
    outcome: RefundOutcome
    platform: Optional[Platform] = None


def select_route(record: RefundRecord, capabilities: Capabilities) -> Selection:
    """
    Choose the backend for a refund.

    Raises:
        UnsupportedPlatform: The hinted platform is unknown, not configured, or lacks its reference.
        CredentialsMissing: No hint was given and no route matched.
    """
    hint = record.payment_info.platform if record.payment_info else None
    if hint:
        try:
            platform = Platform(hint.strip().lower())
        except ValueError:
            raise UnsupportedPlatform(f"Unsupported platform {hint!r}", details={"platform": hint, "reason": "unknown_platform"}) from None
        route = next(r for r in ROUTES if r.platform == platform)
        if not route.available(capabilities):
            raise UnsupportedPlatform(
                f"No {platform.value} credentials configured",
                details={"platform": platform.value, "reason": "credentials_missing"},
            )
        reference = route.reference(record)
        if not reference:
            raise UnsupportedPlatform(
                f"Payment info lacks the {platform.value} payment reference",
                details={"platform": platform.value, "reason": "missing_payment_reference"},
            )
        return Selection(platform, reference)

    for route in ROUTES:
        if not route.available(capabilities):
            continue
        reference = route.reference(record)
        if reference:
            return Selection(route.platform, reference)

    raise CredentialsMissing(
        "No configured payment provider matches this refund",
        details={"reason": "no_matching_route", "capabilities": capabilities.model_dump()},
    )


class ProviderDispatcher:
    def __init__(
        self,
        backends: dict[Platform, PaymentBackend],
        ledger: RefundLedger,
        audit: AuditTrail,
        resolver: CredentialResolver,
    ):
        self.backends = backends
        self.ledger = ledger
        self.audit = audit
        self.resolver = resolver

    def execute(
        self,
        record: RefundRecord,
        expected: RefundStatus = RefundStatus.APPROVED,
        override: bool = False,
        actor: str = SYSTEM_ACTOR,
        **changes: Any,
    ) -> DispatchResult:
        """
        Run one refund attempt.

        Args:
            record: The refund as last read by the caller.
            expected: Status the record must still be in (approved, or failed for an override retry).
            override: Whether the caller is an operator override.
            actor: Identity recorded on the audit entries.
            **changes: Extra fields written with the move to executing.

        Returns:
            DispatchResult with the final record and outcome.

        Raises:
            StaleState: Another run moved the record first. Nothing was executed.
            InvalidTransition: `expected` cannot move to executing.
        """
        credentials = self.resolver.resolve(record.tenant_id)
        try:
            selection = select_route(record, credentials.capabilities())
        except (UnsupportedPlatform, CredentialsMissing) as exc:
            logger.info("no payment route refund_id=%s: %s", record.refund_id, exc.message)
            self.audit.append(
                record.refund_id, record.tenant_id, AuditAction.NO_PAYMENT_ROUTE, actor,
                {"error_code": exc.code, "message": exc.message, **exc.details},
            )
            return DispatchResult(record=record, outcome=RefundOutcome.NO_PAYMENT_ROUTE)

        record = self.ledger.advance(
            record.refund_id, expected, RefundStatus.EXECUTING,
            override=override, platform=selection.platform, **changes,
        )
        self.audit.append(
            record.refund_id, record.tenant_id, AuditAction.EXECUTION_STARTED, actor,
            {"platform": selection.platform.value, "reference": selection.reference, "amount": str(record.amount)},
        )
        logger.info("dispatching refund_id=%s tenant_id=%s platform=%s", record.refund_id, record.tenant_id, selection.platform.value)

        backend = self.backends[selection.platform]
        error_details: dict[str, Any]
        try:
            result = backend.refund(credentials, selection.reference, record.amount, record.currency)
        except ProviderError as exc:
            error_details = {"error_code": exc.code, "message": exc.message, **exc.details}
        except Exception as exc:
            logger.exception("backend %s raised refund_id=%s", selection.platform.value, record.refund_id)
            error_details = {"error_code": "BACKEND_EXCEPTION", "message": str(exc), "exception": type(exc).__name__}
        else:
            if result.success:
                record = self.ledger.advance(
                    record.refund_id, RefundStatus.EXECUTING, RefundStatus.COMPLETED,
                    provider_reference=result.provider_reference,
                )
                self.audit.append(
                    record.refund_id, record.tenant_id, AuditAction.EXECUTION_SUCCEEDED, actor,
                    {"platform": selection.platform.value, "provider_reference": result.provider_reference},
                )
                return DispatchResult(record=record, outcome=RefundOutcome.COMPLETED, platform=selection.platform)
            error_details = {"error_code": "PROVIDER_DECLINED", "message": "provider reported an unsuccessful refund", "response": result.raw}

        logger.warning(
            "refund execution failed refund_id=%s platform=%s details=%s",
            record.refund_id, selection.platform.value, error_details,
        )
        record = self.ledger.advance(record.refund_id, RefundStatus.EXECUTING, RefundStatus.FAILED)
        self.audit.append(
            record.refund_id, record.tenant_id, AuditAction.EXECUTION_FAILED, actor,
            {"platform": selection.platform.value, **error_details},
        )
        return DispatchResult(record=record, outcome=RefundOutcome.FAILED, platform=selection.platform)
