"""Test doubles for the pipeline's external collaborators."""
import threading
from decimal import Decimal
from typing import Any, Optional

from pydantic import SecretStr

from app.engine.decision import DecisionThresholds
from app.errors import ExtractionFailed, ProviderError
from app.models.credentials import TenantCredentials
from app.models.refund import ExtractedFields, Platform
from app.providers.base import BackendResult, PaymentBackend
from app.repository.store import InMemoryStore
from app.services.audit_service import AuditTrail
from app.services.credential_service import CredentialResolver
from app.services.dispatcher import ProviderDispatcher
from app.services.ledger import RefundLedger
from app.services.refund_service import RefundPipeline

TENANT = "tenant-a"


class StaticExtractor:
    def __init__(self, order_id: Optional[str] = "A100", amount: Optional[str] = "50", **extra):
        self.fields = ExtractedFields(
            order_id=order_id,
            amount=Decimal(amount) if amount is not None else None,
            **extra,
        )
        self.calls = 0

    def extract(self, message: str) -> ExtractedFields:
        self.calls += 1
        return self.fields


class UnavailableExtractor:
    def extract(self, message: str) -> ExtractedFields:
        raise ExtractionFailed("Extraction service unavailable", code="EXTRACTION_UNAVAILABLE", http_status=503)


class StaticScorer:
    def __init__(self, score: float = 0.1, error: Optional[Exception] = None):
        self.value = score
        self.error = error
        self.calls = 0

    def score(self, message: str) -> float:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


class RecordingBackend(PaymentBackend):
    """Backend that records calls and answers with a fixed result or error."""

    def __init__(
        self,
        platform: Platform,
        success: bool = True,
        error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None,
    ):
        super().__init__(timeout=1)
        self.platform = platform
        self.success = success
        self.error = error
        self.gate = gate
        self.calls: list[tuple[str, Decimal, str]] = []
        self._lock = threading.Lock()

    def refund(self, credentials, reference, amount, currency) -> BackendResult:
        with self._lock:
            self.calls.append((reference, amount, currency))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return BackendResult(
            success=self.success,
            provider_reference=f"{self.platform.value}_ref_{len(self.calls)}" if self.success else None,
            raw={"status": "ok" if self.success else "declined"},
        )


class RecordingNotifier:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.notifications: list[tuple[str, str, dict[str, Any]]] = []

    def notify(self, tenant_id: str, refund_id: str, summary: dict[str, Any]) -> None:
        self.notifications.append((tenant_id, refund_id, summary))
        if self.error is not None:
            raise self.error


class BrokenAuditStore(InMemoryStore):
    def append_audit(self, entry) -> None:
        raise RuntimeError("audit table unreachable")


def provider_error(message: str = "card_declined") -> ProviderError:
    return ProviderError(message, details={"platform": "stripe", "status_code": 402, "body": '{"error": "card_declined"}'})


def all_backends(**overrides: RecordingBackend) -> dict[Platform, RecordingBackend]:
    backends = {platform: RecordingBackend(platform) for platform in Platform}
    for name, backend in overrides.items():
        backends[Platform(name)] = backend
    return backends


def save_credentials(store: InMemoryStore, tenant_id: str = TENANT, stripe=False, paypal=False, shopify=False) -> None:
    store.save_credentials(TenantCredentials(
        tenant_id=tenant_id,
        stripe_secret_key=SecretStr("sk_test_x") if stripe else None,
        paypal_client_id=SecretStr("pp-id") if paypal else None,
        paypal_client_secret=SecretStr("pp-secret") if paypal else None,
        shopify_access_token=SecretStr("shpat_x") if shopify else None,
        shopify_shop_name="shop" if shopify else None,
    ))


class PipelineHarness:
    """A pipeline wired to fakes, with handles on every collaborator."""

    def __init__(
        self,
        store: Optional[InMemoryStore] = None,
        extractor=None,
        scorer=None,
        backends: Optional[dict] = None,
        notifier=None,
        thresholds: Optional[DecisionThresholds] = None,
    ):
        self.store = store if store is not None else InMemoryStore()
        self.extractor = extractor or StaticExtractor()
        self.scorer = scorer or StaticScorer()
        self.backends = backends if backends is not None else all_backends()
        self.notifier = notifier or RecordingNotifier()
        self.thresholds = thresholds or DecisionThresholds()
        self.ledger = RefundLedger(self.store)
        self.audit = AuditTrail(self.store)
        self.resolver = CredentialResolver(self.store)
        self.dispatcher = ProviderDispatcher(self.backends, self.ledger, self.audit, self.resolver)
        self.pipeline = RefundPipeline(
            extractor=self.extractor,
            scorer=self.scorer,
            resolver=self.resolver,
            dispatcher=self.dispatcher,
            ledger=self.ledger,
            audit=self.audit,
            notifier=self.notifier,
            thresholds_for=lambda tenant_id: self.thresholds,
            fraud_score_default=0.3,
            default_currency="USD",
        )

    def actions(self, refund_id: str) -> list[str]:
        return [e.action.value for e in self.store.get_audit_log(refund_id=refund_id)]

    def backend_calls(self) -> int:
        return sum(len(b.calls) for b in self.backends.values())
