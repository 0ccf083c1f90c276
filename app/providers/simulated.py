"""Offline backend used in MOCK_MODE. Always succeeds."""
import logging
import uuid
from decimal import Decimal

from app.models.credentials import TenantCredentials
from app.models.refund import Platform
from app.providers.base import BackendResult, PaymentBackend, format_amount

logger = logging.getLogger(__name__)


class SimulatedBackend(PaymentBackend):
    def __init__(self, platform: Platform, **kwargs):
        super().__init__(**kwargs)
        self.platform = platform

    def refund(self, credentials: TenantCredentials, reference: str, amount: Decimal, currency: str) -> BackendResult:
        provider_reference = f"mock_refund_{uuid.uuid4().hex[:9]}"
        logger.info(
            "[mock %s] refunding %s %s against %s",
            self.platform.value, format_amount(amount, currency), currency, reference,
        )
        return BackendResult(
            success=True,
            provider_reference=provider_reference,
            raw={"id": provider_reference, "mock": True},
        )
