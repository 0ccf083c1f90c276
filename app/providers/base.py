"""
Payment backend contract.

Every provider implements refund(credentials, reference, amount, currency)
and either returns a BackendResult or raises ProviderError. Transport errors,
timeouts and non-2xx answers are all reported as ProviderError.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from app import config
from app.engine.money import ZERO_DECIMAL_CURRENCIES, quantize_amount
from app.errors import ProviderError
from app.models.credentials import TenantCredentials
from app.models.refund import Platform

logger = logging.getLogger(__name__)


class BackendResult(BaseModel):
    success: bool
    provider_reference: Optional[str] = None
    raw: dict[str, Any] = {}


class PaymentBackend(ABC):
    platform: Platform

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout if timeout is not None else config.EXTERNAL_CALL_TIMEOUT
        self._transport = transport

    @abstractmethod
    def refund(
        self,
        credentials: TenantCredentials,
        reference: str,
        amount: Decimal,
        currency: str,
    ) -> BackendResult:
        """Execute one refund attempt. Never retries."""

    def _client(self, base_url: str, **kwargs) -> httpx.Client:
        return httpx.Client(base_url=base_url, timeout=self.timeout, transport=self._transport, **kwargs)

    def _send(self, client: httpx.Client, method: str, url: str, **kwargs) -> dict[str, Any]:
        """Issue a request and return the decoded JSON body, mapping every failure to ProviderError."""
        try:
            response = client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"{self.platform.value} request timed out",
                details={"platform": self.platform.value, "error": "timeout", "url": url},
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"{self.platform.value} request failed",
                details={"platform": self.platform.value, "error": str(exc), "url": url},
            ) from exc

        if not response.is_success:
            logger.warning(
                "%s refund call failed status=%s body=%s",
                self.platform.value, response.status_code, response.text[:500],
            )
            raise ProviderError(
                f"{self.platform.value} returned HTTP {response.status_code}",
                details={
                    "platform": self.platform.value,
                    "status_code": response.status_code,
                    "body": response.text[:2000],
                },
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.platform.value} returned a non-JSON body",
                details={"platform": self.platform.value, "body": response.text[:2000]},
            ) from exc


def minor_units(amount: Decimal, currency: str) -> int:
    """Convert a currency amount to the integer unit Stripe expects."""
    rounded = quantize_amount(amount, currency)
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(rounded)
    return int(rounded * 100)


def format_amount(amount: Decimal, currency: str) -> str:
    """Format an amount as the decimal string PayPal and Shopify expect."""
    return str(quantize_amount(amount, currency))


def require_secret(credentials: TenantCredentials, field: str, platform: Platform) -> str:
    secret = getattr(credentials, field)
    if secret is None:
        raise ProviderError(
            f"{platform.value} credentials are not configured",
            details={"platform": platform.value, "missing": field},
        )
    return secret.get_secret_value()
