"""PayPal sale refunds via the REST API."""
from decimal import Decimal
from typing import Optional

from app import config
from app.errors import ProviderError
from app.models.credentials import TenantCredentials
from app.models.refund import Platform
from app.providers.base import BackendResult, PaymentBackend, format_amount, require_secret

PAYPAL_API_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class PayPalBackend(PaymentBackend):
    platform = Platform.PAYPAL

    def __init__(self, mode: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.mode = mode or config.PAYPAL_MODE
        if self.mode not in PAYPAL_API_URLS:
            raise ValueError(f"Unknown PAYPAL_MODE {self.mode!r}")

    def refund(self, credentials: TenantCredentials, reference: str, amount: Decimal, currency: str) -> BackendResult:
        """Refund `amount` against the sale `reference`."""
        client_id = require_secret(credentials, "paypal_client_id", self.platform)
        client_secret = require_secret(credentials, "paypal_client_secret", self.platform)

        with self._client(PAYPAL_API_URLS[self.mode]) as client:
            token_body = self._send(
                client,
                "POST",
                "/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(client_id, client_secret),
            )
            access_token = token_body.get("access_token")
            if not access_token:
                raise ProviderError("paypal did not issue an access token", details={"platform": "paypal"})

            body = self._send(
                client,
                "POST",
                f"/v1/payments/sale/{reference}/refund",
                json={"amount": {"total": format_amount(amount, currency), "currency": currency.upper()}},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        success = body.get("state") in ("completed", "pending")
        return BackendResult(success=success, provider_reference=body.get("id"), raw=body)
