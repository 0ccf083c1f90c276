"""Stripe refunds via the REST API (POST /v1/refunds)."""
from decimal import Decimal

from app.models.credentials import TenantCredentials
from app.models.refund import Platform
from app.providers.base import BackendResult, PaymentBackend, minor_units, require_secret

STRIPE_API_URL = "https://api.stripe.com"


class StripeBackend(PaymentBackend):
    platform = Platform.STRIPE

    def refund(self, credentials: TenantCredentials, reference: str, amount: Decimal, currency: str) -> BackendResult:
        """Refund `amount` against the payment intent `reference`."""
        secret_key = require_secret(credentials, "stripe_secret_key", self.platform)
        with self._client(STRIPE_API_URL) as client:
            body = self._send(
                client,
                "POST",
                "/v1/refunds",
                data={
                    "payment_intent": reference,
                    "amount": str(minor_units(amount, currency)),
                    "reason": "requested_by_customer",
                },
                headers={"Authorization": f"Bearer {secret_key}"},
            )
        # "pending" is accepted by Stripe and settles asynchronously
        success = body.get("status") in ("succeeded", "pending")
        return BackendResult(success=success, provider_reference=body.get("id"), raw=body)
