"""Shopify order refunds via the Admin REST API."""
from decimal import Decimal
from typing import Optional

from app import config
from app.errors import ProviderError
from app.models.credentials import TenantCredentials
from app.models.refund import Platform
from app.providers.base import BackendResult, PaymentBackend, format_amount, require_secret


def shop_base_url(shop_name: str, api_version: str) -> str:
    host = shop_name if "." in shop_name else f"{shop_name}.myshopify.com"
    return f"https://{host}/admin/api/{api_version}"


class ShopifyBackend(PaymentBackend):
    platform = Platform.SHOPIFY

    def __init__(self, api_version: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_version = api_version or config.SHOPIFY_API_VERSION

    def refund(self, credentials: TenantCredentials, reference: str, amount: Decimal, currency: str) -> BackendResult:
        """
        Refund `amount` on order `reference`.

        The refund transaction is parented to the order's first successful
        sale or capture, which Shopify requires to route money back.
        """
        access_token = require_secret(credentials, "shopify_access_token", self.platform)
        if not credentials.shopify_shop_name:
            raise ProviderError("shopify shop name is not configured", details={"platform": "shopify"})

        headers = {"X-Shopify-Access-Token": access_token}
        with self._client(shop_base_url(credentials.shopify_shop_name, self.api_version), headers=headers) as client:
            transactions = self._send(client, "GET", f"/orders/{reference}/transactions.json").get("transactions", [])
            parent = next(
                (t for t in transactions if t.get("kind") in ("sale", "capture") and t.get("status") == "success"),
                None,
            )
            if parent is None:
                raise ProviderError(
                    f"order {reference} has no captured payment to refund",
                    details={"platform": "shopify", "order_id": reference},
                )

            body = self._send(
                client,
                "POST",
                f"/orders/{reference}/refunds.json",
                json={
                    "refund": {
                        "currency": currency.upper(),
                        "notify": True,
                        "note": "Customer refund request",
                        "transactions": [
                            {
                                "parent_id": parent["id"],
                                "amount": format_amount(amount, currency),
                                "kind": "refund",
                                "gateway": parent.get("gateway", "manual"),
                            }
                        ],
                    }
                },
            )
        refund = body.get("refund") or {}
        return BackendResult(
            success=bool(refund.get("id")),
            provider_reference=str(refund["id"]) if refund.get("id") else None,
            raw=body,
        )
