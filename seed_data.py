"""
Seed data for the refund automation service.

Creates demo tenants, one per provider setup, so the API can be exercised in
MOCK_MODE without configuring real credentials.
Run via: python seed_data.py (standalone) or imported by app startup.
"""
from pydantic import SecretStr

from app.models.credentials import TenantCredentials
from app.repository.store import InMemoryStore, store as default_store


def load_seed_data(store: InMemoryStore = default_store) -> None:
    """Populate the store with demo tenant credentials."""
    for credentials in _build_tenants():
        store.save_credentials(credentials)


def _build_tenants() -> list[TenantCredentials]:
    return [
        # Stripe only: refunds need a payment_intent_id
        TenantCredentials(
            tenant_id="demo-stripe",
            stripe_secret_key=SecretStr("sk_test_demo"),
        ),
        # PayPal only: refunds need a sale_id
        TenantCredentials(
            tenant_id="demo-paypal",
            paypal_client_id=SecretStr("demo-client-id"),
            paypal_client_secret=SecretStr("demo-client-secret"),
        ),
        # Shopify only: every approved refund routes to the order
        TenantCredentials(
            tenant_id="demo-shopify",
            shopify_access_token=SecretStr("shpat_demo"),
            shopify_shop_name="demo-store",
        ),
        # Everything, plus Slack alerts
        TenantCredentials(
            tenant_id="demo-all",
            stripe_secret_key=SecretStr("sk_test_demo"),
            paypal_client_id=SecretStr("demo-client-id"),
            paypal_client_secret=SecretStr("demo-client-secret"),
            shopify_access_token=SecretStr("shpat_demo"),
            shopify_shop_name="demo-store",
            slack_webhook_url=SecretStr("https://hooks.slack.com/services/demo"),
        ),
        # No providers: approved refunds end as no_payment_route
        TenantCredentials(tenant_id="demo-none"),
    ]


if __name__ == "__main__":
    load_seed_data()
    for tenant in _build_tenants():
        caps = default_store.get_credentials(tenant.tenant_id).capabilities()
        print(f"  {tenant.tenant_id}: {caps.model_dump()}")
