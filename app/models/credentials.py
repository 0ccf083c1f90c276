from typing import Optional
from pydantic import BaseModel, Field, SecretStr


class Capabilities(BaseModel):
    """Which payment providers a tenant can be refunded through."""

    model_config = {"frozen": True}

    has_stripe: bool = False
    has_paypal: bool = False
    has_shopify: bool = False


class TenantCredentials(BaseModel):
    """Per-tenant secret bundle. Secret values never leave the dispatcher."""

    model_config = {"frozen": True}

    tenant_id: str
    stripe_secret_key: Optional[SecretStr] = None
    paypal_client_id: Optional[SecretStr] = None
    paypal_client_secret: Optional[SecretStr] = None
    shopify_access_token: Optional[SecretStr] = None
    shopify_shop_name: Optional[str] = None
    slack_webhook_url: Optional[SecretStr] = None

    def capabilities(self) -> Capabilities:
        return Capabilities(
            has_stripe=self.stripe_secret_key is not None,
            has_paypal=self.paypal_client_id is not None and self.paypal_client_secret is not None,
            has_shopify=self.shopify_access_token is not None and bool(self.shopify_shop_name),
        )


class CredentialsUpdate(BaseModel):
    """Body of PUT /api/v1/credentials. Omitted fields keep their stored value."""

    model_config = {"extra": "forbid"}

    stripe_secret_key: Optional[str] = Field(None, min_length=1, max_length=255)
    paypal_client_id: Optional[str] = Field(None, min_length=1, max_length=255)
    paypal_client_secret: Optional[str] = Field(None, min_length=1, max_length=255)
    shopify_access_token: Optional[str] = Field(None, min_length=1, max_length=255)
    shopify_shop_name: Optional[str] = Field(None, min_length=1, max_length=255, pattern=r'^[a-zA-Z0-9.-]+$')
    slack_webhook_url: Optional[str] = Field(None, min_length=1, max_length=500, pattern=r'^https://')
