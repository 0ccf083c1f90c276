from app import config
from app.models.refund import Platform
from .base import BackendResult, PaymentBackend
from .paypal import PayPalBackend
from .shopify import ShopifyBackend
from .simulated import SimulatedBackend
from .stripe import StripeBackend


def default_backends(mock_mode: bool = None) -> dict[Platform, PaymentBackend]:
    """One backend per platform; simulated ones when MOCK_MODE is on."""
    if mock_mode is None:
        mock_mode = config.MOCK_MODE
    if mock_mode:
        return {platform: SimulatedBackend(platform) for platform in Platform}
    return {
        Platform.STRIPE: StripeBackend(),
        Platform.PAYPAL: PayPalBackend(),
        Platform.SHOPIFY: ShopifyBackend(),
    }


__all__ = [
    "BackendResult",
    "PaymentBackend",
    "PayPalBackend",
    "ShopifyBackend",
    "SimulatedBackend",
    "StripeBackend",
    "default_backends",
]
