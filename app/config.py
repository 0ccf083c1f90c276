import json
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

# Required: fails fast if missing
API_KEY: str = os.environ["API_KEY"]

APP_ENV: str = os.getenv("APP_ENV", "development")
PORT: int = int(os.getenv("PORT", "8000"))
CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Decision thresholds (deployment-wide defaults, overridable per tenant)
AUTO_APPROVE_THRESHOLD: Decimal = Decimal(os.getenv("AUTO_APPROVE_THRESHOLD", "100"))
FRAUD_SCORE_THRESHOLD: float = float(os.getenv("FRAUD_SCORE_THRESHOLD", "0.7"))
TENANT_THRESHOLDS: str = os.getenv("TENANT_THRESHOLDS", "")

# Score substituted when the fraud scorer is unreachable or returns garbage
FRAUD_SCORE_DEFAULT: float = float(os.getenv("FRAUD_SCORE_DEFAULT", "0.3"))

EXTERNAL_CALL_TIMEOUT: float = float(os.getenv("EXTERNAL_CALL_TIMEOUT", "10"))
# Seconds to wait for the store before a request fails with 503
STORE_LOCK_TIMEOUT: float = float(os.getenv("STORE_LOCK_TIMEOUT", "5"))
MOCK_MODE: bool = os.getenv("MOCK_MODE", "false").lower() == "true"
DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")

AI_API_URL: str = os.getenv("AI_API_URL", "https://api.openai.com/v1")
AI_API_KEY: str = os.getenv("AI_API_KEY", "")
AI_MODEL: str = os.getenv("AI_MODEL", "gpt-4o-mini")

PAYPAL_MODE: str = os.getenv("PAYPAL_MODE", "sandbox")
SHOPIFY_API_VERSION: str = os.getenv("SHOPIFY_API_VERSION", "2023-10")


def is_production() -> bool:
    return APP_ENV == "production"


def demo_seed_enabled() -> bool:
    """Demo tenants carry fake secrets, so they are only loaded when nothing real is called."""
    return MOCK_MODE and not is_production()


def get_cors_origins() -> list[str]:
    if not CORS_ORIGINS:
        return []
    return [origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()]


def get_tenant_threshold_overrides() -> dict[str, dict]:
    """
    Parse TENANT_THRESHOLDS into {tenant_id: {"auto_approve_threshold": ..., "fraud_score_threshold": ...}}.

    Example:
        TENANT_THRESHOLDS='{"acme": {"auto_approve_threshold": "250"}}'
    """
    if not TENANT_THRESHOLDS:
        return {}
    try:
        parsed = json.loads(TENANT_THRESHOLDS)
    except json.JSONDecodeError as exc:
        raise ValueError(f"TENANT_THRESHOLDS is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("TENANT_THRESHOLDS must be a JSON object keyed by tenant id")
    return parsed
