import hmac
from typing import Optional
from fastapi import Header, HTTPException, status
from app.config import API_KEY

_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail={"error": {"code": "UNAUTHORIZED", "message": "Invalid or missing API key"}},
)

_IDENTIFIER_PATTERN = r"^[a-zA-Z0-9_.@-]{1,100}$"


async def require_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> str:
    """Verify API key using constant-time comparison to prevent timing attacks."""
    if not x_api_key:
        raise _UNAUTHORIZED
    if not hmac.compare_digest(x_api_key.encode(), API_KEY.encode()):
        raise _UNAUTHORIZED
    return x_api_key


async def require_tenant(
    x_tenant_id: str = Header(..., alias="X-Tenant-ID", pattern=_IDENTIFIER_PATTERN),
) -> str:
    """Tenant scope for every refund, audit and credential operation."""
    return x_tenant_id


async def require_operator(
    x_operator_id: str = Header(..., alias="X-Operator-ID", pattern=_IDENTIFIER_PATTERN),
) -> str:
    """Operator identity recorded on manual override audit entries."""
    return x_operator_id


async def optional_operator(
    x_operator_id: Optional[str] = Header(None, alias="X-Operator-ID", pattern=_IDENTIFIER_PATTERN),
) -> Optional[str]:
    return x_operator_id
