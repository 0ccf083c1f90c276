import time
import json
import logging
from datetime import datetime, timezone
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("access")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured JSON access log line per request. Never logs the API key value."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.monotonic()

        has_api_key = "X-API-Key" in request.headers
        auth_outcome = "present" if has_api_key else "missing"

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000)
        if response.status_code == 401:
            auth_outcome = "failed"
        elif has_api_key and response.status_code < 400:
            auth_outcome = "ok"

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
            "tenant_id": request.headers.get("X-Tenant-ID"),
            "operator_id": request.headers.get("X-Operator-ID"),
            "method": request.method,
            "path": str(request.url.path),
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "auth": auth_outcome,
        }
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, json.dumps(log_entry))

        return response
