from datetime import datetime, timezone
from fastapi import HTTPException, Request
from app.errors import RefundServiceError


def envelope(data, request: Request) -> dict:
    return {
        "data": data,
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    }


def to_http_error(exc: RefundServiceError) -> HTTPException:
    return HTTPException(
        status_code=exc.http_status,
        detail={"error": {"code": exc.code, "message": exc.message, "details": exc.details}},
    )
