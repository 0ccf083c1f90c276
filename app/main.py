"""
FastAPI application entry point.

Registers middleware (in order), routes, and exception handlers.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import LOG_LEVEL, demo_seed_enabled, is_production, get_cors_origins
from app.errors import StoreUnavailable
from app.middleware import RequestIDMiddleware, StructuredLoggingMiddleware
from app.routes.refunds import router as refunds_router
from app.routes.audit import router as audit_router
from app.routes.credentials import router as credentials_router
from seed_data import load_seed_data

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    docs_url = None if is_production() else "/docs"
    redoc_url = None if is_production() else "/redoc"

    application = FastAPI(
        title="Refund Automation Service",
        description="Turns customer refund messages into audited, fraud-screened refunds.",
        version="1.0.0",
        docs_url=docs_url,
        redoc_url=redoc_url,
    )

    # ── Middleware stack (order matters) ────────────────────────────────────
    application.add_middleware(StructuredLoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-API-Key", "X-Request-ID", "X-Tenant-ID", "X-Operator-ID"],
    )

    # ── Routes ──────────────────────────────────────────────────────────────
    application.include_router(refunds_router)
    application.include_router(audit_router)
    application.include_router(credentials_router)

    # ── Exception handlers ───────────────────────────────────────────────────
    @application.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error("store unavailable: %s", exc.message)
        return JSONResponse(
            status_code=503,
            content={"error": {"code": exc.code, "message": "Refund store is unavailable"}},
        )

    @application.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Never leak stack traces to clients."""
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
        )

    # ── Startup ──────────────────────────────────────────────────────────────
    @application.on_event("startup")
    async def on_startup():
        if demo_seed_enabled():
            load_seed_data()

    return application


app = create_app()
