"""Audit endpoints — GET /api/v1/audit"""
from typing import Optional
from fastapi import APIRouter, Depends, Request
from app.routes._common import envelope
from app.security.auth import require_api_key, require_tenant
from app.services.refund_service import RefundPipeline, get_pipeline

router = APIRouter(prefix="/api/v1/audit", tags=["audit"], dependencies=[Depends(require_api_key)])


@router.get("")
async def get_audit(
    request: Request,
    refund_id: Optional[str] = None,
    tenant_id: str = Depends(require_tenant),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """Retrieve the tenant's audit trail, optionally for one refund."""
    entries = pipeline.audit_entries(tenant_id, refund_id=refund_id)
    return envelope([e.model_dump(mode="json") for e in entries], request)
