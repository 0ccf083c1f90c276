"""Credential endpoints — PUT, GET and DELETE /api/v1/credentials"""
from fastapi import APIRouter, Depends, Request
from app.models.credentials import CredentialsUpdate
from app.routes._common import envelope
from app.security.auth import require_api_key, require_tenant
from app.services.refund_service import RefundPipeline, get_pipeline

router = APIRouter(prefix="/api/v1/credentials", tags=["credentials"], dependencies=[Depends(require_api_key)])


@router.put("")
async def update_credentials(
    body: CredentialsUpdate,
    request: Request,
    tenant_id: str = Depends(require_tenant),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """Store provider secrets for the tenant. The response only reports capabilities."""
    capabilities = pipeline.resolver.update(tenant_id, body)
    return envelope(capabilities.model_dump(), request)


@router.get("")
async def get_capabilities(
    request: Request,
    tenant_id: str = Depends(require_tenant),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """Report which payment providers the tenant can refund through. Secrets are never returned."""
    return envelope(pipeline.resolver.capabilities(tenant_id).model_dump(), request)


@router.delete("")
async def delete_credentials(
    request: Request,
    tenant_id: str = Depends(require_tenant),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """Revoke all of the tenant's provider secrets. Returns the now-empty capability set."""
    return envelope(pipeline.resolver.delete(tenant_id).model_dump(), request)
