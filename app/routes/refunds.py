"""Refund endpoints — POST /api/v1/refunds, POST /api/v1/refunds/{id}/override, GET /api/v1/refunds[/{id}]"""
from typing import Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from app.errors import OperatorRequired, RefundServiceError
from app.models.audit import SYSTEM_ACTOR
from app.models.refund import OverrideRequest, RefundStatus, SubmitRefundRequest
from app.routes._common import envelope, to_http_error
from app.security.auth import optional_operator, require_api_key, require_operator, require_tenant
from app.services.refund_service import RefundPipeline, get_pipeline

router = APIRouter(prefix="/api/v1/refunds", tags=["refunds"], dependencies=[Depends(require_api_key)])


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_refund(
    body: SubmitRefundRequest,
    request: Request,
    tenant_id: str = Depends(require_tenant),
    operator_id: Optional[str] = Depends(optional_operator),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Turn a customer message into a refund decision and, if approved, execute it.

    Fraud rejections and review holds are business outcomes and return 201;
    the outcome field says which path the refund took. manual_override
    additionally requires X-Operator-ID, and that operator is the recorded actor.
    """
    if body.manual_override and not operator_id:
        raise to_http_error(OperatorRequired("Manual override requires the X-Operator-ID header"))
    try:
        result = pipeline.submit(
            tenant_id=tenant_id,
            message=body.message,
            payment_info=body.payment_info,
            manual_override=body.manual_override,
            actor=operator_id or SYSTEM_ACTOR,
        )
    except RefundServiceError as exc:
        raise to_http_error(exc)
    return JSONResponse(
        content=envelope(result.model_dump(mode="json"), request),
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/{refund_id}/override")
def override_refund(
    refund_id: str,
    body: OverrideRequest,
    request: Request,
    tenant_id: str = Depends(require_tenant),
    operator_id: str = Depends(require_operator),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """Approve or reject a refund held for review, or retry a failed one by approving it again."""
    try:
        result = pipeline.override(tenant_id, refund_id, body.status, actor=operator_id)
    except RefundServiceError as exc:
        raise to_http_error(exc)
    return envelope(result.model_dump(mode="json"), request)


@router.get("/{refund_id}")
async def get_refund_by_id(
    refund_id: str,
    request: Request,
    tenant_id: str = Depends(require_tenant),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """Retrieve a single refund by its ID."""
    try:
        record = pipeline.get_refund(tenant_id, refund_id)
    except RefundServiceError as exc:
        raise to_http_error(exc)
    return envelope(record.model_dump(mode="json"), request)


@router.get("")
async def list_refunds_endpoint(
    request: Request,
    status: Optional[RefundStatus] = None,
    tenant_id: str = Depends(require_tenant),
    pipeline: RefundPipeline = Depends(get_pipeline),
) -> dict:
    """List the tenant's refunds, newest first, optionally filtered by status."""
    records = pipeline.list_refunds(tenant_id, status=status)
    return envelope([r.model_dump(mode="json") for r in records], request)
