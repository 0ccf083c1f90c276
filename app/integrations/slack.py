"""
Slack notification sink.

Posts a short summary to the tenant's incoming webhook. Callers treat this
as purely observational: failures are raised as NotificationFailed and the
pipeline logs and drops them.
"""
import logging
from typing import Any, Optional

import httpx

from app import config
from app.services.credential_service import CredentialResolver

logger = logging.getLogger(__name__)


class NotificationFailed(Exception):
    pass


def format_summary(summary: dict[str, Any]) -> str:
    return "\n".join(
        [
            f"*Refund {summary.get('outcome', summary.get('status'))}*",
            f"• Refund ID: {summary.get('refund_id')}",
            f"• Order ID: {summary.get('order_id')}",
            f"• Amount: {summary.get('amount')} {summary.get('currency', '')}".rstrip(),
            f"• Customer: {summary.get('customer_name') or 'unknown'}",
            f"• Status: {summary.get('status')}",
            f"• Fraud Score: {summary.get('fraud_score')}",
        ]
    )


class SlackNotifier:
    def __init__(
        self,
        resolver: Optional[CredentialResolver] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.resolver = resolver or CredentialResolver()
        self.timeout = timeout if timeout is not None else config.EXTERNAL_CALL_TIMEOUT
        self._transport = transport

    def notify(self, tenant_id: str, refund_id: str, summary: dict[str, Any]) -> None:
        webhook = self.resolver.resolve(tenant_id).slack_webhook_url
        if webhook is None:
            logger.info("no slack webhook for tenant_id=%s; refund_id=%s not announced", tenant_id, refund_id)
            return
        if config.MOCK_MODE:
            logger.info("[mock slack] refund_id=%s %s", refund_id, summary.get("outcome"))
            return

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(webhook.get_secret_value(), json={"text": format_summary(summary)})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationFailed(f"Slack alert failed for {refund_id}: {exc}") from exc
