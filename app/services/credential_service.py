"""
Credential resolver — per-tenant provider secrets.

The pipeline only ever sees the capability set; the secret bundle itself is
handed to the dispatcher's backends and nothing else.
"""
import logging

from pydantic import SecretStr

from app.models.credentials import Capabilities, CredentialsUpdate, TenantCredentials
from app.repository.store import InMemoryStore, store as default_store

logger = logging.getLogger(__name__)


class CredentialResolver:
    def __init__(self, store: InMemoryStore = default_store):
        self._store = store

    def resolve(self, tenant_id: str) -> TenantCredentials:
        """Return the tenant's credentials, or an empty bundle if none are configured."""
        credentials = self._store.get_credentials(tenant_id)
        if credentials is None:
            return TenantCredentials(tenant_id=tenant_id)
        return credentials

    def capabilities(self, tenant_id: str) -> Capabilities:
        return self.resolve(tenant_id).capabilities()

    def update(self, tenant_id: str, update: CredentialsUpdate) -> Capabilities:
        """Merge the supplied secrets into the stored bundle and return the new capability set."""
        current = self.resolve(tenant_id)
        changes = {}
        for field, value in update.model_dump(exclude_none=True).items():
            changes[field] = value if field == "shopify_shop_name" else SecretStr(value)
        updated = TenantCredentials.model_validate({**dict(current), **changes})
        self._store.save_credentials(updated)
        logger.info("credentials updated tenant_id=%s fields=%s", tenant_id, sorted(changes))
        return updated.capabilities()

    def delete(self, tenant_id: str) -> Capabilities:
        """Revoke every stored secret for the tenant. Later refunds end as no_payment_route."""
        removed = self._store.delete_credentials(tenant_id)
        logger.info("credentials deleted tenant_id=%s removed=%s", tenant_id, removed)
        return self.capabilities(tenant_id)
