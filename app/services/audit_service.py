"""
Audit service — append-only audit trail.

Every refund transition is recorded here, keyed to the refund id.
Entries are never modified or deleted.

A failed write is logged and counted but never raised: the refund record is
the system of record and a lost audit entry must not roll back or abort the
transition that produced it.
"""
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from app.models.audit import AuditAction, AuditEntry, SYSTEM_ACTOR
from app.repository.store import InMemoryStore, store as default_store

logger = logging.getLogger(__name__)


class AuditTrail:
    def __init__(self, store: InMemoryStore = default_store):
        self._store = store
        self._dropped_lock = threading.Lock()
        self.dropped_entries = 0

    def append(
        self,
        refund_id: str,
        tenant_id: str,
        action: AuditAction,
        actor: str = SYSTEM_ACTOR,
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[AuditEntry]:
        """
        Record one transition.

        Args:
            refund_id: The refund the transition applies to.
            tenant_id: Owner of the refund.
            action: Entry from the fixed audit vocabulary.
            actor: "system" or the operator identity.
            details: JSON-serializable context (amounts, provider errors, ...).

        Returns:
            The stored AuditEntry, or None if the write failed.
        """
        entry = AuditEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            refund_id=refund_id,
            tenant_id=tenant_id,
            action=action,
            actor=actor,
            details=details or {},
        )
        try:
            self._store.append_audit(entry)
        except Exception:
            with self._dropped_lock:
                self.dropped_entries += 1
            logger.exception(
                "audit write failed refund_id=%s tenant_id=%s action=%s",
                refund_id, tenant_id, action.value,
            )
            return None
        logger.info("audit refund_id=%s action=%s actor=%s", refund_id, action.value, actor)
        return entry

    def entries(self, tenant_id: str, refund_id: Optional[str] = None) -> list[AuditEntry]:
        """Retrieve a tenant's audit entries in chronological order, optionally for one refund."""
        return self._store.get_audit_log(tenant_id=tenant_id, refund_id=refund_id)
