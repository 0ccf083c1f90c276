"""
In-memory data store with thread-safe operations.

No business logic — only data access primitives. Status changes go through
compare_and_set_status, the single atomic check-then-write on a refund.
"""
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional
from app import config
from app.errors import StaleState, RefundNotFound, StoreUnavailable
from app.models.refund import RefundRecord, RefundStatus
from app.models.audit import AuditEntry
from app.models.credentials import TenantCredentials


class InMemoryStore:
    """Thread-safe in-memory store for refunds, audit entries, and tenant credentials."""

    def __init__(self, lock_timeout: Optional[float] = None):
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout if lock_timeout is not None else config.STORE_LOCK_TIMEOUT
        self._refunds: dict[str, RefundRecord] = {}
        # tenant_id -> list of refund_ids, in creation order
        self._refunds_by_tenant: dict[str, list[str]] = {}
        self._audit_log: list[AuditEntry] = []
        self._credentials: dict[str, TenantCredentials] = {}

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the store lock, or raise StoreUnavailable if it cannot be taken in time."""
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise StoreUnavailable(
                "Refund store did not respond in time",
                details={"lock_timeout": self._lock_timeout},
            )
        try:
            yield
        finally:
            self._lock.release()

    def reset(self) -> None:
        """Drop all state — intended for test isolation only."""
        with self._locked():
            self._refunds.clear()
            self._refunds_by_tenant.clear()
            self._audit_log.clear()
            self._credentials.clear()

    # ── Refunds ─────────────────────────────────────────────────────────────

    def get_refund(self, refund_id: str) -> Optional[RefundRecord]:
        with self._locked():
            return self._refunds.get(refund_id)

    def list_refunds(self, tenant_id: str) -> list[RefundRecord]:
        with self._locked():
            refund_ids = self._refunds_by_tenant.get(tenant_id, [])
            return [self._refunds[rid] for rid in refund_ids if rid in self._refunds]

    def insert_refund(self, refund: RefundRecord) -> None:
        with self._locked():
            if refund.refund_id in self._refunds:
                raise ValueError(f"Refund {refund.refund_id} already exists")
            self._refunds[refund.refund_id] = refund
            self._refunds_by_tenant.setdefault(refund.tenant_id, []).append(refund.refund_id)

    def compare_and_set_status(
        self,
        refund_id: str,
        expected: RefundStatus,
        new: RefundStatus,
        **changes: Any,
    ) -> RefundRecord:
        """
        Atomically move a refund from `expected` to `new`.

        Args:
            refund_id: The refund to update.
            expected: Status the caller last observed.
            new: Status to write.
            **changes: Additional fields to replace in the same write.

        Returns:
            The stored RefundRecord after the write.

        Raises:
            RefundNotFound: If no such refund exists.
            StaleState: If the current status is not `expected`. Nothing is written.
        """
        with self._locked():
            current = self._refunds.get(refund_id)
            if current is None:
                raise RefundNotFound(f"Refund {refund_id} not found")
            if current.status != expected:
                raise StaleState(
                    f"Refund {refund_id} is {current.status.value}, expected {expected.value}",
                    details={"current_status": current.status.value, "expected_status": expected.value},
                )
            updated = current.model_copy(update={**changes, "status": new})
            self._refunds[refund_id] = updated
            return updated

    # ── Audit ────────────────────────────────────────────────────────────────

    def append_audit(self, entry: AuditEntry) -> None:
        """Append-only audit log. No update or delete."""
        with self._locked():
            self._audit_log.append(entry)

    def get_audit_log(
        self,
        tenant_id: Optional[str] = None,
        refund_id: Optional[str] = None,
    ) -> list[AuditEntry]:
        with self._locked():
            entries = list(self._audit_log)

        if tenant_id:
            entries = [e for e in entries if e.tenant_id == tenant_id]
        if refund_id:
            entries = [e for e in entries if e.refund_id == refund_id]
        return entries

    # ── Credentials ──────────────────────────────────────────────────────────

    def get_credentials(self, tenant_id: str) -> Optional[TenantCredentials]:
        with self._locked():
            return self._credentials.get(tenant_id)

    def save_credentials(self, credentials: TenantCredentials) -> None:
        with self._locked():
            self._credentials[credentials.tenant_id] = credentials

    def delete_credentials(self, tenant_id: str) -> bool:
        """Remove a tenant's credentials. Returns whether anything was stored."""
        with self._locked():
            return self._credentials.pop(tenant_id, None) is not None


# Global singleton, populated by seed_data at startup
store = InMemoryStore()
