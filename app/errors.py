"""
Error taxonomy for the refund pipeline.

Every error carries a machine-readable code, a client-safe message, optional
details, and the HTTP status the route layer should answer with.
"""
from __future__ import annotations


class RefundServiceError(Exception):
    """Base class for all recoverable refund pipeline errors."""

    code = "REFUND_ERROR"
    http_status = 422

    def __init__(self, message: str, details: dict | None = None, code: str | None = None, http_status: int | None = None):
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        super().__init__(message)


class ExtractionFailed(RefundServiceError):
    """Extractor could not determine order_id and amount."""

    code = "EXTRACTION_FAILED"
    http_status = 422


class ScoringUnavailable(RefundServiceError):
    """FraudScorer failed, timed out, or returned malformed output."""

    code = "SCORING_UNAVAILABLE"
    http_status = 503


class UnsupportedPlatform(RefundServiceError):
    """The hinted platform is unknown or the tenant has no credentials for it."""

    code = "UNSUPPORTED_PLATFORM"
    http_status = 422


class ProviderError(RefundServiceError):
    """A payment backend rejected the refund or could not be reached."""

    code = "PROVIDER_ERROR"
    http_status = 502


class RefundNotFound(RefundServiceError):
    code = "REFUND_NOT_FOUND"
    http_status = 404


class InvalidTransition(RefundServiceError):
    """Requested status change is not in the ledger's transition table."""

    code = "INVALID_TRANSITION"
    http_status = 409


class StaleState(RefundServiceError):
    """Compare-and-swap lost: the record is no longer in the expected status."""

    code = "STALE_STATE"
    http_status = 409


class StoreUnavailable(RefundServiceError):
    """The store could not be reached in time. Aborts the pipeline run."""

    code = "STORE_UNAVAILABLE"
    http_status = 503


class CredentialsMissing(RefundServiceError):
    """No configured provider matches the refund's payment info."""

    code = "NO_PAYMENT_ROUTE"
    http_status = 422


class OperatorRequired(RefundServiceError):
    """A manual override was requested without an operator identity."""

    code = "OPERATOR_REQUIRED"
    http_status = 401
