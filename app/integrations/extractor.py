"""
Extractors — turn a free-text customer message into ExtractedFields.

Both implementations raise ExtractionFailed when they cannot produce a
result; required-field checks live in the validators.
"""
import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol

from app.errors import ExtractionFailed
from app.integrations.chat import ChatCompletionError, ChatCompletionsClient
from app.models.refund import ExtractedFields

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    def extract(self, message: str) -> ExtractedFields: ...


_ORDER_RE = re.compile(
    r"\border\s*(?:#|no\.?|number|id)?\s*[:#]?\s*([A-Za-z][A-Za-z0-9_-]*\d[A-Za-z0-9_-]*|\d[A-Za-z0-9_-]*)",
    re.IGNORECASE,
)
_HASH_ID_RE = re.compile(r"#([A-Za-z0-9_-]*\d[A-Za-z0-9_-]*)")
_SYMBOL_AMOUNT_RE = re.compile(r"([$€£])\s?(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)")
_CODE_AMOUNT_RE = re.compile(r"(\d+(?:\.\d{1,2})?)\s?(USD|EUR|GBP|CAD|AUD|dollars?)\b", re.IGNORECASE)
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_NAME_RE = re.compile(r"(?:my name is|this is|regards,?|thanks,?|from)\s+([A-Z][a-z]+(?: [A-Z][a-z]+)?)")
_REASON_RE = re.compile(r"\b(?:because|since)\s+(.+?)(?:[.!?]|$)", re.IGNORECASE)

_SYMBOL_CURRENCIES = {"$": "USD", "€": "EUR", "£": "GBP"}


class RuleBasedExtractor:
    """Deterministic regex extractor used in MOCK_MODE and tests."""

    def extract(self, message: str) -> ExtractedFields:
        order_match = _ORDER_RE.search(message) or _HASH_ID_RE.search(message)
        amount, currency = self._amount(message)
        email_match = _EMAIL_RE.search(message)
        name_match = _NAME_RE.search(message)
        reason_match = _REASON_RE.search(message)

        return ExtractedFields(
            order_id=order_match.group(1) if order_match else None,
            amount=amount,
            currency=currency,
            customer_name=name_match.group(1) if name_match else None,
            customer_email=email_match.group(0) if email_match else None,
            reason=reason_match.group(1).strip() if reason_match else message.strip()[:200],
        )

    @staticmethod
    def _amount(message: str) -> tuple[Optional[Decimal], Optional[str]]:
        match = _SYMBOL_AMOUNT_RE.search(message)
        if match:
            return Decimal(match.group(2).replace(",", "")), _SYMBOL_CURRENCIES[match.group(1)]
        match = _CODE_AMOUNT_RE.search(message)
        if match:
            code = match.group(2).upper()
            return Decimal(match.group(1)), "USD" if code.startswith("DOLLAR") else code
        return None, None


_EXTRACTION_SYSTEM_PROMPT = (
    "You are a refund processing assistant. Extract structured data from customer "
    "messages and return only valid JSON."
)

_EXTRACTION_PROMPT = """Extract refund information from this customer message. Return ONLY a JSON object with these exact fields:
{{
  "order_id": "extracted order ID or null",
  "refund_amount": number or null,
  "currency": "ISO 4217 code or null",
  "customer_name": "extracted name or null",
  "customer_email": "extracted email or null",
  "reason": "brief reason for refund"
}}

Customer message: {message}"""


class ChatCompletionsExtractor:
    """Extractor backed by an OpenAI-compatible chat model."""

    def __init__(self, client: Optional[ChatCompletionsClient] = None):
        self.client = client or ChatCompletionsClient()

    def extract(self, message: str) -> ExtractedFields:
        try:
            content = self.client.complete(_EXTRACTION_SYSTEM_PROMPT, _EXTRACTION_PROMPT.format(message=message))
        except ChatCompletionError as exc:
            logger.error("extraction call failed: %s", exc)
            raise ExtractionFailed(
                "Extraction service unavailable",
                code="EXTRACTION_UNAVAILABLE",
                http_status=503,
            ) from exc

        try:
            data = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as exc:
            logger.warning("extraction returned non-JSON output: %.200s", content)
            raise ExtractionFailed("Could not extract refund details from request") from exc
        if not isinstance(data, dict):
            raise ExtractionFailed("Could not extract refund details from request")

        return ExtractedFields(
            order_id=_as_text(data.get("order_id")),
            amount=_as_decimal(data.get("refund_amount", data.get("amount"))),
            currency=_as_text(data.get("currency")),
            customer_name=_as_text(data.get("customer_name")),
            customer_email=_as_text(data.get("customer_email")),
            reason=_as_text(data.get("reason")),
        )


def _strip_code_fence(content: str) -> str:
    if content.startswith("```"):
        content = content.strip("`")
        if content.lower().startswith("json"):
            content = content[4:]
    return content.strip()


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    return text


def _as_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).replace("$", "").replace(",", "").strip())
    except InvalidOperation:
        return None
