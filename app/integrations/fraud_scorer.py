"""
Fraud scorers — rate a refund message's risk on [0.0, 1.0].

Implementations raise ScoringUnavailable on any failure (unreachable
provider, timeout, malformed or out-of-range output). What to do about it is
the pipeline's decision, not the scorer's.
"""
import logging
import re
from typing import Optional, Protocol

from app.errors import ScoringUnavailable
from app.integrations.chat import ChatCompletionError, ChatCompletionsClient

logger = logging.getLogger(__name__)


class FraudScorer(Protocol):
    def score(self, message: str) -> float: ...


# (pattern, weight) pairs; weights add up and are capped at 1.0
_RISK_SIGNALS: tuple[tuple[re.Pattern, float], ...] = (
    (re.compile(r"\b(urgent|immediately|asap|right now)\b", re.IGNORECASE), 0.2),
    (re.compile(r"\b(never (?:received|arrived)|didn'?t (?:receive|get))\b", re.IGNORECASE), 0.15),
    (re.compile(r"\b(chargeback|dispute|lawyer|my bank)\b", re.IGNORECASE), 0.25),
    (re.compile(r"\b(gift ?cards?|wire transfer|crypto|bitcoin)\b", re.IGNORECASE), 0.35),
    (re.compile(r"\b(different|another|new) (card|account)\b", re.IGNORECASE), 0.3),
)
_BASE_SCORE = 0.05


class KeywordFraudScorer:
    """Deterministic keyword-weighted scorer used in MOCK_MODE and tests."""

    def score(self, message: str) -> float:
        total = _BASE_SCORE
        for pattern, weight in _RISK_SIGNALS:
            if pattern.search(message):
                total += weight
        if message.count("!") >= 3:
            total += 0.1
        return round(min(total, 1.0), 2)


_SCORING_SYSTEM_PROMPT = (
    "You are a fraud detection expert. Analyze messages and return only a decimal "
    "number between 0.0 and 1.0 representing fraud risk."
)

_SCORING_PROMPT = """Analyze this refund request for fraud risk. Consider factors like:
- Urgency/pressure tactics
- Vague or inconsistent details
- Unusual language patterns
- Suspicious timing or amounts

Return ONLY a number between 0.0 (no risk) and 1.0 (high risk).

Message: {message}"""

# The whole reply must be one unsigned plain decimal; signs and exponents are rejected.
_SCORE_RE = re.compile(r"\s*(\d+(?:\.\d+)?|\.\d+)\s*")


class ChatCompletionsFraudScorer:
    """Fraud scorer backed by an OpenAI-compatible chat model."""

    def __init__(self, client: Optional[ChatCompletionsClient] = None):
        self.client = client or ChatCompletionsClient()

    def score(self, message: str) -> float:
        try:
            content = self.client.complete(
                _SCORING_SYSTEM_PROMPT, _SCORING_PROMPT.format(message=message), max_tokens=50,
            )
        except ChatCompletionError as exc:
            raise ScoringUnavailable(f"Fraud scoring failed: {exc}") from exc

        match = _SCORE_RE.fullmatch(content)
        if match is None:
            raise ScoringUnavailable("Fraud scorer did not return a plain score", details={"output": content[:200]})
        value = float(match.group(1))
        if not 0.0 <= value <= 1.0:
            raise ScoringUnavailable("Fraud score out of range", details={"output": content[:200]})
        return value
