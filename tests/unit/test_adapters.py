"""Unit tests for app/integrations (extractors, fraud scorers, Slack)."""
import json
import httpx
import pytest
from decimal import Decimal
from pydantic import SecretStr
from app.errors import ExtractionFailed, ScoringUnavailable
from app.integrations.chat import ChatCompletionsClient
from app.integrations.extractor import ChatCompletionsExtractor, RuleBasedExtractor
from app.integrations.fraud_scorer import ChatCompletionsFraudScorer, KeywordFraudScorer
from app.integrations.slack import NotificationFailed, SlackNotifier, format_summary
from app.models.credentials import TenantCredentials
from app.repository.store import InMemoryStore
from app.services.credential_service import CredentialResolver


def _chat_client(handler) -> ChatCompletionsClient:
    return ChatCompletionsClient(
        base_url="https://ai.test/v1", api_key="k", model="m", timeout=1, transport=httpx.MockTransport(handler),
    )


def _completion(content: str):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})
    return handler


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


# ── Rule-based extractor ────────────────────────────────────────────────────

def test_rule_based_extracts_order_and_amount():
    fields = RuleBasedExtractor().extract("refund order A100 for $50")
    assert fields.order_id == "A100"
    assert fields.amount == Decimal("50")
    assert fields.currency == "USD"


def test_rule_based_extracts_customer_details():
    fields = RuleBasedExtractor().extract(
        "Hi, my name is Jane Doe (jane@example.com). Please refund order #55012 of €1,250.00 because it arrived broken."
    )
    assert fields.order_id == "55012"
    assert fields.amount == Decimal("1250.00")
    assert fields.currency == "EUR"
    assert fields.customer_name == "Jane Doe"
    assert fields.customer_email == "jane@example.com"
    assert fields.reason == "it arrived broken"


def test_rule_based_reads_currency_codes():
    fields = RuleBasedExtractor().extract("order number X-77 was 30.5 GBP")
    assert fields.order_id == "X-77"
    assert fields.amount == Decimal("30.5")
    assert fields.currency == "GBP"


def test_rule_based_leaves_missing_fields_empty():
    fields = RuleBasedExtractor().extract("I want my money back")
    assert fields.order_id is None
    assert fields.amount is None


# ── Chat extractor ──────────────────────────────────────────────────────────

def test_chat_extractor_parses_json():
    content = json.dumps({"order_id": "A100", "refund_amount": 50, "customer_name": None, "reason": "late"})
    fields = ChatCompletionsExtractor(_chat_client(_completion(content))).extract("...")
    assert fields.order_id == "A100"
    assert fields.amount == Decimal("50")
    assert fields.customer_name is None


def test_chat_extractor_accepts_code_fenced_json():
    content = '```json\n{"order_id": "B2", "refund_amount": "19.99"}\n```'
    fields = ChatCompletionsExtractor(_chat_client(_completion(content))).extract("...")
    assert fields.amount == Decimal("19.99")


def test_chat_extractor_rejects_non_json():
    with pytest.raises(ExtractionFailed) as exc_info:
        ChatCompletionsExtractor(_chat_client(_completion("sorry, no idea"))).extract("...")
    assert exc_info.value.code == "EXTRACTION_FAILED"


def test_chat_extractor_timeout_is_unavailable():
    with pytest.raises(ExtractionFailed) as exc_info:
        ChatCompletionsExtractor(_chat_client(_timeout)).extract("...")
    assert exc_info.value.code == "EXTRACTION_UNAVAILABLE"
    assert exc_info.value.http_status == 503


def test_chat_client_requires_api_key():
    client = ChatCompletionsClient(base_url="https://ai.test/v1", api_key="", timeout=1)
    with pytest.raises(ExtractionFailed):
        ChatCompletionsExtractor(client).extract("...")


# ── Fraud scorers ───────────────────────────────────────────────────────────

def test_keyword_scorer_low_risk_message():
    assert KeywordFraudScorer().score("refund order A100 for $50") == 0.05


def test_keyword_scorer_high_risk_message():
    score = KeywordFraudScorer().score(
        "URGENT!!! refund immediately to a different card or I file a chargeback, pay in gift cards"
    )
    assert score > 0.7
    assert score <= 1.0


def test_chat_scorer_parses_number():
    assert ChatCompletionsFraudScorer(_chat_client(_completion("0.42"))).score("...") == 0.42


@pytest.mark.parametrize("content", ["high risk", "7", "1.5", "-0.4", "1e-3", "0.2 or 0.9", "Risk: 0.4"])
def test_chat_scorer_rejects_malformed_output(content):
    with pytest.raises(ScoringUnavailable):
        ChatCompletionsFraudScorer(_chat_client(_completion(content))).score("...")


def test_chat_scorer_timeout_is_unavailable():
    with pytest.raises(ScoringUnavailable):
        ChatCompletionsFraudScorer(_chat_client(_timeout)).score("...")


def test_chat_scorer_http_error_is_unavailable():
    scorer = ChatCompletionsFraudScorer(_chat_client(lambda request: httpx.Response(500, text="oops")))
    with pytest.raises(ScoringUnavailable):
        scorer.score("...")


# ── Slack ───────────────────────────────────────────────────────────────────

def _resolver_with_webhook() -> CredentialResolver:
    store = InMemoryStore()
    store.save_credentials(TenantCredentials(
        tenant_id="tenant-a", slack_webhook_url=SecretStr("https://hooks.slack.test/T/B/X"),
    ))
    return CredentialResolver(store)


def test_slack_posts_summary(monkeypatch):
    monkeypatch.setattr("app.config.MOCK_MODE", False)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, text="ok")

    notifier = SlackNotifier(_resolver_with_webhook(), timeout=1, transport=httpx.MockTransport(handler))
    notifier.notify("tenant-a", "RF-1", {"refund_id": "RF-1", "order_id": "A100", "status": "completed", "outcome": "completed"})
    assert len(seen) == 1
    assert "RF-1" in seen[0]["text"]


def test_slack_failure_raises_notification_failed(monkeypatch):
    monkeypatch.setattr("app.config.MOCK_MODE", False)
    notifier = SlackNotifier(
        _resolver_with_webhook(), timeout=1, transport=httpx.MockTransport(lambda r: httpx.Response(404)),
    )
    with pytest.raises(NotificationFailed):
        notifier.notify("tenant-a", "RF-1", {"refund_id": "RF-1"})


def test_slack_without_webhook_is_a_no_op():
    def handler(request):
        raise AssertionError("no request expected")

    notifier = SlackNotifier(CredentialResolver(InMemoryStore()), transport=httpx.MockTransport(handler))
    notifier.notify("tenant-a", "RF-1", {"refund_id": "RF-1"})


def test_format_summary_lists_key_fields():
    text = format_summary({"refund_id": "RF-1", "order_id": "A100", "amount": "50", "currency": "USD",
                           "status": "completed", "outcome": "completed", "fraud_score": 0.1})
    assert "A100" in text and "50 USD" in text and "0.1" in text


def test_chat_scorer_accepts_padded_score():
    assert ChatCompletionsFraudScorer(_chat_client(_completion(" 0.7\n"))).score("...") == 0.7
