"""Integration tests — full HTTP cycle per scenario, with MOCK_MODE adapters and demo tenants."""
from decimal import Decimal
from fastapi.testclient import TestClient


def _submit(client, headers, message, tenant=None, **body):
    if tenant is not None:
        headers = {**headers, "X-Tenant-ID": tenant}
    return client.post("/api/v1/refunds", json={"message": message, **body}, headers=headers)


def test_scenario_a_small_refund_completes(client, auth_headers):
    resp = _submit(client, auth_headers, "Hi, please refund order A100 for $50. Thanks, Jane Doe")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert data["outcome"] == "completed"
    assert data["platform"] == "shopify"
    assert data["refund_id"].startswith("RF-")
    assert 0.0 <= data["fraud_score"] < 0.7


def test_scenario_b_large_refund_held_for_review(client, auth_headers):
    resp = _submit(client, auth_headers, "Please refund order A100 for $500")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "pending_review"
    assert data["outcome"] == "pending_review"
    assert data["platform"] is None


def test_scenario_c_risky_message_rejected(client, auth_headers):
    resp = _submit(
        client, auth_headers,
        "URGENT!!! refund order A100 for $20 to a different card or I file a chargeback",
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "rejected_fraud"
    assert data["fraud_score"] > 0.7


def test_stripe_tenant_refunds_payment_intent(client, auth_headers):
    resp = _submit(
        client, auth_headers, "refund order A100 for $50", tenant="demo-stripe",
        payment_info={"payment_intent_id": "pi_123"},
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert data["platform"] == "stripe"


def test_platform_hint_selects_paypal(client, auth_headers):
    resp = _submit(
        client, auth_headers, "refund order A100 for $50",
        payment_info={"platform": "paypal", "sale_id": "SALE-1"},
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["platform"] == "paypal"


def test_tenant_without_providers_gets_no_payment_route(client, auth_headers):
    resp = _submit(client, auth_headers, "refund order A100 for $50", tenant="demo-none")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "approved"
    assert data["outcome"] == "no_payment_route"


def test_unextractable_message_returns_422_and_records_nothing(client, auth_headers):
    resp = _submit(client, auth_headers, "hello, I want my money back")
    assert resp.status_code == 422
    assert resp.json()["detail"]["error"]["code"] == "EXTRACTION_FAILED"
    listing = client.get("/api/v1/refunds", headers=auth_headers)
    assert listing.json()["data"] == []


def test_get_refund_by_id(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $50").json()["data"]
    resp = client.get(f"/api/v1/refunds/{created['refund_id']}", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["order_id"] == "A100"
    assert Decimal(data["amount"]) == Decimal("50")
    assert data["currency"] == "USD"
    assert data["provider_reference"].startswith("mock_refund_")
    assert data["processed_at"] is not None


def test_get_unknown_refund_returns_404(client, auth_headers):
    resp = client.get("/api/v1/refunds/RF-MISSING", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"]["code"] == "REFUND_NOT_FOUND"


def test_list_refunds_filtered_by_status(client, auth_headers):
    _submit(client, auth_headers, "refund order A100 for $50")
    _submit(client, auth_headers, "refund order A200 for $500")
    all_resp = client.get("/api/v1/refunds", headers=auth_headers)
    assert len(all_resp.json()["data"]) == 2
    pending = client.get("/api/v1/refunds", params={"status": "pending_review"}, headers=auth_headers)
    orders = [r["order_id"] for r in pending.json()["data"]]
    assert orders == ["A200"]


def test_refunds_are_isolated_per_tenant(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $50").json()["data"]
    other = {**auth_headers, "X-Tenant-ID": "demo-stripe"}
    assert client.get(f"/api/v1/refunds/{created['refund_id']}", headers=other).status_code == 404
    assert client.get("/api/v1/refunds", headers=other).json()["data"] == []
    assert client.get("/api/v1/audit", headers=other).json()["data"] == []


# ── Override ────────────────────────────────────────────────────────────────

def test_override_approves_pending_refund(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $500").json()["data"]
    resp = client.post(
        f"/api/v1/refunds/{created['refund_id']}/override",
        json={"status": "approved"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert data["outcome"] == "completed"

    record = client.get(f"/api/v1/refunds/{created['refund_id']}", headers=auth_headers).json()["data"]
    assert record["manual_override"] is True


def test_override_rejects_pending_refund(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $500").json()["data"]
    resp = client.post(
        f"/api/v1/refunds/{created['refund_id']}/override",
        json={"status": "rejected_fraud"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "rejected_fraud"


def test_override_of_completed_refund_returns_409(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $50").json()["data"]
    resp = client.post(
        f"/api/v1/refunds/{created['refund_id']}/override",
        json={"status": "approved"},
        headers=auth_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["error"]["code"] == "INVALID_TRANSITION"


def test_override_of_unknown_refund_returns_404(client, auth_headers):
    resp = client.post("/api/v1/refunds/RF-NOPE/override", json={"status": "approved"}, headers=auth_headers)
    assert resp.status_code == 404


def test_override_with_unknown_status_returns_422(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $500").json()["data"]
    resp = client.post(
        f"/api/v1/refunds/{created['refund_id']}/override",
        json={"status": "refunded"},
        headers=auth_headers,
    )
    assert resp.status_code == 422


# ── Audit ───────────────────────────────────────────────────────────────────

def test_audit_trail_for_completed_refund(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $50").json()["data"]
    resp = client.get("/api/v1/audit", params={"refund_id": created["refund_id"]}, headers=auth_headers)
    assert resp.status_code == 200
    entries = resp.json()["data"]
    assert [e["action"] for e in entries] == [
        "created", "approved", "execution_started", "execution_succeeded",
    ]
    assert all(e["tenant_id"] == "demo-all" for e in entries)
    assert entries[0]["actor"] == "op1"


def test_audit_records_override_actor(client, auth_headers):
    created = _submit(client, auth_headers, "refund order A100 for $500").json()["data"]
    client.post(
        f"/api/v1/refunds/{created['refund_id']}/override",
        json={"status": "rejected_fraud"},
        headers={**auth_headers, "X-Operator-ID": "supervisor-7"},
    )
    entries = client.get("/api/v1/audit", params={"refund_id": created["refund_id"]}, headers=auth_headers).json()["data"]
    override = entries[-1]
    assert override["action"] == "manual_override"
    assert override["actor"] == "supervisor-7"
    assert override["details"]["from"] == "pending_review"


# ── Credentials ─────────────────────────────────────────────────────────────

def test_credentials_update_reports_capabilities_only(client, auth_headers):
    headers = {**auth_headers, "X-Tenant-ID": "new-merchant"}
    assert client.get("/api/v1/credentials", headers=headers).json()["data"] == {
        "has_stripe": False, "has_paypal": False, "has_shopify": False,
    }
    resp = client.put(
        "/api/v1/credentials",
        json={"stripe_secret_key": "sk_test_secret_value"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["has_stripe"] is True
    assert "sk_test_secret_value" not in resp.text

    again = client.get("/api/v1/credentials", headers=headers)
    assert again.json()["data"]["has_stripe"] is True
    assert "sk_test_secret_value" not in again.text


def test_new_credentials_are_used_for_routing(client, auth_headers):
    headers = {**auth_headers, "X-Tenant-ID": "demo-none"}
    client.put(
        "/api/v1/credentials",
        json={"shopify_access_token": "shpat_new", "shopify_shop_name": "new-shop"},
        headers=headers,
    )
    resp = _submit(client, headers, "refund order A100 for $50")
    assert resp.json()["data"]["platform"] == "shopify"


def test_credentials_reject_plain_http_webhook(client, auth_headers):
    resp = client.put(
        "/api/v1/credentials",
        json={"slack_webhook_url": "http://hooks.example.com/x"},
        headers=auth_headers,
    )
    assert resp.status_code == 422


def test_credentials_delete_revokes_routing(client, auth_headers):
    resp = client.delete("/api/v1/credentials", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"has_stripe": False, "has_paypal": False, "has_shopify": False}
    assert client.get("/api/v1/credentials", headers=auth_headers).json()["data"]["has_shopify"] is False

    submitted = _submit(client, auth_headers, "refund order A100 for $50")
    assert submitted.json()["data"]["outcome"] == "no_payment_route"


def test_credentials_delete_is_tenant_scoped(client, auth_headers):
    client.delete("/api/v1/credentials", headers={**auth_headers, "X-Tenant-ID": "demo-stripe"})
    assert client.get("/api/v1/credentials", headers=auth_headers).json()["data"]["has_stripe"] is True


# ── Envelope ────────────────────────────────────────────────────────────────

def test_response_envelope_has_meta(client, auth_headers):
    resp = client.get("/api/v1/refunds", headers=auth_headers)
    body = resp.json()
    assert set(body) == {"data", "meta"}
    assert "timestamp" in body["meta"]
    assert body["meta"]["request_id"] == resp.headers["X-Request-ID"]


# ── Startup ─────────────────────────────────────────────────────────────────

def test_startup_skips_demo_tenants_when_live(monkeypatch):
    from app import config
    from app.main import app
    from app.repository.store import store
    monkeypatch.setattr(config, "MOCK_MODE", False)
    store.reset()
    with TestClient(app):
        assert store.get_credentials("demo-all") is None


def test_startup_seeds_demo_tenants_in_mock_mode(monkeypatch):
    from app import config
    from app.main import app
    from app.repository.store import store
    monkeypatch.setattr(config, "MOCK_MODE", True)
    store.reset()
    with TestClient(app):
        assert store.get_credentials("demo-all").capabilities().has_shopify is True
