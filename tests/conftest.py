"""Shared fixtures for all test modules."""
import os
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("API_KEY", "TEST-KEY-2026")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("MOCK_MODE", "true")

from app.main import app
from app.repository.store import store
from app.services import refund_service
from seed_data import load_seed_data
from helpers import PipelineHarness, save_credentials


@pytest.fixture(autouse=True)
def reset_store():
    """Reset the in-memory store and pipeline before each test to ensure isolation."""
    store.reset()
    load_seed_data()
    refund_service._pipeline = None
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def auth_headers():
    return {"X-API-Key": "TEST-KEY-2026", "X-Tenant-ID": "demo-all", "X-Operator-ID": "op1"}


@pytest.fixture
def harness():
    """Pipeline wired to fakes; tenant-a has Stripe, PayPal and Shopify configured."""
    h = PipelineHarness()
    save_credentials(h.store, stripe=True, paypal=True, shopify=True)
    return h
