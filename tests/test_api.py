"""HTTP-level tests for the webhook app."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeStore, captured_notification, make_settings
from eventpay.common.config import get_settings
from eventpay.services.webhook.main import create_app, get_store
from eventpay.services.webhook.service import WebhookService


def _client(settings, store) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


@pytest.fixture
def client(settings, fake_store):
    return _client(settings, fake_store)


def test_post_captured_payment(client, fake_store):
    resp = client.post("/api/payment-webhook", json=captured_notification(amount=12345))

    assert resp.status_code == 200
    body = resp.json()
    assert body["amount_rupees"] == 123
    assert body["event_id"] == "event_a"
    assert len(fake_store.calls) == 1


def test_duplicate_post_is_ok(client):
    client.post("/api/payment-webhook", json=captured_notification())
    resp = client.post("/api/payment-webhook", json=captured_notification())

    assert resp.status_code == 200
    assert resp.json()["duplicate"] is True


def test_get_is_method_not_allowed(client, fake_store):
    resp = client.get("/api/payment-webhook")

    assert resp.status_code == 405
    assert resp.json()["allowed_methods"] == ["POST", "OPTIONS"]
    assert resp.headers["allow"] == "POST, OPTIONS"
    assert fake_store.calls == []


def test_options_is_empty_ok(client, fake_store):
    resp = client.options("/api/payment-webhook")

    assert resp.status_code == 200
    assert resp.content == b""
    assert fake_store.calls == []


def test_malformed_json_is_bad_request(client):
    resp = client.post(
        "/api/payment-webhook",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json()["received_data"]["parseable"] is False


def test_missing_credentials_return_configuration_error():
    store = FakeStore()
    client = _client(make_settings(store_service_key=None), store)

    resp = client.post("/api/payment-webhook", json=captured_notification())

    assert resp.status_code == 500
    assert resp.json()["error"] == "Server configuration error"
    assert store.calls == []


def test_unconfigured_store_dependency_is_none():
    assert get_store(make_settings(store_url=None)) is None


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_metrics_exposes_webhook_counters(client):
    client.post("/api/payment-webhook", json={"event": "payment.failed"})

    resp = client.get("/metrics")

    assert resp.status_code == 200
    assert "webhook_requests_total" in resp.text


def test_store_built_from_injected_settings():
    store = get_store(make_settings(store_pool_size=3))

    assert store is not None
    assert store.session_factory.kw["bind"].pool.size() == 3


def test_rest_endpoint_as_store_url_reports_database_url_required():
    settings = make_settings(store_url="https://abcd.supabase.co")
    store = get_store(settings)

    result = WebhookService(settings, store).handle("POST", captured_notification())

    assert store is None
    assert result.status_code == 500
    assert "SQLAlchemy database URL" in result.body["details"]


def test_unknown_paths_share_one_metrics_route_label(client):
    client.get("/does-not-exist-1")
    client.get("/does-not-exist-2")

    text = client.get("/metrics").text

    assert "does-not-exist" not in text
    assert 'route="<unmatched>"' in text
