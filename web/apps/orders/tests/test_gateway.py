import logging

import pytest
from django.core.cache import cache
from gateway import middleware
from gateway.authentication import AuthUser
from gateway.logging_filters import RequestIdFilter
from rest_framework.throttling import ScopedRateThrottle


@pytest.mark.django_db
def test_request_id_is_echoed_or_generated(client, auth_headers):
    r = client.get("/api/orders/", HTTP_X_REQUEST_ID="rid-123", **auth_headers())
    assert r.headers["X-Request-ID"] == "rid-123"

    r = client.get("/api/orders/", **auth_headers())
    assert len(r.headers["X-Request-ID"]) == 36


def test_oversized_api_body_is_rejected(client, monkeypatch):
    monkeypatch.setattr(middleware, "MAX_API_BYTES", 16)
    r = client.post("/api/orders/", data={"notes": "x" * 64}, content_type="application/json")
    assert r.status_code == 413
    assert r.json() == {"detail": "PAYLOAD_TOO_LARGE"}


def test_log_records_carry_request_context():
    token = middleware.REQUEST_ID_CTX.set("rid-9")
    try:
        record = logging.LogRecord("orders", logging.INFO, __file__, 1, "order created", None, None)
        assert RequestIdFilter().filter(record)
    finally:
        middleware.REQUEST_ID_CTX.reset(token)
    assert record.request_id == "rid-9"
    assert record.user_id == "-"


def test_auth_user_primary_key_is_user_id():
    assert AuthUser("user-7").pk == "user-7"


@pytest.mark.django_db
def test_throttle_counts_requests_per_user(client, auth_headers, monkeypatch):
    cache.clear()
    monkeypatch.setattr(ScopedRateThrottle, "THROTTLE_RATES", {"orders_list": "2/min"})

    codes = [client.get("/api/orders/", **auth_headers()).status_code for _ in range(3)]

    assert codes == [200, 200, 429]
    assert client.get("/api/orders/", **auth_headers("user-2")).status_code == 200
    cache.clear()
