"""API tests for checkout: ``POST /api/orders/``."""

import re

import pytest
from apps.orders.models import OrderModel

CREATE_URL = "/api/orders/"


def _post(client, payload, headers):
    return client.post(CREATE_URL, data=payload, content_type="application/json", **headers)


@pytest.mark.django_db
def test_create_order_decrements_stock_and_returns_pending_order(client, auth_headers, make_product, order_payload):
    wallet = make_product(stock_count=5)

    r = _post(client, order_payload((wallet, 2)), auth_headers())

    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Order created successfully"
    order = body["order"]
    assert order["userId"] == "user-1"
    assert order["status"] == "pending"
    assert order["paymentStatus"] == "pending"
    assert order["total"] == 19.99
    assert re.fullmatch(r"\d{8}-\d{6}-\d{4}", order["orderNumber"])
    assert order["items"][0]["productId"] == str(wallet.pk)
    assert order["items"][0]["quantity"] == 2

    wallet.refresh_from_db()
    assert wallet.stock_count == 3
    assert wallet.in_stock is True


@pytest.mark.django_db
def test_create_order_requires_token(client, order_payload):
    r = client.post(CREATE_URL, data=order_payload(("p-1", 1)), content_type="application/json")
    assert r.status_code == 401
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_create_order_rejects_bad_token(client, order_payload):
    r = _post(client, order_payload(("p-1", 1)), {"HTTP_AUTHORIZATION": "Bearer not-a-jwt"})
    assert r.status_code == 401


@pytest.mark.django_db
def test_empty_items_is_rejected(client, auth_headers, order_payload):
    r = _post(client, order_payload(), auth_headers())
    assert r.status_code == 400
    assert r.json() == {"detail": "EMPTY_ORDER", "error": "Order must contain at least one item"}
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_missing_items_key_is_rejected_as_empty(client, auth_headers, order_payload):
    payload = order_payload()
    del payload["items"]
    r = _post(client, payload, auth_headers())
    assert r.status_code == 400
    assert r.json()["detail"] == "EMPTY_ORDER"


@pytest.mark.django_db
def test_insufficient_stock_names_the_item_and_changes_nothing(client, auth_headers, make_product, order_payload):
    belt = make_product(name="Leather Belt", stock_count=2)

    r = _post(client, order_payload((belt, 3)), auth_headers())

    assert r.status_code == 400
    assert r.json() == {"detail": "INSUFFICIENT_STOCK", "error": "Insufficient stock for Leather Belt"}
    belt.refresh_from_db()
    assert belt.stock_count == 2
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_out_of_stock_product_is_rejected(client, auth_headers, make_product, order_payload):
    scarf = make_product(name="Silk Scarf", stock_count=0)
    r = _post(client, order_payload((scarf, 1)), auth_headers())
    assert r.status_code == 400
    assert r.json()["error"] == "Insufficient stock for Silk Scarf"


@pytest.mark.django_db
def test_last_unit_goes_to_first_checkout_only(client, auth_headers, make_product, order_payload):
    watch = make_product(name="Pocket Watch", stock_count=1)

    first = _post(client, order_payload((watch, 1)), auth_headers("user-1"))
    second = _post(client, order_payload((watch, 1)), auth_headers("user-2"))

    assert first.status_code == 201
    assert second.status_code == 400
    assert second.json()["error"] == "Insufficient stock for Pocket Watch"
    watch.refresh_from_db()
    assert watch.stock_count == 0
    assert watch.in_stock is False


@pytest.mark.django_db
def test_failed_checkout_rolls_back_earlier_items(client, auth_headers, make_product, order_payload):
    wallet = make_product(name="Leather Wallet", stock_count=5)
    belt = make_product(name="Leather Belt", stock_count=1)

    r = _post(client, order_payload((wallet, 2), (belt, 3)), auth_headers())

    assert r.status_code == 400
    wallet.refresh_from_db()
    assert wallet.stock_count == 5


@pytest.mark.django_db
def test_best_effort_checkout_keeps_earlier_decrements(client, settings, auth_headers, make_product, order_payload):
    settings.ORDERS_ATOMIC_CHECKOUT = False
    wallet = make_product(name="Leather Wallet", stock_count=5)
    belt = make_product(name="Leather Belt", stock_count=1)

    r = _post(client, order_payload((wallet, 2), (belt, 3)), auth_headers())

    assert r.status_code == 400
    wallet.refresh_from_db()
    belt.refresh_from_db()
    assert wallet.stock_count == 3
    assert belt.stock_count == 1
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_unknown_product_is_skipped_by_default(client, auth_headers, order_payload):
    r = _post(client, order_payload(("discontinued-sku", 1)), auth_headers())
    assert r.status_code == 201
    assert r.json()["order"]["items"][0]["productId"] == "discontinued-sku"


@pytest.mark.django_db
def test_unknown_product_rejected_when_not_tolerated(client, settings, auth_headers, order_payload):
    settings.ORDERS_ALLOW_UNKNOWN_PRODUCTS = False
    r = _post(client, order_payload(("discontinued-sku", 1)), auth_headers())
    assert r.status_code == 400
    assert r.json()["detail"] == "PRODUCT_NOT_FOUND"
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_product_matched_by_external_id(client, auth_headers, make_product, order_payload):
    cap = make_product(name="Wool Cap", stock_count=4, external_id="legacy-42")
    r = _post(client, order_payload(("legacy-42", 1)), auth_headers())
    assert r.status_code == 201
    cap.refresh_from_db()
    assert cap.stock_count == 3


@pytest.mark.django_db
def test_payload_validation_error_lists_fields(client, auth_headers, order_payload):
    payload = order_payload(("p-1", 1))
    del payload["shippingAddress"]
    payload["items"][0]["quantity"] = 0

    r = _post(client, payload, auth_headers())

    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "VALIDATION_ERROR"
    assert "shippingAddress" in body["fields"]
    assert "items.0.quantity" in body["fields"]


@pytest.mark.django_db
def test_legacy_street_is_stored_as_address1(client, auth_headers, order_payload):
    payload = order_payload(("p-1", 1))
    shipping = dict(payload["shippingAddress"])
    shipping["street"] = shipping.pop("address1")
    payload["shippingAddress"] = shipping

    r = _post(client, payload, auth_headers())

    assert r.status_code == 201
    stored = OrderModel.objects.get().shipping_address
    assert stored["address1"] == "12 Analytical Way"
    assert "street" not in stored


@pytest.mark.django_db
def test_legacy_street_mirror_when_enabled(client, settings, auth_headers, order_payload):
    settings.ORDERS_LEGACY_STREET_FIELD = True
    r = _post(client, order_payload(("p-1", 1)), auth_headers())
    assert r.status_code == 201
    stored = OrderModel.objects.get().billing_address
    assert stored["street"] == stored["address1"] == "12 Analytical Way"


@pytest.mark.django_db
def test_country_defaults_to_united_states(client, auth_headers, order_payload):
    payload = order_payload(("p-1", 1))
    del payload["shippingAddress"]["country"]
    r = _post(client, payload, auth_headers())
    assert r.status_code == 201
    assert r.json()["order"]["shippingAddress"]["country"] == "United States"


@pytest.mark.django_db
def test_stored_items_remember_which_stock_was_taken(client, auth_headers, make_product, order_payload):
    wallet = make_product(stock_count=5)

    r = _post(client, order_payload((wallet, 1), ("discontinued-sku", 1)), auth_headers())

    assert r.status_code == 201
    stored = OrderModel.objects.get().items
    assert stored[0]["reserved"] is True
    assert "reserved" not in stored[1]
    assert all("reserved" not in i for i in r.json()["order"]["items"])
