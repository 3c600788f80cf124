from decimal import Decimal
from uuid import uuid4

import pytest
from apps.orders.domain import PaymentProviderError, PaymentsUnavailable
from apps.orders.models import OrderModel
from apps.orders.providers import payments_stub
from apps.payments.services import amount_in_cents, shipping_details

INTENT_URL = "/api/payments/create-payment-intent/"


def _post(client, data, headers):
    return client.post(INTENT_URL, data=data, content_type="application/json", **headers)


@pytest.mark.parametrize(
    "total, cents",
    [("19.99", 1999), ("0.10", 10), ("100", 10000), ("0.005", 1)],
)
def test_amount_in_cents(total, cents):
    assert amount_in_cents(Decimal(total)) == cents


def test_shipping_details_maps_country_and_name():
    details = shipping_details({
        "firstName": "Ada",
        "lastName": "Lovelace",
        "address1": "12 Analytical Way",
        "city": "Austin",
        "state": "TX",
        "zipCode": "73301",
        "country": "United States",
        "phone": "+15125550100",
    })
    assert details == {
        "name": "Ada Lovelace",
        "phone": "+15125550100",
        "address": {
            "line1": "12 Analytical Way",
            "city": "Austin",
            "state": "TX",
            "postal_code": "73301",
            "country": "US",
        },
    }


def test_shipping_details_passes_other_countries_through():
    assert shipping_details({"country": "CA", "city": "Toronto"})["address"]["country"] == "CA"
    assert shipping_details({}) is None


@pytest.mark.django_db
def test_create_intent_returns_client_secret_and_links_order(client, auth_headers, make_order):
    o = make_order(total="19.99")

    r = _post(client, {"orderId": str(o.id)}, auth_headers())

    assert r.status_code == 200
    secret = r.json()["clientSecret"]
    o.refresh_from_db()
    assert o.payment_intent_id.startswith("pi_stub_")
    assert secret.startswith(f"{o.payment_intent_id}_secret_")

    sent = payments_stub.requests[-1]
    assert sent.amount_cents == 1999
    assert sent.currency == "usd"
    assert sent.metadata == {"orderId": str(o.id), "userId": "user-1", "orderNumber": o.order_number}
    assert sent.shipping["address"]["country"] == "US"
    assert sent.idempotency_key == f"order-{o.id}-payment-intent"


@pytest.mark.django_db
def test_retry_reuses_the_same_intent(client, auth_headers, make_order):
    o = make_order()
    first = _post(client, {"orderId": str(o.id)}, auth_headers()).json()
    second = _post(client, {"orderId": str(o.id)}, auth_headers()).json()
    assert first == second


@pytest.mark.django_db
def test_order_id_is_required(client, auth_headers):
    r = _post(client, {}, auth_headers())
    assert r.status_code == 400
    assert r.json() == {"error": "Order ID is required"}


@pytest.mark.django_db
@pytest.mark.parametrize("order_id", ["not-a-uuid", str(uuid4())])
def test_unknown_order_is_404(client, auth_headers, order_id):
    r = _post(client, {"orderId": order_id}, auth_headers())
    assert r.status_code == 404


@pytest.mark.django_db
def test_other_users_order_is_404_and_untouched(client, auth_headers, make_order):
    o = make_order(user_id="user-2")
    r = _post(client, {"orderId": str(o.id)}, auth_headers("user-1"))
    assert r.status_code == 404
    assert OrderModel.objects.get(pk=o.pk).payment_intent_id is None


@pytest.mark.django_db
def test_requires_authentication(client, make_order):
    o = make_order()
    r = client.post(INTENT_URL, data={"orderId": str(o.id)}, content_type="application/json")
    assert r.status_code == 401


@pytest.mark.django_db
def test_provider_error_is_reported(client, auth_headers, make_order, monkeypatch):
    o = make_order()

    def decline(request):
        raise PaymentProviderError("Your card was declined.")

    monkeypatch.setattr(payments_stub, "create_intent", decline)

    r = _post(client, {"orderId": str(o.id)}, auth_headers())

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create payment intent", "detail": "Your card was declined."}
    o.refresh_from_db()
    assert o.payment_intent_id is None


@pytest.mark.django_db
def test_open_circuit_is_503(client, auth_headers, make_order, monkeypatch):
    o = make_order()

    def unavailable(request):
        raise PaymentsUnavailable("CIRCUIT_OPEN")

    monkeypatch.setattr(payments_stub, "create_intent", unavailable)
    r = _post(client, {"orderId": str(o.id)}, auth_headers())
    assert r.status_code == 503
