import hashlib
import hmac
import json
import threading
import time
from decimal import Decimal

import pytest


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.PAYMENTS_BACKEND = "stub"


@pytest.fixture
def auth_headers():
    """Return request kwargs carrying a bearer token for ``user_id``."""
    from gateway.authentication import issue_token

    def _headers(user_id="user-1", **claims):
        return {"HTTP_AUTHORIZATION": f"Bearer {issue_token(user_id, **claims)}"}

    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers("admin-1", role="ADMIN", permissions=["system:settings"])


@pytest.fixture
def make_product(db):
    from apps.catalog.models import Product

    def _make(name="Leather Wallet", stock_count=5, price="49.99", **kw):
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock_count=stock_count,
            in_stock=stock_count > 0,
            **kw,
        )

    return _make


def address(**overrides):
    data = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "address1": "12 Analytical Way",
        "city": "Austin",
        "state": "TX",
        "zipCode": "73301",
        "country": "United States",
        "phone": "+15125550100",
    }
    data.update(overrides)
    return data


@pytest.fixture
def order_payload():
    """Build a checkout payload for the given (product, quantity) pairs."""

    def _payload(*lines, total="19.99"):
        items = [
            {
                "productId": str(getattr(p, "pk", p)),
                "name": getattr(p, "name", "Sample item"),
                "image": "https://cdn.example.com/item.jpg",
                "price": 9.99,
                "quantity": qty,
            }
            for p, qty in lines
        ]
        return {
            "items": items,
            "subtotal": total,
            "tax": 0,
            "shipping": 0,
            "total": total,
            "shippingAddress": address(),
            "billingAddress": address(),
            "paymentMethod": "card",
        }

    return _payload


@pytest.fixture
def stripe_event():
    """Serialize a Stripe event and sign it with the test webhook secret.

    Returns ``(body, headers)`` ready for ``client.post``.
    """

    def _event(event_type, obj, event_id="evt_test_1", created=None, secret="whsec_test_secret"):
        body = json.dumps({
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": created if created is not None else int(time.time()),
            "data": {"object": obj},
        })
        ts = int(time.time())
        sig = hmac.new(secret.encode(), f"{ts}.{body}".encode(), hashlib.sha256).hexdigest()
        return body, {"HTTP_STRIPE_SIGNATURE": f"t={ts},v1={sig}"}

    return _event


@pytest.fixture
def make_order(db):
    """Insert an order row directly, bypassing checkout."""
    from apps.orders.models import OrderModel

    seq = iter(range(1, 10000))

    def _make(user_id="user-1", total="19.99", **kw):
        n = next(seq)
        fields = {
            "order_number": f"20261019-120000-{n:04d}",
            "user_id": user_id,
            "items": [{"productId": "p-1", "name": "Sample item", "price": "9.99", "quantity": 2}],
            "subtotal": Decimal(total),
            "tax": Decimal("0"),
            "shipping": Decimal("0"),
            "total": Decimal(total),
            "shipping_address": address(),
            "billing_address": address(),
            "payment_method": "card",
        }
        fields.update(kw)
        return OrderModel.objects.create(**fields)

    return _make


@pytest.fixture
def concurrently():
    """Run ``fn`` in ``n`` threads released together.

    Returns ``(results, errors)``. Each thread closes its own connection.
    """
    from django.db import connection

    def _run(fn, n):
        barrier = threading.Barrier(n)
        results, errors = [], []
        lock = threading.Lock()

        def worker():
            try:
                barrier.wait()
                value = fn()
                with lock:
                    results.append(value)
            except Exception as e:
                with lock:
                    errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker) for _ in range(n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return results, errors

    return _run
