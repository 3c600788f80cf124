import pytest
from apps.orders.models import OrderModel

ADMIN_LIST_URL = "/api/admin/orders/"
ADMIN_DETAIL_URL = "/api/admin/orders/{oid}/"


@pytest.mark.django_db
def test_admin_endpoints_require_permission(client, auth_headers, make_order):
    o = make_order()
    assert client.get(ADMIN_LIST_URL).status_code == 401
    assert client.get(ADMIN_LIST_URL, **auth_headers()).status_code == 403
    assert client.delete(ADMIN_DETAIL_URL.format(oid=o.id), **auth_headers()).status_code == 403
    assert OrderModel.objects.filter(pk=o.pk).exists()


@pytest.mark.django_db
def test_admin_lists_all_users(client, admin_headers, make_order):
    make_order(user_id="user-1")
    make_order(user_id="user-2")

    body = client.get(ADMIN_LIST_URL, **admin_headers).json()

    assert {o["userId"] for o in body["orders"]} == {"user-1", "user-2"}
    assert body["pagination"]["limit"] == 50


@pytest.mark.django_db
def test_admin_search_matches_customer_last_name(client, admin_headers, make_order):
    hopper = make_order()
    hopper.shipping_address = {**hopper.shipping_address, "lastName": "Hopper"}
    hopper.save()
    make_order()

    body = client.get(ADMIN_LIST_URL, {"search": "hopp"}, **admin_headers).json()

    assert len(body["orders"]) == 1
    assert body["orders"][0]["shippingAddress"]["lastName"] == "Hopper"


@pytest.mark.django_db
def test_admin_can_update_and_delete(client, admin_headers, make_order):
    o = make_order(user_id="user-9")

    r = client.put(ADMIN_DETAIL_URL.format(oid=o.id), data={"status": "delivered"}, content_type="application/json",
                   **admin_headers)
    assert r.status_code == 200
    assert r.json()["order"]["status"] == "delivered"

    r = client.delete(ADMIN_DETAIL_URL.format(oid=o.id), **admin_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Order deleted successfully"}

    r = client.get(ADMIN_DETAIL_URL.format(oid=o.id), **admin_headers)
    assert r.status_code == 404
