"""Repository layer for persisting orders.

Keeps the domain layer unaware of the Django ORM: orders go in and come
back out as ``apps.orders.domain.Order`` dataclasses, and model validation
failures surface as ``OrderValidationError`` with a per-field error map.
"""

from decimal import Decimal
from typing import List

from django.conf import settings
from django.core.exceptions import ValidationError

from .models import OrderModel
from .domain import Order, OrderItem, OrderRepositoryPort, OrderStatus, OrderValidationError, PaymentStatus


def item_to_json(item: OrderItem) -> dict:
    data = {
        "productId": item.product_id,
        "name": item.name,
        "image": item.image,
        "price": str(item.price),
        "quantity": item.quantity,
    }
    if item.size:
        data["size"] = item.size
    if item.color:
        data["color"] = item.color
    if item.reserved:
        data["reserved"] = True
    return data


def items_from_json(items: list) -> List[OrderItem]:
    return [
        OrderItem(
            product_id=str(i["productId"]),
            name=i.get("name", ""),
            price=Decimal(str(i.get("price", "0"))),
            quantity=int(i["quantity"]),
            image=i.get("image", ""),
            size=i.get("size"),
            color=i.get("color"),
            reserved=bool(i.get("reserved", False)),
        )
        for i in items
    ]


def address_to_json(address: dict, legacy_street: bool = False) -> dict:
    """Snapshot an address, optionally mirroring ``address1`` into ``street``.

    The mirror exists only for deployments whose stored documents are still
    read by code expecting ``street``; see ``ORDERS_LEGACY_STREET_FIELD``.
    """
    data = {k: v for k, v in address.items() if v is not None}
    if legacy_street and data.get("address1"):
        data.setdefault("street", data["address1"])
    return data


def to_domain(obj: OrderModel) -> Order:
    return Order(
        id=str(obj.id),
        user_id=obj.user_id,
        items=items_from_json(obj.items),
        subtotal=obj.subtotal,
        tax=obj.tax,
        shipping=obj.shipping,
        total=obj.total,
        shipping_address=obj.shipping_address,
        billing_address=obj.billing_address,
        payment_method=obj.payment_method,
        order_number=obj.order_number,
        status=OrderStatus(obj.status),
        payment_status=PaymentStatus(obj.payment_status),
        payment_intent_id=obj.payment_intent_id,
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


class OrderRepository(OrderRepositoryPort):
    """Persist Order domain objects using the Django ORM."""

    def __init__(self, legacy_street: bool | None = None):
        if legacy_street is None:
            legacy_street = settings.ORDERS_LEGACY_STREET_FIELD
        self.legacy_street = legacy_street

    def create(self, order: Order) -> Order:
        """Validate and insert a new order row.

        Args:
            order: Domain order with ``order_number`` assigned.

        Returns:
            The stored order, including its id and timestamps.

        Raises:
            OrderValidationError: When ``full_clean`` rejects the row.
        """
        obj = OrderModel(
            order_number=order.order_number,
            user_id=order.user_id,
            items=[item_to_json(i) for i in order.items],
            subtotal=order.subtotal,
            tax=order.tax,
            shipping=order.shipping,
            total=order.total,
            status=order.status.value,
            payment_status=order.payment_status.value,
            shipping_address=address_to_json(order.shipping_address, self.legacy_street),
            billing_address=address_to_json(order.billing_address, self.legacy_street),
            payment_method=order.payment_method,
        )
        try:
            obj.full_clean()
        except ValidationError as e:
            raise OrderValidationError(e.message_dict)
        obj.save(force_insert=True)
        return to_domain(obj)

    def get_model(self, order_id: str) -> OrderModel:
        return OrderModel.objects.get(pk=order_id)
