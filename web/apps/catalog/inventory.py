"""Database-backed inventory adjuster.

This module is the only code path that mutates product stock. Each
decrement is a single conditional ``UPDATE`` guarded by
``stock_count >= quantity``, so concurrent checkouts competing for the last
units cannot oversell: whichever statement loses the race matches zero rows
and is reported as insufficient stock. ``in_stock`` is recomputed in the same
statement to keep ``in_stock == (stock_count > 0)``.

Inside a checkout transaction every decremented row stays locked until
commit. With ``lock_ordered`` the rows are taken in primary key order, so two
checkouts touching the same products cannot wait on each other in a cycle.
"""

import logging
import uuid
from typing import List, Set

from django.conf import settings
from django.db.models import BooleanField, Case, F, Value, When
from django.utils import timezone

from apps.orders.domain import InventoryPort, InsufficientStock, OrderItem, ProductNotFound
from .models import Product

logger = logging.getLogger("catalog")


def find_product(product_id: str) -> Product | None:
    """Resolve an item's product id.

    A UUID primary key match wins over a product whose secondary
    ``external_id`` happens to hold the same string.
    """
    try:
        pk = uuid.UUID(str(product_id))
    except ValueError:
        pk = None
    if pk is not None:
        product = Product.objects.filter(pk=pk).first()
        if product is not None:
            return product
    return Product.objects.filter(external_id=str(product_id)).first()


class _Line:
    """Stock needed from one product, summed over the items naming it."""

    def __init__(self, product: Product, item: OrderItem):
        self.product = product
        self.quantity = 0
        self.name = item.name
        self.item_ids: Set[str] = set()

    def add(self, item: OrderItem):
        self.quantity += item.quantity
        self.item_ids.add(item.product_id)


class ProductInventory(InventoryPort):
    """Inventory port implementation over the ``products`` table.

    Args:
        allow_unknown: Whether items referencing products missing from the
            catalog are skipped (logged) instead of failing the order.
            Defaults to ``settings.ORDERS_ALLOW_UNKNOWN_PRODUCTS``.
        lock_ordered: Decrement in primary key order instead of item order.
            Set when the caller holds a transaction across all decrements.
    """

    def __init__(self, allow_unknown: bool | None = None, lock_ordered: bool = False):
        if allow_unknown is None:
            allow_unknown = settings.ORDERS_ALLOW_UNKNOWN_PRODUCTS
        self.allow_unknown = allow_unknown
        self.lock_ordered = lock_ordered

    def plan(self, items: List[OrderItem]) -> List[_Line]:
        """Resolve items to products, merging items that name the same product.

        Raises:
            ProductNotFound: Product is unknown and unknown products are not
                tolerated.
        """
        lines = {}
        for item in items:
            product = find_product(item.product_id)
            if product is None:
                if not self.allow_unknown:
                    raise ProductNotFound(item.name)
                logger.warning(
                    "product not found, skipping stock validation",
                    extra={"product_id": item.product_id, "item_name": item.name},
                )
                continue
            if product.pk not in lines:
                lines[product.pk] = _Line(product, item)
            lines[product.pk].add(item)

        result = list(lines.values())
        if self.lock_ordered:
            result.sort(key=lambda line: line.product.pk)
        return result

    def reserve(self, items: List[OrderItem]) -> Set[str]:
        """Decrement stock for every known product.

        A failure stops at the offending product. Whether earlier decrements
        survive is decided by the caller's transaction.

        Returns:
            set[str]: Item product ids whose stock was taken.

        Raises:
            InsufficientStock: Product is out of stock, short, or lost a race.
            ProductNotFound: Product is unknown and unknown products are not
                tolerated.
        """
        reserved = set()
        for line in self.plan(items):
            product = line.product
            if not product.in_stock or product.stock_count < line.quantity:
                raise InsufficientStock(line.name)

            updated = Product.objects.filter(
                pk=product.pk, in_stock=True, stock_count__gte=line.quantity
            ).update(
                stock_count=F("stock_count") - line.quantity,
                in_stock=Case(
                    When(stock_count__gt=line.quantity, then=Value(True)),
                    default=Value(False),
                    output_field=BooleanField(),
                ),
                updated_at=timezone.now(),
            )
            if not updated:
                # another checkout took the stock between read and update
                raise InsufficientStock(line.name)

            reserved |= line.item_ids
            logger.info(
                "stock reserved",
                extra={"product_id": str(product.pk), "quantity": line.quantity},
            )
        return reserved

    def release(self, items: List[OrderItem]) -> None:
        """Return stock for items that were reserved at checkout.

        Items skipped at checkout (unknown products) carry ``reserved=False``
        and are left alone.
        """
        for item in items:
            if not item.reserved:
                continue
            product = find_product(item.product_id)
            if product is None:
                logger.warning("cannot release stock for unknown product", extra={"product_id": item.product_id})
                continue
            Product.objects.filter(pk=product.pk).update(
                stock_count=F("stock_count") + item.quantity,
                in_stock=True,
                updated_at=timezone.now(),
            )
            logger.info(
                "stock released",
                extra={"product_id": str(product.pk), "quantity": item.quantity},
            )
