"""Domain models, ports and service for orders.

This module contains the dataclasses used as DTOs for orders and payment
intents, protocol definitions (ports) for the inventory, persistence and
payment dependencies, the domain errors raised along the checkout path, and
the service that orchestrates placing an order.

Nothing here imports Django: transaction boundaries and persistence are
injected through the ports so the orchestration can be exercised with plain
stubs.
"""

from contextlib import nullcontext
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, ContextManager, List, Protocol, Set
from enum import Enum


# ---- Enums ----
class OrderStatus(str, Enum):
    """Fulfilment status of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


class PaymentStatus(str, Enum):
    """Last known payment state, cached from provider webhooks."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELED = "canceled"
    DISPUTED = "disputed"


# ---- Errors ----
class OrderError(ValueError):
    """Base class for business failures while placing an order.

    ``str(error)`` is a short machine code (as the API's ``detail`` field),
    while ``message`` is the human-readable explanation shown to customers.
    """

    code = "ORDER_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(self.code)
        self.message = message or self.code


class EmptyOrder(OrderError):
    code = "EMPTY_ORDER"

    def __init__(self):
        super().__init__("Order must contain at least one item")


class InsufficientStock(OrderError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, item_name: str):
        super().__init__(f"Insufficient stock for {item_name}")
        self.item_name = item_name


class ProductNotFound(OrderError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, item_name: str):
        super().__init__(f"Product {item_name} not found")
        self.item_name = item_name


class OrderValidationError(OrderError):
    """The assembled order failed model validation.

    Attributes:
        fields: Mapping of field name to a list of error messages.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, fields: dict):
        super().__init__("Order validation failed")
        self.fields = fields


class OrderNotFound(LookupError):
    """No order with that id belongs to the requesting user."""


class PaymentProviderError(Exception):
    """The payment provider rejected or failed a request.

    The message is the provider's own text, safe to show to operators.
    """


class PaymentsUnavailable(Exception):
    """Calls to the payment provider are short-circuited (circuit open)."""


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderItem:
    """Snapshot of a product at the time it was ordered.

    Items are copies, so later catalog edits never rewrite history.
    """

    product_id: str
    name: str
    price: Decimal
    quantity: int
    image: str = ""
    size: str | None = None
    color: str | None = None
    # stock was taken for this item at checkout
    reserved: bool = False


@dataclass
class Order:
    """Container for order data.

    Attributes:
        id: Persistent identifier, or None until saved.
        user_id: Owner of the order.
        items: Line item snapshots.
        subtotal, tax, shipping, total: Money amounts in the store currency.
            ``total`` is supplied by the caller and not recomputed.
        shipping_address, billing_address: Address snapshots (camelCase keys).
        payment_method: Method chosen at checkout (e.g. "card").
        order_number: Human-facing number, assigned while placing the order.
    """

    id: str | None
    user_id: str
    items: List[OrderItem]
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    shipping_address: dict = field(default_factory=dict)
    billing_address: dict = field(default_factory=dict)
    payment_method: str = "card"
    order_number: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_intent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class PaymentIntentRequest:
    """Provider-neutral description of a payment intent to create.

    Attributes:
        amount_cents: Amount in integer minor units.
        currency: Lower-case ISO currency code.
        metadata: String key/values attached to the intent.
        shipping: Shipping block in the provider's shape, or None.
        idempotency_key: Key that makes retries return the same intent.
    """

    amount_cents: int
    currency: str
    metadata: dict
    shipping: dict | None = None
    idempotency_key: str | None = None


@dataclass(frozen=True)
class PaymentIntentResult:
    id: str
    client_secret: str
    status: str = "requires_payment_method"


# ---- Ports (DIP) ----
class InventoryPort(Protocol):
    """Stock operations used by the domain."""

    def reserve(self, items: List[OrderItem]) -> Set[str]:
        """Decrement stock for every item and return the product ids taken.

        Raises:
            InsufficientStock: When an item cannot be covered.
            ProductNotFound: When an unknown product is not tolerated.
        """
        raise NotImplementedError()

    def release(self, items: List[OrderItem]) -> None:
        """Give stock back for items marked ``reserved``."""
        raise NotImplementedError()


class OrderRepositoryPort(Protocol):
    def create(self, order: Order) -> Order:
        """Validate and persist a new order, returning the stored copy.

        Raises:
            OrderValidationError: When the order fails model validation.
        """
        raise NotImplementedError()


class PaymentsPort(Protocol):
    """Payment provider operations used by the domain."""

    def create_intent(self, request: PaymentIntentRequest) -> PaymentIntentResult:
        """Create a payment intent at the provider.

        Raises:
            PaymentProviderError: When the provider rejects the request.
            PaymentsUnavailable: When calls are short-circuited.
        """
        raise NotImplementedError()


# ---- Domain service ----
class OrderService:
    """Domain service responsible for placing orders.

    Orchestrates stock reservation, order numbering and persistence. The
    ``unit_of_work`` factory decides whether those steps commit together:
    a database transaction makes checkout all-or-nothing, while the default
    ``nullcontext`` keeps the best-effort behavior where stock taken for
    earlier items stays taken when a later step fails.
    """

    def __init__(
        self,
        inventory: InventoryPort,
        repository: OrderRepositoryPort,
        next_order_number: Callable[[], str],
        unit_of_work: Callable[[], ContextManager] = nullcontext,
    ):
        self.inventory = inventory
        self.repository = repository
        self.next_order_number = next_order_number
        self.unit_of_work = unit_of_work

    def place_order(self, order: Order) -> Order:
        """Reserve stock, number and persist a new order.

        Args:
            order: Order to place; ``user_id`` must already be set.

        Returns:
            The persisted Order in ``pending/pending`` state.

        Raises:
            EmptyOrder: If the order has no items.
            InsufficientStock: If any item cannot be covered.
            ProductNotFound: If an unknown product is not tolerated.
            OrderValidationError: If the assembled order is invalid.
        """
        if not order.items:
            raise EmptyOrder()

        with self.unit_of_work():
            # 1) Take stock, item by item
            reserved = self.inventory.reserve(order.items)
            order.items = [replace(i, reserved=i.product_id in reserved) for i in order.items]

            # 2) Number
            order.order_number = self.next_order_number()
            order.status = OrderStatus.PENDING
            order.payment_status = PaymentStatus.PENDING

            # 3) Persist
            return self.repository.create(order)
