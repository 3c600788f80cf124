"""Service provider helpers for wiring domain services with their ports.

Views never construct adapters themselves; they ask these factories, which
read the runtime settings:

- ``ORDERS_ATOMIC_CHECKOUT`` decides whether stock reservation and the order
  insert share one database transaction.
- ``PAYMENTS_BACKEND`` selects the Stripe adapter (``stripe``) or the
  in-process stub (``stub``) used by tests and local development.
"""

from contextlib import nullcontext

from django.conf import settings
from django.db import transaction

from apps.catalog.inventory import ProductInventory
from apps.payments.adapters import PaymentsStub
from apps.payments.reconciler import WebhookReconciler
from apps.payments.services import PaymentIntentService
from apps.payments.stripe_adapter import StripePaymentsClient
from .domain import OrderService, PaymentsPort
from .numbering import generate_order_number
from .repository import OrderRepository

# Shared so stub intents survive across requests, like Stripe's own state
payments_stub = PaymentsStub()


def get_order_service() -> OrderService:
    """Return an OrderService backed by the catalog and the orders table."""
    atomic = getattr(settings, "ORDERS_ATOMIC_CHECKOUT", True)
    return OrderService(
        inventory=ProductInventory(lock_ordered=atomic),
        repository=OrderRepository(),
        next_order_number=generate_order_number,
        unit_of_work=transaction.atomic if atomic else nullcontext,
    )


def get_payments_gateway() -> PaymentsPort:
    if getattr(settings, "PAYMENTS_BACKEND", "stripe") == "stub":
        return payments_stub
    return StripePaymentsClient()


def get_payment_intent_service() -> PaymentIntentService:
    return PaymentIntentService(get_payments_gateway())


def get_webhook_reconciler() -> WebhookReconciler:
    return WebhookReconciler(inventory=ProductInventory())
