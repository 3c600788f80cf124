"""Apply Stripe webhook events to orders.

Each handled event type maps to a fixed set of field values on the order
whose ``payment_intent_id`` matches the event. Values are assigned, not
derived from the current state, so a redelivered event leaves the order as
it was. Two guards sit on top of that:

- events are recorded by id, and an id seen before is acknowledged without
  touching the order;
- an event created before the last one applied to the order is stale and is
  ignored, so a late ``canceled`` cannot overwrite a newer ``succeeded``.

When ``ORDERS_RESTOCK_ON_PAYMENT_FAILURE`` is enabled, the first transition of
an order into ``canceled`` gives its reserved stock back. ``payment_failed``
does not: the intent returns to ``requires_payment_method`` and a retry with
another card can still succeed on it.
"""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Callable, Mapping

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.orders.domain import InventoryPort
from apps.orders.models import OrderModel
from apps.orders.repository import items_from_json
from .models import WebhookEvent

logger = logging.getLogger("payments")

Status = OrderModel.Status
PaymentStatus = OrderModel.PaymentStatus


def _succeeded(obj: Mapping, created: datetime) -> dict:
    method_types = obj.get("payment_method_types") or []
    return {
        "payment_status": PaymentStatus.PAID.value,
        "status": Status.PROCESSING.value,
        "payment_method": method_types[0] if method_types else "card",
        "paid_at": created,
    }


def _failed(obj: Mapping, created: datetime) -> dict:
    error = obj.get("last_payment_error") or {}
    return {
        "payment_status": PaymentStatus.FAILED.value,
        "status": Status.CANCELLED.value,
        "failure_reason": error.get("message") or "Payment failed",
    }


def _canceled(obj: Mapping, created: datetime) -> dict:
    return {"payment_status": PaymentStatus.CANCELED.value, "status": Status.CANCELLED.value}


def _dispute_created(obj: Mapping, created: datetime) -> dict:
    return {
        "payment_status": PaymentStatus.DISPUTED.value,
        "status": Status.DISPUTED.value,
        "dispute_id": obj.get("id") or "",
    }


HANDLERS: dict[str, Callable[[Mapping, datetime], dict]] = {
    "payment_intent.succeeded": _succeeded,
    "payment_intent.payment_failed": _failed,
    "payment_intent.canceled": _canceled,
    "charge.dispute.created": _dispute_created,
}


def _intent_id(event_type: str, obj: Mapping) -> str:
    # disputes reference the intent; intent events are the intent
    if event_type.startswith("charge."):
        return obj.get("payment_intent") or ""
    return obj.get("id") or ""


class WebhookReconciler:
    """Apply provider events to orders.

    Args:
        inventory: Used to give stock back on canceled payments.
        restock_on_failure: Defaults to
            ``settings.ORDERS_RESTOCK_ON_PAYMENT_FAILURE``.
    """

    def __init__(self, inventory: InventoryPort, restock_on_failure: bool | None = None):
        if restock_on_failure is None:
            restock_on_failure = settings.ORDERS_RESTOCK_ON_PAYMENT_FAILURE
        self.inventory = inventory
        self.restock_on_failure = restock_on_failure

    def handle(self, event: Mapping) -> str:
        """Process one verified event and return its outcome.

        Returns:
            str: ``applied``, ``stale``, ``no_order``, ``ignored`` or
            ``duplicate``.
        """
        event_id = event.get("id") or ""
        event_type = event.get("type") or ""
        obj = (event.get("data") or {}).get("object") or {}
        created = datetime.fromtimestamp(event.get("created") or timezone.now().timestamp(), tz=dt_timezone.utc)

        if event_id and WebhookEvent.objects.filter(event_id=event_id).exists():
            logger.info("duplicate webhook event", extra={"event_id": event_id, "event_type": event_type})
            return "duplicate"

        handler = HANDLERS.get(event_type)
        intent_id = _intent_id(event_type, obj) if handler else ""
        if handler is None:
            logger.info("unhandled webhook event type", extra={"event_id": event_id, "event_type": event_type})
            outcome = WebhookEvent.Outcome.IGNORED
        else:
            outcome = self._apply(intent_id, created, handler(obj, created))
            logger.info(
                "webhook event processed",
                extra={
                    "event_id": event_id,
                    "event_type": event_type,
                    "payment_intent_id": intent_id,
                    "outcome": str(outcome),
                },
            )

        if event_id:
            self._record(event_id, event_type, intent_id, created, outcome)
        return str(outcome)

    def _apply(self, intent_id: str, created: datetime, changes: dict) -> str:
        if not intent_id:
            return WebhookEvent.Outcome.NO_ORDER

        with transaction.atomic():
            order = OrderModel.objects.select_for_update().filter(payment_intent_id=intent_id).first()
            if order is None:
                return WebhookEvent.Outcome.NO_ORDER
            if order.payment_event_at and created < order.payment_event_at:
                logger.warning(
                    "stale webhook event ignored",
                    extra={"order_id": str(order.pk), "payment_intent_id": intent_id},
                )
                return WebhookEvent.Outcome.STALE

            previous = order.payment_status
            for name, value in changes.items():
                setattr(order, name, value)
            order.payment_event_at = created
            order.save(update_fields=[*changes, "payment_event_at", "updated_at"])

            if (
                self.restock_on_failure
                and order.payment_status == PaymentStatus.CANCELED.value
                and previous != PaymentStatus.CANCELED.value
            ):
                self.inventory.release(items_from_json(order.items))
                logger.info("stock released after payment cancellation", extra={"order_id": str(order.pk)})

        return WebhookEvent.Outcome.APPLIED

    def _record(self, event_id: str, event_type: str, intent_id: str, created: datetime, outcome: str):
        try:
            with transaction.atomic():
                WebhookEvent.objects.create(
                    event_id=event_id,
                    type=event_type,
                    payment_intent_id=intent_id,
                    event_created_at=created,
                    outcome=outcome,
                )
        except IntegrityError:
            # concurrent delivery of the same event already recorded it
            logger.info("webhook event already recorded", extra={"event_id": event_id})
