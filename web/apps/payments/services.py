"""Payment-intent issuance for existing orders."""

import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.utils import timezone

from apps.orders.domain import OrderNotFound, PaymentIntentRequest, PaymentsPort
from apps.orders.models import OrderModel

logger = logging.getLogger("payments")

# Localized country names the checkout form sends, mapped to ISO codes
COUNTRY_CODES = {"United States": "US"}


def amount_in_cents(total: Decimal) -> int:
    """Convert a decimal total to integer minor units (``19.99`` -> ``1999``)."""
    return int((Decimal(total) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def shipping_details(address: dict) -> dict | None:
    """Build Stripe's ``shipping`` block from an order address snapshot."""
    if not address:
        return None
    country = address.get("country") or ""
    postal = {
        "line1": address.get("address1") or address.get("street"),
        "line2": address.get("address2"),
        "city": address.get("city"),
        "state": address.get("state"),
        "postal_code": address.get("zipCode"),
        "country": COUNTRY_CODES.get(country, country),
    }
    details = {
        "name": f"{address.get('firstName', '')} {address.get('lastName', '')}".strip(),
        "address": {k: v for k, v in postal.items() if v},
    }
    if address.get("phone"):
        details["phone"] = address["phone"]
    return details


def build_intent_request(order: OrderModel) -> PaymentIntentRequest:
    return PaymentIntentRequest(
        amount_cents=amount_in_cents(order.total),
        currency=settings.PAYMENTS_CURRENCY,
        metadata={
            "orderId": str(order.id),
            "userId": order.user_id,
            "orderNumber": order.order_number,
        },
        shipping=shipping_details(order.shipping_address),
        # one intent per order, even if the client retries after a timeout
        idempotency_key=f"order-{order.id}-payment-intent",
    )


class PaymentIntentService:
    """Issue provider payment intents for a user's own orders."""

    def __init__(self, payments: PaymentsPort):
        self.payments = payments

    def create_for_order(self, user_id: str, order_id: str) -> str:
        """Create (or reuse) the payment intent for an order.

        Args:
            user_id: Authenticated user; orders of other users are invisible.
            order_id: Order UUID.

        Returns:
            str: The intent's client secret for client-side confirmation.

        Raises:
            OrderNotFound: Unknown id, malformed id, or someone else's order.
            PaymentProviderError: The provider rejected the request.
            PaymentsUnavailable: The provider circuit is open.
        """
        try:
            oid = uuid.UUID(str(order_id))
        except ValueError:
            raise OrderNotFound(order_id)

        order = OrderModel.objects.filter(pk=oid, user_id=user_id).first()
        if order is None:
            raise OrderNotFound(order_id)

        result = self.payments.create_intent(build_intent_request(order))

        OrderModel.objects.filter(pk=order.pk).update(payment_intent_id=result.id, updated_at=timezone.now())
        logger.info(
            "payment intent created",
            extra={"order_id": str(order.pk), "order_number": order.order_number, "payment_intent_id": result.id},
        )
        return result.client_secret
