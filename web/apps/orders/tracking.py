"""Shipment tracking view of an order.

No carrier integration exists; the timeline is synthesized from the order's
status and creation time.
"""

import hashlib
from datetime import datetime, timedelta

from .models import OrderModel

Status = OrderModel.Status

# (label, description, location, offset from creation, statuses showing it)
TIMELINE = (
    ("Order Placed", "Your order has been received and is being processed.", "Online Store",
     timedelta(0), None),
    ("Processing", "Your order is being prepared for shipment.", "Warehouse",
     timedelta(hours=2), {Status.PROCESSING.value, Status.SHIPPED.value, Status.DELIVERED.value}),
    ("Shipped", "Your order has been shipped and is on its way.", "Distribution Center",
     timedelta(days=1), {Status.SHIPPED.value, Status.DELIVERED.value}),
    ("In Transit", "Your order is on its way to the delivery address.", "In Transit",
     timedelta(days=2), {Status.SHIPPED.value, Status.DELIVERED.value}),
    ("Delivered", "Your order has been successfully delivered.", "Delivery Address",
     timedelta(days=3), {Status.DELIVERED.value}),
)

DELIVERY_ESTIMATES = {
    Status.SHIPPED.value: timedelta(days=2),
    Status.PROCESSING.value: timedelta(days=3),
}
DEFAULT_ESTIMATE = timedelta(days=5)


def tracking_events(status: str, created_at: datetime) -> list[dict]:
    events = []
    for label, description, location, offset, shown_for in TIMELINE:
        if shown_for is not None and status not in shown_for:
            continue
        events.append({
            "status": label,
            "description": description,
            "timestamp": (created_at + offset).isoformat(),
            "location": location,
            # in transit is only complete once delivered
            "completed": label != "In Transit" or status == Status.DELIVERED,
        })
    return events


def estimated_delivery(status: str, created_at: datetime) -> str:
    """Human-readable delivery estimate, e.g. ``Friday, October 23, 2026``."""
    if status == Status.DELIVERED:
        return "Delivered"
    eta = created_at + DELIVERY_ESTIMATES.get(status, DEFAULT_ESTIMATE)
    return f"{eta:%A}, {eta:%B} {eta.day}, {eta.year}"


def tracking_number_for(order: OrderModel) -> str:
    """Stored tracking number, or a stable placeholder derived from the order."""
    if order.tracking_number:
        return order.tracking_number
    suffix = order.order_number.rsplit("-", 1)[-1] or "0000"
    digest = hashlib.sha1(str(order.pk).encode("utf-8")).hexdigest()[:4].upper()
    return f"TRK{suffix}{digest}"


def tracking_info(order: OrderModel) -> dict:
    return {
        "orderNumber": order.order_number,
        "status": order.status,
        "tracking": tracking_events(order.status, order.created_at),
        "estimatedDelivery": estimated_delivery(order.status, order.created_at),
        "shippingAddress": order.shipping_address,
        "trackingNumber": tracking_number_for(order),
    }
