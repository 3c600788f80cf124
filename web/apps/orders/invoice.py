"""Printable HTML invoices.

The invoice is rendered from the order snapshot alone: item names and prices
are the ones captured at checkout, never the current catalog values.
"""

from decimal import Decimal

from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone

from .models import OrderModel


def money(value) -> str:
    return f"{Decimal(str(value)):.2f}"


def invoice_lines(items: list) -> list[dict]:
    lines = []
    for item in items:
        price = Decimal(str(item.get("price", "0")))
        quantity = int(item.get("quantity", 0))
        details = [f"Size: {item['size']}" if item.get("size") else "",
                   f"Color: {item['color']}" if item.get("color") else ""]
        lines.append({
            "name": item.get("name", ""),
            "details": " ".join(d for d in details if d),
            "quantity": quantity,
            "price": money(price),
            "total": money(price * quantity),
        })
    return lines


def invoice_filename(order: OrderModel) -> str:
    return f"invoice-{order.order_number}.html"


def render_invoice(order: OrderModel, email: str | None = None) -> str:
    """Render the invoice document for ``order``.

    Args:
        order: Order to bill.
        email: Customer e-mail to print under the billing address, if known.
    """
    created = timezone.localtime(order.created_at)
    return render_to_string("orders/invoice.html", {
        "company_name": settings.INVOICE_COMPANY_NAME,
        "support_email": settings.INVOICE_SUPPORT_EMAIL,
        "order": order,
        "address": order.shipping_address or {},
        "email": email,
        "order_date": f"{created:%B} {created.day}, {created.year}",
        "lines": invoice_lines(order.items),
        "subtotal": money(order.subtotal),
        "shipping": money(order.shipping),
        "tax": money(order.tax),
        "total": money(order.total),
    })
