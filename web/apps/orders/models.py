import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

ADDRESS_REQUIRED_FIELDS = ("firstName", "lastName", "address1", "city", "state", "zipCode", "country")
ITEM_REQUIRED_FIELDS = ("productId", "name", "price", "quantity")


def validate_address(value):
    if not isinstance(value, dict):
        raise ValidationError("Address must be an object")
    missing = [f for f in ADDRESS_REQUIRED_FIELDS if not str(value.get(f) or "").strip()]
    if missing:
        raise ValidationError(f"Missing address fields: {', '.join(missing)}")


def validate_items(value):
    if not isinstance(value, list) or not value:
        raise ValidationError("Order must contain at least one item")
    for idx, item in enumerate(value):
        missing = [f for f in ITEM_REQUIRED_FIELDS if item.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Item {idx} is missing: {', '.join(missing)}")
        if int(item["quantity"]) < 1:
            raise ValidationError(f"Item {idx} quantity must be at least 1")


class OrderModel(models.Model):
    # UUID PK exposed by the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=32, unique=True)
    user_id = models.CharField(max_length=64, db_index=True)

    class Status(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        SHIPPED = "shipped"
        DELIVERED = "delivered"
        CANCELLED = "cancelled"
        REFUNDED = "refunded"
        DISPUTED = "disputed"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending"
        PAID = "paid"
        FAILED = "failed"
        REFUNDED = "refunded"
        CANCELED = "canceled"
        DISPUTED = "disputed"

    items = models.JSONField(validators=[validate_items])
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    tax = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    shipping = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    total = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)

    shipping_address = models.JSONField(validators=[validate_address])
    billing_address = models.JSONField(validators=[validate_address])

    payment_method = models.CharField(max_length=32)
    payment_intent_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    # creation time of the last provider event applied to this order
    payment_event_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(blank=True, default="")
    dispute_id = models.CharField(max_length=255, blank=True, default="")

    tracking_number = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user_id", "-created_at"], name="orders_user_created_idx"),
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
        ]


class OrderCounter(models.Model):
    date = models.CharField(max_length=10, unique=True)  # YYYY-MM-DD
    counter = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "order_counters"


class IdempotencyKey(models.Model):
    user_id = models.CharField(max_length=64)
    key = models.CharField(max_length=200)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField(default=0)
    response_body = models.JSONField(default=dict)
    order = models.ForeignKey(OrderModel, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_idempotency_keys"
        constraints = [
            models.UniqueConstraint(fields=["user_id", "key"], name="ux_order_idempotency_key"),
        ]
