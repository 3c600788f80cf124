"""Human-facing order numbers backed by a per-day counter.

Numbers look like ``20261019-143005-0007``: the date and time of issue
followed by the day's sequence. Only the sequence guarantees uniqueness; it
comes from an ``order_counters`` row that is locked and incremented in one
transaction, so concurrent callers on the same day never observe the same
value. Beyond 9999 orders a day the sequence simply widens.
"""

from datetime import datetime

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import OrderCounter


def next_daily_sequence(day: str) -> int:
    """Increment and return the counter for ``day`` (``YYYY-MM-DD``).

    The row is created with ``counter = 0`` on first use. ``get_or_create``
    already retries the lookup when a concurrent insert wins the unique
    constraint, and the row lock serializes the increment itself.
    """
    with transaction.atomic():
        counter, _ = OrderCounter.objects.select_for_update().get_or_create(
            date=day, defaults={"counter": 0}
        )
        OrderCounter.objects.filter(pk=counter.pk).update(
            counter=F("counter") + 1, updated_at=timezone.now()
        )
        counter.refresh_from_db(fields=["counter"])
    return counter.counter


def generate_order_number(now: datetime | None = None) -> str:
    """Return a fresh order number for the current server time.

    Args:
        now: Aware datetime to use instead of the current time.
    """
    current = timezone.localtime(now or timezone.now())
    sequence = next_daily_sequence(current.strftime("%Y-%m-%d"))
    return f"{current:%Y%m%d}-{current:%H%M%S}-{sequence:04d}"
