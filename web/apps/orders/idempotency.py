"""Idempotency utilities for order creation.

A client retrying ``POST /api/orders/`` after a timeout must not take stock
or burn an order number twice. When the request carries an
``Idempotency-Key`` header the first attempt records the key (scoped to the
authenticated user) and, once finished, its response; retries with the same
payload get that stored response back, and reusing the key for a different
payload is a conflict.
"""

import hashlib, json
from django.db import transaction, IntegrityError
from .models import IdempotencyKey


def _hash(payload: dict) -> str:
    """Compute a stable SHA-256 hash for a JSON-serializable payload.

    Keys are sorted and separators compacted so logically equal payloads
    hash the same regardless of client serialization order.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


@transaction.atomic
def get_or_create_idempotent(user_id: str, key: str, payload: dict):
    """Get-or-create the idempotency record for ``(user_id, key)``.

    Returns:
        tuple[bool, IdempotencyKey]: ``(existing, rec)``. ``existing`` is
        False when this call created the record and the caller must run the
        request and ``finalize`` it.

    Raises:
        ValueError: ``IDEMPOTENCY_CONFLICT`` when the key was already used
            with a different payload.
    """
    h = _hash(payload)

    try:
        # Savepoint: an IntegrityError only rolls back this block
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(
                user_id=user_id, key=key, request_hash=h, response_status=0, response_body={}
            )
            return False, rec
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(user_id=user_id, key=key)
        if rec.request_hash != h:
            raise ValueError("IDEMPOTENCY_CONFLICT")
        return True, rec


def finalize(rec: IdempotencyKey, status_code: int, body: dict, order_id=None):
    """Store the final response so retries can replay it without side effects."""
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order"])
