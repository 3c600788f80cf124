"""In-process stub for the payments port.

Used by the test suite and by local development (``PAYMENTS_BACKEND=stub``)
where no Stripe account is available. Intent ids follow Stripe's shape so
the webhook reconciler can be driven with hand-built events.
"""

import uuid
from typing import Dict, List

from apps.orders.domain import PaymentIntentRequest, PaymentIntentResult, PaymentsPort


class PaymentsStub(PaymentsPort):
    """Deterministic fake of Stripe's PaymentIntent creation.

    Requests sharing an idempotency key return the same intent, as Stripe
    does. Every request is kept in ``requests`` for assertions.
    """

    def __init__(self):
        self.requests: List[PaymentIntentRequest] = []
        self._by_key: Dict[str, PaymentIntentResult] = {}

    def create_intent(self, request: PaymentIntentRequest) -> PaymentIntentResult:
        self.requests.append(request)
        if request.idempotency_key and request.idempotency_key in self._by_key:
            return self._by_key[request.idempotency_key]

        intent_id = f"pi_stub_{uuid.uuid4().hex[:24]}"
        result = PaymentIntentResult(id=intent_id, client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}")
        if request.idempotency_key:
            self._by_key[request.idempotency_key] = result
        return result
