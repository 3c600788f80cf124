"""Stripe adapter for the payments port, guarded by a circuit breaker.

The Stripe SDK already retries transient network failures
(``STRIPE_MAX_NETWORK_RETRIES``) and we send an idempotency key with every
intent, so retries never duplicate an intent. What the SDK does not do is
stop hammering Stripe while it is unhealthy; the breaker below opens after
``HTTP_CIRCUIT_FAIL_THRESHOLD`` consecutive infrastructure failures and lets a
single trial call through after ``HTTP_CIRCUIT_RESET_TIMEOUT`` seconds.

Declines and invalid requests are business outcomes: they are reported to
the caller but do not count against the breaker.
"""

import logging
import time
import threading

import stripe
from django.conf import settings

from apps.orders.domain import (
    PaymentIntentRequest,
    PaymentIntentResult,
    PaymentProviderError,
    PaymentsPort,
    PaymentsUnavailable,
)

logger = logging.getLogger("payments")

# ---------------- Circuit Breaker ---------------- #


class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED → OPEN when failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN → CLOSED on a successful trial call; only one may be in
      flight; a failed trial call opens the circuit again.

    Thread-safe via an internal lock (gunicorn runs threaded workers).
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._opened_at = 0.0
        self._half_open_trial_in_flight = False

    @property
    def state(self) -> str:
        """Current breaker state with time-based transition handling."""
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._half_open_trial_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check and update state before a protected call.

        Returns:
            str: The state at call time.

        Raises:
            PaymentsUnavailable: If the circuit is OPEN or a HALF_OPEN trial call
                is already in flight.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise PaymentsUnavailable("CIRCUIT_OPEN")
            if st == "HALF_OPEN":
                if self._half_open_trial_in_flight:
                    raise PaymentsUnavailable("CIRCUIT_HALF_OPEN_BUSY")
                self._half_open_trial_in_flight = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._half_open_trial_in_flight = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN" or (self._failures >= self.fail_threshold and self._state != "OPEN"):
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                self._half_open_trial_in_flight = False
                logger.warning("circuit opened", extra={"circuit": self.name, "failures": self._failures})

    def on_finish(self):
        with self._lock:
            if self._state == "HALF_OPEN":
                self._half_open_trial_in_flight = False


stripe_cb = CircuitBreaker(
    "stripe",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)

# Transport problems and Stripe-side 5xx; everything else is a business outcome
_INFRA_ERRORS = (stripe.APIConnectionError, stripe.APIError, stripe.RateLimitError)


def _provider_message(exc: stripe.StripeError) -> str:
    return exc.user_message or str(exc) or exc.__class__.__name__


class StripePaymentsClient(PaymentsPort):
    """Create PaymentIntents through the Stripe SDK."""

    def __init__(self, api_key: str | None = None, breaker: CircuitBreaker | None = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.breaker = breaker or stripe_cb
        stripe.max_network_retries = settings.STRIPE_MAX_NETWORK_RETRIES

    def create_intent(self, request: PaymentIntentRequest) -> PaymentIntentResult:
        """Create a PaymentIntent with automatic payment methods and capture.

        Raises:
            PaymentsUnavailable: Circuit open.
            PaymentProviderError: Stripe rejected the request or failed.
        """
        params = {
            "amount": request.amount_cents,
            "currency": request.currency,
            "metadata": request.metadata,
            "automatic_payment_methods": {"enabled": True},
            "capture_method": "automatic",
        }
        if request.shipping:
            params["shipping"] = request.shipping

        self.breaker.before_call()
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                idempotency_key=request.idempotency_key,
                **params,
            )
        except _INFRA_ERRORS as e:
            self.breaker.on_failure()
            logger.error("stripe unavailable", extra={"error": str(e), "error_type": e.__class__.__name__})
            raise PaymentProviderError(_provider_message(e)) from e
        except stripe.StripeError as e:
            self.breaker.on_success()
            logger.warning("stripe rejected payment intent", extra={"error": str(e), "error_type": e.__class__.__name__})
            raise PaymentProviderError(_provider_message(e)) from e
        else:
            self.breaker.on_success()
        finally:
            self.breaker.on_finish()

        return PaymentIntentResult(id=intent["id"], client_secret=intent["client_secret"], status=intent["status"])
