"""HTTP views for payments.

``CreatePaymentIntentView`` issues a Stripe PaymentIntent for one of the
caller's orders and returns its client secret. ``StripeWebhookView``
receives Stripe's signed events, verifies them against
``STRIPE_WEBHOOK_SECRET`` and hands them to the reconciler.
"""

import json
import logging

import stripe
from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.orders.domain import OrderNotFound, PaymentProviderError, PaymentsUnavailable
from apps.orders.providers import get_payment_intent_service, get_webhook_reconciler

logger = logging.getLogger("payments")


class CreatePaymentIntentView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payments"

    def post(self, request):
        """Create the payment intent for ``orderId``.

        Returns:
            Response: 200 ``{clientSecret}``; 400 without ``orderId``; 401
            unauthenticated; 404 for unknown or foreign orders; 500 when
            Stripe rejects the request (its message in ``detail``); 503 when
            the Stripe circuit is open.
        """
        data = request.data if isinstance(request.data, dict) else {}
        order_id = data.get("orderId")
        if not order_id:
            return Response({"error": "Order ID is required"}, status=status.HTTP_400_BAD_REQUEST)

        service = get_payment_intent_service()
        try:
            client_secret = service.create_for_order(request.user.user_id, str(order_id))
        except OrderNotFound:
            return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        except PaymentsUnavailable:
            return Response({"error": "Payments temporarily unavailable"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        except PaymentProviderError as e:
            logger.error("payment intent creation failed", extra={"order_id": str(order_id), "error": str(e)})
            return Response(
                {"error": "Failed to create payment intent", "detail": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"clientSecret": client_secret}, status=status.HTTP_200_OK)


class StripeWebhookView(APIView):
    """Receive Stripe events.

    The raw body is needed for signature verification, so the view never
    touches ``request.data``.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        payload = request.body
        signature = request.headers.get("Stripe-Signature")
        if not signature:
            logger.warning("webhook without signature header")
            return Response({"error": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("webhook signature verification failed", extra={"error": str(e)})
            return Response({"error": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

        event = json.loads(payload)
        try:
            get_webhook_reconciler().handle(event)
        except Exception:
            # 5xx makes Stripe redeliver later
            logger.exception("webhook handler failed", extra={"event_id": event.get("id")})
            return Response({"error": "Webhook handler failed"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({"received": True}, status=status.HTTP_200_OK)
