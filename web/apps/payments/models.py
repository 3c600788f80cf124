from django.db import models


class WebhookEvent(models.Model):
    """Stripe events received by the webhook, one row per event id."""

    class Outcome(models.TextChoices):
        APPLIED = "applied"
        STALE = "stale"
        NO_ORDER = "no_order"
        IGNORED = "ignored"

    event_id = models.CharField(max_length=255, unique=True)
    type = models.CharField(max_length=100)
    payment_intent_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    event_created_at = models.DateTimeField()
    outcome = models.CharField(max_length=16, choices=Outcome.choices)
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payment_webhook_events"
        ordering = ["-received_at"]
