from django.urls import path
from .views import CreatePaymentIntentView, StripeWebhookView

app_name = "payments"

urlpatterns = [
    path("create-payment-intent/", CreatePaymentIntentView.as_view(), name="create-payment-intent"),
    path("webhook/", StripeWebhookView.as_view(), name="webhook"),
]
