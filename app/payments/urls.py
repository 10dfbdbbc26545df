"""
URL configuration for the payments app.

Routes:
    - POST /checkout/ - Create Stripe Checkout session
    - GET /sessions/<uuid>/confirm/ - Confirm a payment session
    - POST /webhooks/stripe/ - Stripe webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import CheckoutView, PaymentSessionConfirmView
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Checkout
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path(
        "sessions/<uuid:session_id>/confirm/",
        PaymentSessionConfirmView.as_view(),
        name="session_confirm",
    ),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
