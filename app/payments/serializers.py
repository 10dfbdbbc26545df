"""
DRF serializers for payments app.

This module provides serializers for:
- Checkout requests and responses
- Payment session confirmation responses

Related files:
    - models/payment_session.py: PaymentSession
    - views.py: Payment API views

Usage:
    serializer = CheckoutRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from rest_framework import serializers

from companies.models import SubscriptionPlan


class CheckoutRequestSerializer(serializers.Serializer):
    """
    Checkout request for a subscription plan.

    Fields:
        plan_id: SubscriptionPlan to purchase (must be active)
        one_time_payment: Pay once instead of starting a Stripe subscription
        invoice_requested: Whether the buyer asked for a formal invoice
        success_url: Redirect after payment (default PAYMENT_SUCCESS_URL)
        fail_url: Redirect after cancellation (default PAYMENT_CANCEL_URL)
    """

    plan_id = serializers.UUIDField()
    one_time_payment = serializers.BooleanField()
    invoice_requested = serializers.BooleanField(default=False)
    success_url = serializers.URLField(required=False, allow_blank=False)
    fail_url = serializers.URLField(required=False, allow_blank=False)

    def validate_plan_id(self, value):
        plan = SubscriptionPlan.objects.filter(pk=value, is_active=True).first()
        if plan is None:
            raise serializers.ValidationError("Unknown or inactive subscription plan.")
        self.context["plan"] = plan
        return value


class CheckoutResponseSerializer(serializers.Serializer):
    """Created checkout: the internal session GUID and where to send the customer."""

    payment_session_id = serializers.UUIDField(source="id")
    checkout_url = serializers.CharField()
    operator_session_id = serializers.CharField(source="operator_transaction_id")


class PaymentSessionConfirmSerializer(serializers.Serializer):
    payment_session_id = serializers.UUIDField()
    paid = serializers.BooleanField()
