"""
State enums for payment models.

This module defines the state enums used by payment models with django-fsm,
plus the classification of inbound Stripe event types. These are Django
TextChoices for database storage and admin integration.

State Machines Overview:

PaymentSession States:
    new → paid → refunded
    new → cancelled
    new → expired

PaymentOperatorLog (webhook audit entry) Statuses:
    received → processed | ignored | skipped | failed
    rejected (signature verification failed, never dispatched)
"""

from django.db import models


class PaymentSessionState(models.TextChoices):
    """
    States for the PaymentSession model lifecycle.

    Terminal states: REFUNDED, CANCELLED, EXPIRED

    State Flow:
        NEW → PAID (checkout.session.completed or confirmed by polling)
        PAID → REFUNDED (full refund reconciled)
        NEW → CANCELLED / EXPIRED (abandoned checkout)
        CANCELLED / EXPIRED → PAID (Checkout completed late)
    """

    NEW = "new", "New"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for PaymentOperatorLog.

    State Flow:
        RECEIVED → PROCESSED (handler applied the event)
        RECEIVED → IGNORED (event type has no handler)
        RECEIVED → SKIPPED (best-effort handler could not correlate the event)
        RECEIVED → FAILED (handler raised; Stripe redelivers mandatory events)
        REJECTED (signature verification failed)
    """

    RECEIVED = "received", "Received"
    PROCESSED = "processed", "Processed"
    IGNORED = "ignored", "Ignored"
    SKIPPED = "skipped", "Skipped"
    FAILED = "failed", "Failed"
    REJECTED = "rejected", "Rejected"


class PaymentMode(models.TextChoices):
    """
    Stripe Checkout session mode.

    PAYMENT charges once; SUBSCRIPTION creates a Stripe Subscription that
    renews on the plan's billing interval.
    """

    PAYMENT = "payment", "One-time Payment"
    SUBSCRIPTION = "subscription", "Subscription"


class StripeEventKind(models.TextChoices):
    """
    Classification of inbound Stripe event types.

    Each kind has exactly one handler in payments.webhooks.handlers.
    Unknown event types classify as IGNORED and are acknowledged without
    side effects.
    """

    CHECKOUT_COMPLETED = "checkout_completed", "Checkout Session Completed"
    INVOICE_PAID = "invoice_paid", "Invoice Payment Succeeded"
    SUBSCRIPTION_UPDATED = "subscription_updated", "Customer Subscription Updated"
    CHARGE_SUCCEEDED = "charge_succeeded", "Charge Succeeded"
    REFUND = "refund", "Refund"
    IGNORED = "ignored", "Ignored"

    @classmethod
    def classify(cls, event_type: str | None) -> "StripeEventKind":
        """
        Map a Stripe event type string to its kind.

        Example:
            StripeEventKind.classify("refund.updated")  # REFUND
            StripeEventKind.classify("customer.created")  # IGNORED
        """
        event_type = (event_type or "").strip().lower()
        if event_type in EVENT_TYPE_KINDS:
            return EVENT_TYPE_KINDS[event_type]
        if event_type.startswith(REFUND_EVENT_PREFIX):
            return cls.REFUND
        return cls.IGNORED


REFUND_EVENT_PREFIX = "refund."

EVENT_TYPE_KINDS: dict[str, StripeEventKind] = {
    "checkout.session.completed": StripeEventKind.CHECKOUT_COMPLETED,
    "invoice.payment_succeeded": StripeEventKind.INVOICE_PAID,
    "customer.subscription.updated": StripeEventKind.SUBSCRIPTION_UPDATED,
    "charge.succeeded": StripeEventKind.CHARGE_SUCCEEDED,
    "charge.refunded": StripeEventKind.REFUND,
    "charge.refund.updated": StripeEventKind.REFUND,
}


__all__ = [
    "PaymentSessionState",
    "WebhookEventStatus",
    "PaymentMode",
    "StripeEventKind",
    "EVENT_TYPE_KINDS",
    "REFUND_EVENT_PREFIX",
]
