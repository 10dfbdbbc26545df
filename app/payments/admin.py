"""
Payment admin configuration.

Registers payment sessions and the webhook audit log with the Django admin.
"""

from django.contrib import admin

from payments.models import PaymentOperatorLog, PaymentSession

__all__ = [
    "PaymentOperatorLogAdmin",
    "PaymentSessionAdmin",
]


@admin.register(PaymentSession)
class PaymentSessionAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentSession.

    State is managed by the FSM and cannot be edited directly.
    """

    list_display = [
        "id",
        "invoice",
        "state",
        "mode",
        "is_renewal",
        "operator_transaction_id",
        "paid_at",
        "created_at",
    ]
    list_filter = ["state", "mode", "is_renewal", "processor"]
    search_fields = [
        "id",
        "operator_transaction_id",
        "payment_subscription_id",
        "payment_event_id",
        "invoice__company__company_name",
    ]
    readonly_fields = [
        "id",
        "state",
        "paid_at",
        "refunded_at",
        "closed_at",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["invoice", "created_by"]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "invoice", "created_by", "processor", "mode", "is_renewal"),
            },
        ),
        (
            "Stripe",
            {
                "fields": (
                    "operator_transaction_id",
                    "checkout_url",
                    "payment_subscription_id",
                    "payment_event_id",
                ),
            },
        ),
        (
            "Status",
            {
                "fields": ("state", "paid_at", "refunded_at", "closed_at"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


@admin.register(PaymentOperatorLog)
class PaymentOperatorLogAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentOperatorLog.

    Provides visibility into webhook processing status.
    Log entries are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event",
        "status",
        "delivery_count",
        "received_at",
        "processed_at",
    ]
    list_filter = ["status", "event_kind", "received_at"]
    search_fields = ["id", "stripe_event_id", "event", "outcome"]
    readonly_fields = [
        "id",
        "operator",
        "event",
        "event_kind",
        "stripe_event_id",
        "received_at",
        "json_event",
        "status",
        "outcome",
        "error_message",
        "processed_at",
        "delivery_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-received_at"]

    def has_add_permission(self, request):
        return False
