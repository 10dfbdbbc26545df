import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("invoices", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentOperatorLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("operator", models.CharField(default="Stripe webhook", help_text="Source of the callback", max_length=50)),
                ("event", models.CharField(db_index=True, help_text="Stripe event type or webhook error description", max_length=255)),
                ("event_kind", models.CharField(blank=True, choices=[("checkout_completed", "Checkout Session Completed"), ("invoice_paid", "Invoice Payment Succeeded"), ("subscription_updated", "Customer Subscription Updated"), ("charge_succeeded", "Charge Succeeded"), ("refund", "Refund"), ("ignored", "Ignored")], default="", help_text="Classification used for dispatch", max_length=30)),
                ("stripe_event_id", models.CharField(blank=True, help_text="Stripe Event ID (evt_xxx) - unique constraint for redelivery", max_length=255, null=True, unique=True)),
                ("received_at", models.DateTimeField(default=django.utils.timezone.now, help_text="When the callback was last received")),
                ("json_event", models.TextField(blank=True, default="", help_text="Raw request body")),
                ("status", models.CharField(choices=[("received", "Received"), ("processed", "Processed"), ("ignored", "Ignored"), ("skipped", "Skipped"), ("failed", "Failed"), ("rejected", "Rejected")], db_index=True, default="received", help_text="Current processing status", max_length=20)),
                ("outcome", models.TextField(blank=True, default="", help_text="Summary of what the handler did")),
                ("error_message", models.TextField(blank=True, help_text="Error message if processing failed or was skipped", null=True)),
                ("processed_at", models.DateTimeField(blank=True, help_text="When processing finished", null=True)),
                ("delivery_count", models.PositiveSmallIntegerField(default=1, help_text="Number of deliveries of this Stripe event")),
            ],
            options={
                "verbose_name": "Payment Operator Log",
                "verbose_name_plural": "Payment Operator Logs",
                "ordering": ["-received_at"],
                "indexes": [models.Index(fields=["status", "received_at"], name="operator_log_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="PaymentSession",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("processor", models.CharField(default="Stripe", help_text="Payment processor name", max_length=50)),
                ("mode", models.CharField(choices=[("payment", "One-time Payment"), ("subscription", "Subscription")], default="subscription", help_text="Checkout mode (one-time payment or subscription)", max_length=20)),
                ("state", django_fsm.FSMField(choices=[("new", "New"), ("paid", "Paid"), ("refunded", "Refunded"), ("cancelled", "Cancelled"), ("expired", "Expired")], db_index=True, default="new", help_text="Current state of the payment session (managed by FSM)", max_length=50, protected=True)),
                ("is_renewal", models.BooleanField(default=False, help_text="Created from a subscription renewal webhook")),
                ("operator_transaction_id", models.CharField(blank=True, db_index=True, default="", help_text="Stripe Checkout Session ID (cs_xxx)", max_length=255)),
                ("checkout_url", models.TextField(blank=True, default="", help_text="Hosted Stripe Checkout URL")),
                ("payment_subscription_id", models.CharField(blank=True, db_index=True, default="", help_text="Stripe Subscription ID (sub_xxx)", max_length=255)),
                ("payment_event_id", models.CharField(blank=True, db_index=True, default="", help_text="Stripe Event ID (evt_xxx) that paid or created this session", max_length=255)),
                ("paid_at", models.DateTimeField(blank=True, help_text="When the payment completed", null=True)),
                ("refunded_at", models.DateTimeField(blank=True, help_text="When the payment was fully refunded", null=True)),
                ("closed_at", models.DateTimeField(blank=True, help_text="When the session was cancelled or expired", null=True)),
                ("created_by", models.ForeignKey(blank=True, help_text="User who started the checkout", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="payment_sessions", to=settings.AUTH_USER_MODEL)),
                ("invoice", models.ForeignKey(help_text="Invoice data being paid", on_delete=django.db.models.deletion.PROTECT, related_name="payment_sessions", to="invoices.invoicedata")),
            ],
            options={
                "verbose_name": "Payment Session",
                "verbose_name_plural": "Payment Sessions",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["state", "paid_at"], name="payment_session_state_paid_idx")],
            },
        ),
    ]
