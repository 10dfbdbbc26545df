import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("companies", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InvoiceData",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("title", models.CharField(help_text="Line title printed on the invoice", max_length=255)),
                ("amount", models.DecimalField(decimal_places=2, help_text="Gross amount in major currency units", max_digits=12)),
                ("currency", models.CharField(default="usd", help_text="ISO 4217 currency code", max_length=3)),
                ("invoice_requested", models.BooleanField(default=False, help_text="Whether the customer asked for a formal invoice")),
                ("is_renewal", models.BooleanField(default=False, help_text="Created from a subscription renewal")),
                ("is_corrective", models.BooleanField(db_index=True, default=False, help_text="Correction issued after a refund")),
                ("payment_subscription_id", models.CharField(blank=True, db_index=True, default="", help_text="Stripe Subscription ID (sub_xxx)", max_length=255)),
                ("service_period_end", models.DateField(blank=True, help_text="Last day covered by this invoice", null=True)),
                ("company", models.ForeignKey(help_text="Billed company", on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="companies.company")),
                ("corrected_invoice", models.ForeignKey(blank=True, help_text="Invoice this correction refers to", null=True, on_delete=django.db.models.deletion.PROTECT, related_name="corrections", to="invoices.invoicedata")),
                ("created_by", models.ForeignKey(blank=True, help_text="User who initiated the purchase", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices", to=settings.AUTH_USER_MODEL)),
                ("subscription_plan", models.ForeignKey(blank=True, help_text="Plan being paid for", null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="companies.subscriptionplan")),
            ],
            options={
                "verbose_name": "Invoice Data",
                "verbose_name_plural": "Invoice Data",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["company", "is_corrective", "created_at"], name="invoice_company_corrective_idx")],
            },
        ),
    ]
