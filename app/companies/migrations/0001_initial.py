import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("company_name", models.CharField(help_text="Company display name", max_length=255)),
                ("is_active", models.BooleanField(default=True, help_text="Whether the company account is enabled")),
            ],
            options={
                "verbose_name": "Company",
                "verbose_name_plural": "Companies",
                "ordering": ["company_name"],
            },
        ),
        migrations.CreateModel(
            name="SubscriptionPlan",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("plan_name", models.CharField(help_text="Plan name shown to customers", max_length=255)),
                ("price", models.DecimalField(decimal_places=2, help_text="Price per billing period in major currency units", max_digits=12)),
                ("currency", models.CharField(default="usd", help_text="ISO 4217 currency code", max_length=3)),
                ("billing_period", models.CharField(choices=[("daily", "Daily"), ("weekly", "Weekly"), ("monthly", "Monthly"), ("every_3_months", "Every 3 months"), ("every_6_months", "Every 6 months"), ("yearly", "Yearly"), ("custom", "Custom")], default="monthly", help_text="How often the plan renews", max_length=20)),
                ("custom_interval", models.CharField(blank=True, choices=[("day", "Day"), ("week", "Week"), ("month", "Month"), ("year", "Year")], default="", help_text="Interval unit used when billing_period is custom", max_length=10)),
                ("custom_interval_count", models.PositiveSmallIntegerField(default=1, help_text="Interval count used when billing_period is custom")),
                ("is_active", models.BooleanField(default=True, help_text="Whether the plan can still be purchased")),
            ],
            options={
                "verbose_name": "Subscription Plan",
                "verbose_name_plural": "Subscription Plans",
                "ordering": ["plan_name"],
            },
        ),
        migrations.CreateModel(
            name="CompanySubscription",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("active_from", models.DateTimeField(blank=True, help_text="Start of the current active window", null=True)),
                ("active_to", models.DateTimeField(blank=True, db_index=True, help_text="End of the current active window", null=True)),
                ("revoked_at", models.DateTimeField(blank=True, help_text="When access was revoked", null=True)),
                ("company", models.OneToOneField(help_text="The subscribed company", on_delete=django.db.models.deletion.CASCADE, related_name="platform_subscription", to="companies.company")),
                ("subscription_plan", models.ForeignKey(blank=True, help_text="Currently assigned plan", null=True, on_delete=django.db.models.deletion.PROTECT, related_name="company_subscriptions", to="companies.subscriptionplan")),
            ],
            options={
                "verbose_name": "Company Subscription",
                "verbose_name_plural": "Company Subscriptions",
            },
        ),
    ]
