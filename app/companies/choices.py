"""
Choice enums for company subscription plans.

BillingPeriod is shared with the payments app, which maps it to Stripe
recurring intervals when building Checkout sessions.
"""

from django.db import models


class BillingPeriod(models.TextChoices):
    """
    How often a subscription plan is billed.

    Multi-month periods are expressed to Stripe as a "month" interval
    with an interval count. CUSTOM plans carry their own interval unit
    and count on the plan (custom_interval, custom_interval_count).
    """

    DAILY = "daily", "Daily"
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"
    EVERY_3_MONTHS = "every_3_months", "Every 3 months"
    EVERY_6_MONTHS = "every_6_months", "Every 6 months"
    YEARLY = "yearly", "Yearly"
    CUSTOM = "custom", "Custom"


class IntervalUnit(models.TextChoices):
    """Interval units understood by Stripe recurring prices."""

    DAY = "day", "Day"
    WEEK = "week", "Week"
    MONTH = "month", "Month"
    YEAR = "year", "Year"


__all__ = [
    "BillingPeriod",
    "IntervalUnit",
]
