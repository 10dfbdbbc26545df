"""
Company and subscription plan models.

Usage:
    from companies.models import Company, CompanySubscription, SubscriptionPlan

    plan = SubscriptionPlan.objects.create(
        plan_name="Team",
        price=Decimal("49.00"),
        currency="usd",
        billing_period=BillingPeriod.MONTHLY,
    )
    company = Company.objects.create(company_name="Acme")
    company.current_subscription_plan  # None until a plan is applied
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from companies.choices import BillingPeriod, IntervalUnit

if TYPE_CHECKING:
    from datetime import datetime


class Company(UUIDPrimaryKeyMixin, BaseModel):
    """
    A billed tenant of the platform.

    Fields:
        company_name: Display name used in invoices and logs
        is_active: Whether the company account is enabled
    """

    company_name = models.CharField(
        max_length=255,
        help_text="Company display name",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether the company account is enabled",
    )

    class Meta:
        ordering = ["company_name"]
        verbose_name = "Company"
        verbose_name_plural = "Companies"

    def __str__(self) -> str:
        return self.company_name

    @property
    def current_subscription(self) -> CompanySubscription | None:
        """Return the company's subscription row, if one was ever created."""
        try:
            return self.platform_subscription
        except CompanySubscription.DoesNotExist:
            return None

    @property
    def current_subscription_plan(self) -> SubscriptionPlan | None:
        """Return the plan currently assigned to the company, if any."""
        subscription = self.current_subscription
        if subscription is None:
            return None
        return subscription.subscription_plan


class SubscriptionPlan(UUIDPrimaryKeyMixin, BaseModel):
    """
    A platform plan companies subscribe to.

    Fields:
        plan_name: Product name shown on Checkout and invoices
        price: Price per billing period in major currency units
        currency: ISO 4217 currency code (lowercase, as Stripe expects)
        billing_period: How often the plan renews
        custom_interval: Interval unit for CUSTOM billing periods
        custom_interval_count: Interval count for CUSTOM billing periods
        is_active: Whether the plan can still be purchased
    """

    plan_name = models.CharField(
        max_length=255,
        help_text="Plan name shown to customers",
    )

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Price per billing period in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code",
    )

    billing_period = models.CharField(
        max_length=20,
        choices=BillingPeriod.choices,
        default=BillingPeriod.MONTHLY,
        help_text="How often the plan renews",
    )

    custom_interval = models.CharField(
        max_length=10,
        choices=IntervalUnit.choices,
        blank=True,
        default="",
        help_text="Interval unit used when billing_period is custom",
    )

    custom_interval_count = models.PositiveSmallIntegerField(
        default=1,
        help_text="Interval count used when billing_period is custom",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether the plan can still be purchased",
    )

    class Meta:
        ordering = ["plan_name"]
        verbose_name = "Subscription Plan"
        verbose_name_plural = "Subscription Plans"

    def __str__(self) -> str:
        return f"{self.plan_name} ({self.get_billing_period_display()})"


class CompanySubscription(UUIDPrimaryKeyMixin, BaseModel):
    """
    The platform subscription of a single company.

    One row per company. The row survives revocation so the assigned plan
    stays visible for renewal and refund correlation.

    Fields:
        company: The subscribed company
        subscription_plan: Currently assigned plan (None = no active plan)
        active_from: Start of the current active window
        active_to: End of the current active window
        revoked_at: When access was revoked after a full refund
    """

    company = models.OneToOneField(
        Company,
        on_delete=models.CASCADE,
        related_name="platform_subscription",
        help_text="The subscribed company",
    )

    subscription_plan = models.ForeignKey(
        SubscriptionPlan,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="company_subscriptions",
        help_text="Currently assigned plan",
    )

    active_from = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Start of the current active window",
    )

    active_to = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="End of the current active window",
    )

    revoked_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When access was revoked",
    )

    class Meta:
        verbose_name = "Company Subscription"
        verbose_name_plural = "Company Subscriptions"

    def __str__(self) -> str:
        return f"CompanySubscription({self.company_id}, plan={self.subscription_plan_id})"

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_active_at(self, moment: datetime | None = None) -> bool:
        """Check whether the subscription grants access at the given moment."""
        moment = moment or timezone.now()
        return (
            self.subscription_plan_id is not None
            and not self.is_revoked
            and self.active_to is not None
            and self.active_to > moment
        )
