"""
Tests for SubscriptionPlanService and billing period arithmetic.

Tests cover:
- Period end calculation for every billing period
- Applying a plan to a company without a subscription
- Renewal extension and repeated application of one renewal
- Plan change and re-activation after revocation
- Revocation
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import NotFoundError

from companies.choices import BillingPeriod, IntervalUnit
from companies.models import CompanySubscription
from companies.services import (
    SubscriptionPlanService,
    add_billing_period,
    plan_interval,
)
from companies.tests.factories import SubscriptionPlanFactory

START = datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Billing Period Arithmetic
# =============================================================================


class TestPlanInterval:
    """Tests for plan_interval mapping."""

    @pytest.mark.parametrize(
        ("billing_period", "expected"),
        [
            (BillingPeriod.DAILY, ("day", 1)),
            (BillingPeriod.WEEKLY, ("week", 1)),
            (BillingPeriod.MONTHLY, ("month", 1)),
            (BillingPeriod.EVERY_3_MONTHS, ("month", 3)),
            (BillingPeriod.EVERY_6_MONTHS, ("month", 6)),
            (BillingPeriod.YEARLY, ("year", 1)),
        ],
    )
    def test_maps_standard_periods(self, billing_period, expected):
        plan = SubscriptionPlanFactory.build(billing_period=billing_period)

        assert plan_interval(plan) == expected

    def test_custom_period_passes_through_unit_and_count(self):
        plan = SubscriptionPlanFactory.build(
            billing_period=BillingPeriod.CUSTOM,
            custom_interval=IntervalUnit.WEEK,
            custom_interval_count=2,
        )

        assert plan_interval(plan) == ("week", 2)


class TestAddBillingPeriod:
    """Tests for add_billing_period."""

    def test_monthly_clamps_to_end_of_february(self):
        plan = SubscriptionPlanFactory.build(billing_period=BillingPeriod.MONTHLY)

        assert add_billing_period(START, plan) == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_every_3_months(self):
        plan = SubscriptionPlanFactory.build(billing_period=BillingPeriod.EVERY_3_MONTHS)

        assert add_billing_period(START, plan) == datetime(2025, 4, 30, 12, 0, tzinfo=timezone.utc)

    def test_every_6_months_crosses_year(self):
        plan = SubscriptionPlanFactory.build(billing_period=BillingPeriod.EVERY_6_MONTHS)
        start = datetime(2025, 8, 15, tzinfo=timezone.utc)

        assert add_billing_period(start, plan) == datetime(2026, 2, 15, tzinfo=timezone.utc)

    def test_yearly(self):
        plan = SubscriptionPlanFactory.build(billing_period=BillingPeriod.YEARLY)

        assert add_billing_period(START, plan) == datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)

    def test_weekly_and_daily(self):
        weekly = SubscriptionPlanFactory.build(billing_period=BillingPeriod.WEEKLY)
        daily = SubscriptionPlanFactory.build(billing_period=BillingPeriod.DAILY)

        assert add_billing_period(START, weekly) == START + timedelta(weeks=1)
        assert add_billing_period(START, daily) == START + timedelta(days=1)


# =============================================================================
# Apply
# =============================================================================


class TestApply:
    """Tests for SubscriptionPlanService.apply."""

    def test_creates_subscription_for_company(self, company, monthly_plan):
        subscription = SubscriptionPlanService.apply(monthly_plan, company.id, START)

        assert subscription.company == company
        assert subscription.subscription_plan == monthly_plan
        assert subscription.active_from == START
        assert subscription.active_to == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)
        assert subscription.revoked_at is None

    def test_renewal_extends_active_window(self, company, monthly_plan):
        SubscriptionPlanService.apply(monthly_plan, company.id, START)
        renewal_start = datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)

        subscription = SubscriptionPlanService.apply(monthly_plan, company.id, renewal_start)

        assert subscription.active_from == START
        assert subscription.active_to == datetime(2025, 3, 28, 12, 0, tzinfo=timezone.utc)

    def test_repeated_application_does_not_stack_periods(self, company, monthly_plan):
        """Several Stripe events for one renewal must not add several months."""
        SubscriptionPlanService.apply(monthly_plan, company.id, START)
        SubscriptionPlanService.apply(monthly_plan, company.id, START)
        subscription = SubscriptionPlanService.apply(
            monthly_plan, company.id, START - timedelta(minutes=5)
        )

        assert subscription.active_to == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)
        assert CompanySubscription.objects.filter(company=company).count() == 1

    def test_plan_change_restarts_window(self, company, monthly_plan, yearly_plan):
        SubscriptionPlanService.apply(monthly_plan, company.id, START)
        switch_at = START + timedelta(days=3)

        subscription = SubscriptionPlanService.apply(yearly_plan, company.id, switch_at)

        assert subscription.subscription_plan == yearly_plan
        assert subscription.active_from == switch_at
        assert subscription.active_to == add_billing_period(switch_at, yearly_plan)

    def test_reactivates_revoked_subscription(self, company, monthly_plan):
        SubscriptionPlanService.apply(monthly_plan, company.id, START)
        SubscriptionPlanService.revoke(company.id)
        later = START + timedelta(days=60)

        subscription = SubscriptionPlanService.apply(monthly_plan, company.id, later)

        assert subscription.revoked_at is None
        assert subscription.active_from == later
        assert subscription.is_active_at(later + timedelta(days=1))

    def test_unknown_company_raises_not_found(self, db, monthly_plan):
        with pytest.raises(NotFoundError) as exc_info:
            SubscriptionPlanService.apply(monthly_plan, uuid.uuid4(), START)

        assert exc_info.value.error_code == "COMPANY_NOT_FOUND"


# =============================================================================
# Revoke
# =============================================================================


class TestRevoke:
    """Tests for SubscriptionPlanService.revoke."""

    def test_revokes_access_and_keeps_plan(self, subscribed_company, monthly_plan):
        subscription = SubscriptionPlanService.revoke(subscribed_company.id)

        subscription.refresh_from_db()
        assert subscription.revoked_at is not None
        assert subscription.subscription_plan == monthly_plan
        assert not subscription.is_active_at()

    def test_returns_none_without_subscription(self, company):
        assert SubscriptionPlanService.revoke(company.id) is None
