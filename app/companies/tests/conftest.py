"""
Pytest fixtures for company tests.
"""

import pytest

from companies.choices import BillingPeriod
from companies.tests.factories import (
    CompanyFactory,
    CompanySubscriptionFactory,
    SubscriptionPlanFactory,
)


@pytest.fixture
def company(db):
    """Create a company without a subscription."""
    return CompanyFactory(company_name="Acme")


@pytest.fixture
def monthly_plan(db):
    """Create a monthly plan."""
    return SubscriptionPlanFactory(plan_name="Team", billing_period=BillingPeriod.MONTHLY)


@pytest.fixture
def yearly_plan(db):
    """Create a yearly plan."""
    return SubscriptionPlanFactory(plan_name="Team yearly", billing_period=BillingPeriod.YEARLY)


@pytest.fixture
def subscribed_company(db, monthly_plan):
    """Create a company with an active monthly subscription."""
    return CompanySubscriptionFactory(subscription_plan=monthly_plan).company
