"""
Pytest fixtures for invoice tests.
"""

import pytest

from authentication.tests.factories import UserFactory
from companies.tests.factories import CompanyFactory, SubscriptionPlanFactory
from invoices.tests.factories import InvoiceDataFactory


@pytest.fixture
def company(db):
    return CompanyFactory(company_name="Acme")


@pytest.fixture
def plan(db):
    return SubscriptionPlanFactory(plan_name="Team")


@pytest.fixture
def buyer(db, company):
    return UserFactory(email="buyer@acme.test", last_used_company=company)


@pytest.fixture
def paid_invoice(db, company, plan, buyer):
    """Initial invoice of a subscription purchase."""
    return InvoiceDataFactory(
        company=company,
        subscription_plan=plan,
        created_by=buyer,
        invoice_requested=True,
        payment_subscription_id="sub_test_123",
    )
