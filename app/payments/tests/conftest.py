"""
Pytest fixtures for payment service tests.

Provides a company with a buyer and a plan, the invoice of its first
purchase, payment sessions in the common states, and a FakeGateway.
"""

import pytest
from django.utils import timezone

from authentication.tests.factories import UserFactory
from companies.tests.factories import CompanyFactory, SubscriptionPlanFactory
from invoices.tests.factories import InvoiceDataFactory
from payments.state_machines import PaymentSessionState
from payments.tests.factories import PaymentSessionFactory
from payments.tests.fakes import FakeGateway


# =============================================================================
# Company Fixtures
# =============================================================================


@pytest.fixture
def company(db):
    return CompanyFactory(company_name="Acme")


@pytest.fixture
def plan(db):
    """Monthly plan at 49.00 USD."""
    return SubscriptionPlanFactory(plan_name="Team")


@pytest.fixture
def buyer(db, company):
    return UserFactory(email="billing@acme.test", last_used_company=company)


@pytest.fixture
def invoice(db, company, plan, buyer):
    """Invoice data of the initial plan purchase."""
    return InvoiceDataFactory(company=company, subscription_plan=plan, created_by=buyer)


# =============================================================================
# Payment Session Fixtures
# =============================================================================


@pytest.fixture
def new_session(db, invoice):
    """Payment session waiting for Checkout."""
    return PaymentSessionFactory(invoice=invoice)


@pytest.fixture
def paid_session(db, invoice):
    """Paid subscription checkout for the initial invoice."""
    invoice.payment_subscription_id = "sub_test_123"
    invoice.save()
    return PaymentSessionFactory(
        invoice=invoice,
        state=PaymentSessionState.PAID,
        paid_at=timezone.now(),
        payment_subscription_id="sub_test_123",
    )


# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def gateway():
    return FakeGateway()
