"""
Test configuration and fixtures for authentication tests.
"""

import pytest

from authentication.tests.factories import UserFactory
from companies.tests.factories import CompanyFactory


@pytest.fixture
def company(db):
    """Create a company without a subscription."""
    return CompanyFactory(company_name="Acme Sp. z o.o.")


@pytest.fixture
def billing_user(db, company):
    """Create a user whose last used company is `company`."""
    return UserFactory(email="billing@acme.test", last_used_company=company)
