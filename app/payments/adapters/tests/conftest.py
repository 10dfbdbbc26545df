"""
Pytest fixtures for Stripe adapter tests.

This module provides fixtures for testing the Stripe adapter, including
mock Stripe API responses, error conditions and webhook payloads.

Sections:
    - Mock Stripe Objects
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
    - Webhook Payload Fixtures
"""

import json
from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Mock Stripe Objects
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with attribute access."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@dataclass
class MockStripeList:
    """Mock Stripe list response with data attribute."""

    items: list[Any]
    has_more: bool = False

    @property
    def data(self) -> list[Any]:
        return self.items


@pytest.fixture
def mock_checkout_session():
    """Create a mock Checkout Session response."""

    def _create(
        id: str = "cs_test_123",
        client_reference_id: str = "6f1c1e1a-3c1e-4d3c-9a55-0f4a1b2c3d4e",
        payment_status: str = "unpaid",
        status: str = "open",
        subscription: Any = None,
        created: int = 1740823200,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "checkout.session",
                "url": f"https://checkout.stripe.com/c/pay/{id}",
                "client_reference_id": client_reference_id,
                "payment_status": payment_status,
                "status": status,
                "subscription": subscription,
                "customer_details": {"email": "billing@acme.test"},
                "created": created,
            }
        )

    return _create


@pytest.fixture
def mock_charge():
    """Create a mock Charge response."""

    def _create(
        id: str = "ch_test_123",
        amount: int = 4900,
        amount_refunded: int = 0,
        payment_intent: Any = "pi_test_123",
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "charge",
                "amount": amount,
                "amount_captured": amount,
                "amount_refunded": amount_refunded,
                "currency": "usd",
                "payment_intent": payment_intent,
                "customer": "cus_test_123",
                "billing_details": {"email": "billing@acme.test"},
                "receipt_email": None,
            }
        )

    return _create


@pytest.fixture
def mock_invoice():
    """Create a mock Invoice response (current API shape)."""

    def _create(
        id: str = "in_test_123",
        subscription: str = "sub_test_123",
        billing_reason: str = "subscription_cycle",
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "invoice",
                "parent": {
                    "type": "subscription_details",
                    "subscription_details": {"subscription": subscription},
                },
                "customer": "cus_test_123",
                "customer_email": "billing@acme.test",
                "billing_reason": billing_reason,
                "created": 1743501600,
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such charge: 'ch_missing'",
        param: str | None = "id",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    """Create a Stripe RateLimitError."""
    return stripe.RateLimitError(message="Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    """Create a Stripe APIConnectionError."""
    return stripe.APIConnectionError(message="Could not connect to Stripe.")


@pytest.fixture
def api_timeout_error():
    """Create a Stripe APIConnectionError caused by a timeout."""
    return stripe.APIConnectionError(message="Request timed out after 10 seconds.")


@pytest.fixture
def api_error():
    """Create a Stripe APIError."""
    return stripe.APIError(message="Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    """Create a Stripe AuthenticationError."""
    return stripe.AuthenticationError(message="Invalid API Key provided.")


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_stripe_http_client():
    """Keep the adapter from building a real HTTP client."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_checkout_session(mock_checkout_session):
    """Mock stripe.checkout.Session API."""
    with patch("stripe.checkout.Session") as mock:
        mock.create.return_value = mock_checkout_session()
        mock.list.return_value = MockStripeList(items=[], has_more=False)
        yield mock


@pytest.fixture
def mock_stripe_charge(mock_charge):
    """Mock stripe.Charge API."""
    with patch("stripe.Charge") as mock:
        mock.retrieve.return_value = mock_charge()
        yield mock


@pytest.fixture
def mock_stripe_invoice_lookup(mock_invoice):
    """Mock stripe.InvoicePayment and stripe.Invoice APIs."""
    with patch("stripe.InvoicePayment") as invoice_payment, patch("stripe.Invoice") as invoice:
        invoice_payment.list.return_value = MockStripeList(
            items=[MockStripeObject({"id": "inpay_test_123", "invoice": "in_test_123"})]
        )
        invoice.retrieve.return_value = mock_invoice()
        yield invoice_payment, invoice


# =============================================================================
# Webhook Payload Fixtures
# =============================================================================


@pytest.fixture
def event_payload():
    """Serialized Stripe event."""
    return json.dumps(
        {
            "id": "evt_test_123",
            "object": "event",
            "type": "invoice.payment_succeeded",
            "created": 1743501600,
            "data": {"object": {"id": "in_test_123", "object": "invoice"}},
        }
    )
