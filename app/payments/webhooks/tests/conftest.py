"""
Pytest fixtures for webhook tests.

Reuses the company, plan and payment session fixtures of the payment
service tests, and provides signed webhook requests plus a FakeGateway
installed as the handlers' gateway.
"""

import json

import pytest
from django.test import Client

from payments.tests.conftest import (  # noqa: F401
    buyer,
    company,
    invoice,
    new_session,
    paid_session,
    plan,
)
from payments.tests.fakes import FakeGateway, sign_payload

WEBHOOK_URL = "/api/v1/payments/webhooks/stripe/"
EVENT_CREATED = 1743501600  # 2025-04-01 10:00 UTC


def make_event(event_type, obj, event_id="evt_test_1", created=EVENT_CREATED):
    """Build a Stripe event dict."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": created,
        "data": {"object": obj},
    }


@pytest.fixture
def handler_gateway(monkeypatch):
    """FakeGateway used by the webhook handlers for Stripe lookups."""
    fake = FakeGateway()
    monkeypatch.setattr("payments.webhooks.handlers.gateway", fake)
    return fake


@pytest.fixture
def post_webhook(db):
    """
    POST a signed event to the webhook endpoint.

    Usage:
        response = post_webhook(event)
        response = post_webhook(event, signature="t=1,v1=forged")
    """
    client = Client()

    def _post(event, signature=None):
        payload = event if isinstance(event, str) else json.dumps(event)
        headers = {}
        signature = sign_payload(payload) if signature is None else signature
        if signature:
            headers["HTTP_STRIPE_SIGNATURE"] = signature
        return client.post(WEBHOOK_URL, data=payload, content_type="application/json", **headers)

    return _post
