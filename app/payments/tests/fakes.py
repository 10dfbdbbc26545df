"""
In-memory PaymentGateway for service and webhook tests.

Lookups are served from dicts keyed by Stripe ID; an ID missing from its
dict raises StripeInvalidRequestError like an unknown object at Stripe.
Every call is recorded in `calls`. sign_payload() produces valid
Stripe-Signature headers for webhook tests.

Usage:
    gateway = FakeGateway()
    gateway.charges["ch_1"] = ChargeResult(id="ch_1", amount=1000, amount_refunded=1000)
    RefundReconciliationService.reconcile(event, gateway=gateway)
    assert ("retrieve_charge", "ch_1") in gateway.calls
"""

from __future__ import annotations

import hashlib
import hmac
import time

from django.conf import settings

from payments.adapters import (
    CheckoutSessionPage,
    CheckoutSessionResult,
    StripeAdapter,
)
from payments.exceptions import StripeInvalidRequestError


class FakeGateway:
    """PaymentGateway backed by dicts."""

    def __init__(self):
        self.charges = {}
        self.payment_intents = {}
        self.invoices_by_payment_intent = {}
        self.customers = {}
        self.checkout_pages = []
        self.created_sessions = []
        self.calls = []
        self.checkout_url = "https://checkout.stripe.com/c/pay/cs_test_fake"
        self.create_error = None

    def _get(self, store, key, operation):
        self.calls.append((operation, key))
        if key not in store:
            raise StripeInvalidRequestError(
                f"No such object: '{key}'", stripe_code="resource_missing"
            )
        return store[key]

    def create_checkout_session(self, params):
        self.calls.append(("create_checkout_session", params.client_reference_id))
        if self.create_error is not None:
            raise self.create_error
        self.created_sessions.append(params)
        return CheckoutSessionResult(
            id=f"cs_test_{len(self.created_sessions)}",
            url=self.checkout_url,
            client_reference_id=params.client_reference_id,
            status="open",
            payment_status="unpaid",
        )

    def list_checkout_sessions(self, created_after, starting_after=None, limit=100):
        self.calls.append(("list_checkout_sessions", starting_after))
        index = 0
        if starting_after is not None:
            index = next(
                i + 1
                for i, page in enumerate(self.checkout_pages)
                if page.last_id == starting_after
            )
        if index >= len(self.checkout_pages):
            return CheckoutSessionPage(sessions=[], has_more=False)
        return self.checkout_pages[index]

    def retrieve_charge(self, charge_id):
        return self._get(self.charges, charge_id, "retrieve_charge")

    def retrieve_payment_intent(self, payment_intent_id):
        return self._get(self.payment_intents, payment_intent_id, "retrieve_payment_intent")

    def find_invoice_by_payment_intent(self, payment_intent_id):
        self.calls.append(("find_invoice_by_payment_intent", payment_intent_id))
        return self.invoices_by_payment_intent.get(payment_intent_id)

    def retrieve_customer(self, customer_id):
        return self._get(self.customers, customer_id, "retrieve_customer")

    def verify_webhook_signature(self, payload, signature, tolerance=None):
        return StripeAdapter.verify_webhook_signature(payload, signature, tolerance)


def sign_payload(payload, secret=None, timestamp=None):
    """
    Build a Stripe-Signature header value for a webhook payload.

    Signs with STRIPE_WEBHOOK_SECRET unless a secret is given.
    """
    secret = secret or settings.STRIPE_WEBHOOK_SECRET
    timestamp = int(time.time()) if timestamp is None else timestamp
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
