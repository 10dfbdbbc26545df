"""
Tests for payments app.

This package contains test modules for:
- test_models.py: PaymentSession and PaymentOperatorLog model tests
- test_checkout_service.py: Stripe Checkout request building and confirmation
- test_payment_session_service.py: Payment session lifecycle
- test_renewal_service.py: Subscription renewals reported by Stripe
- test_refund_service.py: Refund reconciliation
- test_audit_log_service.py: Webhook audit log
- test_views.py: Checkout and confirmation API tests

Usage:
    pytest payments/tests/
    pytest payments/tests/test_payment_session_service.py
"""
