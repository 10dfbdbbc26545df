"""
Payments app for Stripe Checkout and webhook reconciliation.

This app handles:
- Checkout sessions for invoices (one-time and subscription)
- Payment session lifecycle and plan activation
- Renewals and refunds reported by Stripe webhooks
- Audit log of every inbound webhook

Related apps:
    - invoices: Invoice data being paid
    - companies: Subscription plans and company subscriptions
    - authentication: Billing contacts used to resolve companies

Usage:
    from payments.services import PaymentSessionService

    # Start a checkout for an invoice
    session = PaymentSessionService.start_checkout(invoice, created_by=user)

    # Handle a verified webhook event
    from payments.webhooks import dispatch_webhook

    kind, result = dispatch_webhook(event)
"""
