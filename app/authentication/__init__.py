"""
Authentication app: email-based users of the billing back-office.

Users are correlated with Stripe customers by email; each user remembers
the company they last worked in, which is the company billed when a
Stripe event only carries a billing email.
"""
