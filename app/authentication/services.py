"""
User lookups used when correlating Stripe customers with companies.

Stripe only knows the billing email of a customer; these lookups map that
email to a user and the user's last used company.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService

from authentication.models import User

if TYPE_CHECKING:
    from companies.models import Company


class UserLookupService(BaseService):
    """Read-only user queries for billing reconciliation."""

    @classmethod
    def get_by_email(cls, email: str | None) -> User | None:
        """
        Find a user by email, case-insensitively.

        Loads the last used company together with its subscription so the
        caller can inspect the plan without extra queries.
        """
        if not email:
            return None
        return (
            User.objects.select_related(
                "last_used_company",
                "last_used_company__platform_subscription",
                "last_used_company__platform_subscription__subscription_plan",
            )
            .filter(email__iexact=email.strip())
            .first()
        )

    @classmethod
    def get_last_used_company(cls, email: str | None) -> Company | None:
        """Return the last used company of the user with this email, if any."""
        user = cls.get_by_email(email)
        if user is None:
            return None
        return user.last_used_company
