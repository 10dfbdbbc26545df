"""
Subscription plan service for companies.

Applies a plan to a company (activation and renewal) and revokes access
after a full refund. Both operations are safe to repeat for the same
Stripe event: applying never shortens an already longer active window,
and revoking an already revoked subscription only refreshes the timestamp.

Usage:
    from companies.services import SubscriptionPlanService, add_billing_period

    SubscriptionPlanService.apply(plan, company.id, starting_from=paid_at)
    SubscriptionPlanService.revoke(company.id)

    add_billing_period(start, plan)  # end of one billing period
"""

from __future__ import annotations

import calendar
from datetime import timedelta
from typing import TYPE_CHECKING

from django.utils import timezone

from core.exceptions import NotFoundError
from core.services import BaseService

from companies.choices import BillingPeriod, IntervalUnit
from companies.models import Company, CompanySubscription

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from companies.models import SubscriptionPlan


# Billing period -> (interval unit, interval count)
BILLING_PERIOD_INTERVALS: dict[str, tuple[str, int]] = {
    BillingPeriod.DAILY: (IntervalUnit.DAY, 1),
    BillingPeriod.WEEKLY: (IntervalUnit.WEEK, 1),
    BillingPeriod.MONTHLY: (IntervalUnit.MONTH, 1),
    BillingPeriod.EVERY_3_MONTHS: (IntervalUnit.MONTH, 3),
    BillingPeriod.EVERY_6_MONTHS: (IntervalUnit.MONTH, 6),
    BillingPeriod.YEARLY: (IntervalUnit.YEAR, 1),
}


def plan_interval(plan: SubscriptionPlan) -> tuple[str, int]:
    """
    Resolve the (unit, count) interval of a plan.

    CUSTOM plans pass their own unit and count through unchanged.
    """
    if plan.billing_period == BillingPeriod.CUSTOM:
        return plan.custom_interval or IntervalUnit.MONTH, max(plan.custom_interval_count, 1)
    return BILLING_PERIOD_INTERVALS[plan.billing_period]


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def add_billing_period(start: datetime, plan: SubscriptionPlan) -> datetime:
    """
    Return the end of one billing period of the plan starting at start.

    Month arithmetic clamps to the last day of shorter months
    (Jan 31 + 1 month = Feb 28/29).
    """
    unit, count = plan_interval(plan)
    if unit == IntervalUnit.DAY:
        return start + timedelta(days=count)
    if unit == IntervalUnit.WEEK:
        return start + timedelta(weeks=count)
    if unit == IntervalUnit.YEAR:
        return _add_months(start, 12 * count)
    return _add_months(start, count)


class SubscriptionPlanService(BaseService):
    """
    Applies and revokes platform subscription plans.

    All methods are classmethods; no instance state is kept.
    """

    @classmethod
    def apply(
        cls,
        plan: SubscriptionPlan,
        company_id: UUID,
        starting_from: datetime | None = None,
    ) -> CompanySubscription:
        """
        Apply (or extend) a plan for a company from the given moment.

        The new window ends one billing period after starting_from. If the
        company already has the same plan with a window that ends later,
        that window is kept, so repeated deliveries of one renewal do not
        stack periods.

        Args:
            plan: Plan to apply
            company_id: Company primary key
            starting_from: Effective start (defaults to now)

        Returns:
            The updated CompanySubscription

        Raises:
            NotFoundError: Company does not exist
        """
        logger = cls.get_logger()
        starting_from = starting_from or timezone.now()
        period_end = add_billing_period(starting_from, plan)

        with cls.atomic():
            company = Company.objects.filter(pk=company_id).first()
            if company is None:
                raise NotFoundError(
                    f"Company {company_id} not found",
                    error_code="COMPANY_NOT_FOUND",
                    details={"company_id": str(company_id)},
                )

            subscription, created = (
                CompanySubscription.objects.select_for_update().get_or_create(
                    company=company
                )
            )

            plan_changed = subscription.subscription_plan_id != plan.pk
            if created or plan_changed or subscription.is_revoked:
                subscription.active_from = starting_from
                subscription.active_to = period_end
            elif subscription.active_to is None or subscription.active_to < period_end:
                subscription.active_to = period_end
            else:
                logger.info(
                    "Subscription already covers requested period",
                    extra={
                        "company_id": str(company_id),
                        "plan_id": str(plan.pk),
                        "active_to": subscription.active_to.isoformat(),
                    },
                )

            subscription.subscription_plan = plan
            subscription.revoked_at = None
            subscription.save()

        logger.info(
            "Applied subscription plan",
            extra={
                "company_id": str(company_id),
                "plan_id": str(plan.pk),
                "starting_from": starting_from.isoformat(),
                "active_to": subscription.active_to.isoformat(),
            },
        )
        return subscription

    @classmethod
    def revoke(cls, company_id: UUID) -> CompanySubscription | None:
        """
        Revoke subscription access for a company immediately.

        The plan reference is kept for later correlation; access ends
        because active_to is moved to now and revoked_at is set.

        Returns:
            The revoked CompanySubscription, or None if the company never
            had one
        """
        logger = cls.get_logger()
        now = timezone.now()

        with cls.atomic():
            subscription = (
                CompanySubscription.objects.select_for_update()
                .filter(company_id=company_id)
                .first()
            )
            if subscription is None:
                logger.warning(
                    "No subscription to revoke",
                    extra={"company_id": str(company_id)},
                )
                return None

            subscription.revoked_at = now
            subscription.active_to = now
            subscription.save(update_fields=["revoked_at", "active_to", "updated_at"])

        logger.info(
            "Revoked subscription",
            extra={
                "company_id": str(company_id),
                "plan_id": str(subscription.subscription_plan_id),
            },
        )
        return subscription
