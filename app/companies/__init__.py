"""
Companies app: tenant companies and their platform subscription plans.

This app owns:
- Company: the billed tenant
- SubscriptionPlan: a purchasable platform plan with a billing period
- CompanySubscription: the plan a company currently has and its active window

Related apps:
    - authentication: users point at their last used company
    - invoices: invoice data is issued per company and plan
    - payments: Stripe events apply and revoke plans through SubscriptionPlanService

Usage:
    from companies.services import SubscriptionPlanService

    SubscriptionPlanService.apply(plan, company.id, starting_from=invoice_created)
    SubscriptionPlanService.revoke(company.id)
"""
