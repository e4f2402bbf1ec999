"""
URL configuration for the payments app.

Routes:
    - connect/...       Freelancer onboarding
    - jobs/{id}/...     Escrow hold and release
    - payouts/, balance/  Connected account funds
    - subscriptions/... Checkout and cancellation
    - POST /webhooks/stripe/ - Stripe webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Connect
    path("connect/accounts/", views.ConnectAccountView.as_view(), name="connect-account"),
    path(
        "connect/accounts/<str:account_id>/status/",
        views.ConnectStatusView.as_view(),
        name="connect-status",
    ),
    path(
        "connect/account-links/",
        views.AccountLinkView.as_view(),
        name="connect-account-link",
    ),
    # Escrow
    path("jobs/<uuid:job_id>/hold/", views.JobHoldView.as_view(), name="job-hold"),
    path("jobs/<uuid:job_id>/release/", views.JobReleaseView.as_view(), name="job-release"),
    # Funds
    path("payouts/", views.PayoutView.as_view(), name="payout"),
    path("balance/", views.BalanceView.as_view(), name="balance"),
    # Subscriptions
    path(
        "subscriptions/checkout/",
        views.SubscriptionCheckoutView.as_view(),
        name="subscription-checkout",
    ),
    path(
        "subscriptions/cancel/",
        views.SubscriptionCancelView.as_view(),
        name="subscription-cancel",
    ),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
