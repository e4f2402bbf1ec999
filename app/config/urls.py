"""
Root URLconf.

    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints (simplejwt)
        token/                     - Obtain access/refresh pair
        token/refresh/             - Rotate refresh token
        token/verify/              - Verify a token
    /api/v1/payments/              - Payment endpoints
        connect/accounts/          - Create connected account (POST)
        connect/accounts/{id}/status/ - Refresh connected account status (GET)
        connect/account-links/     - New onboarding link (POST)
        jobs/{id}/hold/            - Pay for a job into escrow (POST)
        jobs/{id}/release/         - Release escrow to the freelancer (POST)
        payouts/                   - Pay out connected balance (POST)
        balance/                   - Connected balance (GET)
        subscriptions/checkout/    - Start subscription checkout (POST)
        subscriptions/cancel/      - Cancel subscription at period end (POST)
        webhooks/stripe/           - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (JWT)
    path("auth/", include("authentication.urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Admin"
admin.site.site_title = "Marketplace Admin Portal"
admin.site.index_title = "Welcome to the Marketplace Admin Portal"
