"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/token/          - Obtain JWT access/refresh pair (POST)
    /api/v1/auth/token/refresh/  - Rotate refresh token (POST)
    /api/v1/auth/token/verify/   - Verify a token (POST)
"""

from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("token/verify/", TokenVerifyView.as_view(), name="token-verify"),
]
