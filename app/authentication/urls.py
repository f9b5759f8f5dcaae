"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/token/          - Obtain JWT pair (POST)
    /api/v1/auth/token/refresh/  - Refresh access token (POST)
    /api/v1/auth/me/             - Current user (GET)
"""

from django.urls import path

from authentication.views import (
    CurrentUserView,
    TokenObtainView,
    TokenRefreshAccessView,
)

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshAccessView.as_view(), name="token-refresh"),
    path("me/", CurrentUserView.as_view(), name="me"),
]
