"""
Authentication views.

This module provides API views for:
- JWT token issue and refresh (djangorestframework-simplejwt)
- The current user's account

Related files:
    - serializers.py: Request/response serialization
    - urls.py: URL routing

Note:
    Chat endpoints authenticate with the access token issued here, either as
    an "Authorization: Bearer <token>" header or, for WebSockets, through the
    ?token= query string (see chat.middleware).
"""

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from authentication.serializers import UserSerializer


@extend_schema(
    summary="Obtain token pair",
    description="Exchange email and password for an access/refresh JWT pair.",
    tags=["Auth"],
)
class TokenObtainView(TokenObtainPairView):
    """
    POST: Issue an access/refresh token pair

    URL: /api/v1/auth/token/

    Request body:
        {"email": "buyer@example.com", "password": "..."}
    """


@extend_schema(
    summary="Refresh access token",
    tags=["Auth"],
)
class TokenRefreshAccessView(TokenRefreshView):
    """
    POST: Exchange a refresh token for a new access token

    URL: /api/v1/auth/token/refresh/
    """


class CurrentUserView(APIView):
    """
    GET: Retrieve the authenticated user

    URL: /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user",
        tags=["Auth"],
        responses={200: UserSerializer},
    )
    def get(self, request):
        return Response(UserSerializer(request.user).data)
