"""
Tests for JWTAuthMiddleware.

The middleware resolves the WebSocket user from a JWT access token carried
in the query string or the Sec-WebSocket-Protocol header. Anything short of
a valid token for an active user yields AnonymousUser.
"""

from datetime import timedelta

import pytest
from channels.db import database_sync_to_async
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory
from chat.middleware import JWTAuthMiddleware

pytestmark = pytest.mark.django_db(transaction=True)


async def resolve_user(query_string=b"", subprotocols=None):
    """Run the middleware over a fake scope and return the resolved user."""
    captured = {}

    async def inner(scope, receive, send):
        captured["user"] = scope["user"]

    scope = {
        "type": "websocket",
        "path": "/ws/chat/",
        "query_string": query_string,
        "subprotocols": subprotocols or [],
    }
    await JWTAuthMiddleware(inner)(scope, None, None)
    return captured["user"]


class TestTokenSources:
    """Token extraction from query string and subprotocol."""

    async def test_query_string_token(self, buyer, access_token_for):
        user = await resolve_user(f"token={access_token_for(buyer)}".encode())

        assert user.pk == buyer.pk

    async def test_subprotocol_token(self, buyer, access_token_for):
        user = await resolve_user(subprotocols=["jwt", access_token_for(buyer)])

        assert user.pk == buyer.pk

    async def test_query_string_wins_over_subprotocol(self, buyer, seller, access_token_for):
        user = await resolve_user(
            f"token={access_token_for(buyer)}".encode(),
            subprotocols=["jwt", access_token_for(seller)],
        )

        assert user.pk == buyer.pk

    async def test_unrelated_subprotocol_is_ignored(self, buyer, access_token_for):
        user = await resolve_user(subprotocols=["chat", access_token_for(buyer)])

        assert isinstance(user, AnonymousUser)

    async def test_no_token_is_anonymous(self):
        user = await resolve_user()

        assert isinstance(user, AnonymousUser)


class TestTokenValidation:
    """Rejection of unusable tokens."""

    async def test_garbage_token(self):
        user = await resolve_user(b"token=not-a-jwt")

        assert isinstance(user, AnonymousUser)

    async def test_expired_token(self, buyer):
        token = AccessToken.for_user(buyer)
        token.set_exp(lifetime=-timedelta(minutes=1))

        user = await resolve_user(f"token={token}".encode())

        assert isinstance(user, AnonymousUser)

    async def test_inactive_user(self, access_token_for):
        """
        Given a valid token for a deactivated user
        Then the connection is treated as anonymous

        Why it matters: deactivating an account must cut real-time access
        even while old access tokens are still unexpired.
        """
        inactive = await database_sync_to_async(UserFactory)(is_active=False)

        user = await resolve_user(f"token={access_token_for(inactive)}".encode())

        assert isinstance(user, AnonymousUser)

