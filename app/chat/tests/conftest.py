"""
Test configuration and fixtures for chat tests.

This module provides:
- Buyer/seller user fixtures
- API client helpers for authenticated requests
- JWT access tokens for WebSocket connections
- A captured channel layer for asserting pushes

Usage:
    def test_example(buyer, seller, buyer_client):
        response = buyer_client.post(
            '/api/v1/chat/messages/',
            {"receiver_id": seller.id, "content": "Hello"},
            format="json",
        )
        assert response.status_code == 201
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from authentication.tests.factories import UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def buyer(db):
    """The user starting conversations in most tests."""
    return UserFactory(name="Ada Buyer", email="buyer@example.com")


@pytest.fixture
def seller(db):
    """The counterpart in most tests."""
    return UserFactory(name="Sam Seller", email="seller@example.com")


@pytest.fixture
def other_user(db):
    """A third user, unrelated to buyer/seller conversations."""
    return UserFactory(name="Olive Other", email="other@example.com")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, seller):
            client = authenticated_client_factory(seller)
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def buyer_client(authenticated_client_factory, buyer):
    return authenticated_client_factory(buyer)


@pytest.fixture
def seller_client(authenticated_client_factory, seller):
    return authenticated_client_factory(seller)


# =============================================================================
# WebSocket Fixtures
# =============================================================================


@pytest.fixture
def access_token_for():
    """Return a function issuing a raw JWT access token string for a user."""

    def _token(user):
        return str(AccessToken.for_user(user))

    return _token


@pytest.fixture
def captured_group_sends(mocker):
    """
    Record channel layer group_send calls instead of sending them.

    Returns:
        List of (group, event) tuples in send order
    """
    sent = []

    async def _group_send(group, event):
        sent.append((group, event))

    layer = mocker.MagicMock()
    layer.group_send = _group_send
    mocker.patch("chat.services.get_channel_layer", return_value=layer)
    return sent
