"""
Tests for chat API views.

Covers every REST endpoint under /api/v1/chat/:
- Conversation list
- Send message (including the real-time push it triggers)
- Message history paging
- Mark conversation read
- Directory search and lookup
"""

from datetime import timedelta

from django.utils import timezone
from rest_framework import status

from authentication.serializers import DEFAULT_AVATAR_URL
from authentication.tests.factories import UserFactory
from chat.models import Message, conversation_id
from chat.tests.factories import MessageFactory

CONVERSATIONS_URL = "/api/v1/chat/conversations/"
MESSAGES_URL = "/api/v1/chat/messages/"
SEARCH_URL = "/api/v1/chat/users/search/"


def history_url(user_id):
    return f"/api/v1/chat/messages/{user_id}/"


def read_url(user_id):
    return f"/api/v1/chat/messages/{user_id}/read/"


def user_url(user_id):
    return f"/api/v1/chat/users/{user_id}/"


class TestAuthenticationRequired:
    """Every chat endpoint rejects anonymous callers."""

    def test_anonymous_requests_get_401(self, api_client, seller):
        responses = [
            api_client.get(CONVERSATIONS_URL),
            api_client.post(MESSAGES_URL, {"receiver_id": seller.pk, "content": "Hi"}),
            api_client.get(history_url(seller.pk)),
            api_client.post(read_url(seller.pk)),
            api_client.get(SEARCH_URL, {"query": "sam"}),
            api_client.get(user_url(seller.pk)),
        ]

        assert {r.status_code for r in responses} == {status.HTTP_401_UNAUTHORIZED}


class TestSendMessage:
    """Tests for POST /api/v1/chat/messages/."""

    def test_creates_message(self, buyer_client, buyer, seller, captured_group_sends):
        response = buyer_client.post(
            MESSAGES_URL,
            {"receiver_id": seller.pk, "content": "Hello", "correlation_token": "c-1"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["content"] == "Hello"
        assert response.data["sender_id"] == buyer.pk
        assert response.data["receiver_id"] == seller.pk
        assert response.data["conversation_id"] == conversation_id(buyer.pk, seller.pk)
        assert response.data["is_read"] is False
        assert Message.objects.count() == 1

    def test_pushes_once_to_each_participant(
        self, buyer_client, buyer, seller, captured_group_sends
    ):
        """
        Given a message sent over REST
        Then the receiver's group gets one "delivered" and the sender's
        group one "sent" with the correlation token

        Why it matters: the server owns the push, so REST-only clients
        still reach a connected receiver.
        """
        buyer_client.post(
            MESSAGES_URL,
            {"receiver_id": seller.pk, "content": "Hello", "correlation_token": "c-1"},
            format="json",
        )

        assert [(group, event["type"]) for group, event in captured_group_sends] == [
            (f"user_{seller.pk}", "chat.delivered"),
            (f"user_{buyer.pk}", "chat.sent"),
        ]
        assert captured_group_sends[1][1]["correlation_token"] == "c-1"

    def test_push_failure_still_returns_201(self, buyer_client, seller, mocker):
        async def _boom(group, event):
            raise ConnectionError("redis down")

        layer = mocker.MagicMock()
        layer.group_send = _boom
        mocker.patch("chat.services.get_channel_layer", return_value=layer)

        response = buyer_client.post(
            MESSAGES_URL, {"receiver_id": seller.pk, "content": "Hello"}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert Message.objects.count() == 1

    def test_empty_content_is_400(self, buyer_client, seller):
        response = buyer_client.post(
            MESSAGES_URL, {"receiver_id": seller.pk, "content": "   "}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "EMPTY_CONTENT"

    def test_too_long_content_is_400(self, buyer_client, seller):
        response = buyer_client.post(
            MESSAGES_URL, {"receiver_id": seller.pk, "content": "x" * 1001}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "CONTENT_TOO_LONG"

    def test_message_to_self_is_400(self, buyer_client, buyer):
        response = buyer_client.post(
            MESSAGES_URL, {"receiver_id": buyer.pk, "content": "Hi"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SAME_USER"

    def test_unknown_receiver_is_404(self, buyer_client):
        response = buyer_client.post(
            MESSAGES_URL, {"receiver_id": 999999, "content": "Hi"}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "RECEIVER_NOT_FOUND"

    def test_missing_receiver_is_400(self, buyer_client):
        response = buyer_client.post(MESSAGES_URL, {"content": "Hi"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "receiver_id" in response.data

    def test_invalid_message_type_is_400(self, buyer_client, seller):
        response = buyer_client.post(
            MESSAGES_URL,
            {"receiver_id": seller.pk, "content": "Hi", "message_type": "video"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestMessageHistory:
    """Tests for GET /api/v1/chat/messages/{user_id}/."""

    def test_both_participants_see_same_conversation(
        self, buyer_client, seller_client, buyer, seller
    ):
        """
        Given A sends "Hello" and B replies "Hi back"
        When each fetches the conversation
        Then both see [Hello, Hi back] in that order
        """
        buyer_client.post(
            MESSAGES_URL, {"receiver_id": seller.pk, "content": "Hello"}, format="json"
        )
        seller_client.post(
            MESSAGES_URL, {"receiver_id": buyer.pk, "content": "Hi back"}, format="json"
        )

        for client, counterpart in ((buyer_client, seller), (seller_client, buyer)):
            response = client.get(history_url(counterpart.pk))

            assert response.status_code == status.HTTP_200_OK
            assert [m["content"] for m in response.data] == ["Hello", "Hi back"]

    def test_paging(self, buyer_client, buyer, seller):
        start = timezone.now() - timedelta(hours=1)
        for i in range(3):
            MessageFactory(
                sender=buyer, receiver=seller, content=f"m{i}",
                created_at=start + timedelta(minutes=i),
            )

        first = buyer_client.get(history_url(seller.pk), {"page": 1, "page_size": 2})
        second = buyer_client.get(history_url(seller.pk), {"page": 2, "page_size": 2})

        assert [m["content"] for m in first.data] == ["m1", "m2"]
        assert [m["content"] for m in second.data] == ["m0"]

    def test_page_size_above_maximum_is_400(self, buyer_client, seller):
        response = buyer_client.get(history_url(seller.pk), {"page_size": 101})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_outsider_sees_nothing(self, authenticated_client_factory, buyer, seller, other_user):
        MessageFactory(sender=buyer, receiver=seller)

        response = authenticated_client_factory(other_user).get(history_url(seller.pk))

        assert response.data == []


class TestConversationList:
    """Tests for GET /api/v1/chat/conversations/."""

    def test_lists_conversations_most_recent_first(self, buyer_client, buyer, seller, other_user):
        base = timezone.now() - timedelta(hours=1)
        MessageFactory(sender=buyer, receiver=seller, created_at=base)
        MessageFactory(sender=other_user, receiver=buyer, content="latest",
                       created_at=base + timedelta(minutes=1))

        response = buyer_client.get(CONVERSATIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [c["counterpart"]["id"] for c in response.data] == [other_user.pk, seller.pk]
        first = response.data[0]
        assert first["conversation_id"] == conversation_id(buyer.pk, other_user.pk)
        assert first["last_message"]["content"] == "latest"
        assert first["unread_count"] == 1
        assert first["message_count"] == 1
        assert first["is_online"] is False
        assert first["counterpart"]["avatar"] == DEFAULT_AVATAR_URL

    def test_empty_list(self, buyer_client):
        response = buyer_client.get(CONVERSATIONS_URL)

        assert response.data == []


class TestMarkConversationRead:
    """Tests for POST /api/v1/chat/messages/{user_id}/read/."""

    def test_marks_incoming_read(self, buyer_client, buyer, seller):
        MessageFactory(sender=seller, receiver=buyer)
        MessageFactory(sender=seller, receiver=buyer)

        response = buyer_client.post(read_url(seller.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            "conversation_id": conversation_id(buyer.pk, seller.pk),
            "updated": 2,
        }
        assert not Message.objects.unread_for(buyer.pk).exists()

    def test_unread_count_drops_in_conversation_list(self, buyer_client, buyer, seller):
        MessageFactory(sender=seller, receiver=buyer)
        buyer_client.post(read_url(seller.pk))

        response = buyer_client.get(CONVERSATIONS_URL)

        assert response.data[0]["unread_count"] == 0


class TestUserSearch:
    """Tests for GET /api/v1/chat/users/search/."""

    def test_finds_users_by_name_or_email(self, buyer_client, buyer, seller):
        UserFactory(name="Unrelated", email="nobody@example.com")

        response = buyer_client.get(SEARCH_URL, {"query": "SELLER"})

        assert response.status_code == status.HTTP_200_OK
        assert [u["id"] for u in response.data] == [seller.pk]
        assert set(response.data[0]) == {"id", "name", "email", "avatar", "is_online", "last_seen"}

    def test_never_returns_caller(self, buyer_client, buyer):
        response = buyer_client.get(SEARCH_URL, {"query": "buyer"})

        assert response.data == []

    def test_blank_query_is_400(self, buyer_client):
        response = buyer_client.get(SEARCH_URL, {"query": "  "})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "EMPTY_QUERY"

    def test_limit(self, buyer_client, buyer):
        for i in range(4):
            UserFactory(name=f"Shop {i}")

        response = buyer_client.get(SEARCH_URL, {"query": "shop", "limit": 2})

        assert len(response.data) == 2


class TestUserDetail:
    """Tests for GET /api/v1/chat/users/{user_id}/."""

    def test_returns_user(self, buyer_client, seller):
        response = buyer_client.get(user_url(seller.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["name"] == "Sam Seller"

    def test_self_lookup_is_400(self, buyer_client, buyer):
        response = buyer_client.get(user_url(buyer.pk))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SAME_USER"

    def test_unknown_user_is_404(self, buyer_client):
        response = buyer_client.get(user_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"
