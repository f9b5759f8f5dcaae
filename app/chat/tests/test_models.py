"""
Tests for chat models.

Covers:
- conversation_id derivation
- Message field defaults and helpers
- The sender != receiver database constraint
- MessageQuerySet filters
"""

import pytest
from django.db import IntegrityError

from chat.models import Message, MessageType, conversation_id
from chat.tests.factories import MessageFactory


class TestConversationId:
    """Tests for the conversation_id() function."""

    def test_is_order_independent(self):
        """
        Given two user ids
        Then both argument orders produce the same id

        Why it matters: both participants must address the same conversation.
        """
        assert conversation_id(3, 12) == conversation_id(12, 3)

    def test_sorts_ids_as_strings(self):
        """
        Given ids whose string and numeric orders differ
        Then the lexicographically smaller string comes first
        """
        assert conversation_id(12, 3) == "12_3"
        assert conversation_id(5, 7) == "5_7"

    def test_accepts_string_ids(self):
        assert conversation_id("7", 5) == "5_7"


class TestMessageModel:
    """Tests for the Message model."""

    def test_defaults(self, buyer, seller):
        message = Message.objects.create(sender=buyer, receiver=seller, content="Hello")

        assert message.is_read is False
        assert message.message_type == MessageType.TEXT
        assert message.dispatched_at is None
        assert message.created_at is not None

    def test_conversation_id_property(self, buyer, seller):
        message = MessageFactory(sender=buyer, receiver=seller)

        assert message.conversation_id == conversation_id(buyer.pk, seller.pk)

    def test_counterpart_id(self, buyer, seller):
        message = MessageFactory(sender=buyer, receiver=seller)

        assert message.counterpart_id(buyer.pk) == seller.pk
        assert message.counterpart_id(seller.pk) == buyer.pk

    def test_rejects_self_addressed_message(self, buyer):
        """
        Given a message whose sender is its receiver
        When it is saved
        Then the database rejects it
        """
        with pytest.raises(IntegrityError):
            Message.objects.create(sender=buyer, receiver=buyer, content="Note to self")


class TestMessageQuerySet:
    """Tests for MessageQuerySet filters."""

    def test_between_matches_both_directions_only(self, buyer, seller, other_user):
        outgoing = MessageFactory(sender=buyer, receiver=seller)
        incoming = MessageFactory(sender=seller, receiver=buyer)
        MessageFactory(sender=buyer, receiver=other_user)

        result = set(Message.objects.between(buyer.pk, seller.pk))

        assert result == {outgoing, incoming}

    def test_involving(self, buyer, seller, other_user):
        MessageFactory(sender=buyer, receiver=seller)
        MessageFactory(sender=other_user, receiver=buyer)
        MessageFactory(sender=seller, receiver=other_user)

        assert Message.objects.involving(buyer.pk).count() == 2

    def test_unread_for(self, buyer, seller):
        unread = MessageFactory(sender=seller, receiver=buyer)
        MessageFactory(sender=seller, receiver=buyer, is_read=True)
        MessageFactory(sender=buyer, receiver=seller)

        assert list(Message.objects.unread_for(buyer.pk)) == [unread]
