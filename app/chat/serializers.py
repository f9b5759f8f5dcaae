"""
Serializers for the chat API.

This module provides DRF serializers for:
- Messages (REST responses and WebSocket payloads share one shape)
- Conversation summaries
- Request validation for sending, history paging and WebSocket frames

Related files:
    - views.py: REST endpoints
    - consumers.py: WebSocket consumer (validates frames with these serializers)
    - services.py: DeliveryService serializes pushed messages with MessageSerializer
"""

from rest_framework import serializers

from authentication.serializers import DirectoryUserSerializer
from chat.constants import MESSAGE_CONFIG
from chat.models import Message, MessageType


class MessageSerializer(serializers.ModelSerializer):
    """
    Canonical message representation.

    Used for REST responses and for "delivered"/"sent" WebSocket events,
    so clients reconcile both streams against one shape.
    """

    conversation_id = serializers.CharField(read_only=True)
    sender = DirectoryUserSerializer(read_only=True)
    receiver = DirectoryUserSerializer(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "conversation_id",
            "sender_id",
            "receiver_id",
            "sender",
            "receiver",
            "content",
            "message_type",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields


class ConversationSummarySerializer(serializers.Serializer):
    """Read-only representation of a ConversationSummary."""

    conversation_id = serializers.CharField()
    counterpart = DirectoryUserSerializer()
    last_message = MessageSerializer()
    last_activity_at = serializers.DateTimeField()
    message_count = serializers.IntegerField()
    unread_count = serializers.IntegerField()
    is_online = serializers.BooleanField()


class SendMessageSerializer(serializers.Serializer):
    """
    Request body for creating a message.

    Content is not trimmed or length-checked here: MessageService owns those
    rules so that REST and WebSocket sends fail identically.
    """

    receiver_id = serializers.IntegerField(min_value=1)
    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        help_text=f"Message text, at most {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
    )
    message_type = serializers.ChoiceField(
        choices=MessageType.choices,
        required=False,
        default=MessageType.TEXT,
    )
    correlation_token = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=MESSAGE_CONFIG.MAX_CORRELATION_TOKEN_LENGTH,
        help_text="Client-generated token echoed back in the 'sent' event",
    )


class MessageHistoryQuerySerializer(serializers.Serializer):
    """Query parameters for message history (1-based offset pagination)."""

    page = serializers.IntegerField(required=False, default=1, min_value=1)
    page_size = serializers.IntegerField(
        required=False,
        default=MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
        min_value=1,
        max_value=MESSAGE_CONFIG.MAX_PAGE_SIZE,
    )


class MarkReadResponseSerializer(serializers.Serializer):
    """Acknowledgement for mark-read."""

    conversation_id = serializers.CharField()
    updated = serializers.IntegerField()


# =============================================================================
# WebSocket frames
# =============================================================================


class DispatchFrameSerializer(SendMessageSerializer):
    """WebSocket "dispatch" frame: same fields as the REST send body."""


class ReadFrameSerializer(serializers.Serializer):
    """WebSocket "read" frame."""

    counterpart_id = serializers.IntegerField(min_value=1)
