"""
Chat system models.

This module defines the data model for direct messaging between two users:
- Message: An immutable message from one user to another

Design Decisions:
    - There is no Conversation table. A conversation is the set of messages
      exchanged by an unordered pair of users, identified by conversation_id()
      and aggregated at read time (see ConversationIndexService).
    - Messages are never edited or deleted. Only is_read and dispatched_at
      change after creation.
    - created_at is the ordering authority; id breaks ties.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from chat.constants import MESSAGE_CONFIG
from core.models import BaseModel


def conversation_id(user_a_id, user_b_id) -> str:
    """
    Build the stable identifier of the conversation between two users.

    Both ids are rendered as strings and sorted lexicographically, so the
    result does not depend on argument order.

    Example:
        conversation_id(7, 12)   # "12_7"
        conversation_id(12, 7)   # "12_7"
    """
    low, high = sorted([str(user_a_id), str(user_b_id)])
    return f"{low}_{high}"


class MessageType(models.TextChoices):
    """
    Type of message content.

    TEXT: User-authored text message
    IMAGE: Reference to an image (content carries the URL)
    FILE: Reference to a file (content carries the URL)
    """

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"


class MessageQuerySet(models.QuerySet):
    """QuerySet helpers for pairwise message lookups."""

    def between(self, user_a_id, user_b_id):
        """Messages exchanged by the unordered pair, in either direction."""
        return self.filter(
            Q(sender_id=user_a_id, receiver_id=user_b_id)
            | Q(sender_id=user_b_id, receiver_id=user_a_id)
        )

    def involving(self, user_id):
        """Messages the user sent or received."""
        return self.filter(Q(sender_id=user_id) | Q(receiver_id=user_id))

    def unread_for(self, user_id):
        """Messages addressed to the user that are not yet read."""
        return self.filter(receiver_id=user_id, is_read=False)


class Message(BaseModel):
    """
    A direct message from sender to receiver.

    Fields:
        sender: User who wrote the message
        receiver: User the message is addressed to
        content: Message text, trimmed, 1..MAX_CONTENT_LENGTH characters
        message_type: text, image or file
        is_read: Whether the receiver has marked the conversation read
        dispatched_at: When the real-time push was claimed (null until then)

    Invariants:
        - sender != receiver (database check constraint)
        - content is never edited after creation
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
        help_text="User this message is addressed to",
    )
    content = models.CharField(
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        help_text="Message text (trimmed)",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        help_text="Type of message content",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether the receiver has read this message",
    )
    dispatched_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the real-time push for this message was claimed",
    )

    objects = MessageQuerySet.as_manager()

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            # Conversation history and index, sender side
            models.Index(
                fields=["sender", "receiver", "-created_at"],
                name="chat_msg_pair_idx",
            ),
            # Conversation index, receiver side
            models.Index(
                fields=["receiver", "-created_at"],
                name="chat_msg_receiver_idx",
            ),
            # Unread counts
            models.Index(
                fields=["receiver", "is_read"],
                name="chat_msg_unread_idx",
                condition=Q(is_read=False),
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(sender=F("receiver")),
                name="chat_msg_sender_not_receiver",
            ),
        ]

    def __str__(self) -> str:
        content_preview = (
            self.content[:50] + "..." if len(self.content) > 50 else self.content
        )
        return f"User {self.sender_id} -> User {self.receiver_id}: {content_preview}"

    @property
    def conversation_id(self) -> str:
        """Identifier of the conversation this message belongs to."""
        return conversation_id(self.sender_id, self.receiver_id)

    def counterpart_id(self, user_id):
        """Return the id of the other participant from user_id's point of view."""
        return self.receiver_id if self.sender_id == user_id else self.sender_id
