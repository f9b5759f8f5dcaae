"""
Chat system service layer.

This module provides the business logic for direct messaging, shared by the
REST views and the WebSocket consumer.

Services:
    MessageService: Create messages, page through history, mark read
    ConversationIndexService: Read-time aggregation of a user's conversations
    DeliveryService: Push created messages to connected users' channel groups
    PresenceService: Track open connections and maintain online/last-seen

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise exceptions
    - Validation happens before any write
    - The server owns the real-time push: every successful creation is
      dispatched exactly once, by whichever transport created it

Usage:
    from chat.services import DeliveryService, MessageService

    result = MessageService.create_message(sender, receiver_id, "Hello")
    if result.success:
        DeliveryService.dispatch(result.data, correlation_token="c-1")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from authentication.models import User
from authentication.services import UserDirectoryService
from chat.constants import DELIVERY_CONFIG, MESSAGE_CONFIG, PRESENCE_CONFIG
from chat.models import Message, MessageType, conversation_id
from chat.serializers import MessageSerializer
from core.helpers import clamp, coerce_id
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from datetime import datetime


# =============================================================================
# Message Store
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        create_message: Validate and persist a message
        list_messages: One page of a conversation, chronological ascending
        mark_conversation_read: Flag a conversation's incoming messages read
    """

    @classmethod
    def create_message(
        cls,
        sender: User,
        receiver_id,
        content: str | None,
        message_type: str = MessageType.TEXT,
    ) -> ServiceResult[Message]:
        """
        Create a message from sender to receiver.

        There is no idempotency key: calling this twice with the same
        arguments creates two messages.

        Args:
            sender: Authenticated user sending the message
            receiver_id: Id of the receiving user (int or numeric string)
            content: Message text; surrounding whitespace is trimmed
            message_type: One of MessageType

        Returns:
            ServiceResult with the new Message

        Error codes:
            EMPTY_CONTENT: Content is empty after trimming
            CONTENT_TOO_LONG: Content exceeds MAX_CONTENT_LENGTH
            INVALID_MESSAGE_TYPE: Unknown message type
            INVALID_RECEIVER: Receiver id missing or malformed
            SAME_USER: Sender and receiver are the same user
            RECEIVER_NOT_FOUND: Receiver does not exist or is inactive
        """
        content = content.strip() if content else ""
        if not content:
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code="EMPTY_CONTENT",
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message cannot be more than {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
            )
        if message_type not in MessageType.values:
            return ServiceResult.failure(
                f"Invalid message type: {message_type}",
                error_code="INVALID_MESSAGE_TYPE",
            )

        pk = coerce_id(receiver_id)
        if pk is None:
            return ServiceResult.failure(
                "Invalid receiver ID",
                error_code="INVALID_RECEIVER",
            )
        if pk == sender.pk:
            return ServiceResult.failure(
                "Cannot send a message to yourself",
                error_code="SAME_USER",
            )

        lookup = UserDirectoryService.find_by_id(pk)
        if not lookup.success:
            return ServiceResult.failure(
                "Receiver not found",
                error_code="RECEIVER_NOT_FOUND",
            )

        message = Message.objects.create(
            sender=sender,
            receiver=lookup.data,
            content=content,
            message_type=message_type,
        )

        cls.get_logger().info(
            f"User {sender.pk} sent message {message.pk} to user {pk}"
        )
        return ServiceResult.success(message)

    @classmethod
    def list_messages(
        cls,
        user: User,
        counterpart_id,
        page: int = 1,
        page_size: int = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
    ) -> ServiceResult[list[Message]]:
        """
        Return one page of the conversation between user and counterpart.

        Pages are cut newest-first (page 1 holds the most recent messages)
        and each page is returned in chronological ascending order. Callers
        must not rely on the database's native order.

        Args:
            user: Authenticated user
            counterpart_id: The other participant
            page: 1-based page number
            page_size: Messages per page, clamped to [1, MAX_PAGE_SIZE]

        Error codes:
            INVALID_USER_ID: Counterpart id malformed
        """
        pk = coerce_id(counterpart_id)
        if pk is None:
            return ServiceResult.failure("Invalid user ID", error_code="INVALID_USER_ID")

        page = max(1, page)
        page_size = clamp(page_size, 1, MESSAGE_CONFIG.MAX_PAGE_SIZE)
        offset = (page - 1) * page_size

        newest_first = (
            Message.objects.between(user.pk, pk)
            .select_related("sender", "receiver")
            .order_by("-created_at", "-id")[offset : offset + page_size]
        )
        messages = list(newest_first)
        messages.reverse()

        cls.get_logger().debug(
            f"User {user.pk} fetched {len(messages)} messages with user {pk} (page {page})"
        )
        return ServiceResult.success(messages)

    @classmethod
    def mark_conversation_read(cls, reader: User, counterpart_id) -> ServiceResult[int]:
        """
        Mark every message from counterpart to reader as read.

        Best effort: no read receipt is pushed to the counterpart.

        Returns:
            ServiceResult with the number of messages updated

        Error codes:
            INVALID_USER_ID: Counterpart id malformed
        """
        pk = coerce_id(counterpart_id)
        if pk is None:
            return ServiceResult.failure("Invalid user ID", error_code="INVALID_USER_ID")

        updated = (
            Message.objects.unread_for(reader.pk)
            .filter(sender_id=pk)
            .update(is_read=True, updated_at=timezone.now())
        )

        cls.get_logger().debug(
            f"User {reader.pk} marked {updated} messages from user {pk} as read"
        )
        return ServiceResult.success(updated)


# =============================================================================
# Conversation Index
# =============================================================================


@dataclass
class ConversationSummary:
    """
    One row of a user's conversation list.

    Derived from messages on every request; never stored.
    """

    conversation_id: str
    counterpart: User
    last_message: Message
    message_count: int = 0
    unread_count: int = 0

    @property
    def last_activity_at(self) -> datetime:
        return self.last_message.created_at

    @property
    def is_online(self) -> bool:
        return self.counterpart.is_online


class ConversationIndexService(BaseService):
    """
    Answers "what are this user's conversations, most recent first".

    There is no conversation table: the list is recomputed from every
    message the user sent or received. Acceptable while per-user message
    volume stays small.
    """

    @classmethod
    def list_conversations(cls, user: User) -> ServiceResult[list[ConversationSummary]]:
        """
        Group the user's messages by counterpart.

        Messages are scanned newest-first, so the first message seen for a
        counterpart is that conversation's last message and the insertion
        order of the grouping is already the output order: last message
        created_at descending, ties broken by message id descending.
        """
        messages = (
            Message.objects.involving(user.pk)
            .select_related("sender", "receiver")
            .order_by("-created_at", "-id")
        )

        summaries: dict[int, ConversationSummary] = {}
        for message in messages:
            counterpart_pk = message.counterpart_id(user.pk)
            summary = summaries.get(counterpart_pk)
            if summary is None:
                counterpart = (
                    message.receiver if message.sender_id == user.pk else message.sender
                )
                summary = ConversationSummary(
                    conversation_id=conversation_id(user.pk, counterpart_pk),
                    counterpart=counterpart,
                    last_message=message,
                )
                summaries[counterpart_pk] = summary

            summary.message_count += 1
            if message.receiver_id == user.pk and not message.is_read:
                summary.unread_count += 1

        cls.get_logger().debug(
            f"User {user.pk} has {len(summaries)} conversations"
        )
        return ServiceResult.success(list(summaries.values()))


# =============================================================================
# Real-Time Delivery
# =============================================================================


class DeliveryService(BaseService):
    """
    Pushes created messages over the channel layer.

    Every connection joins exactly one group, named after its user. A
    dispatch sends a "delivered" event to the receiver's group and a "sent"
    event carrying the correlation token to the sender's group, so the
    sender's other tabs and devices converge too.

    Delivery is best effort and at most once:
        - claim() flips dispatched_at from null exactly once per message
        - channel layer failures are logged and reported, never retried
        - receivers that are not connected pick the message up on their
          next history or conversation fetch
    """

    @staticmethod
    def user_group_name(user_id) -> str:
        """Channel layer group for all of a user's connections."""
        return f"{DELIVERY_CONFIG.USER_GROUP_PREFIX}_{user_id}"

    @classmethod
    def claim(cls, message: Message) -> bool:
        """
        Record that the push for message is being sent.

        Returns:
            True if this call claimed the push, False if it was already claimed
        """
        now = timezone.now()
        with cls.atomic():
            claimed = Message.objects.filter(
                pk=message.pk, dispatched_at__isnull=True
            ).update(dispatched_at=now)
        if claimed:
            message.dispatched_at = now
        return bool(claimed)

    @classmethod
    def build_events(
        cls,
        message: Message,
        correlation_token: str | None = None,
    ) -> list[tuple[str, dict]]:
        """
        Build the (group, event) pairs for a message.

        The payload is the same MessageSerializer shape the REST API returns.
        """
        payload = dict(MessageSerializer(message).data)
        return [
            (
                cls.user_group_name(message.receiver_id),
                {"type": DELIVERY_CONFIG.EVENT_DELIVERED, "message": payload},
            ),
            (
                cls.user_group_name(message.sender_id),
                {
                    "type": DELIVERY_CONFIG.EVENT_SENT,
                    "message": payload,
                    "correlation_token": correlation_token,
                },
            ),
        ]

    @classmethod
    def _prepare(cls, message: Message, correlation_token: str | None):
        if not cls.claim(message):
            return None
        return cls.build_events(message, correlation_token)

    @classmethod
    def _delivery_failure(cls, message: Message) -> ServiceResult[bool]:
        cls.get_logger().exception(
            f"Real-time delivery of message {message.pk} failed; "
            "message stays persisted"
        )
        return ServiceResult.failure(
            "Real-time delivery failed",
            error_code="TRANSIENT_DELIVERY_FAILURE",
        )

    @classmethod
    def dispatch(
        cls,
        message: Message,
        correlation_token: str | None = None,
    ) -> ServiceResult[bool]:
        """
        Push a message from synchronous code (REST views, tasks).

        Returns:
            ServiceResult with True if pushed, False if already pushed earlier

        Error codes:
            TRANSIENT_DELIVERY_FAILURE: Channel layer unreachable
        """
        events = cls._prepare(message, correlation_token)
        if events is None:
            cls.get_logger().debug(f"Message {message.pk} already dispatched")
            return ServiceResult.success(False)

        channel_layer = get_channel_layer()
        try:
            for group, event in events:
                async_to_sync(channel_layer.group_send)(group, event)
        except Exception:
            return cls._delivery_failure(message)

        cls.get_logger().debug(f"Dispatched message {message.pk}")
        return ServiceResult.success(True)

    @classmethod
    async def adispatch(
        cls,
        message: Message,
        correlation_token: str | None = None,
    ) -> ServiceResult[bool]:
        """Async variant of dispatch() for the WebSocket consumer."""
        events = await database_sync_to_async(cls._prepare)(message, correlation_token)
        if events is None:
            cls.get_logger().debug(f"Message {message.pk} already dispatched")
            return ServiceResult.success(False)

        channel_layer = get_channel_layer()
        try:
            for group, event in events:
                await channel_layer.group_send(group, event)
        except Exception:
            return cls._delivery_failure(message)

        cls.get_logger().debug(f"Dispatched message {message.pk}")
        return ServiceResult.success(True)


# =============================================================================
# Presence
# =============================================================================


class PresenceService(BaseService):
    """
    Connection-count based presence tracking.

    Each open WebSocket increments a per-user counter in the cache (Redis in
    production). The first connection marks the user online; closing the
    last one marks them offline and stamps last_seen. Counters expire after
    PRESENCE_TTL_SECONDS unless refreshed by heartbeats, and the periodic
    sweep clears users whose counters vanished without a disconnect.

    Usage:
        PresenceService.mark_connected(user.id)
        PresenceService.touch(user.id)
        PresenceService.mark_disconnected(user.id)
    """

    @staticmethod
    def _connections_key(user_id) -> str:
        return f"{PRESENCE_CONFIG.KEY_PREFIX_USER_CONNECTIONS}:{user_id}"

    @classmethod
    def connection_count(cls, user_id) -> int:
        return cache.get(cls._connections_key(user_id)) or 0

    @classmethod
    def mark_connected(cls, user_id) -> ServiceResult[int]:
        """
        Register a new connection for the user.

        Returns:
            ServiceResult with the user's open connection count
        """
        key = cls._connections_key(user_id)
        ttl = PRESENCE_CONFIG.PRESENCE_TTL_SECONDS

        cache.add(key, 0, timeout=ttl)
        try:
            count = cache.incr(key)
        except ValueError:
            # Key expired between add() and incr()
            cache.set(key, 1, timeout=ttl)
            count = 1
        cache.touch(key, timeout=ttl)

        User.objects.filter(pk=user_id).update(
            is_online=True, last_seen=timezone.now()
        )

        count = count or 1
        cls.get_logger().debug(f"User {user_id} connected ({count} open)")
        return ServiceResult.success(count)

    @classmethod
    def mark_disconnected(cls, user_id) -> ServiceResult[int]:
        """
        Unregister a connection; the last one marks the user offline.

        Returns:
            ServiceResult with the remaining open connection count
        """
        key = cls._connections_key(user_id)
        try:
            remaining = cache.decr(key)
        except ValueError:
            remaining = 0

        remaining = remaining or 0
        if remaining <= 0:
            cache.delete(key)
            User.objects.filter(pk=user_id).update(
                is_online=False, last_seen=timezone.now()
            )
            cls.get_logger().info(f"User {user_id} went offline")
            return ServiceResult.success(0)

        cls.get_logger().debug(f"User {user_id} disconnected ({remaining} open)")
        return ServiceResult.success(remaining)

    @classmethod
    def touch(cls, user_id) -> ServiceResult[None]:
        """
        Heartbeat: keep the connection counter alive and refresh last_seen.

        last_seen is written at most once per LAST_SEEN_WRITE_INTERVAL_SECONDS.
        """
        key = cls._connections_key(user_id)
        if not cache.touch(key, timeout=PRESENCE_CONFIG.PRESENCE_TTL_SECONDS):
            cache.set(key, 1, timeout=PRESENCE_CONFIG.PRESENCE_TTL_SECONDS)

        now = timezone.now()
        threshold = now - timedelta(seconds=PRESENCE_CONFIG.LAST_SEEN_WRITE_INTERVAL_SECONDS)
        User.objects.filter(pk=user_id).exclude(
            is_online=True, last_seen__gt=threshold
        ).update(is_online=True, last_seen=now)
        return ServiceResult.success(None)

    @classmethod
    def sweep_stale(cls, stale_after_seconds: int | None = None) -> ServiceResult[int]:
        """
        Mark users offline whose presence lapsed without a clean disconnect.

        A user is stale when flagged online, not seen within the window, and
        without a live connection counter.

        Returns:
            ServiceResult with the number of users marked offline
        """
        if stale_after_seconds is None:
            stale_after_seconds = settings.PRESENCE_STALE_AFTER_SECONDS
        cutoff = timezone.now() - timedelta(seconds=stale_after_seconds)

        candidate_ids = list(
            User.objects.filter(is_online=True, last_seen__lt=cutoff).values_list(
                "pk", flat=True
            )
        ) + list(
            User.objects.filter(is_online=True, last_seen__isnull=True).values_list(
                "pk", flat=True
            )
        )
        if not candidate_ids:
            return ServiceResult.success(0)

        live = cache.get_many([cls._connections_key(pk) for pk in candidate_ids])
        stale_ids = [
            pk for pk in candidate_ids if not live.get(cls._connections_key(pk))
        ]

        swept = User.objects.filter(pk__in=stale_ids, is_online=True).update(
            is_online=False
        )
        if swept:
            cls.get_logger().info(f"Swept {swept} stale online users")
        return ServiceResult.success(swept)
