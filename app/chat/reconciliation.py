"""
Client-side reconciliation of chat state.

A chat client receives the same logical messages from three independent
streams: HTTP responses (history, conversation list, send results),
"delivered" pushes for messages addressed to the user, and "sent" pushes
confirming the user's own sends. Any of them can arrive first. ChatState
merges all three into:

- one de-duplicated, chronologically ordered timeline per counterpart
- one conversation list ordered by last activity, most recent first

Every mutation goes through a merge function, so handlers can interleave
in any order without losing or duplicating entries.

Message State Machine (per locally originated entry, keyed by correlation token):
    PENDING → CONFIRMED   (server record arrived: HTTP response or "sent" push)
    PENDING → FAILED      (transport error, shown to the user)
    FAILED → CONFIRMED    (server evidence arrived after all: ghost success)
    CONFIRMED is terminal; late errors never downgrade it

Failed sends are never retried automatically. resend() is a user action
that discards the failed placeholder and starts a new, distinct send.

Usage:
    from chat.reconciliation import ChatState, send_message

    state = ChatState(user_id=me.id)
    state.load_conversations(api.get("/api/v1/chat/conversations/"))
    state.open_conversation(seller_id)
    state.load_messages(seller_id, api.get(f"/api/v1/chat/messages/{seller_id}/"))

    entry = send_message(state, seller_id, "Is this still available?", transport)

    # For every WebSocket frame:
    state.apply_event(frame)
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from chat.constants import DELIVERY_CONFIG
from chat.models import MessageType, conversation_id
from chat.serializers import MessageSerializer
from chat.services import DeliveryService, MessageService
from core.exceptions import BaseApplicationError, NotFoundError, ValidationError
from core.helpers import generate_token

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import Any

logger = logging.getLogger(__name__)


class MessageState(models.TextChoices):
    """
    Delivery state of a timeline entry.

    State Flow:
        PENDING → CONFIRMED
        PENDING → FAILED → CONFIRMED (ghost success)
    """

    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    FAILED = "failed", "Failed"


ALLOWED_TRANSITIONS = {
    MessageState.PENDING: {MessageState.CONFIRMED, MessageState.FAILED},
    MessageState.FAILED: {MessageState.CONFIRMED},
    MessageState.CONFIRMED: set(),
}


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = parse_datetime(value) if isinstance(value, str) else None
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value!r}")
    return parsed


@dataclass
class TimelineEntry:
    """
    One message as the client sees it.

    Persisted messages are identified by id. Locally originated entries
    carry a correlation token and have no id until confirmed.
    """

    sender_id: int
    receiver_id: int
    content: str
    created_at: datetime
    state: MessageState = MessageState.CONFIRMED
    id: int | None = None
    correlation_token: str | None = None
    message_type: str = MessageType.TEXT
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        correlation_token: str | None = None,
    ) -> TimelineEntry:
        """Build a confirmed entry from a MessageSerializer payload."""
        return cls(
            id=payload["id"],
            sender_id=payload["sender_id"],
            receiver_id=payload["receiver_id"],
            content=payload["content"],
            message_type=payload.get("message_type", MessageType.TEXT),
            created_at=_parse_timestamp(payload["created_at"]),
            state=MessageState.CONFIRMED,
            correlation_token=correlation_token,
        )

    def counterpart_id(self, user_id: int) -> int:
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def transition(self, new_state: MessageState) -> bool:
        """
        Move to new_state if the state machine allows it.

        Returns:
            True if the state changed
        """
        if new_state == self.state:
            return False
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            return False
        self.state = new_state
        return True

    def absorb(self, canonical: TimelineEntry) -> None:
        """Take over the server's record for this entry and confirm it."""
        self.transition(MessageState.CONFIRMED)
        self.id = canonical.id
        self.sender_id = canonical.sender_id
        self.receiver_id = canonical.receiver_id
        self.content = canonical.content
        self.message_type = canonical.message_type
        self.created_at = canonical.created_at
        self.correlation_token = self.correlation_token or canonical.correlation_token
        self.error = None
        self.error_code = None

    def sort_key(self):
        # Unconfirmed entries sort after confirmed ones sharing a timestamp
        return (self.created_at, self.id is None, self.id or 0)


@dataclass
class ConversationEntry:
    """One row of the client's conversation list."""

    counterpart_id: int
    last_activity_at: datetime
    last_message: TimelineEntry | None = None
    unread_count: int = 0
    counterpart_name: str = ""
    counterpart_avatar: str = ""
    is_online: bool = False

    @classmethod
    def from_summary(cls, summary: dict[str, Any]) -> ConversationEntry:
        """Build an entry from a ConversationSummarySerializer payload."""
        counterpart = summary["counterpart"]
        return cls(
            counterpart_id=counterpart["id"],
            last_activity_at=_parse_timestamp(summary["last_activity_at"]),
            last_message=TimelineEntry.from_payload(summary["last_message"]),
            unread_count=summary.get("unread_count", 0),
            counterpart_name=counterpart.get("name", ""),
            counterpart_avatar=counterpart.get("avatar", ""),
            is_online=summary.get("is_online", counterpart.get("is_online", False)),
        )

    def conversation_id(self, user_id: int) -> str:
        return conversation_id(user_id, self.counterpart_id)

    def apply_profile(self, profile: dict[str, Any] | None) -> None:
        """Refresh display fields from a DirectoryUserSerializer payload."""
        if not profile:
            return
        self.counterpart_name = profile.get("name", self.counterpart_name)
        self.counterpart_avatar = profile.get("avatar", self.counterpart_avatar)
        self.is_online = profile.get("is_online", self.is_online)


class ChatState:
    """
    Owned state container for one signed-in user.

    Attributes:
        user_id: The signed-in user
        timelines: Timeline per counterpart id, sorted by created_at
        conversations: Conversation list, sorted by last_activity_at descending
        open_counterpart_id: Counterpart of the conversation on screen, if any
    """

    def __init__(
        self,
        user_id: int,
        clock: Callable[[], datetime] = timezone.now,
        token_factory: Callable[[], str] = generate_token,
    ):
        self.user_id = user_id
        self.timelines: dict[int, list[TimelineEntry]] = {}
        self.conversations: list[ConversationEntry] = []
        self.open_counterpart_id: int | None = None
        self._clock = clock
        self._token_factory = token_factory
        self._token_index: dict[str, int] = {}
        self._seen_ids: deque[int] = deque(maxlen=DELIVERY_CONFIG.CLIENT_SEEN_ID_WINDOW)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def timeline(self, counterpart_id: int) -> list[TimelineEntry]:
        return list(self.timelines.get(counterpart_id, []))

    def conversation(self, counterpart_id: int) -> ConversationEntry | None:
        for entry in self.conversations:
            if entry.counterpart_id == counterpart_id:
                return entry
        return None

    def find_by_token(self, correlation_token: str) -> TimelineEntry | None:
        counterpart_id = self._token_index.get(correlation_token)
        if counterpart_id is None:
            return None
        for entry in self.timelines.get(counterpart_id, []):
            if entry.correlation_token == correlation_token:
                return entry
        return None

    # -------------------------------------------------------------------------
    # Conversation list
    # -------------------------------------------------------------------------

    def load_conversations(self, summaries: Iterable[dict[str, Any]]) -> list[ConversationEntry]:
        """
        Merge a fetched conversation list into local state.

        Entries for the same counterpart reconcile last-write-wins by
        activity timestamp; local entries the server does not know about
        (e.g. a started but still empty conversation) are kept.
        """
        for summary in summaries:
            incoming = ConversationEntry.from_summary(summary)
            if incoming.last_message is not None:
                self._remember(incoming.last_message.id)
            existing = self.conversation(incoming.counterpart_id)
            if existing is None:
                if incoming.counterpart_id == self.open_counterpart_id:
                    incoming.unread_count = 0
                self.conversations.append(incoming)
                continue

            existing.counterpart_name = incoming.counterpart_name
            existing.counterpart_avatar = incoming.counterpart_avatar
            existing.is_online = incoming.is_online
            if incoming.last_activity_at >= existing.last_activity_at:
                existing.last_activity_at = incoming.last_activity_at
                existing.last_message = incoming.last_message
                existing.unread_count = incoming.unread_count
            if existing.counterpart_id == self.open_counterpart_id:
                existing.unread_count = 0

        self._resort_conversations()
        return list(self.conversations)

    def start_conversation(self, user: dict[str, Any]) -> ConversationEntry:
        """
        Ensure a conversation entry exists for a directory user.

        Used when the user picks someone from search: a zero-message entry
        is synthesized locally before the first message is sent.
        """
        counterpart_id = user["id"]
        if counterpart_id == self.user_id:
            raise ValidationError(
                "Cannot start a conversation with yourself", error_code="SAME_USER"
            )

        entry = self.conversation(counterpart_id)
        if entry is None:
            entry = ConversationEntry(
                counterpart_id=counterpart_id,
                last_activity_at=self._clock(),
            )
            self.conversations.append(entry)
            self._resort_conversations()
        entry.apply_profile(user)
        self.timelines.setdefault(counterpart_id, [])
        return entry

    def open_conversation(self, counterpart_id: int) -> None:
        """Put a conversation on screen; its unread count drops to zero."""
        self.open_counterpart_id = counterpart_id
        self.timelines.setdefault(counterpart_id, [])
        entry = self.conversation(counterpart_id)
        if entry is not None:
            entry.unread_count = 0

    def close_conversation(self) -> None:
        self.open_counterpart_id = None

    # -------------------------------------------------------------------------
    # Timelines
    # -------------------------------------------------------------------------

    def load_messages(
        self,
        counterpart_id: int,
        payloads: Iterable[dict[str, Any]],
    ) -> list[TimelineEntry]:
        """Merge a fetched history page into the counterpart's timeline."""
        latest = None
        for payload in payloads:
            merged = self._merge_into_timeline(counterpart_id, TimelineEntry.from_payload(payload))
            self._remember(merged.id)
            if latest is None or merged.sort_key() > latest.sort_key():
                latest = merged
        self._sort_timeline(counterpart_id)

        if latest is not None:
            self._record_activity(counterpart_id, latest)
        return self.timeline(counterpart_id)

    def _merge_into_timeline(self, counterpart_id: int, incoming: TimelineEntry) -> TimelineEntry:
        """
        Add incoming to the timeline unless it is already there.

        Matching is by server id first, then by correlation token for
        entries that are not confirmed yet.
        """
        timeline = self.timelines.setdefault(counterpart_id, [])

        existing = None
        if incoming.id is not None:
            existing = next((e for e in timeline if e.id == incoming.id), None)
        if existing is None and incoming.correlation_token:
            existing = next(
                (e for e in timeline if e.correlation_token == incoming.correlation_token),
                None,
            )

        if existing is None:
            timeline.append(incoming)
            if incoming.correlation_token:
                self._token_index[incoming.correlation_token] = counterpart_id
            return incoming

        if incoming.state == MessageState.CONFIRMED:
            existing.absorb(incoming)
        return existing

    def _sort_timeline(self, counterpart_id: int) -> None:
        self.timelines.get(counterpart_id, []).sort(key=TimelineEntry.sort_key)

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def begin_send(
        self,
        counterpart_id: int,
        content: str,
        message_type: str = MessageType.TEXT,
    ) -> TimelineEntry:
        """
        Append a pending placeholder for a message about to be sent.

        Returns:
            The placeholder; its correlation_token travels with the request
        """
        entry = TimelineEntry(
            sender_id=self.user_id,
            receiver_id=counterpart_id,
            content=content,
            message_type=message_type,
            created_at=self._clock(),
            state=MessageState.PENDING,
            correlation_token=self._token_factory(),
        )
        self._merge_into_timeline(counterpart_id, entry)
        self._sort_timeline(counterpart_id)
        self._record_activity(counterpart_id, entry)
        return entry

    def confirm_send(
        self,
        correlation_token: str | None,
        payload: dict[str, Any],
    ) -> TimelineEntry:
        """
        Reconcile the server's record of one of this user's messages.

        Called for the HTTP create response and for "sent" pushes, in
        whichever order they arrive. The placeholder (matched by token) or
        an already confirmed copy (matched by id) is updated in place, so
        the timeline never holds the message twice.
        """
        canonical = TimelineEntry.from_payload(payload, correlation_token=correlation_token)
        counterpart_id = canonical.counterpart_id(self.user_id)

        merged = self._merge_into_timeline(counterpart_id, canonical)
        self._sort_timeline(counterpart_id)
        self._record_activity(counterpart_id, merged)
        return merged

    receive_sent = confirm_send

    def fail_send(
        self,
        correlation_token: str,
        error: str,
        error_code: str | None = None,
    ) -> TimelineEntry | None:
        """
        Mark a pending send as failed.

        The entry stays in the timeline so the user can see it and resend.
        Confirmed entries are left untouched.
        """
        entry = self.find_by_token(correlation_token)
        if entry is None:
            logger.debug(f"Ignoring failure for unknown token {correlation_token}")
            return None
        if entry.transition(MessageState.FAILED):
            entry.error = error
            entry.error_code = error_code
        return entry

    def resend(self, correlation_token: str) -> TimelineEntry:
        """
        Replace a failed entry with a fresh pending send of the same content.

        The new entry has a new correlation token and becomes a new message
        on the server. If the failed attempt was in fact persisted, both
        messages will exist.
        """
        entry = self.find_by_token(correlation_token)
        if entry is None or entry.state != MessageState.FAILED:
            raise ValidationError(
                "Only failed messages can be resent", error_code="NOT_FAILED"
            )

        counterpart_id = entry.counterpart_id(self.user_id)
        self.timelines[counterpart_id].remove(entry)
        self._token_index.pop(correlation_token, None)
        return self.begin_send(counterpart_id, entry.content, entry.message_type)

    # -------------------------------------------------------------------------
    # Receiving
    # -------------------------------------------------------------------------

    def receive_delivered(self, payload: dict[str, Any]) -> TimelineEntry:
        """
        Handle a "delivered" push: a message addressed to this user.

        The message joins the timeline only if its conversation is open.
        The conversation entry is always created or updated, and its
        unread count grows by one unless the conversation is open or the
        message is already known from an earlier push or fetch.
        """
        incoming = TimelineEntry.from_payload(payload)
        if incoming.sender_id == self.user_id:
            return self.confirm_send(None, payload)

        counterpart_id = incoming.sender_id
        is_open = counterpart_id == self.open_counterpart_id
        already_known = self._is_known(counterpart_id, incoming.id)
        self._remember(incoming.id)

        entry = incoming
        if is_open:
            entry = self._merge_into_timeline(counterpart_id, incoming)
            self._sort_timeline(counterpart_id)
        elif already_known:
            known = next(
                (e for e in self.timelines.get(counterpart_id, []) if e.id == incoming.id),
                None,
            )
            return known or incoming

        self._record_activity(
            counterpart_id,
            entry,
            profile=payload.get("sender"),
            increment_unread=not is_open and not already_known,
        )
        return entry

    def apply_event(self, frame: dict[str, Any]):
        """
        Route a WebSocket frame to its handler.

        Returns:
            The affected TimelineEntry, or None for frames without one
        """
        frame_type = frame.get("type")
        if frame_type == DELIVERY_CONFIG.FRAME_DELIVERED:
            return self.receive_delivered(frame["message"])
        if frame_type == DELIVERY_CONFIG.FRAME_SENT:
            return self.receive_sent(frame.get("correlation_token"), frame["message"])
        if frame_type == DELIVERY_CONFIG.FRAME_ERROR and frame.get("correlation_token"):
            return self.fail_send(
                frame["correlation_token"],
                frame.get("error", ""),
                frame.get("error_code"),
            )
        return None

    # -------------------------------------------------------------------------
    # Conversation bookkeeping
    # -------------------------------------------------------------------------

    def _record_activity(
        self,
        counterpart_id: int,
        entry: TimelineEntry,
        profile: dict[str, Any] | None = None,
        increment_unread: bool = False,
    ) -> ConversationEntry:
        conversation = self.conversation(counterpart_id)
        if conversation is None:
            conversation = ConversationEntry(
                counterpart_id=counterpart_id,
                last_activity_at=entry.created_at,
                last_message=entry,
            )
            self.conversations.append(conversation)
        elif entry.created_at >= conversation.last_activity_at or conversation.last_message is None:
            conversation.last_activity_at = max(entry.created_at, conversation.last_activity_at)
            conversation.last_message = entry
        elif conversation.last_message is not None and conversation.last_message.id == entry.id:
            conversation.last_message = entry

        conversation.apply_profile(profile)
        if increment_unread:
            conversation.unread_count += 1

        self._resort_conversations()
        return conversation

    def _remember(self, message_id: int | None) -> None:
        if message_id is not None and message_id not in self._seen_ids:
            self._seen_ids.append(message_id)

    def _is_known(self, counterpart_id: int, message_id: int | None) -> bool:
        """True if the message was already seen in a push, a history page or a summary."""
        if message_id is None:
            return False
        if message_id in self._seen_ids:
            return True
        if any(e.id == message_id for e in self.timelines.get(counterpart_id, [])):
            return True
        conversation = self.conversation(counterpart_id)
        return (
            conversation is not None
            and conversation.last_message is not None
            and conversation.last_message.id == message_id
        )

    def _resort_conversations(self) -> None:
        # list.sort is stable with reverse=True: ties keep their order
        self.conversations.sort(key=lambda c: c.last_activity_at, reverse=True)


# =============================================================================
# Transport
# =============================================================================


@runtime_checkable
class MessageTransport(Protocol):
    """
    Protocol for creating a message on the server.

    Implementations return the canonical MessageSerializer payload and
    raise BaseApplicationError subclasses on failure: ValidationError and
    NotFoundError for rejected input, TransientDeliveryFailure when the
    outcome is unknown.
    """

    def create_message(
        self,
        receiver_id: int,
        content: str,
        message_type: str,
        correlation_token: str,
    ) -> dict[str, Any]:
        ...


def send_message(
    state: ChatState,
    counterpart_id: int,
    content: str,
    transport: MessageTransport,
    message_type: str = MessageType.TEXT,
) -> TimelineEntry:
    """
    Send one message optimistically.

    Appends a pending placeholder, calls the transport once, and confirms
    or fails the placeholder. Failures are surfaced on the entry and never
    retried here.

    Raises:
        ValidationError: Content is empty (no placeholder is created)
    """
    if not content or not content.strip():
        raise ValidationError("Message content cannot be empty", error_code="EMPTY_CONTENT")

    entry = state.begin_send(counterpart_id, content, message_type)
    token = entry.correlation_token
    try:
        payload = transport.create_message(counterpart_id, content, message_type, token)
    except BaseApplicationError as exc:
        logger.info(f"Send {token} failed: {exc}")
        return state.fail_send(token, exc.message, exc.error_code)

    return state.confirm_send(token, payload)


class ServiceTransport:
    """
    In-process MessageTransport backed by the service layer.

    Mirrors the REST send endpoint: create, then push. Used by server-side
    callers and integration tests that drive ChatState without HTTP.
    """

    def __init__(self, sender):
        self.sender = sender

    def create_message(self, receiver_id, content, message_type, correlation_token):
        result = MessageService.create_message(
            self.sender, receiver_id, content, message_type
        )
        if not result.success:
            if result.error_code == "RECEIVER_NOT_FOUND":
                raise NotFoundError(result.error, error_code=result.error_code)
            raise ValidationError(result.error, error_code=result.error_code)

        DeliveryService.dispatch(result.data, correlation_token=correlation_token)
        return dict(MessageSerializer(result.data).data)

