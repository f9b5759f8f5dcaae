"""
WebSocket consumers for the chat application.

This module implements the WebSocket consumer for real-time direct messaging,
handling connection management, message dispatch, and delivery of pushed
events to the client.

Consumers:
    ChatConsumer: One connection per client, subscribed to its user's group

Authentication:
    Users are authenticated via JWT token passed as query parameter or
    subprotocol. JWTAuthMiddleware attaches the user to self.scope["user"].

Channel Groups:
    Each user has a channel group named "user_{user_id}". Every connection
    of that user joins it; DeliveryService pushes to it.

Message Types (from client):
    - dispatch: Create a message and push it to both participants
    - read: Mark a conversation as read
    - heartbeat: Keep presence alive

Message Types (to client):
    - delivered: A message addressed to this user
    - sent: Confirmation of a message this user created (with correlation_token)
    - read: Acknowledgement of a read frame
    - heartbeat: Acknowledgement of a heartbeat
    - error: Error response (with correlation_token when the frame had one)
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.constants import DELIVERY_CONFIG, PRESENCE_CONFIG
from chat.middleware import JWT_SUBPROTOCOL
from chat.models import conversation_id
from chat.serializers import DispatchFrameSerializer, ReadFrameSerializer
from chat.services import DeliveryService, MessageService, PresenceService

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Handles:
        - Connection authentication
        - Joining/leaving the user's own channel group
        - Creating messages over the socket
        - Forwarding delivered/sent events
        - Presence (connect, disconnect, heartbeat)

    Attributes:
        user: Authenticated user (after connect)
        group_name: Channel layer group for the user
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.group_name: str | None = None

    async def connect(self):
        """
        Handle WebSocket connection.

        Anonymous connections are closed with 4001. Authenticated users join
        their group, the connection is accepted, and presence is updated.
        """
        user = self.scope.get("user")

        if not user or not user.is_authenticated:
            logger.warning("Rejected unauthenticated chat connection")
            await self.close(code=DELIVERY_CONFIG.CLOSE_UNAUTHENTICATED)
            return

        self.user = user
        self.group_name = DeliveryService.user_group_name(user.pk)

        await self.channel_layer.group_add(self.group_name, self.channel_name)

        # Echo the jwt subprotocol back, browsers drop the socket otherwise
        subprotocols = self.scope.get("subprotocols") or []
        subprotocol = JWT_SUBPROTOCOL if JWT_SUBPROTOCOL in subprotocols else None
        await self.accept(subprotocol=subprotocol)

        await database_sync_to_async(PresenceService.mark_connected)(user.pk)
        logger.info(f"User {user.pk} connected to chat")

    async def disconnect(self, close_code):
        """Leave the user group and update presence."""
        if not self.group_name:
            return

        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        await database_sync_to_async(PresenceService.mark_disconnected)(self.user.pk)
        logger.info(f"User {self.user.pk} disconnected from chat ({close_code})")

    async def receive_json(self, content, **kwargs):
        """
        Route an incoming frame by its "type".

        Expected frames:
            {"type": "dispatch", "receiver_id": 7, "content": "Hi", "correlation_token": "c-1"}
            {"type": "read", "counterpart_id": 7}
            {"type": "heartbeat"}
        """
        if not isinstance(content, dict):
            await self._send_error("Frames must be JSON objects", "INVALID_FRAME")
            return

        frame_type = content.get("type")

        if frame_type == DELIVERY_CONFIG.CLIENT_DISPATCH:
            await self._handle_dispatch(content)
        elif frame_type == DELIVERY_CONFIG.CLIENT_READ:
            await self._handle_read(content)
        elif frame_type == DELIVERY_CONFIG.CLIENT_HEARTBEAT:
            await database_sync_to_async(PresenceService.touch)(self.user.pk)
            await self.send_json(
                {
                    "type": DELIVERY_CONFIG.FRAME_HEARTBEAT,
                    "interval": PRESENCE_CONFIG.HEARTBEAT_INTERVAL_SECONDS,
                }
            )
        else:
            await self._send_error(
                f"Unknown message type: {frame_type}",
                "UNKNOWN_FRAME_TYPE",
            )

    async def _handle_dispatch(self, content):
        """
        Create a message and push it.

        The push goes through DeliveryService, which sends "delivered" to the
        receiver and "sent" to this user's group (including this socket).
        """
        token = content.get("correlation_token")
        serializer = DispatchFrameSerializer(data=content)
        if not serializer.is_valid():
            await self._send_error(
                "Invalid dispatch frame",
                "VALIDATION_ERROR",
                correlation_token=token if isinstance(token, str) else None,
                errors=serializer.errors,
            )
            return

        data = serializer.validated_data
        token = data.get("correlation_token") or None

        result = await database_sync_to_async(MessageService.create_message)(
            self.user,
            data["receiver_id"],
            data["content"],
            data["message_type"],
        )
        if not result.success:
            await self._send_error(result.error, result.error_code, correlation_token=token)
            return

        delivery = await DeliveryService.adispatch(result.data, correlation_token=token)
        if not delivery.success:
            await self._send_error(
                delivery.error, delivery.error_code, correlation_token=token
            )

    async def _handle_read(self, content):
        serializer = ReadFrameSerializer(data=content)
        if not serializer.is_valid():
            await self._send_error(
                "Invalid read frame", "VALIDATION_ERROR", errors=serializer.errors
            )
            return

        counterpart_id = serializer.validated_data["counterpart_id"]
        result = await database_sync_to_async(MessageService.mark_conversation_read)(
            self.user, counterpart_id
        )
        if not result.success:
            await self._send_error(result.error, result.error_code)
            return

        await self.send_json(
            {
                "type": DELIVERY_CONFIG.FRAME_READ,
                "counterpart_id": counterpart_id,
                "conversation_id": conversation_id(self.user.pk, counterpart_id),
                "updated": result.data,
            }
        )

    async def _send_error(self, error, error_code, correlation_token=None, errors=None):
        frame = {
            "type": DELIVERY_CONFIG.FRAME_ERROR,
            "error": error,
            "error_code": error_code,
        }
        if correlation_token is not None:
            frame["correlation_token"] = correlation_token
        if errors:
            frame["errors"] = errors
        await self.send_json(frame)

    async def chat_delivered(self, event):
        """Handle chat.delivered events: a message addressed to this user."""
        await self.send_json(
            {
                "type": DELIVERY_CONFIG.FRAME_DELIVERED,
                "message": event["message"],
            }
        )

    async def chat_sent(self, event):
        """Handle chat.sent events: confirmation of a message this user created."""
        await self.send_json(
            {
                "type": DELIVERY_CONFIG.FRAME_SENT,
                "message": event["message"],
                "correlation_token": event.get("correlation_token"),
            }
        )
