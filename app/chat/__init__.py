"""
Chat app for marketplace direct messaging.

This app handles:
- Messages between two users (buyer and seller)
- Conversation lists derived from messages
- WebSocket real-time delivery and presence
- Client-side reconciliation of optimistic sends (chat.reconciliation)

Related apps:
    - authentication: User model and user directory

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import DeliveryService, MessageService

    result = MessageService.create_message(
        sender=buyer,
        receiver_id=seller.id,
        content="Is this still available?",
    )
    if result.success:
        DeliveryService.dispatch(result.data)
"""
