"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message operations (content limits, history pagination)
- Real-time delivery (group naming, event types)
- Presence tracking (connection counters, heartbeat cadence)

Import example:
    from chat.constants import MESSAGE_CONFIG, DELIVERY_CONFIG
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits (measured after trimming surrounding whitespace)
    MAX_CONTENT_LENGTH: Final[int] = 1000  # Characters

    # History pagination (page numbers are 1-based)
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100

    # Correlation tokens are echoed, never interpreted
    MAX_CORRELATION_TOKEN_LENGTH: Final[int] = 64


# =============================================================================
# Delivery Configuration
# =============================================================================


class DELIVERY_CONFIG:
    """Configuration for real-time delivery over the channel layer."""

    # Every connection joins exactly its own user's group
    USER_GROUP_PREFIX: Final[str] = "user"

    # Channel layer event types (dots map to consumer handler names)
    EVENT_DELIVERED: Final[str] = "chat.delivered"
    EVENT_SENT: Final[str] = "chat.sent"

    # WebSocket frame types sent to clients
    FRAME_DELIVERED: Final[str] = "delivered"
    FRAME_SENT: Final[str] = "sent"
    FRAME_READ: Final[str] = "read"
    FRAME_HEARTBEAT: Final[str] = "heartbeat"
    FRAME_ERROR: Final[str] = "error"

    # WebSocket frame types accepted from clients
    CLIENT_DISPATCH: Final[str] = "dispatch"
    CLIENT_READ: Final[str] = "read"
    CLIENT_HEARTBEAT: Final[str] = "heartbeat"

    # Close codes
    CLOSE_UNAUTHENTICATED: Final[int] = 4001

    # Message ids a client remembers for de-duplicating pushes
    CLIENT_SEEN_ID_WINDOW: Final[int] = 500


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for presence tracking."""

    # TTL for connection counters (seconds); refreshed by heartbeats
    PRESENCE_TTL_SECONDS: Final[int] = 90

    # Cache key prefix for per-user open connection counters
    KEY_PREFIX_USER_CONNECTIONS: Final[str] = "presence:conn"

    # How often clients should send heartbeat
    HEARTBEAT_INTERVAL_SECONDS: Final[int] = 30

    # Minimum gap between last_seen writes triggered by heartbeats
    LAST_SEEN_WRITE_INTERVAL_SECONDS: Final[int] = 30
