"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Token generation (correlation tokens for optimistic client sends)
- Identifier coercion (ids arriving as strings from URLs, JSON or WebSocket frames)
- Bounded integer parsing for pagination and limits

These utilities are pure infrastructure - they have no knowledge
of users, messages or conversations.

Usage:
    from core.helpers import coerce_id, generate_token

    token = generate_token(16)
    receiver_id = coerce_id(payload.get("receiver_id"))
"""

from __future__ import annotations

import secrets


def generate_token(length: int = 16) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        length: Number of bytes (resulting string is 2x length in hex)

    Returns:
        Hexadecimal token string

    Example:
        token = generate_token(16)  # Returns 32-character hex string
    """
    return secrets.token_hex(length)


def coerce_id(value) -> int | None:
    """
    Convert a primary key candidate to a positive int.

    Accepts ints and decimal strings. Booleans, floats, blanks and anything
    non-numeric are rejected.

    Returns:
        The integer id, or None when the value is not a well-formed id

    Example:
        coerce_id("42")   # 42
        coerce_id("abc")  # None
        coerce_id(0)      # None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        value = value.strip()
        if value.isascii() and value.isdigit():
            number = int(value)
            return number if number > 0 else None
    return None


def clamp(value: int, minimum: int, maximum: int) -> int:
    """Clamp value into the inclusive [minimum, maximum] range."""
    return max(minimum, min(value, maximum))
