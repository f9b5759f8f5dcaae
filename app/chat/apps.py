"""
Chat application configuration.

This app provides direct messaging with:
- Persisted one-to-one messages
- Read-time conversation index
- Real-time delivery over Django Channels
- Connection-based presence
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
