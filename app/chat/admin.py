"""
Django admin configuration for chat models.

Provides a read-only message moderation interface. Messages are immutable,
so the admin can inspect and filter them but never add or change them.
"""

from django.contrib import admin

from chat.models import Message


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "sender",
        "receiver",
        "message_type",
        "content_preview",
        "is_read",
        "created_at",
        "dispatched_at",
    ]
    list_filter = ["message_type", "is_read", "created_at"]
    search_fields = ["content", "sender__email", "receiver__email"]
    readonly_fields = [
        "sender",
        "receiver",
        "content",
        "message_type",
        "is_read",
        "created_at",
        "updated_at",
        "dispatched_at",
    ]
    raw_id_fields = ["sender", "receiver"]
    list_select_related = ["sender", "receiver"]
    ordering = ["-created_at"]

    @admin.display(description="Content")
    def content_preview(self, obj):
        return obj.content[:50] + "..." if len(obj.content) > 50 else obj.content

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
