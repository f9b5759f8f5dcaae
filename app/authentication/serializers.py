"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (current user, read operations)
- Directory entries (the public view of a user shown in chat)
- Directory search query parameters

Related files:
    - models.py: User model
    - views.py: CurrentUserView
    - chat/views.py: Directory search and lookup endpoints
"""

from rest_framework import serializers

from authentication.models import User
from authentication.services import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT

DEFAULT_AVATAR_URL = "/api/placeholder/40/40"


class UserSerializer(serializers.ModelSerializer):
    """Serializer for the authenticated user's own account."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "avatar",
            "is_online",
            "last_seen",
            "date_joined",
        ]
        read_only_fields = fields


class DirectoryUserSerializer(serializers.ModelSerializer):
    """
    Public view of a user as shown in search results and conversation lists.

    Users without an avatar get a placeholder URL so clients always have
    something to render.
    """

    avatar = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "name", "email", "avatar", "is_online", "last_seen"]
        read_only_fields = fields

    def get_avatar(self, obj) -> str:
        return obj.avatar or DEFAULT_AVATAR_URL


class UserSearchQuerySerializer(serializers.Serializer):
    """Query parameters for directory search."""

    query = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        trim_whitespace=True,
        help_text="Case-insensitive text matched against name and email",
    )
    limit = serializers.IntegerField(
        required=False,
        default=DEFAULT_SEARCH_LIMIT,
        min_value=1,
        max_value=MAX_SEARCH_LIMIT,
    )
