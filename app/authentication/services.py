"""
User directory services.

This module exposes the read side of the user directory that chat relies on:
- UserDirectoryService.find_by_id: resolve an id to an active user
- UserDirectoryService.find_counterpart: lookup on behalf of a viewer
- UserDirectoryService.search: case-insensitive name/email search

Related files:
    - models.py: User model
    - chat/services.py: MessageService resolves receivers through find_by_id

Usage:
    from authentication.services import UserDirectoryService

    result = UserDirectoryService.search("ada", limit=10, exclude_user_id=me.id)
    if result.success:
        users = result.data
"""

from __future__ import annotations

from django.db.models import Q

from authentication.models import User
from core.helpers import clamp, coerce_id
from core.services import BaseService, ServiceResult

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 50


class UserDirectoryService(BaseService):
    """
    Lookup and search over active users.

    Inactive (deactivated) users are invisible to chat: they cannot be
    found, searched, or messaged.
    """

    @classmethod
    def find_by_id(cls, user_id) -> ServiceResult[User]:
        """
        Resolve a user id to an active user.

        Args:
            user_id: Int or numeric string

        Returns:
            ServiceResult with the User, or failure with
            INVALID_USER_ID / USER_NOT_FOUND
        """
        pk = coerce_id(user_id)
        if pk is None:
            return ServiceResult.failure("Invalid user ID", error_code="INVALID_USER_ID")

        user = User.objects.filter(pk=pk, is_active=True).first()
        if user is None:
            return ServiceResult.failure("User not found", error_code="USER_NOT_FOUND")
        return ServiceResult.success(user)

    @classmethod
    def find_counterpart(cls, viewer: User, user_id) -> ServiceResult[User]:
        """
        Look up a user the viewer may start a conversation with.

        Fails with SAME_USER when the viewer looks up themselves.
        """
        pk = coerce_id(user_id)
        if pk is not None and pk == viewer.pk:
            return ServiceResult.failure(
                "Cannot start a conversation with yourself",
                error_code="SAME_USER",
            )
        return cls.find_by_id(user_id)

    @classmethod
    def search(
        cls,
        query: str | None,
        limit: int = DEFAULT_SEARCH_LIMIT,
        exclude_user_id: int | None = None,
    ) -> ServiceResult[list[User]]:
        """
        Search active users by name or email.

        Matching is a case-insensitive substring match on either field.
        The caller is excluded when exclude_user_id is given.

        Args:
            query: Search text (required, surrounding whitespace ignored)
            limit: Maximum results, clamped to [1, MAX_SEARCH_LIMIT]
            exclude_user_id: User id to leave out of the results

        Returns:
            ServiceResult with a list of users, or failure with EMPTY_QUERY
        """
        query = (query or "").strip()
        if not query:
            return ServiceResult.failure(
                "Search query is required", error_code="EMPTY_QUERY"
            )

        limit = clamp(limit, 1, MAX_SEARCH_LIMIT)
        queryset = User.objects.filter(is_active=True).filter(
            Q(name__icontains=query) | Q(email__icontains=query)
        )
        if exclude_user_id is not None:
            queryset = queryset.exclude(pk=exclude_user_id)

        users = list(queryset.order_by("name", "id")[:limit])
        cls.get_logger().debug(f"Directory search {query!r} returned {len(users)} users")
        return ServiceResult.success(users)
