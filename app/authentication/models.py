"""
Authentication models.

This module defines the user directory model consumed by chat:
- User: Custom user model with email-based authentication plus the
  display and presence fields that conversations and search expose

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: UserDirectoryService (lookup and search)
    - chat/services.py: PresenceService maintains is_online / last_seen

Security:
    - User passwords hashed with Django's PBKDF2
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name shown in conversation lists and search
        avatar: URL of the user's avatar image (stored elsewhere)
        is_online: Whether the user has at least one open chat connection
        last_seen: When the user was last observed online
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email='buyer@example.com',
            password='securepassword',
            name='Ada Buyer',
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(
        max_length=150,
        blank=True,
        db_index=True,
        help_text="Display name shown to other users",
    )
    avatar = models.URLField(
        max_length=500,
        blank=True,
        help_text="URL of the user's avatar image",
    )

    # Presence, maintained by chat.services.PresenceService
    is_online = models.BooleanField(
        default=False,
        help_text="Whether the user currently has an open chat connection",
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user was last observed online",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"

    # Email is automatically required since it's the USERNAME_FIELD
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return the display name, falling back to the email address."""
        return self.name or self.email

    def get_short_name(self):
        """Return the display name, falling back to the email local part."""
        return self.name or self.email.split("@")[0]
