"""
Authentication application.

This app owns user identity and the user directory that chat consumes.

Key components:
    - User model: Email-based login plus display name, avatar and presence fields
    - UserDirectoryService: Lookup by id and name/email search
    - JWT token endpoints (djangorestframework-simplejwt)

Usage:
    from authentication.models import User
    from authentication.services import UserDirectoryService
"""
