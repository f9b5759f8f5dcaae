"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Message model and conversation id tests
- test_services.py: Message, conversation index and delivery service tests
- test_presence.py: PresenceService and presence sweep task tests
- test_views.py: REST API endpoint tests
- test_consumers.py: WebSocket consumer tests
- test_middleware.py: WebSocket JWT authentication tests
- test_reconciliation.py: Client state reconciliation tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
