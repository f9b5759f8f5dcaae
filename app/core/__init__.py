"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps. It has no
knowledge of users, messages or conversations.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - ExternalServiceError: Infrastructure/transport failures

Helpers (import from core.helpers):
    - generate_token, coerce_id, clamp

Views (import from core.views):
    - health_check: Liveness/readiness endpoint
"""
