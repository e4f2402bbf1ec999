"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps. No business logic
lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)
    - UUIDModel: BaseModel keyed by a UUID

Services (import from core.services):
    - BaseService: Class-named logger for service classes
    - ServiceResult: Result wrapper for expected success/failure outcomes

Exceptions (import from core.exceptions):
    - BaseApplicationError and its HTTP-aware subclasses
      (ValidationError, UnauthenticatedError, PermissionDeniedError,
      NotFoundError, ConflictError, FailedPreconditionError,
      InternalError, ExternalServiceError)

API plumbing:
    - core.exception_handler.application_exception_handler: DRF handler
    - core.views.health_check: liveness/readiness endpoint
"""
