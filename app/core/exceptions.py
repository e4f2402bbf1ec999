"""
Application error hierarchy.

Each error carries a machine-readable code and the HTTP status it renders
with, so core.exception_handler can turn any of them into a response
without a lookup table.

    BaseApplicationError (400)
    ├── ValidationError (400)
    ├── UnauthenticatedError (401)
    ├── PermissionDeniedError (403)
    ├── NotFoundError (404)
    ├── ConflictError (409)
    ├── FailedPreconditionError (412)
    ├── InternalError (500)
    └── ExternalServiceError (502)

Usage:
    raise NotFoundError("Job not found", details={"job_id": str(job_id)})

    raise FailedPreconditionError(
        "Freelancer has no connected payout account",
        error_code="CONNECT_ACCOUNT_REQUIRED",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Attributes:
        message: Text shown to the API caller
        error_code: Stable code clients branch on; defaults per class
        details: Extra JSON-safe context (ids, gateway codes)
        status_code: HTTP status for the API response
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Response body: {"error", "error_code"} plus "details" when present."""
        body: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, "
            f"error_code={self.error_code!r}, details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Bad input caught by a service. Request bodies are checked by serializers."""

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class UnauthenticatedError(BaseApplicationError):
    """A service was called without a caller (views already require auth)."""

    default_error_code: str = "UNAUTHENTICATED"
    status_code: int = 401


class PermissionDeniedError(BaseApplicationError):
    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(BaseApplicationError):
    """The resource's current state forbids the change."""

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class FailedPreconditionError(BaseApplicationError):
    """
    A prerequisite is missing, e.g. the freelancer has not finished payout
    onboarding. Retrying is pointless until something else changes.
    """

    default_error_code: str = "FAILED_PRECONDITION"
    status_code: int = 412


class InternalError(BaseApplicationError):
    default_error_code: str = "INTERNAL_ERROR"
    status_code: int = 500


class ExternalServiceError(BaseApplicationError):
    """A third-party API call failed."""

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 502
