"""
Service layer building blocks.

- ServiceResult: outcome of an operation whose failure is an expected
  branch, not an error. Webhook handlers return one so the intake can
  tell "applied" from "retry later" without catching exceptions.
- BaseService: class-named logger for service classes.

Services that fail in ways the API caller must see raise
core.exceptions.BaseApplicationError subclasses instead.

Usage:
    from core.services import BaseService, ServiceResult

    class SubscriptionManager(BaseService):
        def cancel(self, user):
            self.get_logger().info("Subscription cancel requested")

    result = dispatch_webhook(webhook_event, adapter)
    if not result:
        webhook_event.mark_failed(result.describe())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data (a successful no-op carries None)
        error: Error message if failed
        error_code: Machine-readable error code, e.g. PAYMENT_NOT_FOUND
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    def describe(self) -> str:
        """One-line "[CODE] message" summary of a failure."""
        return f"[{self.error_code}] {self.error}"

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services hold collaborators (e.g. the gateway adapter) as instance
    attributes so tests can inject doubles; they keep no per-request state.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")
