"""
DRF exception handler for application errors.

Renders BaseApplicationError subclasses with their own status code and
to_dict() body. Everything else goes through DRF's default handler, which
returns None for non-API exceptions so Django produces a 500.

Configured in settings:
    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.exception_handler.application_exception_handler",
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def application_exception_handler(exc, context):
    """Convert domain exceptions to API responses."""
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        log_level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(
            log_level,
            f"{exc.__class__.__name__} raised in {view.__class__.__name__}",
            extra={"error_code": exc.error_code, "status_code": exc.status_code},
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
