"""
DRF exception handler for the application exception hierarchy.

Views call services directly and let BaseApplicationError subclasses
propagate; this handler turns them into JSON responses using
``to_dict()``. Anything else falls through to DRF's default handler.

App exceptions pick their status by also deriving from one of the core
categories, e.g. ``class PaymentNotSucceededError(PaymentError, ConflictError)``.

Configured in settings:
    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.exception_handlers.application_exception_handler",
    }
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

# Checked in order; the first matching base class wins
STATUS_BY_ERROR_CLASS: list[tuple[type[BaseApplicationError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
]


def status_for(exc: BaseApplicationError) -> int:
    """Return the HTTP status for an application error."""
    for error_class, status_code in STATUS_BY_ERROR_CLASS:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def application_exception_handler(
    exc: Exception, context: dict[str, Any]
) -> Response | None:
    """Convert BaseApplicationError into a response, defer everything else."""
    if isinstance(exc, BaseApplicationError):
        status_code = status_for(exc)
        view = context.get("view")
        log = logger.warning if status_code < 500 else logger.error
        log(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'view'}",
            extra={
                "error_code": exc.error_code,
                "status_code": status_code,
                "details": exc.details,
            },
        )
        return Response(exc.to_dict(), status=status_code)

    return exception_handler(exc, context)
