"""
Application error hierarchy.

Domain code raises these; core.exception_handlers turns them into JSON
responses and picks the HTTP status from the category an error inherits:

    BaseApplicationError
    ├── ValidationError       400
    ├── NotFoundError         404
    ├── ConflictError         409
    └── ExternalServiceError  502

App-level errors (see payments.exceptions) subclass one of the four
categories, so views never map statuses themselves.

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError(
        f"Services plan {plan_id} not found",
        error_code="PLAN_NOT_FOUND",
        details={"plan_id": str(plan_id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Root of every error the API reports with an error_code.

    Attributes:
        message: Text shown to the client
        error_code: Stable identifier clients switch on
        details: JSON-serializable context such as offending ids
    """

    default_error_code: str = "APPLICATION_ERROR"

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
        """Response body; details is left out when empty."""
        body: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, error_code={self.error_code!r}, details={self.details!r})"


class ValidationError(BaseApplicationError):
    """Input was well-formed but not acceptable to the service layer."""

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """The target exists but is in the wrong state for the operation."""

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    A third-party call failed.

    The message goes to clients; provider internals belong in the log
    record, not in details.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
