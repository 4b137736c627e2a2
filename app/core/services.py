"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected outcomes that callers branch on
      (e.g. a webhook handler that had nothing to do)
    - Exceptions: Use for failures the caller must see (not found,
      payment not succeeded, gateway errors)

Usage:
    from core.services import BaseService, ServiceResult

    class PlanCostService(BaseService):
        @classmethod
        def estimate_cost(cls, plan_id):
            with cls.atomic():
                ...
            cls.get_logger().info("Estimated plan cost")
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success({"plan_id": str(plan.id)})

        # Failure case
        return ServiceResult.failure("Missing object id", "INVALID_WEBHOOK_PAYLOAD")

        # Check result
        if result.success:
            data = result.data
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying data."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """Create a failed result; callers branch on error_code."""
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Services keep no request state between calls
        - Collaborators (repositories, gateways) may be injected through
          the constructor so tests can substitute fakes
        - Raise exceptions for failures the caller must handle
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class, e.g. payments.services.payment_orchestrator.PaymentOrchestrator."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Run the block in a database transaction (a savepoint when nested).

        Example:
            with cls.atomic():
                ledger.record(...)
                repository.set_service_item_payment_status(...)
                # If the status write fails, the ledger row is rolled back too
        """
        with transaction.atomic():
            yield
