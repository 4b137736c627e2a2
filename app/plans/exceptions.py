"""
Services plan exceptions.

Exception Hierarchy:
    NotFoundError (core)
    └── PlanNotFoundError - Plan or one of its service items is missing
"""

from __future__ import annotations

from core.exceptions import NotFoundError


class PlanNotFoundError(NotFoundError):
    """
    Raised when a services plan (or a named item on it) does not exist.

    Example:
        raise PlanNotFoundError(
            f"Services plan {plan_id} not found",
            details={"plan_id": str(plan_id)},
        )

        # Named items missing from an existing plan
        raise PlanNotFoundError(
            "Service items not found on plan",
            details={"plan_id": str(plan_id), "missing_item_ids": [...]},
        )
    """

    default_error_code: str = "PLAN_NOT_FOUND"


__all__ = ["PlanNotFoundError"]
