"""
Persistence interface for services plans.

The payment orchestrator and the plan services depend on the
ServicesPlanRepository protocol rather than the ORM, so tests can pass
an in-memory fake and the storage can change without touching them.

Protocols:
    ServicesPlanRepository: Plan reads and payment status writes

Implementations:
    DjangoServicesPlanRepository: Django ORM implementation

Payment Status Writes:
    set_service_item_payment_status is an idempotent set, never an append.
    It only moves rows whose current status may reach the target, so a
    late payment_failed delivery cannot un-pay an item and a replayed
    succeeded event cannot undo a refund:

        paid      ← unpaid, failed, paid
        failed    ← unpaid, failed
        refunded  ← paid, refunded
        unpaid    ← unpaid, failed

Usage:
    from plans.repositories import DjangoServicesPlanRepository

    repository = DjangoServicesPlanRepository()
    plan = repository.find_plan(plan_id)
    repository.set_service_item_payment_status(plan_id, item_ids, PaymentStatus.PAID)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from core.exceptions import ValidationError
from core.helpers import validate_uuid
from plans.exceptions import PlanNotFoundError
from plans.models import PaymentStatus, ServiceItem, ServicesPlan

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

logger = logging.getLogger(__name__)

ALLOWED_PAYMENT_STATUS_SOURCES: dict[str, tuple[str, ...]] = {
    PaymentStatus.PAID.value: (
        PaymentStatus.UNPAID.value,
        PaymentStatus.FAILED.value,
        PaymentStatus.PAID.value,
    ),
    PaymentStatus.FAILED.value: (
        PaymentStatus.UNPAID.value,
        PaymentStatus.FAILED.value,
    ),
    PaymentStatus.REFUNDED.value: (
        PaymentStatus.PAID.value,
        PaymentStatus.REFUNDED.value,
    ),
    PaymentStatus.UNPAID.value: (
        PaymentStatus.UNPAID.value,
        PaymentStatus.FAILED.value,
    ),
}

UPDATABLE_PLAN_FIELDS = frozenset({"title", "description", "status"})


@runtime_checkable
class ServicesPlanRepository(Protocol):
    """
    Protocol for services plan persistence.

    Example:
        class InMemoryPlanRepository:
            def find_plan(self, plan_id, include_items=True, include_funding=True): ...
            def set_service_item_payment_status(self, plan_id, item_ids, status): ...
            def update(self, plan_id, patch): ...
    """

    def find_plan(
        self,
        plan_id: Any,
        include_items: bool = True,
        include_funding: bool = True,
    ) -> ServicesPlan | None:
        """
        Load a plan.

        Args:
            plan_id: Plan id
            include_items: Prefetch service items
            include_funding: Prefetch funding sources

        Returns:
            The plan, or None when it does not exist
        """
        ...

    def set_service_item_payment_status(
        self,
        plan_id: Any,
        item_ids: Iterable[Any],
        status: str,
    ) -> bool:
        """
        Set payment_status on the given items of a plan.

        Returns:
            False when the plan does not exist, True otherwise
        """
        ...

    def update(self, plan_id: Any, patch: dict[str, Any]) -> ServicesPlan:
        """
        Apply plan-level field changes.

        Raises:
            PlanNotFoundError: Plan does not exist
        """
        ...


class DjangoServicesPlanRepository:
    """ServicesPlanRepository backed by the Django ORM."""

    def find_plan(
        self,
        plan_id: Any,
        include_items: bool = True,
        include_funding: bool = True,
    ) -> ServicesPlan | None:
        if not validate_uuid(plan_id):
            return None

        queryset = ServicesPlan.objects.all()
        prefetch = []
        if include_items:
            prefetch.append("service_items")
        if include_funding:
            prefetch.append("funding_sources")
        if prefetch:
            queryset = queryset.prefetch_related(*prefetch)

        return queryset.filter(pk=plan_id).first()

    def set_service_item_payment_status(
        self,
        plan_id: Any,
        item_ids: Iterable[Any],
        status: str,
    ) -> bool:
        status = str(status)
        if status not in ALLOWED_PAYMENT_STATUS_SOURCES:
            raise ValidationError(
                f"Unknown payment status '{status}'",
                details={"status": status},
            )

        if not validate_uuid(plan_id) or not ServicesPlan.objects.filter(pk=plan_id).exists():
            logger.warning(
                "Payment status update for unknown plan",
                extra={"plan_id": str(plan_id), "status": status},
            )
            return False

        item_ids = [str(item_id) for item_id in item_ids if validate_uuid(item_id)]
        if not item_ids:
            return True

        # Single conditional UPDATE; replays and races converge on the same rows
        updated = ServiceItem.objects.filter(
            plan_id=plan_id,
            id__in=item_ids,
            payment_status__in=ALLOWED_PAYMENT_STATUS_SOURCES[status],
        ).update(payment_status=status)

        logger.info(
            f"Set payment status to {status} on {updated} service item(s)",
            extra={
                "plan_id": str(plan_id),
                "status": status,
                "requested": len(item_ids),
                "updated": updated,
            },
        )
        return True

    def update(self, plan_id: Any, patch: dict[str, Any]) -> ServicesPlan:
        unknown = set(patch) - UPDATABLE_PLAN_FIELDS
        if unknown:
            raise ValidationError(
                "Only title, description and status can be updated",
                details={"fields": sorted(unknown)},
            )

        plan = self.find_plan(plan_id, include_items=False, include_funding=False)
        if plan is None:
            raise PlanNotFoundError(
                f"Services plan {plan_id} not found",
                details={"plan_id": str(plan_id)},
            )

        for field_name, value in patch.items():
            setattr(plan, field_name, value)
        plan.save(update_fields=[*patch.keys(), "updated_at"])
        return plan
