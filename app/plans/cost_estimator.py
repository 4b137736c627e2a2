"""
Coverage allocation across a plan's funding sources.

CostEstimator spreads the total cost of a plan's service items over its
funding sources and reports what is left for the client to pay.

Allocation Rules:
    1. Total is the sum of estimated_cost over items that are not
       discontinued.
    2. Sources are applied in tiers: verified, then pending, then denied.
       Within a tier, the caller's order (insertion order) is kept.
    3. A source's nominal coverage is percentage/100 * total when a
       percentage is set, otherwise its fixed amount.
    4. Each source is applied up to what is still uncovered, so coverage
       never exceeds the total. Later sources then show 0.
    5. Denied sources always show 0.
    6. out_of_pocket = max(0, total - covered).

Malformed funding data never raises: a source with no coverage terms is
reported with 0 and needs_review=True, negative or out-of-range values
are clamped, and a warning is logged.

Usage:
    from plans.cost_estimator import CostEstimator

    estimate = CostEstimator.estimate(plan.service_items.all(), plan.funding_sources.all())
    estimate.out_of_pocket_cost  # Decimal("0.00")
    estimate.to_dict()

Inputs are duck-typed: anything with the model attribute names works,
which is how funding recommendations estimate candidates that are not
FundingSource rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.conf import settings

from plans.models import ServiceItemStatus, VerificationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

TIER_ORDER = {
    VerificationStatus.VERIFIED.value: 0,
    VerificationStatus.PENDING.value: 1,
    VerificationStatus.DENIED.value: 2,
}


def quantize_money(value: Decimal) -> Decimal:
    """Round a major-unit amount to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class ServiceCostLine:
    """Cost of one service category."""

    service_category: str
    cost: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"service_category": self.service_category, "cost": self.cost}


@dataclass(frozen=True)
class FundingAllocation:
    """
    Coverage applied from one funding source.

    Attributes:
        funding_source_id: Source id
        name: Source name
        amount_applied: Coverage actually applied (never above what was uncovered)
        was_verified: Whether the source was verified
        verification_status: Raw verification status
        needs_review: Source had neither a percentage nor an amount
    """

    funding_source_id: Any
    name: str
    amount_applied: Decimal
    was_verified: bool
    verification_status: str
    needs_review: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "funding_source_id": (
                str(self.funding_source_id)
                if self.funding_source_id is not None
                else None
            ),
            "name": self.name,
            "amount_applied": self.amount_applied,
            "was_verified": self.was_verified,
            "verification_status": self.verification_status,
            "needs_review": self.needs_review,
        }


@dataclass(frozen=True)
class CostEstimate:
    """
    Derived cost estimate for a set of service items.

    Never persisted; recompute from the plan whenever it is needed.
    """

    total_cost: Decimal
    covered_amount: Decimal
    out_of_pocket_cost: Decimal
    service_breakdown: list[ServiceCostLine] = field(default_factory=list)
    funding_breakdown: list[FundingAllocation] = field(default_factory=list)
    currency: str = "usd"

    def allocation_for(self, funding_source_id: Any) -> FundingAllocation | None:
        """Return the allocation line for a source id, if present."""
        for allocation in self.funding_breakdown:
            if str(allocation.funding_source_id) == str(funding_source_id):
                return allocation
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cost": self.total_cost,
            "covered_amount": self.covered_amount,
            "out_of_pocket_cost": self.out_of_pocket_cost,
            "service_breakdown": [line.to_dict() for line in self.service_breakdown],
            "funding_breakdown": [
                allocation.to_dict() for allocation in self.funding_breakdown
            ],
            "currency": self.currency,
        }


# =============================================================================
# Estimator
# =============================================================================


class CostEstimator:
    """
    Pure coverage allocator.

    Holds no state and performs no I/O; the same inputs always produce
    the same estimate.
    """

    @classmethod
    def estimate(
        cls,
        items: Iterable[Any],
        funding_sources: Iterable[Any],
        currency: str | None = None,
    ) -> CostEstimate:
        """
        Estimate cost and coverage.

        Args:
            items: Service items (estimated_cost, status, service_category)
            funding_sources: Funding sources (id, name, coverage_percentage,
                coverage_amount, verification_status) in insertion order
            currency: ISO currency code; defaults to PAYMENT_CURRENCY

        Returns:
            CostEstimate with per-category and per-source breakdowns
        """
        currency = (currency or settings.PAYMENT_CURRENCY).lower()
        total, service_breakdown = cls._total_cost(items)

        covered = ZERO
        funding_breakdown: list[FundingAllocation] = []
        for source in cls.order_sources(funding_sources):
            allocation = cls._allocate(source, total, total - covered)
            covered += allocation.amount_applied
            funding_breakdown.append(allocation)

        return CostEstimate(
            total_cost=total,
            covered_amount=covered,
            out_of_pocket_cost=max(ZERO, total - covered),
            service_breakdown=service_breakdown,
            funding_breakdown=funding_breakdown,
            currency=currency,
        )

    @staticmethod
    def order_sources(funding_sources: Iterable[Any]) -> list[Any]:
        """
        Order sources by verification tier, keeping input order within a tier.

        Unknown statuses rank with pending.
        """
        return sorted(
            funding_sources,
            key=lambda source: TIER_ORDER.get(
                str(getattr(source, "verification_status", "")),
                TIER_ORDER[VerificationStatus.PENDING.value],
            ),
        )

    @classmethod
    def _total_cost(cls, items: Iterable[Any]) -> tuple[Decimal, list[ServiceCostLine]]:
        total = ZERO
        per_category: dict[str, Decimal] = {}

        for item in items:
            if getattr(item, "status", None) == ServiceItemStatus.DISCONTINUED:
                continue

            cost = _to_decimal(getattr(item, "estimated_cost", None))
            if cost is None or cost < 0:
                logger.warning(
                    "Service item has an invalid estimated cost, counting it as zero",
                    extra={
                        "service_item_id": str(getattr(item, "id", "")),
                        "estimated_cost": str(getattr(item, "estimated_cost", None)),
                    },
                )
                cost = ZERO
            cost = quantize_money(cost)

            category = getattr(item, "service_category", "") or ""
            per_category[category] = per_category.get(category, ZERO) + cost
            total += cost

        breakdown = [
            ServiceCostLine(service_category=category, cost=cost)
            for category, cost in per_category.items()
        ]
        return total, breakdown

    @classmethod
    def _allocate(cls, source: Any, total: Decimal, remaining: Decimal) -> FundingAllocation:
        status = getattr(source, "verification_status", VerificationStatus.PENDING)
        source_id = getattr(source, "id", None)
        name = getattr(source, "name", "") or ""
        nominal, needs_review = cls.nominal_coverage(source, total)

        if status == VerificationStatus.DENIED:
            applied = ZERO
        else:
            applied = min(nominal, max(ZERO, remaining))

        return FundingAllocation(
            funding_source_id=source_id,
            name=name,
            amount_applied=applied,
            was_verified=status == VerificationStatus.VERIFIED,
            verification_status=str(status),
            needs_review=needs_review,
        )

    @staticmethod
    def nominal_coverage(source: Any, total: Decimal) -> tuple[Decimal, bool]:
        """
        Compute what a source would cover on its own.

        Returns:
            Tuple of (nominal amount in major units, needs_review flag)
        """
        source_id = str(getattr(source, "id", ""))
        percentage = _to_decimal(getattr(source, "coverage_percentage", None))
        amount = _to_decimal(getattr(source, "coverage_amount", None))

        if percentage is not None:
            if percentage < 0 or percentage > HUNDRED:
                logger.warning(
                    "Funding source coverage percentage out of range, clamping",
                    extra={"funding_source_id": source_id, "coverage_percentage": str(percentage)},
                )
                percentage = min(max(percentage, Decimal("0")), HUNDRED)
            return quantize_money(total * percentage / HUNDRED), False

        if amount is not None:
            if amount < 0:
                logger.warning(
                    "Funding source coverage amount is negative, clamping to zero",
                    extra={"funding_source_id": source_id, "coverage_amount": str(amount)},
                )
                amount = ZERO
            return quantize_money(amount), False

        logger.warning(
            "Funding source has neither coverage percentage nor amount",
            extra={"funding_source_id": source_id},
        )
        return ZERO, True
