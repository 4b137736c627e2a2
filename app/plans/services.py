"""
Services plan business logic.

Services:
    PlanCostService: Cost estimate for a stored plan
    FundingRecommendationService: Advisory funding source recommendations

Both services are read-only; they never write plans or funding sources.
The repository is injected so tests can pass a fake.

Usage:
    from plans.services import FundingRecommendationService, PlanCostService

    estimate = PlanCostService().estimate_cost(plan_id)
    funding = FundingRecommendationService().identify_funding(client_id, plan_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from core.services import BaseService
from plans.cost_estimator import ZERO, CostEstimate, CostEstimator
from plans.exceptions import PlanNotFoundError
from plans.models import (
    ClientFundingProfile,
    FundingProgram,
    ServiceItemStatus,
    VerificationStatus,
)
from plans.repositories import DjangoServicesPlanRepository

if TYPE_CHECKING:
    from typing import Any

    from plans.models import ServicesPlan
    from plans.repositories import ServicesPlanRepository


class PlanCostService(BaseService):
    """Estimate the cost and coverage of a stored services plan."""

    def __init__(self, repository: ServicesPlanRepository | None = None):
        self.repository = repository or DjangoServicesPlanRepository()

    def estimate_cost(self, plan_id: Any) -> CostEstimate:
        """
        Load a plan with items and funding and run the estimator.

        Raises:
            PlanNotFoundError: Plan does not exist
        """
        plan = self.repository.find_plan(plan_id, include_items=True, include_funding=True)
        if plan is None:
            raise PlanNotFoundError(
                f"Services plan {plan_id} not found",
                details={"plan_id": str(plan_id)},
            )

        estimate = CostEstimator.estimate(
            plan.service_items.all(),
            plan.funding_sources.all(),
        )
        self.get_logger().info(
            "Estimated services plan cost",
            extra={
                "plan_id": str(plan.id),
                "total_cost": str(estimate.total_cost),
                "covered_amount": str(estimate.covered_amount),
                "out_of_pocket_cost": str(estimate.out_of_pocket_cost),
            },
        )
        return estimate


# =============================================================================
# Funding Recommendations
# =============================================================================

MAX_RECOMMENDATIONS = 3

TIER_POINTS = {
    VerificationStatus.VERIFIED.value: 2,
    VerificationStatus.PENDING.value: 1,
    VerificationStatus.DENIED.value: 0,
}


@dataclass
class FundingCandidate:
    """
    A funding source the client could add to a plan.

    Shaped like a FundingSource so CostEstimator can price it.
    """

    id: Any
    name: str
    kind: str
    origin: str
    verification_status: str
    coverage_percentage: Decimal | None = None
    coverage_amount: Decimal | None = None
    requirements: list[str] = field(default_factory=list)
    estimated_coverage: Decimal = ZERO
    already_attached: bool = False

    @property
    def is_denied(self) -> bool:
        return self.verification_status == VerificationStatus.DENIED

    def score(self) -> tuple:
        """Sort key: higher is better."""
        return (
            TIER_POINTS.get(str(self.verification_status), 0),
            self.estimated_coverage,
            not self.already_attached,
            self.coverage_percentage or ZERO,
            self.coverage_amount or ZERO,
        )

    def reason(self) -> str:
        if self.verification_status == VerificationStatus.VERIFIED:
            basis = "Verified coverage on file"
        elif self.origin == "program":
            basis = "Program covers services in this plan"
        else:
            basis = "Coverage on file pending verification"
        if self.estimated_coverage > 0:
            basis = f"{basis}; estimated to cover {self.estimated_coverage}"
        if not self.already_attached:
            basis = f"{basis}; not yet attached to the plan"
        return basis

    def to_available_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "kind": self.kind,
            "origin": self.origin,
            "verification_status": str(self.verification_status),
            "eligibility": not self.is_denied,
            "coverage_percentage": self.coverage_percentage,
            "coverage_amount": self.coverage_amount,
            "estimated_coverage": self.estimated_coverage,
            "already_attached": self.already_attached,
            "requirements": self.requirements,
        }

    def to_recommended_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "kind": self.kind,
            "estimated_coverage": self.estimated_coverage,
            "reason": self.reason(),
        }


class FundingRecommendationService(BaseService):
    """
    Recommend funding sources for a client.

    Candidates are the client's funding instruments on file plus active
    programs that fund at least one of the plan's service categories.
    Ranking:
        1. Verification tier (verified > pending > denied)
        2. Estimated coverage toward the plan
        3. Sources not already attached to the plan
        4. Nominal percentage, then nominal amount

    Denied candidates are listed as available but never recommended.
    """

    def __init__(self, repository: ServicesPlanRepository | None = None):
        self.repository = repository or DjangoServicesPlanRepository()

    def identify_funding(self, client_id: Any, plan_id: Any = None) -> dict[str, Any]:
        """
        Identify available and recommended funding for a client.

        Args:
            client_id: Client to look up
            plan_id: Optional plan to estimate coverage against

        Returns:
            {available_sources, recommended_sources, client_insurance_info}

        Raises:
            PlanNotFoundError: plan_id given but the plan does not exist
        """
        plan = None
        if plan_id is not None:
            plan = self.repository.find_plan(plan_id, include_items=True, include_funding=True)
            if plan is None:
                raise PlanNotFoundError(
                    f"Services plan {plan_id} not found",
                    details={"plan_id": str(plan_id)},
                )

        profile = (
            ClientFundingProfile.objects.prefetch_related("instruments")
            .filter(client_id=client_id)
            .first()
        )

        candidates = self._instrument_candidates(profile) + self._program_candidates(plan)
        self._price_candidates(candidates, plan)

        recommended = sorted(
            (candidate for candidate in candidates if not candidate.is_denied),
            key=lambda candidate: candidate.score(),
            reverse=True,
        )[:MAX_RECOMMENDATIONS]

        self.get_logger().info(
            "Identified funding sources",
            extra={
                "client_id": str(client_id),
                "plan_id": str(plan_id) if plan_id else None,
                "available": len(candidates),
                "recommended": len(recommended),
            },
        )

        return {
            "available_sources": [c.to_available_dict() for c in candidates],
            "recommended_sources": [c.to_recommended_dict() for c in recommended],
            "client_insurance_info": profile.insurance_info if profile else {},
        }

    @staticmethod
    def _instrument_candidates(profile: ClientFundingProfile | None) -> list[FundingCandidate]:
        if profile is None:
            return []

        candidates = []
        for instrument in profile.instruments.all():
            requirements = []
            if instrument.verification_status == VerificationStatus.PENDING:
                requirements.append("Coverage verification with the payer")
            elif instrument.verification_status == VerificationStatus.DENIED:
                requirements.append("Payer denied coverage; appeal required")
            candidates.append(
                FundingCandidate(
                    id=instrument.id,
                    name=instrument.name,
                    kind=instrument.kind,
                    origin="client_instrument",
                    verification_status=instrument.verification_status,
                    coverage_percentage=instrument.coverage_percentage,
                    coverage_amount=instrument.coverage_amount,
                    requirements=requirements,
                )
            )
        return candidates

    @staticmethod
    def _program_candidates(plan: ServicesPlan | None) -> list[FundingCandidate]:
        categories = set()
        if plan is not None:
            categories = {
                item.service_category
                for item in plan.service_items.all()
                if item.status != ServiceItemStatus.DISCONTINUED
            }

        candidates = []
        for program in FundingProgram.objects.filter(is_active=True):
            if plan is not None and not program.covers_any(categories):
                continue
            requirements = ["Program application and eligibility review"]
            if program.eligible_service_categories:
                requirements.append(
                    "Covers: " + ", ".join(program.eligible_service_categories)
                )
            candidates.append(
                FundingCandidate(
                    id=program.id,
                    name=program.name,
                    kind=program.kind,
                    origin="program",
                    # Programs need an application, so they rank as unverified
                    verification_status=VerificationStatus.PENDING.value,
                    coverage_percentage=program.coverage_percentage,
                    coverage_amount=program.coverage_amount,
                    requirements=requirements,
                )
            )
        return candidates

    @staticmethod
    def _price_candidates(candidates: list[FundingCandidate], plan: ServicesPlan | None) -> None:
        if plan is None:
            return

        items = list(plan.service_items.all())
        attached = {
            (source.kind, source.name.strip().lower())
            for source in plan.funding_sources.all()
        }
        for candidate in candidates:
            candidate.already_attached = (
                candidate.kind,
                candidate.name.strip().lower(),
            ) in attached
            estimate = CostEstimator.estimate(items, [candidate])
            candidate.estimated_coverage = estimate.covered_amount
