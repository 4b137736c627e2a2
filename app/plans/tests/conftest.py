"""
Pytest fixtures for services plan tests.

Usage:
    def test_estimate(funded_plan):
        estimate = PlanCostService().estimate_cost(funded_plan.id)
"""

from decimal import Decimal

import pytest

from plans.models import ServiceCategory, VerificationStatus
from plans.tests.factories import (
    FundingSourceFactory,
    ServiceItemFactory,
    ServicesPlanFactory,
)


@pytest.fixture
def plan(db):
    """An approved plan with no items or funding."""
    return ServicesPlanFactory()


@pytest.fixture
def funded_plan(db):
    """
    Plan with 3000 + 1200 + 300 of services.

    Funded by a verified 80% insurer and a verified fixed 900 grant,
    which together cover the full 4500.
    """
    plan = ServicesPlanFactory(title="Home therapy plan")
    ServiceItemFactory(
        plan=plan,
        service_category=ServiceCategory.PHYSICAL_THERAPY,
        estimated_cost=Decimal("3000.00"),
    )
    ServiceItemFactory(
        plan=plan,
        service_category=ServiceCategory.OCCUPATIONAL_THERAPY,
        estimated_cost=Decimal("1200.00"),
    )
    ServiceItemFactory(
        plan=plan,
        service_category=ServiceCategory.TRANSPORTATION,
        estimated_cost=Decimal("300.00"),
    )
    FundingSourceFactory(
        plan=plan,
        name="Acme Health",
        coverage_percentage=Decimal("80.00"),
        verification_status=VerificationStatus.VERIFIED,
    )
    FundingSourceFactory(
        plan=plan,
        name="Community Grant",
        kind="grant",
        coverage_percentage=None,
        coverage_amount=Decimal("900.00"),
        verification_status=VerificationStatus.VERIFIED,
    )
    return plan
