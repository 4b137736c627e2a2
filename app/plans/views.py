"""
DRF views for the plans app.

Endpoints:
    GET /api/v1/plans/<plan_id>/cost-estimate/ - Cost estimate and funding allocation
    GET /api/v1/plans/funding-sources/?client_id=&plan_id= - Funding recommendations

Security:
    - All endpoints require authentication
    - Both endpoints are read-only

Errors raised by the services (PlanNotFoundError) are rendered by
core.exception_handlers.
"""

from __future__ import annotations

import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from plans.serializers import (
    CostEstimateSerializer,
    FundingQuerySerializer,
    FundingRecommendationSerializer,
)
from plans.services import FundingRecommendationService, PlanCostService

logger = logging.getLogger(__name__)


class CostEstimateView(APIView):
    """
    Cost estimate for a services plan.

    GET /api/v1/plans/<plan_id>/cost-estimate/

    Returns:
        {
            "total_cost": "4500.00",
            "covered_amount": "4500.00",
            "out_of_pocket_cost": "0.00",
            "service_breakdown": [{"service_category": "...", "cost": "..."}],
            "funding_breakdown": [{"funding_source_id": "...", "amount_applied": "...", ...}],
            "currency": "usd"
        }
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, plan_id):
        estimate = PlanCostService().estimate_cost(plan_id)
        return Response(CostEstimateSerializer(estimate.to_dict()).data)


class FundingSourcesView(APIView):
    """
    Funding source recommendations for a client.

    GET /api/v1/plans/funding-sources/?client_id=<uuid>&plan_id=<uuid>

    plan_id is optional; without it estimated coverage is zero.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = FundingQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = FundingRecommendationService().identify_funding(
            client_id=query.validated_data["client_id"],
            plan_id=query.validated_data.get("plan_id"),
        )
        return Response(FundingRecommendationSerializer(result).data)
