"""
DRF serializers for the plans app.

This module provides serializers for:
- Cost estimate responses
- Funding recommendation query parameters and responses

Related files:
    - cost_estimator.py: CostEstimate
    - services.py: PlanCostService, FundingRecommendationService
    - views.py: Plan API views
"""

from __future__ import annotations

from rest_framework import serializers


class ServiceCostLineSerializer(serializers.Serializer):
    service_category = serializers.CharField()
    cost = serializers.DecimalField(max_digits=14, decimal_places=2)


class FundingAllocationSerializer(serializers.Serializer):
    funding_source_id = serializers.CharField(allow_null=True)
    name = serializers.CharField(allow_blank=True)
    amount_applied = serializers.DecimalField(max_digits=14, decimal_places=2)
    was_verified = serializers.BooleanField()
    verification_status = serializers.CharField()
    needs_review = serializers.BooleanField()


class CostEstimateSerializer(serializers.Serializer):
    """
    Cost estimate serializer for API responses.

    Usage:
        estimate = PlanCostService().estimate_cost(plan_id)
        CostEstimateSerializer(estimate.to_dict()).data
    """

    total_cost = serializers.DecimalField(max_digits=14, decimal_places=2)
    covered_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    out_of_pocket_cost = serializers.DecimalField(max_digits=14, decimal_places=2)
    service_breakdown = ServiceCostLineSerializer(many=True)
    funding_breakdown = FundingAllocationSerializer(many=True)
    currency = serializers.CharField()


class FundingQuerySerializer(serializers.Serializer):
    """Query parameters for the funding sources endpoint."""

    client_id = serializers.UUIDField()
    plan_id = serializers.UUIDField(required=False, allow_null=True)


class AvailableFundingSourceSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    kind = serializers.CharField()
    origin = serializers.CharField()
    verification_status = serializers.CharField()
    eligibility = serializers.BooleanField()
    coverage_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, allow_null=True
    )
    coverage_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, allow_null=True
    )
    estimated_coverage = serializers.DecimalField(max_digits=14, decimal_places=2)
    already_attached = serializers.BooleanField()
    requirements = serializers.ListField(child=serializers.CharField())


class RecommendedFundingSourceSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    kind = serializers.CharField()
    estimated_coverage = serializers.DecimalField(max_digits=14, decimal_places=2)
    reason = serializers.CharField()


class FundingRecommendationSerializer(serializers.Serializer):
    available_sources = AvailableFundingSourceSerializer(many=True)
    recommended_sources = RecommendedFundingSourceSerializer(many=True)
    client_insurance_info = serializers.DictField()
