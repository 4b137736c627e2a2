"""
URL configuration for the plans app.

Routes:
    - GET <plan_id>/cost-estimate/ - Cost estimate for a plan
    - GET funding-sources/ - Funding recommendations for a client

All routes are prefixed with /api/v1/plans/ when included in the main URLconf.
"""

from django.urls import path

from plans.views import CostEstimateView, FundingSourcesView

app_name = "plans"

urlpatterns = [
    path("funding-sources/", FundingSourcesView.as_view(), name="funding_sources"),
    path(
        "<uuid:plan_id>/cost-estimate/",
        CostEstimateView.as_view(),
        name="cost_estimate",
    ),
]
