"""
Plans app configuration.

This app provides:
- ServicesPlan, ServiceItem and FundingSource models
- CostEstimator coverage allocation
- Funding source recommendations
"""

from django.apps import AppConfig


class PlansConfig(AppConfig):
    """Configuration for the plans application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "plans"
    verbose_name = "Services Plans"
