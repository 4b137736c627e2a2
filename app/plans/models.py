"""
Services plan models.

This module defines the data models for a client's services plan:
- The plan itself and the service items it schedules
- The funding sources attached to the plan
- The client's funding profile (instruments on file) and the catalog
  of government and grant programs used for recommendations

Models:
    ServicesPlan: A client's plan of care services
    ServiceItem: One service line with an estimated cost and payment status
    FundingSource: A payer attached to a plan with its coverage terms
    ClientFundingProfile: Funding information on file for a client
    ClientFundingInstrument: One insurance/benefit instrument on a profile
    FundingProgram: A program a client may be eligible for

Design Decisions:
    - Money is Decimal in major units; conversion to minor units happens only
      at the payment gateway boundary
    - client_id is a plain UUID; identity is owned by the auth service
    - Items and funding sources keep insertion order (created_at, id), which
      is the allocation tie-break
    - Coverage terms are shared through the abstract CoverageTerms model
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PlanStatus(models.TextChoices):
    """Lifecycle of a services plan."""

    DRAFT = "draft", "Draft"
    IN_REVIEW = "in_review", "In Review"
    APPROVED = "approved", "Approved"
    ACTIVE = "active", "Active"
    ON_HOLD = "on_hold", "On Hold"
    COMPLETED = "completed", "Completed"
    TERMINATED = "terminated", "Terminated"


class ServiceCategory(models.TextChoices):
    """Service types offered on the platform."""

    PHYSICAL_THERAPY = "physical_therapy", "Physical Therapy"
    OCCUPATIONAL_THERAPY = "occupational_therapy", "Occupational Therapy"
    SPEECH_THERAPY = "speech_therapy", "Speech Therapy"
    BEHAVIORAL_THERAPY = "behavioral_therapy", "Behavioral Therapy"
    COUNSELING = "counseling", "Counseling"
    HOME_HEALTH_AIDE = "home_health_aide", "Home Health Aide"
    PERSONAL_CARE_ASSISTANT = "personal_care_assistant", "Personal Care Assistant"
    RESPITE_CARE = "respite_care", "Respite Care"
    TRANSPORTATION = "transportation", "Transportation"
    MEAL_DELIVERY = "meal_delivery", "Meal Delivery"
    NUTRITIONAL_COUNSELING = "nutritional_counseling", "Nutritional Counseling"
    MEDICATION_MANAGEMENT = "medication_management", "Medication Management"
    ASSISTIVE_TECHNOLOGY = "assistive_technology", "Assistive Technology"
    HOME_MODIFICATION = "home_modification", "Home Modification"
    VOCATIONAL_REHABILITATION = "vocational_rehabilitation", "Vocational Rehabilitation"
    RECREATIONAL_THERAPY = "recreational_therapy", "Recreational Therapy"
    SUPPORT_GROUP = "support_group", "Support Group"
    CASE_MANAGEMENT = "case_management", "Case Management"
    INITIAL_ASSESSMENT = "initial_assessment", "Initial Assessment"
    FOLLOW_UP_CONSULTATION = "follow_up_consultation", "Follow-up Consultation"


class ServiceItemStatus(models.TextChoices):
    """
    Delivery status of a service item.

    DISCONTINUED items are excluded from cost estimates.
    """

    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    DISCONTINUED = "discontinued", "Discontinued"


class PaymentStatus(models.TextChoices):
    """
    Payment status of a service item.

    Allowed sources per target (enforced by the repository's guarded update):
        PAID ← UNPAID, FAILED, PAID
        FAILED ← UNPAID, FAILED
        REFUNDED ← PAID, REFUNDED
        UNPAID ← UNPAID, FAILED
    """

    UNPAID = "unpaid", "Unpaid"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"
    FAILED = "failed", "Failed"


class FundingKind(models.TextChoices):
    """Kind of payer behind a funding source."""

    INSURANCE = "insurance", "Insurance"
    MEDICAID = "medicaid", "Medicaid"
    GRANT = "grant", "Grant"
    PRIVATE_PAY = "private_pay", "Private Pay"
    GOVERNMENT = "government", "Government Program"
    OTHER = "other", "Other"


class VerificationStatus(models.TextChoices):
    """
    Verification status of a funding source.

    DENIED sources never contribute coverage.
    """

    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    DENIED = "denied", "Denied"


# =============================================================================
# Services Plan
# =============================================================================


class ServicesPlan(UUIDPrimaryKeyMixin, BaseModel):
    """
    A client's plan of care services.

    Fields:
        client_id: Client the plan belongs to
        title: Short human-readable title (sent to Stripe in metadata)
        description: Free-form plan description
        status: Plan lifecycle status

    Related:
        service_items: ServiceItem rows in insertion order
        funding_sources: FundingSource rows in insertion order
    """

    client_id = models.UUIDField(
        db_index=True,
        help_text="Client this plan belongs to",
    )
    title = models.CharField(
        max_length=255,
        help_text="Plan title",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Plan description",
    )
    status = models.CharField(
        max_length=20,
        choices=PlanStatus.choices,
        default=PlanStatus.DRAFT,
        db_index=True,
        help_text="Plan lifecycle status",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Services Plan"
        verbose_name_plural = "Services Plans"

    def __str__(self) -> str:
        return f"ServicesPlan({self.title})"


class ServiceItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single service line on a plan.

    Fields:
        plan: Owning plan
        service_category: Platform service type
        provider_id: Assigned provider, if any
        description: What the service covers
        frequency: Human-readable frequency ("2x weekly")
        duration: Human-readable duration ("12 weeks")
        estimated_cost: Estimated cost in major currency units
        status: Delivery status
        payment_status: Payment status, written only through the repository
    """

    plan = models.ForeignKey(
        ServicesPlan,
        on_delete=models.CASCADE,
        related_name="service_items",
        help_text="Plan this item belongs to",
    )
    service_category = models.CharField(
        max_length=50,
        choices=ServiceCategory.choices,
        help_text="Service type",
    )
    provider_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Assigned provider",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Service description",
    )
    frequency = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="How often the service is delivered",
    )
    duration = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="How long the service runs",
    )
    estimated_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Estimated cost in major currency units",
    )
    status = models.CharField(
        max_length=20,
        choices=ServiceItemStatus.choices,
        default=ServiceItemStatus.PENDING,
        help_text="Delivery status",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
        db_index=True,
        help_text="Payment status",
    )

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Service Item"
        verbose_name_plural = "Service Items"
        indexes = [
            models.Index(
                fields=["plan", "payment_status"],
                name="plans_item_plan_paystat_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"ServiceItem({self.service_category}, {self.estimated_cost})"


# =============================================================================
# Funding
# =============================================================================


class CoverageTerms(models.Model):
    """
    Abstract coverage terms shared by funding sources and instruments.

    A percentage covers that share of the total cost; an amount is a
    fixed cap. When both are set the percentage wins.
    """

    name = models.CharField(
        max_length=255,
        help_text="Payer or program name",
    )
    kind = models.CharField(
        max_length=20,
        choices=FundingKind.choices,
        help_text="Kind of payer",
    )
    coverage_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[
            MinValueValidator(Decimal("0")),
            MaxValueValidator(Decimal("100")),
        ],
        help_text="Percentage of total cost covered (0-100)",
    )
    coverage_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Fixed coverage amount in major currency units",
    )

    class Meta:
        abstract = True

    def clean(self) -> None:
        super().clean()
        if self.coverage_percentage is None and self.coverage_amount is None:
            raise ValidationError(
                "Either coverage_percentage or coverage_amount is required."
            )


class FundingSource(UUIDPrimaryKeyMixin, CoverageTerms, BaseModel):
    """
    A payer attached to a services plan.

    Fields:
        plan: Owning plan
        verification_status: Whether the payer confirmed coverage
        details: Payer-specific data (policy numbers, contacts)

    Note:
        clean() requires coverage terms, but rows written around model
        validation are still tolerated by the estimator.
    """

    plan = models.ForeignKey(
        ServicesPlan,
        on_delete=models.CASCADE,
        related_name="funding_sources",
        help_text="Plan this funding source belongs to",
    )
    verification_status = models.CharField(
        max_length=20,
        choices=VerificationStatus.choices,
        default=VerificationStatus.PENDING,
        help_text="Verification status",
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        help_text="Payer-specific details",
    )

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Funding Source"
        verbose_name_plural = "Funding Sources"

    def __str__(self) -> str:
        return f"FundingSource({self.name}, {self.verification_status})"


class ClientFundingProfile(UUIDPrimaryKeyMixin, BaseModel):
    """
    Funding information on file for a client.

    Fields:
        client_id: Client the profile belongs to (one profile per client)
        insurance_info: Raw insurance details captured at intake

    Related:
        instruments: ClientFundingInstrument rows
    """

    client_id = models.UUIDField(
        unique=True,
        help_text="Client this profile belongs to",
    )
    insurance_info = models.JSONField(
        default=dict,
        blank=True,
        help_text="Insurance details captured at intake",
    )

    class Meta:
        verbose_name = "Client Funding Profile"
        verbose_name_plural = "Client Funding Profiles"

    def __str__(self) -> str:
        return f"ClientFundingProfile({self.client_id})"


class ClientFundingInstrument(UUIDPrimaryKeyMixin, CoverageTerms, BaseModel):
    """An insurance policy or benefit the client holds."""

    profile = models.ForeignKey(
        ClientFundingProfile,
        on_delete=models.CASCADE,
        related_name="instruments",
        help_text="Profile this instrument belongs to",
    )
    verification_status = models.CharField(
        max_length=20,
        choices=VerificationStatus.choices,
        default=VerificationStatus.PENDING,
        help_text="Verification status",
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        help_text="Instrument details",
    )

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Client Funding Instrument"
        verbose_name_plural = "Client Funding Instruments"

    def __str__(self) -> str:
        return f"ClientFundingInstrument({self.name})"


class FundingProgram(UUIDPrimaryKeyMixin, CoverageTerms, BaseModel):
    """
    A government or grant program clients may apply to.

    Fields:
        description: What the program funds
        eligible_service_categories: Service categories the program covers;
            an empty list means every category
        is_active: Inactive programs are never recommended
    """

    description = models.TextField(
        blank=True,
        default="",
        help_text="Program description",
    )
    eligible_service_categories = models.JSONField(
        default=list,
        blank=True,
        help_text="Covered service categories (empty means all)",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the program is currently accepting clients",
    )

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Funding Program"
        verbose_name_plural = "Funding Programs"

    def __str__(self) -> str:
        return f"FundingProgram({self.name})"

    def covers_any(self, categories: set[str]) -> bool:
        """Check whether the program funds at least one of the categories."""
        if not self.eligible_service_categories:
            return True
        return bool(set(self.eligible_service_categories) & categories)
