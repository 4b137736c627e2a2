"""
Initial schema for services plans, service items and funding.

Changes:
    - Create ServicesPlan, ServiceItem and FundingSource
    - Create ClientFundingProfile and ClientFundingInstrument
    - Create FundingProgram
"""

from decimal import Decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


SERVICE_CATEGORY_CHOICES = [
    ("physical_therapy", "Physical Therapy"),
    ("occupational_therapy", "Occupational Therapy"),
    ("speech_therapy", "Speech Therapy"),
    ("behavioral_therapy", "Behavioral Therapy"),
    ("counseling", "Counseling"),
    ("home_health_aide", "Home Health Aide"),
    ("personal_care_assistant", "Personal Care Assistant"),
    ("respite_care", "Respite Care"),
    ("transportation", "Transportation"),
    ("meal_delivery", "Meal Delivery"),
    ("nutritional_counseling", "Nutritional Counseling"),
    ("medication_management", "Medication Management"),
    ("assistive_technology", "Assistive Technology"),
    ("home_modification", "Home Modification"),
    ("vocational_rehabilitation", "Vocational Rehabilitation"),
    ("recreational_therapy", "Recreational Therapy"),
    ("support_group", "Support Group"),
    ("case_management", "Case Management"),
    ("initial_assessment", "Initial Assessment"),
    ("follow_up_consultation", "Follow-up Consultation"),
]

FUNDING_KIND_CHOICES = [
    ("insurance", "Insurance"),
    ("medicaid", "Medicaid"),
    ("grant", "Grant"),
    ("private_pay", "Private Pay"),
    ("government", "Government Program"),
    ("other", "Other"),
]

VERIFICATION_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("verified", "Verified"),
    ("denied", "Denied"),
]


def base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def coverage_fields():
    return [
        ("name", models.CharField(help_text="Payer or program name", max_length=255)),
        (
            "kind",
            models.CharField(
                choices=FUNDING_KIND_CHOICES,
                help_text="Kind of payer",
                max_length=20,
            ),
        ),
        (
            "coverage_percentage",
            models.DecimalField(
                blank=True,
                decimal_places=2,
                help_text="Percentage of total cost covered (0-100)",
                max_digits=5,
                null=True,
                validators=[
                    django.core.validators.MinValueValidator(Decimal("0")),
                    django.core.validators.MaxValueValidator(Decimal("100")),
                ],
            ),
        ),
        (
            "coverage_amount",
            models.DecimalField(
                blank=True,
                decimal_places=2,
                help_text="Fixed coverage amount in major currency units",
                max_digits=12,
                null=True,
                validators=[django.core.validators.MinValueValidator(Decimal("0"))],
            ),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ServicesPlan",
            fields=base_fields()
            + [
                (
                    "client_id",
                    models.UUIDField(db_index=True, help_text="Client this plan belongs to"),
                ),
                ("title", models.CharField(help_text="Plan title", max_length=255)),
                (
                    "description",
                    models.TextField(blank=True, default="", help_text="Plan description"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("in_review", "In Review"),
                            ("approved", "Approved"),
                            ("active", "Active"),
                            ("on_hold", "On Hold"),
                            ("completed", "Completed"),
                            ("terminated", "Terminated"),
                        ],
                        db_index=True,
                        default="draft",
                        help_text="Plan lifecycle status",
                        max_length=20,
                    ),
                ),
            ],
            options={
                "verbose_name": "Services Plan",
                "verbose_name_plural": "Services Plans",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ServiceItem",
            fields=base_fields()
            + [
                (
                    "service_category",
                    models.CharField(
                        choices=SERVICE_CATEGORY_CHOICES,
                        help_text="Service type",
                        max_length=50,
                    ),
                ),
                (
                    "provider_id",
                    models.UUIDField(blank=True, help_text="Assigned provider", null=True),
                ),
                (
                    "description",
                    models.TextField(blank=True, default="", help_text="Service description"),
                ),
                (
                    "frequency",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="How often the service is delivered",
                        max_length=100,
                    ),
                ),
                (
                    "duration",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="How long the service runs",
                        max_length=100,
                    ),
                ),
                (
                    "estimated_cost",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Estimated cost in major currency units",
                        max_digits=12,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.00"))
                        ],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("discontinued", "Discontinued"),
                        ],
                        default="pending",
                        help_text="Delivery status",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("paid", "Paid"),
                            ("refunded", "Refunded"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="unpaid",
                        help_text="Payment status",
                        max_length=20,
                    ),
                ),
                (
                    "plan",
                    models.ForeignKey(
                        help_text="Plan this item belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="service_items",
                        to="plans.servicesplan",
                    ),
                ),
            ],
            options={
                "verbose_name": "Service Item",
                "verbose_name_plural": "Service Items",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["plan", "payment_status"],
                        name="plans_item_plan_paystat_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="FundingSource",
            fields=base_fields()
            + coverage_fields()
            + [
                (
                    "verification_status",
                    models.CharField(
                        choices=VERIFICATION_STATUS_CHOICES,
                        default="pending",
                        help_text="Verification status",
                        max_length=20,
                    ),
                ),
                (
                    "details",
                    models.JSONField(
                        blank=True, default=dict, help_text="Payer-specific details"
                    ),
                ),
                (
                    "plan",
                    models.ForeignKey(
                        help_text="Plan this funding source belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="funding_sources",
                        to="plans.servicesplan",
                    ),
                ),
            ],
            options={
                "verbose_name": "Funding Source",
                "verbose_name_plural": "Funding Sources",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="ClientFundingProfile",
            fields=base_fields()
            + [
                (
                    "client_id",
                    models.UUIDField(help_text="Client this profile belongs to", unique=True),
                ),
                (
                    "insurance_info",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Insurance details captured at intake",
                    ),
                ),
            ],
            options={
                "verbose_name": "Client Funding Profile",
                "verbose_name_plural": "Client Funding Profiles",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ClientFundingInstrument",
            fields=base_fields()
            + coverage_fields()
            + [
                (
                    "verification_status",
                    models.CharField(
                        choices=VERIFICATION_STATUS_CHOICES,
                        default="pending",
                        help_text="Verification status",
                        max_length=20,
                    ),
                ),
                (
                    "details",
                    models.JSONField(blank=True, default=dict, help_text="Instrument details"),
                ),
                (
                    "profile",
                    models.ForeignKey(
                        help_text="Profile this instrument belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="instruments",
                        to="plans.clientfundingprofile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Client Funding Instrument",
                "verbose_name_plural": "Client Funding Instruments",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="FundingProgram",
            fields=base_fields()
            + coverage_fields()
            + [
                (
                    "description",
                    models.TextField(blank=True, default="", help_text="Program description"),
                ),
                (
                    "eligible_service_categories",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Covered service categories (empty means all)",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Whether the program is currently accepting clients",
                    ),
                ),
            ],
            options={
                "verbose_name": "Funding Program",
                "verbose_name_plural": "Funding Programs",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
