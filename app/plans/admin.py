"""
Plans admin configuration.

Registers services plans, their items and funding sources, and the
client funding catalog with the Django admin.
"""

from django.contrib import admin

from plans.models import (
    ClientFundingInstrument,
    ClientFundingProfile,
    FundingProgram,
    FundingSource,
    ServiceItem,
    ServicesPlan,
)


class ServiceItemInline(admin.TabularInline):
    model = ServiceItem
    extra = 0
    fields = [
        "service_category",
        "description",
        "estimated_cost",
        "status",
        "payment_status",
    ]
    readonly_fields = ["payment_status"]


class FundingSourceInline(admin.TabularInline):
    model = FundingSource
    extra = 0
    fields = [
        "name",
        "kind",
        "coverage_percentage",
        "coverage_amount",
        "verification_status",
    ]


@admin.register(ServicesPlan)
class ServicesPlanAdmin(admin.ModelAdmin):
    """
    Admin configuration for ServicesPlan.

    Payment status is read-only here; it only changes through the
    payment flow.
    """

    list_display = ["id", "title", "client_id", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["id", "title", "client_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]
    inlines = [ServiceItemInline, FundingSourceInline]


@admin.register(ServiceItem)
class ServiceItemAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "plan",
        "service_category",
        "estimated_cost",
        "status",
        "payment_status",
    ]
    list_filter = ["service_category", "status", "payment_status"]
    search_fields = ["id", "plan__id", "plan__title"]
    readonly_fields = ["id", "payment_status", "created_at", "updated_at"]


@admin.register(FundingSource)
class FundingSourceAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "plan",
        "name",
        "kind",
        "coverage_percentage",
        "coverage_amount",
        "verification_status",
    ]
    list_filter = ["kind", "verification_status"]
    search_fields = ["id", "name", "plan__id"]
    readonly_fields = ["id", "created_at", "updated_at"]


class ClientFundingInstrumentInline(admin.TabularInline):
    model = ClientFundingInstrument
    extra = 0


@admin.register(ClientFundingProfile)
class ClientFundingProfileAdmin(admin.ModelAdmin):
    list_display = ["id", "client_id", "created_at"]
    search_fields = ["client_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
    inlines = [ClientFundingInstrumentInline]


@admin.register(FundingProgram)
class FundingProgramAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "kind", "coverage_percentage", "coverage_amount", "is_active"]
    list_filter = ["kind", "is_active"]
    search_fields = ["name"]
    readonly_fields = ["id", "created_at", "updated_at"]
