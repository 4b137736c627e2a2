"""
Tests for payment metadata and money conversion.

Tests cover:
- Minor unit conversion and rounding
- Building metadata from plan items
- Stripe serialization, including chunked item id lists
- Validation when parsing metadata back
"""

import json
import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from payments.exceptions import InvalidPaymentMetadataError
from payments.metadata import (
    ITEM_IDS_KEY,
    STRIPE_METADATA_VALUE_LIMIT,
    PaymentMetadata,
    from_minor_units,
    to_minor_units,
)


def make_item(category="physical_therapy", description="Weekly session"):
    return SimpleNamespace(id=uuid.uuid4(), service_category=category, description=description)


@pytest.fixture
def plan():
    return SimpleNamespace(id=uuid.uuid4(), title="Home therapy plan", client_id=uuid.uuid4())


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("4500.00"), 450000),
            (Decimal("45.005"), 4501),
            (Decimal("45.004"), 4500),
            ("12.5", 1250),
            (3, 300),
        ],
    )
    def test_to_minor_units(self, amount, expected):
        assert to_minor_units(amount) == expected

    def test_from_minor_units(self):
        assert from_minor_units(450000) == Decimal("4500.00")
        assert from_minor_units(1) == Decimal("0.01")


class TestFromPlan:
    def test_collects_distinct_categories_in_order(self, plan):
        items = [
            make_item("physical_therapy"),
            make_item("transportation"),
            make_item("physical_therapy"),
        ]

        metadata = PaymentMetadata.from_plan(plan, items)

        assert metadata.plan_id == str(plan.id)
        assert metadata.client_id == str(plan.client_id)
        assert metadata.item_ids == [str(item.id) for item in items]
        assert metadata.service_categories == ["physical_therapy", "transportation"]

    def test_describes_up_to_five_items(self, plan):
        items = [make_item(description=f"Item {n}") for n in range(5)]

        metadata = PaymentMetadata.from_plan(plan, items)

        assert metadata.descriptions == [f"Item {n}" for n in range(5)]

    def test_omits_descriptions_beyond_five_items(self, plan):
        items = [make_item(description=f"Item {n}") for n in range(6)]

        metadata = PaymentMetadata.from_plan(plan, items)

        assert metadata.descriptions == []
        assert "service_descriptions" not in metadata.to_stripe()


class TestStripeSerialization:
    def test_values_are_strings(self, plan):
        metadata = PaymentMetadata.from_plan(plan, [make_item(), make_item("counseling")])

        serialized = metadata.to_stripe()

        assert all(isinstance(value, str) for value in serialized.values())
        assert serialized["services_plan_id"] == str(plan.id)
        assert serialized["service_types"] == "physical_therapy,counseling"
        assert json.loads(serialized[ITEM_IDS_KEY]) == metadata.item_ids

    def test_long_item_lists_are_chunked(self, plan):
        items = [make_item() for _ in range(40)]
        metadata = PaymentMetadata.from_plan(plan, items)

        serialized = metadata.to_stripe()

        assert f"{ITEM_IDS_KEY}_1" in serialized
        assert all(len(value) <= STRIPE_METADATA_VALUE_LIMIT for value in serialized.values())
        assert PaymentMetadata.from_stripe(serialized).item_ids == metadata.item_ids

    def test_long_title_is_truncated(self, plan):
        plan.title = "x" * 800

        serialized = PaymentMetadata.from_plan(plan, [make_item()]).to_stripe()

        assert len(serialized["services_plan_title"]) == STRIPE_METADATA_VALUE_LIMIT


class TestFromStripe:
    def test_parses_serialized_metadata(self, plan):
        original = PaymentMetadata.from_plan(plan, [make_item(), make_item("counseling")])

        parsed = PaymentMetadata.from_stripe(original.to_stripe())

        assert parsed == original

    @pytest.mark.parametrize("metadata", [None, {}, {"services_plan_id": "not-a-uuid"}])
    def test_rejects_missing_or_invalid_plan_id(self, metadata):
        with pytest.raises(InvalidPaymentMetadataError) as exc_info:
            PaymentMetadata.from_stripe(metadata)

        assert exc_info.value.details["field"] == "services_plan_id"

    @pytest.mark.parametrize(
        "item_ids",
        [
            "",
            "not json",
            '{"id": "x"}',
            '["not-a-uuid"]',
            "[1, 2]",
        ],
    )
    def test_rejects_malformed_item_ids(self, item_ids):
        metadata = {"services_plan_id": str(uuid.uuid4()), ITEM_IDS_KEY: item_ids}

        with pytest.raises(InvalidPaymentMetadataError) as exc_info:
            PaymentMetadata.from_stripe(metadata)

        assert exc_info.value.error_code == "INVALID_PAYMENT_METADATA"
