"""
Payment intent metadata and money conversion.

Stripe metadata is a flat map of short strings. PaymentMetadata is the
typed view of what the settlement flow stores there, so webhook handlers
never read ad-hoc keys.

Stripe keys:
    services_plan_id        Plan UUID
    services_plan_title     Plan title (truncated to Stripe's value limit)
    client_id               Client UUID
    service_item_ids        JSON array of item UUIDs; long lists continue in
                            service_item_ids_1, service_item_ids_2, ...
    service_types           Comma-joined service categories (first-seen order)
    service_descriptions    "; "-joined item descriptions, only for five or
                            fewer items

Usage:
    metadata = PaymentMetadata.from_plan(plan, items)
    StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(..., metadata=metadata.to_stripe())
    )

    # Webhook / process side
    metadata = PaymentMetadata.from_stripe(intent.metadata)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from core.helpers import validate_uuid
from payments.exceptions import InvalidPaymentMetadataError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

# Stripe rejects metadata values longer than 500 characters
STRIPE_METADATA_VALUE_LIMIT = 500

MAX_DESCRIBED_ITEMS = 5

PLAN_ID_KEY = "services_plan_id"
PLAN_TITLE_KEY = "services_plan_title"
CLIENT_ID_KEY = "client_id"
ITEM_IDS_KEY = "service_item_ids"
SERVICE_TYPES_KEY = "service_types"
DESCRIPTIONS_KEY = "service_descriptions"


def to_minor_units(amount: Decimal | int | str) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Rounds half up at the cent, which is the only rounding in the
    settlement flow.

    Example:
        to_minor_units(Decimal("45.005"))  # 4501
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_cents: int) -> Decimal:
    """Convert integer minor units back to a major-unit Decimal."""
    return (Decimal(amount_cents) / 100).quantize(Decimal("0.01"))


def _truncate(value: str) -> str:
    return value[:STRIPE_METADATA_VALUE_LIMIT]


@dataclass(frozen=True)
class PaymentMetadata:
    """
    Typed metadata carried on a payment intent.

    Attributes:
        plan_id: Services plan the intent pays for
        plan_title: Plan title for display in the Stripe dashboard
        client_id: Client the plan belongs to
        item_ids: Service items settled by this intent
        service_categories: Distinct categories of those items
        descriptions: Item descriptions (empty when more than five items)
    """

    plan_id: str
    plan_title: str = ""
    client_id: str = ""
    item_ids: list[str] = field(default_factory=list)
    service_categories: list[str] = field(default_factory=list)
    descriptions: list[str] = field(default_factory=list)

    @classmethod
    def from_plan(cls, plan: Any, items: Iterable[Any]) -> PaymentMetadata:
        """Build metadata for the given items of a plan."""
        items = list(items)
        categories: list[str] = []
        for item in items:
            if item.service_category not in categories:
                categories.append(item.service_category)

        descriptions = []
        if len(items) <= MAX_DESCRIBED_ITEMS:
            descriptions = [item.description for item in items if item.description]

        return cls(
            plan_id=str(plan.id),
            plan_title=plan.title or "",
            client_id=str(plan.client_id) if plan.client_id else "",
            item_ids=[str(item.id) for item in items],
            service_categories=categories,
            descriptions=descriptions,
        )

    def to_stripe(self) -> dict[str, str]:
        """Serialize to Stripe's flat string metadata."""
        metadata = {
            PLAN_ID_KEY: self.plan_id,
            PLAN_TITLE_KEY: _truncate(self.plan_title),
            CLIENT_ID_KEY: self.client_id,
            SERVICE_TYPES_KEY: _truncate(",".join(self.service_categories)),
        }

        ids_json = json.dumps(self.item_ids, separators=(",", ":"))
        chunks = [
            ids_json[start : start + STRIPE_METADATA_VALUE_LIMIT]
            for start in range(0, len(ids_json), STRIPE_METADATA_VALUE_LIMIT)
        ]
        metadata[ITEM_IDS_KEY] = chunks[0]
        for index, chunk in enumerate(chunks[1:], start=1):
            metadata[f"{ITEM_IDS_KEY}_{index}"] = chunk

        if self.descriptions and len(self.item_ids) <= MAX_DESCRIBED_ITEMS:
            metadata[DESCRIPTIONS_KEY] = _truncate("; ".join(self.descriptions))

        return metadata

    @classmethod
    def from_stripe(cls, metadata: Mapping[str, Any] | None) -> PaymentMetadata:
        """
        Parse and validate Stripe metadata.

        Raises:
            InvalidPaymentMetadataError: plan id or item ids are missing or malformed
        """
        metadata = dict(metadata or {})

        plan_id = metadata.get(PLAN_ID_KEY)
        if not plan_id or not validate_uuid(plan_id):
            raise InvalidPaymentMetadataError(
                "Payment metadata has no valid services plan id",
                details={"field": PLAN_ID_KEY, "value": plan_id},
            )

        ids_json = metadata.get(ITEM_IDS_KEY)
        if not ids_json:
            raise InvalidPaymentMetadataError(
                "Payment metadata has no service item ids",
                details={"field": ITEM_IDS_KEY},
            )
        index = 1
        while f"{ITEM_IDS_KEY}_{index}" in metadata:
            ids_json += metadata[f"{ITEM_IDS_KEY}_{index}"]
            index += 1

        try:
            item_ids = json.loads(ids_json)
        except (TypeError, ValueError):
            raise InvalidPaymentMetadataError(
                "Payment metadata service item ids are not valid JSON",
                details={"field": ITEM_IDS_KEY},
            ) from None
        if not isinstance(item_ids, list) or not all(
            isinstance(item_id, str) and validate_uuid(item_id) for item_id in item_ids
        ):
            raise InvalidPaymentMetadataError(
                "Payment metadata service item ids must be a list of UUIDs",
                details={"field": ITEM_IDS_KEY},
            )

        service_types = metadata.get(SERVICE_TYPES_KEY) or ""
        descriptions = metadata.get(DESCRIPTIONS_KEY) or ""

        return cls(
            plan_id=str(plan_id),
            plan_title=metadata.get(PLAN_TITLE_KEY) or "",
            client_id=metadata.get(CLIENT_ID_KEY) or "",
            item_ids=item_ids,
            service_categories=[t for t in service_types.split(",") if t],
            descriptions=[d for d in descriptions.split("; ") if d],
        )
