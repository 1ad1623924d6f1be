from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from src.infrastructure.database.repositories.listing_repository import ListingRepository

CATEGORY_FIELDS = ("category", "subcategory", "subsubcategory")


@dataclass
class CreateTemplateUseCase:
    listings: ListingRepository

    def execute(self, user_id: str, listing_id: str, *, now: datetime | None = None) -> dict[str, Any]:
        """
        Capture the reusable shape of a listing: category path, brand, the variation
        titles (not their options) and bulk pricing.
        """
        listing = self.listings.get_owned(listing_id, user_id)
        template: dict[str, Any] = {"templateName": f"Template: {listing.get('name', '')}"}
        template.update({field: listing.get(field) for field in CATEGORY_FIELDS})
        template["brand"] = listing.get("brand")
        template["variationTypes"] = [v.title for v in self.listings.variations(listing)]
        template["bulkPricing"] = listing.get("bulkPricing")
        template["createdAt"] = (now or datetime.now(UTC)).isoformat()
        return template


def apply_template(template: dict[str, Any]) -> dict[str, Any]:
    """Form values a new listing starts from; one empty variation per template title."""
    fields: dict[str, Any] = {field: template.get(field) for field in CATEGORY_FIELDS}
    fields["brand"] = template.get("brand")
    fields["createVariations"] = list(template.get("variationTypes") or [])
    return fields
