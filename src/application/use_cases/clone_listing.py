from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.infrastructure.database.repositories.listing_repository import ListingRepository

# Copied as-is from the source listing
PRESERVED_FIELDS = ("category", "subcategory", "subsubcategory", "brand", "description")


@dataclass
class CloneListingUseCase:
    listings: ListingRepository

    def execute(self, user_id: str, listing_id: str) -> tuple[str, dict[str, Any]]:
        """
        Duplicate a listing as a starting point for a similar product.

        Keeps category, brand, description, bulk pricing and the variation structure.
        Resets the name, images, stock counts and per-option photos.
        """
        original = self.listings.get_owned(listing_id, user_id)

        variations = []
        for variation in self.listings.variations(original):
            attributes = []
            for attr in variation.attributes:
                attributes.append(
                    {
                        "attr_name": attr.attr_name,
                        "stock": 0,
                        "piece_count": attr.piece_count or 1,
                        "price": attr.price,
                        "originalPrice": getattr(attr, "originalPrice", None) or attr.price,
                        "retailPrice": attr.retail_price,
                        "photoUrl": None,
                    }
                )
            variations.append({"title": variation.title, "attributes": attributes})

        cloned: dict[str, Any] = {field: original.get(field) for field in PRESERVED_FIELDS}
        cloned.update(
            {
                "name": f"{original.get('name', '')} (Copy)",
                "imageUrls": [],
                "variations": variations,
                "bulkPricing": original.get("bulkPricing"),
                "uploaderId": user_id,
                "_clonedFrom": listing_id,
                "_isClone": True,
            }
        )
        new_id = self.listings.create(cloned)
        return new_id, cloned
