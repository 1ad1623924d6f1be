from __future__ import annotations

from typing import Any

from src.domain.errors import NotFoundError
from src.infrastructure.database.document_store import DocumentStore
from src.infrastructure.database.records import VariationRecord

LISTINGS = "Listings"


class ListingRepository:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get(self, listing_id: str) -> dict[str, Any] | None:
        return self.store.get(LISTINGS, listing_id)

    def get_owned(self, listing_id: str, user_id: str) -> dict[str, Any]:
        listing = self.get(listing_id)
        if listing is None or listing.get("uploaderId") != user_id:
            raise NotFoundError("Listing not found")
        return listing

    def create(self, record: dict[str, Any]) -> str:
        return self.store.create(LISTINGS, record)

    def update(self, listing_id: str, partial: dict[str, Any]) -> None:
        self.store.update(LISTINGS, listing_id, partial)

    def variations(self, listing: dict[str, Any]) -> list[VariationRecord]:
        return [VariationRecord.model_validate(v) for v in listing.get("variations") or []]

    def set_variations(self, listing_id: str, variations: list[VariationRecord]) -> None:
        self.update(
            listing_id,
            {"variations": [v.model_dump(mode="json", by_alias=True) for v in variations]},
        )
